"""RuleRegistry — in-memory catalogue of alert rules."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any

import pydantic
import structlog

from src.alerting.exceptions import NotFoundError, ValidationError
from src.alerting.types import AlertRule

logger = structlog.get_logger(__name__)

RuleInput = AlertRule | Mapping[str, Any]


def validate_rule(rule: RuleInput) -> AlertRule:
    """Return a freshly validated copy of *rule*.

    Instances are re-validated from their dump so that rules built with
    ``model_construct`` or mutated after construction cannot slip through.
    """
    data = rule.model_dump() if isinstance(rule, AlertRule) else dict(rule)
    try:
        return AlertRule.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"invalid alert rule: {exc}") from exc


class RuleRegistry:
    """Thread-safe, insertion-ordered map of rule id → AlertRule.

    Every accessor returns copies; callers never hold a reference into the
    registry's own records.
    """

    def __init__(self) -> None:
        self._rules: dict[str, AlertRule] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        with self._lock:
            return rule_id in self._rules

    def add_rule(self, rule: RuleInput) -> AlertRule:
        """Validate and store *rule*, replacing any rule with the same id."""
        validated = validate_rule(rule)
        with self._lock:
            replaced = validated.id in self._rules
            self._rules[validated.id] = validated
        logger.info(
            "rule_added",
            rule_id=validated.id,
            kind=validated.kind.value,
            replaced=replaced,
        )
        return validated.model_copy(deep=True)

    def update_rule(self, rule_id: str, updates: Mapping[str, Any]) -> AlertRule:
        """Merge *updates* into an existing rule.

        ``condition`` updates merge into the current condition; changing
        ``kind`` starts a fresh condition of the new kind.  Fields not named
        in *updates* (``enabled`` included) are left as they are.
        """
        updates = dict(updates)
        fields = sorted(k for k in updates if k != "id")
        with self._lock:
            current = self._rules.get(rule_id)
            if current is None:
                raise NotFoundError(f"unknown rule: {rule_id!r}")

            new_id = updates.pop("id", rule_id)
            if new_id != rule_id:
                raise ValidationError(
                    f"rule id cannot change ({rule_id!r} -> {new_id!r})"
                )

            data = current.model_dump()
            condition = dict(data["condition"])
            new_kind = updates.pop("kind", None)
            if new_kind is not None and str(new_kind) != condition["kind"]:
                condition = {"kind": str(new_kind)}

            condition_updates = updates.pop("condition", None) or {}
            if isinstance(condition_updates, pydantic.BaseModel):
                condition_updates = condition_updates.model_dump()
            condition.update(condition_updates)

            data.update(updates)
            data["condition"] = condition
            validated = validate_rule(data)
            self._rules[rule_id] = validated

        logger.info("rule_updated", rule_id=rule_id, fields=fields)
        return validated.model_copy(deep=True)

    def remove_rule(self, rule_id: str) -> None:
        """Remove a rule; unknown ids are ignored."""
        with self._lock:
            removed = self._rules.pop(rule_id, None)
        if removed is not None:
            logger.info("rule_removed", rule_id=rule_id)

    def set_enabled(self, rule_id: str, enabled: bool) -> None:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                raise NotFoundError(f"unknown rule: {rule_id!r}")
            rule.enabled = bool(enabled)
        logger.info("rule_enabled_changed", rule_id=rule_id, enabled=bool(enabled))

    def get_rule(self, rule_id: str) -> AlertRule | None:
        with self._lock:
            rule = self._rules.get(rule_id)
            return rule.model_copy(deep=True) if rule is not None else None

    def list_rules(self) -> list[AlertRule]:
        """All rules in insertion order."""
        with self._lock:
            return [r.model_copy(deep=True) for r in self._rules.values()]

    def enabled_rules(self) -> list[AlertRule]:
        """Snapshot of enabled rules in insertion order."""
        with self._lock:
            return [
                r.model_copy(deep=True) for r in self._rules.values() if r.enabled
            ]
