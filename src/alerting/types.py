"""Domain types for the sync-health alerting engine."""

from __future__ import annotations

import datetime
from collections.abc import Callable
from enum import IntEnum, StrEnum
from typing import Annotated, Any, Literal, NamedTuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Resource key used when an evaluator does not group by resource.
GENERAL_RESOURCE = "general"

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def _escape_key_part(part: str) -> str:
    return part.replace("%", "%25").replace(":", "%3A")


def join_resource_key(*parts: str) -> str:
    """Join *parts* with ``:``, escaping any colon inside a part.

    ``("a:b", "c")`` and ``("a", "b:c")`` yield distinct keys.
    """
    return ":".join(_escape_key_part(p) for p in parts)


def _as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Treat naive timestamps as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value


class Severity(IntEnum):
    """Alert severity — ordered so comparisons work naturally."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name.lower()


class RuleKind(StrEnum):
    """Built-in rule kinds."""

    FAILURE_BURST = "failure_burst"
    STUCK_TASK = "stuck_task"
    ERROR_RATE = "error_rate"


class ChannelName(StrEnum):
    """Built-in notification channel names."""

    DASHBOARD = "dashboard"
    EMAIL = "email"
    SMS = "sms"


class TaskStatus(StrEnum):
    """Lifecycle status of a background sync task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ── Repository records ───────────────────────────────────────────


class SyncTask(BaseModel):
    """A background data-synchronization task as seen by the repository."""

    id: str
    task_type: str
    source: str
    status: TaskStatus = TaskStatus.PENDING
    started_at: datetime.datetime | None = None
    updated_at: datetime.datetime

    @field_validator("started_at", "updated_at")
    @classmethod
    def _naive_as_utc(cls, value: datetime.datetime | None) -> datetime.datetime | None:
        return _as_utc(value)


class SyncLog(BaseModel):
    """A single sync log line."""

    level: str = "info"
    message: str = ""
    task_id: str | None = None
    created_at: datetime.datetime

    @field_validator("created_at")
    @classmethod
    def _naive_as_utc(cls, value: datetime.datetime) -> datetime.datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=datetime.UTC)
        return value


# ── Rule conditions ──────────────────────────────────────────────


class _ResourceFilter(BaseModel):
    """Optional task-type / source restriction shared by task-based rules."""

    model_config = ConfigDict(extra="forbid")

    task_type: str | None = None
    source: str | None = None


class FailureBurstCondition(_ResourceFilter):
    """N or more failures of the same task type/source inside a window."""

    kind: Literal["failure_burst"] = "failure_burst"
    count_threshold: int = Field(default=3, ge=1)
    window_minutes: int = Field(default=30, ge=1)


class StuckTaskCondition(_ResourceFilter):
    """A task still running after ``timeout_minutes``."""

    kind: Literal["stuck_task"] = "stuck_task"
    timeout_minutes: int = Field(default=60, ge=1)


class ErrorRateCondition(BaseModel):
    """N or more error log lines inside a window."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["error_rate"] = "error_rate"
    count_threshold: int = Field(default=10, ge=1)
    window_minutes: int = Field(default=10, ge=1)


RuleCondition = Annotated[
    Union[FailureBurstCondition, StuckTaskCondition, ErrorRateCondition],
    Field(discriminator="kind"),
]


class AlertRule(BaseModel):
    """A monitored condition plus its notification routing.

    ``kind`` may be given at the top level of a mapping; it is folded into
    the condition, which carries it as the union discriminator.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, pattern=r"^[^:\s]+$")
    name: str = ""
    condition: RuleCondition
    enabled: bool = True
    channels: list[str] = Field(
        default_factory=lambda: [ChannelName.DASHBOARD.value],
    )
    recipients: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _fold_kind(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "kind" not in data:
            return data
        data = dict(data)
        kind = str(data.pop("kind"))
        condition = data.get("condition")
        if condition is None:
            data["condition"] = {"kind": kind}
        elif isinstance(condition, dict):
            condition = dict(condition)
            if str(condition.setdefault("kind", kind)) != kind:
                raise ValueError(
                    f"rule kind {kind!r} does not match condition kind"
                    f" {condition['kind']!r}"
                )
            data["condition"] = condition
        elif getattr(condition, "kind", kind) != kind:
            raise ValueError(
                f"rule kind {kind!r} does not match condition kind"
                f" {condition.kind!r}"
            )
        return data

    @field_validator("channels")
    @classmethod
    def _ordered_unique_channels(cls, value: list[str]) -> list[str]:
        channels: list[str] = []
        for raw in value:
            name = raw.strip().lower()
            if not name:
                raise ValueError("channel names must be non-empty")
            if name not in channels:
                channels.append(name)
        return channels

    @property
    def kind(self) -> RuleKind:
        return RuleKind(self.condition.kind)

    @property
    def display_name(self) -> str:
        return self.name or self.id


# ── Alerts ───────────────────────────────────────────────────────


class AlertKey(NamedTuple):
    """Composite dedup identity of an alert."""

    rule_id: str
    resource_key: str = GENERAL_RESOURCE

    def __str__(self) -> str:
        return f"{self.rule_id}:{self.resource_key}"

    @classmethod
    def parse(cls, alert_id: str) -> AlertKey:
        """Split ``rule_id:resource_key`` on the first colon.

        Rule ids cannot contain a colon, so the split is unambiguous.
        """
        rule_id, sep, resource_key = alert_id.partition(":")
        if not sep or not rule_id or not resource_key:
            raise ValueError(f"malformed alert id: {alert_id!r}")
        return cls(rule_id, resource_key)


class CandidateAlert(BaseModel):
    """Evaluator output that has not yet passed deduplication."""

    rule_id: str
    kind: RuleKind
    severity: Severity
    title: str
    message: str = ""
    resource_key: str = GENERAL_RESOURCE
    task_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> AlertKey:
        return AlertKey(self.rule_id, self.resource_key or GENERAL_RESOURCE)


class Alert(BaseModel):
    """A triggered alert tracked by the alert store."""

    id: str
    rule_id: str
    resource_key: str = GENERAL_RESOURCE
    kind: RuleKind
    severity: Severity
    title: str
    message: str = ""
    task_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    acknowledged: bool = False
    acknowledged_by: str | None = None
    acknowledged_at: datetime.datetime | None = None
    created_at: datetime.datetime

    @property
    def key(self) -> AlertKey:
        return AlertKey(self.rule_id, self.resource_key)

    @classmethod
    def from_candidate(
        cls, candidate: CandidateAlert, created_at: datetime.datetime,
    ) -> Alert:
        key = candidate.key
        return cls(
            id=str(key),
            rule_id=key.rule_id,
            resource_key=key.resource_key,
            kind=candidate.kind,
            severity=candidate.severity,
            title=candidate.title,
            message=candidate.message,
            task_id=candidate.task_id,
            metadata=dict(candidate.metadata),
            created_at=created_at,
        )
