"""Tests for alerting domain types — rule validation, keys, severity."""

from __future__ import annotations

import datetime

import pydantic
import pytest

from src.alerting.types import (
    GENERAL_RESOURCE,
    Alert,
    AlertKey,
    AlertRule,
    CandidateAlert,
    ErrorRateCondition,
    FailureBurstCondition,
    RuleKind,
    Severity,
    StuckTaskCondition,
    SyncLog,
    SyncTask,
    TaskStatus,
    join_resource_key,
)

NOW = datetime.datetime(2025, 6, 15, 12, 0, 0, tzinfo=datetime.UTC)


# ── Severity ────────────────────────────────────────────────────


class TestSeverity:
    def test_ordering(self) -> None:
        assert Severity.LOW < Severity.MEDIUM < Severity.HIGH < Severity.CRITICAL

    def test_label(self) -> None:
        assert Severity.HIGH.label == "high"


# ── AlertRule ───────────────────────────────────────────────────


class TestAlertRule:
    def test_kind_folded_into_condition(self) -> None:
        rule = AlertRule.model_validate({
            "id": "r1",
            "kind": "stuck_task",
            "condition": {"timeout_minutes": 45},
        })
        assert rule.kind == RuleKind.STUCK_TASK
        assert isinstance(rule.condition, StuckTaskCondition)
        assert rule.condition.timeout_minutes == 45

    def test_kind_without_condition_uses_defaults(self) -> None:
        rule = AlertRule.model_validate({"id": "r1", "kind": "error_rate"})
        assert isinstance(rule.condition, ErrorRateCondition)
        assert rule.condition.count_threshold == 10
        assert rule.condition.window_minutes == 10

    def test_kind_from_condition_only(self) -> None:
        rule = AlertRule(id="r1", condition=FailureBurstCondition())
        assert rule.kind == RuleKind.FAILURE_BURST

    def test_conflicting_kind_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AlertRule.model_validate({
                "id": "r1",
                "kind": "error_rate",
                "condition": {"kind": "stuck_task"},
            })

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AlertRule.model_validate({"id": "r1", "kind": "disk_full"})

    @pytest.mark.parametrize("field", ["count_threshold", "window_minutes"])
    def test_non_positive_thresholds_rejected(self, field: str) -> None:
        with pytest.raises(pydantic.ValidationError):
            AlertRule.model_validate({
                "id": "r1",
                "kind": "failure_burst",
                "condition": {field: 0},
            })

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            StuckTaskCondition(timeout_minutes=0)

    def test_unknown_condition_field_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AlertRule.model_validate({
                "id": "r1",
                "kind": "error_rate",
                "condition": {"timeout_minutes": 5},
            })

    @pytest.mark.parametrize("rule_id", ["", "a:b", "has space"])
    def test_bad_ids_rejected(self, rule_id: str) -> None:
        with pytest.raises(pydantic.ValidationError):
            AlertRule(id=rule_id, condition=ErrorRateCondition())

    def test_channels_deduplicated_in_order(self) -> None:
        rule = AlertRule(
            id="r1",
            condition=ErrorRateCondition(),
            channels=["email", "Dashboard", "email", "sms"],
        )
        assert rule.channels == ["email", "dashboard", "sms"]

    def test_blank_channel_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AlertRule(id="r1", condition=ErrorRateCondition(), channels=[" "])

    def test_defaults(self) -> None:
        rule = AlertRule(id="r1", condition=ErrorRateCondition())
        assert rule.enabled is True
        assert rule.channels == ["dashboard"]
        assert rule.recipients == []
        assert rule.display_name == "r1"


# ── AlertKey ────────────────────────────────────────────────────


class TestAlertKey:
    def test_str(self) -> None:
        assert str(AlertKey("sync-failure", "sync:crm")) == "sync-failure:sync:crm"

    def test_default_resource_is_general(self) -> None:
        assert str(AlertKey("error-threshold")) == "error-threshold:general"

    def test_parse_splits_on_first_colon(self) -> None:
        key = AlertKey.parse("sync-failure:sync:crm")
        assert key == AlertKey("sync-failure", "sync:crm")

    @pytest.mark.parametrize("bad", ["", "no-colon", ":general", "rule:"])
    def test_parse_rejects_malformed(self, bad: str) -> None:
        with pytest.raises(ValueError):
            AlertKey.parse(bad)

    def test_join_resource_key_plain_parts(self) -> None:
        assert join_resource_key("sync", "crm") == "sync:crm"

    def test_join_resource_key_colons_do_not_collide(self) -> None:
        left = join_resource_key("a:b", "c")
        right = join_resource_key("a", "b:c")
        assert left != right
        assert left == "a%3Ab:c"

    def test_join_resource_key_escapes_percent(self) -> None:
        assert join_resource_key("a%3Ab", "c") != join_resource_key("a:b", "c")


# ── Repository records ──────────────────────────────────────────


class TestRecordTimestamps:
    def test_naive_task_times_read_as_utc(self) -> None:
        naive = NOW.replace(tzinfo=None)
        task = SyncTask(
            id="t-1",
            task_type="sync",
            source="crm",
            status=TaskStatus.FAILED,
            started_at=naive,
            updated_at=naive,
        )
        assert task.updated_at == NOW
        assert task.started_at == NOW
        assert task.updated_at.tzinfo is not None

    def test_aware_times_untouched(self) -> None:
        offset = datetime.timezone(datetime.timedelta(hours=2))
        ts = NOW.astimezone(offset)
        task = SyncTask(id="t-1", task_type="sync", source="crm", updated_at=ts)
        assert task.updated_at.utcoffset() == datetime.timedelta(hours=2)
        assert task.started_at is None

    def test_naive_log_time_read_as_utc(self) -> None:
        log = SyncLog(level="error", created_at=NOW.replace(tzinfo=None))
        assert log.created_at == NOW


# ── Alerts ──────────────────────────────────────────────────────


class TestAlert:
    def test_from_candidate(self) -> None:
        candidate = CandidateAlert(
            rule_id="sync-timeout",
            kind=RuleKind.STUCK_TASK,
            severity=Severity.CRITICAL,
            title="stuck",
            message="task t-1 stuck",
            resource_key="t-1",
            task_id="t-1",
            metadata={"timeout_minutes": 60},
        )
        alert = Alert.from_candidate(candidate, created_at=NOW)
        assert alert.id == "sync-timeout:t-1"
        assert alert.key == candidate.key
        assert alert.task_id == "t-1"
        assert alert.acknowledged is False
        assert alert.acknowledged_by is None
        assert alert.created_at == NOW

    def test_empty_resource_key_maps_to_general(self) -> None:
        candidate = CandidateAlert(
            rule_id="r1",
            kind=RuleKind.ERROR_RATE,
            severity=Severity.MEDIUM,
            title="t",
            resource_key="",
        )
        assert candidate.key.resource_key == GENERAL_RESOURCE
