"""Tests for alert formatters."""

from __future__ import annotations

import datetime

from src.alerting.formatters import (
    format_dashboard_entry,
    format_email_body,
    format_fields,
    format_sms_text,
)
from src.alerting.types import Alert, RuleKind, Severity

NOW = datetime.datetime(2025, 6, 15, 12, 0, 0, tzinfo=datetime.UTC)


def _alert(**kw: object) -> Alert:
    defaults: dict[str, object] = {
        "id": "sync-timeout:t-9",
        "rule_id": "sync-timeout",
        "resource_key": "t-9",
        "kind": RuleKind.STUCK_TASK,
        "severity": Severity.CRITICAL,
        "title": "Sync task stuck",
        "message": "Task t-9 has been running for 75 minutes",
        "task_id": "t-9",
        "metadata": {"running_minutes": 75, "task": {"id": "t-9"}, "note": None},
        "created_at": NOW,
    }
    defaults.update(kw)
    return Alert(**defaults)  # type: ignore[arg-type]


class TestFormatFields:
    def test_skips_nested_and_none(self) -> None:
        assert format_fields(_alert().metadata) == {"running_minutes": "75"}


class TestEmailBody:
    def test_includes_identity_and_fields(self) -> None:
        body = format_email_body(_alert())
        assert body.startswith("Task t-9 has been running")
        assert "Alert: sync-timeout:t-9" in body
        assert "Severity: critical" in body
        assert "Task: t-9" in body
        assert "running_minutes: 75" in body

    def test_no_task_line_without_task(self) -> None:
        body = format_email_body(_alert(task_id=None, metadata={}))
        assert "Task:" not in body


class TestSmsText:
    def test_collapses_whitespace(self) -> None:
        text = format_sms_text(_alert(message="line one\n\n  line two"))
        assert text == "[CRITICAL] Sync task stuck: line one line two"

    def test_custom_limit(self) -> None:
        text = format_sms_text(_alert(), max_chars=20)
        assert len(text) <= 20
        assert text.endswith("...")


class TestDashboardEntry:
    def test_json_safe(self) -> None:
        entry = format_dashboard_entry(_alert())
        assert entry["severity"] == "critical"
        assert entry["kind"] == "stuck_task"
        assert entry["created_at"].startswith("2025-06-15T12:00:00")
        assert entry["acknowledged"] is False
