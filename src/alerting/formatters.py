"""Pure functions that render alerts for human-facing channels."""

from __future__ import annotations

from typing import Any

from src.alerting.types import Alert

# Single-segment SMS limit.
SMS_MAX_CHARS = 160


def format_subject(alert: Alert) -> str:
    """Email subject line, e.g. ``[HIGH] sync - crm sync failing repeatedly``."""
    return f"[{alert.severity.name}] {alert.title}"


def format_fields(metadata: dict[str, Any]) -> dict[str, str]:
    """Flatten metadata to display strings; nested mappings are skipped."""
    return {
        k: str(v)
        for k, v in metadata.items()
        if v is not None and not isinstance(v, dict)
    }


def format_email_body(alert: Alert) -> str:
    lines = [
        alert.message,
        "",
        f"Alert: {alert.id}",
        f"Severity: {alert.severity.label}",
        f"Raised at: {alert.created_at.isoformat()}",
    ]
    if alert.task_id:
        lines.append(f"Task: {alert.task_id}")
    fields = format_fields(alert.metadata)
    if fields:
        lines.append("")
        lines.extend(f"  {k}: {v}" for k, v in fields.items())
    return "\n".join(lines)


def format_sms_text(alert: Alert, max_chars: int = SMS_MAX_CHARS) -> str:
    """Single-line rendering truncated to *max_chars*."""
    text = f"[{alert.severity.name}] {alert.title}: {alert.message}"
    text = " ".join(text.split())
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 3].rstrip() + "..."


def format_dashboard_entry(alert: Alert) -> dict[str, Any]:
    """JSON-safe record for the dashboard feed."""
    entry = alert.model_dump(mode="json")
    entry["severity"] = alert.severity.label
    return entry
