"""Built-in rules seeded into a fresh engine."""

from __future__ import annotations

from src.alerting.types import (
    AlertRule,
    ChannelName,
    ErrorRateCondition,
    FailureBurstCondition,
    StuckTaskCondition,
)


def default_rules() -> list[AlertRule]:
    """Repeated sync failures, stuck sync tasks, and error-log bursts."""
    return [
        AlertRule(
            id="sync-failure",
            name="Sync task failing repeatedly",
            condition=FailureBurstCondition(count_threshold=3, window_minutes=30),
            channels=[ChannelName.DASHBOARD.value, ChannelName.EMAIL.value],
        ),
        AlertRule(
            id="sync-timeout",
            name="Sync task stuck",
            condition=StuckTaskCondition(timeout_minutes=60),
            channels=[ChannelName.DASHBOARD.value],
        ),
        AlertRule(
            id="error-threshold",
            name="Error log burst",
            condition=ErrorRateCondition(count_threshold=10, window_minutes=10),
            channels=[ChannelName.DASHBOARD.value, ChannelName.EMAIL.value],
        ),
    ]
