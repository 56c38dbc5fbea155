"""NotificationDispatcher — routes triggered alerts to their rule's channels."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

import structlog

from src.alerting.channels import DeliveryStatus, NotificationChannel
from src.alerting.types import Alert, AlertRule
from src.core.logging import DECISION_LOGGER

# Dedicated structured logger for dispatch records.
decision_logger = structlog.get_logger(DECISION_LOGGER)

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    """Delivers an alert to every channel named on its rule.

    - Channels are tried in the rule's order, each in isolation: an
      exception or failed delivery is logged and the next channel is still
      attempted.
    - Channel names without a registered channel are logged and reported as
      FAILED.
    - Nothing raised by a channel escapes :meth:`dispatch`.
    """

    def __init__(self, channels: Iterable[NotificationChannel] = ()) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        self._stats: dict[str, dict[str, int]] = defaultdict(
            lambda: {status.value: 0 for status in DeliveryStatus},
        )
        for ch in channels:
            self.register(ch)

    def register(self, channel: NotificationChannel, name: str | None = None) -> None:
        """Register *channel* under *name* (defaults to ``channel.name``)."""
        key = (name or channel.name).strip().lower()
        if not key:
            raise ValueError(f"channel {type(channel).__name__} has no name")
        self._channels[key] = channel

    @property
    def channel_names(self) -> list[str]:
        return list(self._channels)

    def get_channel(self, name: str) -> NotificationChannel | None:
        return self._channels.get(name)

    def stats(self) -> dict[str, dict[str, int]]:
        """Per-channel delivery counters."""
        return {name: dict(counts) for name, counts in self._stats.items()}

    async def dispatch(self, alert: Alert, rule: AlertRule) -> dict[str, DeliveryStatus]:
        """Attempt delivery on every channel of *rule*; never raises."""
        self._log_decision(alert, rule)
        results: dict[str, DeliveryStatus] = {}
        for name in rule.channels:
            status = await self._send_one(name, alert, rule)
            results[name] = status
            self._stats[name][status.value] += 1
        return results

    async def _send_one(
        self, name: str, alert: Alert, rule: AlertRule,
    ) -> DeliveryStatus:
        channel = self._channels.get(name)
        if channel is None:
            logger.warning(
                "channel_not_configured",
                channel=name,
                alert_id=alert.id,
                rule_id=rule.id,
            )
            return DeliveryStatus.FAILED
        try:
            result = await channel.send(alert, rule)
        except Exception:
            logger.exception(
                "channel_dispatch_error",
                channel=name,
                alert_id=alert.id,
                rule_id=rule.id,
            )
            return DeliveryStatus.FAILED
        if isinstance(result, DeliveryStatus):
            status = result
        else:
            status = DeliveryStatus.SENT if result else DeliveryStatus.FAILED
        if status == DeliveryStatus.FAILED:
            logger.warning(
                "channel_send_failed",
                channel=name,
                alert_id=alert.id,
                rule_id=rule.id,
            )
        return status

    def _log_decision(self, alert: Alert, rule: AlertRule) -> None:
        decision_logger.info(
            "alert_dispatch",
            alert_id=alert.id,
            rule_id=rule.id,
            severity=alert.severity.label,
            title=alert.title,
            message=alert.message,
            channels=list(rule.channels),
            metadata=alert.metadata,
        )

    async def close(self) -> None:
        for name, ch in self._channels.items():
            try:
                await ch.close()
            except Exception:
                logger.exception("channel_close_error", channel=name)
