"""AlertStore — deduplicating map of alert identities to alert records."""

from __future__ import annotations

import datetime
import threading

import structlog

from src.alerting.exceptions import NotFoundError
from src.alerting.types import Alert, AlertKey, CandidateAlert, Clock, utc_now

logger = structlog.get_logger(__name__)


class AlertStore:
    """Owns every alert the engine has raised.

    - A key with an unacknowledged alert blocks further triggers.
    - Acknowledgement lifts the block; the next breach overwrites the record
      under the same id with a fresh ``created_at``.
    - Alerts are never deleted or auto-resolved.

    ``retrigger_cooldown`` optionally suppresses a breach that arrives too
    soon after an acknowledgement.  The default (zero) disables it.
    """

    def __init__(
        self,
        retrigger_cooldown: datetime.timedelta = datetime.timedelta(0),
        clock: Clock | None = None,
    ) -> None:
        self._alerts: dict[AlertKey, Alert] = {}
        self._lock = threading.Lock()
        self._cooldown = retrigger_cooldown
        self._clock = clock or utc_now

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)

    def trigger(
        self,
        candidate: CandidateAlert,
        now: datetime.datetime | None = None,
    ) -> Alert | None:
        """Record *candidate* unless an unacknowledged alert already holds its key.

        Returns a copy of the new alert, or None when suppressed.
        """
        now = now or self._clock()
        key = candidate.key
        with self._lock:
            existing = self._alerts.get(key)
            if existing is not None:
                if not existing.acknowledged:
                    return None
                if (
                    self._cooldown
                    and existing.acknowledged_at is not None
                    and now - existing.acknowledged_at < self._cooldown
                ):
                    logger.debug("alert_retrigger_in_cooldown", alert_id=str(key))
                    return None
            alert = Alert.from_candidate(candidate, created_at=now)
            self._alerts[key] = alert
            snapshot = alert.model_copy(deep=True)

        logger.warning(
            "alert_triggered",
            alert_id=snapshot.id,
            severity=snapshot.severity.label,
            title=snapshot.title,
            message=snapshot.message,
        )
        return snapshot

    def acknowledge(
        self,
        alert_id: str,
        user_id: str,
        now: datetime.datetime | None = None,
    ) -> Alert:
        """Mark an alert acknowledged; repeated calls are no-ops."""
        try:
            key = AlertKey.parse(alert_id)
        except ValueError as exc:
            raise NotFoundError(f"unknown alert: {alert_id!r}") from exc

        with self._lock:
            alert = self._alerts.get(key)
            if alert is None:
                raise NotFoundError(f"unknown alert: {alert_id!r}")
            if alert.acknowledged:
                return alert.model_copy(deep=True)
            alert.acknowledged = True
            alert.acknowledged_by = user_id
            alert.acknowledged_at = now or self._clock()
            snapshot = alert.model_copy(deep=True)

        logger.info("alert_acknowledged", alert_id=alert_id, user_id=user_id)
        return snapshot

    def get(self, alert_id: str) -> Alert | None:
        try:
            key = AlertKey.parse(alert_id)
        except ValueError:
            return None
        with self._lock:
            alert = self._alerts.get(key)
            return alert.model_copy(deep=True) if alert is not None else None

    def list_active(self) -> list[Alert]:
        """Unacknowledged alerts, most recent first."""
        with self._lock:
            active = [
                a.model_copy(deep=True)
                for a in self._alerts.values()
                if not a.acknowledged
            ]
        active.sort(key=lambda a: a.created_at, reverse=True)
        return active

    def list_all(self) -> list[Alert]:
        with self._lock:
            return [a.model_copy(deep=True) for a in self._alerts.values()]
