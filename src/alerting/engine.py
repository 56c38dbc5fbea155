"""AlertEngine — the management surface of the sync-health alerting engine."""

from __future__ import annotations

import datetime
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from src.alerting.channels import DeliveryStatus, NotificationChannel
from src.alerting.dispatcher import NotificationDispatcher
from src.alerting.exceptions import NotFoundError
from src.alerting.registry import RuleInput, RuleRegistry
from src.alerting.repository import SyncRepository
from src.alerting.scheduler import DEFAULT_INTERVAL_SECS, AlertScheduler
from src.alerting.store import AlertStore
from src.alerting.types import Alert, AlertRule, CandidateAlert, Clock, utc_now

logger = structlog.get_logger(__name__)


class AlertEngine:
    """Owns one registry, store, dispatcher and scheduler.

    Several engines can coexist in one process; nothing here is global.

    Usage::

        engine = AlertEngine(repository, channels=[DashboardChannel()])
        engine.add_rule({"id": "sync-failure", "kind": "failure_burst",
                         "condition": {"count_threshold": 3, "window_minutes": 30}})
        await engine.start()
        ...
        engine.acknowledge_alert("sync-failure:sync:crm", user_id="u-1")
        await engine.stop()
    """

    def __init__(
        self,
        repository: SyncRepository,
        channels: Iterable[NotificationChannel] = (),
        interval_secs: float = DEFAULT_INTERVAL_SECS,
        retrigger_cooldown: datetime.timedelta = datetime.timedelta(0),
        clock: Clock | None = None,
    ) -> None:
        self._clock = clock or utc_now
        self._registry = RuleRegistry()
        self._store = AlertStore(retrigger_cooldown=retrigger_cooldown, clock=self._clock)
        self._dispatcher = NotificationDispatcher(channels)
        self._scheduler = AlertScheduler(
            registry=self._registry,
            store=self._store,
            dispatcher=self._dispatcher,
            repository=repository,
            interval_secs=interval_secs,
            clock=self._clock,
        )

    @property
    def registry(self) -> RuleRegistry:
        return self._registry

    @property
    def store(self) -> AlertStore:
        return self._store

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def scheduler(self) -> AlertScheduler:
        return self._scheduler

    @property
    def running(self) -> bool:
        return self._scheduler.running

    # ── Rule management ─────────────────────────────────────────

    def add_rule(self, rule: RuleInput) -> AlertRule:
        return self._registry.add_rule(rule)

    def update_rule(self, rule_id: str, updates: Mapping[str, Any]) -> AlertRule:
        return self._registry.update_rule(rule_id, updates)

    def remove_rule(self, rule_id: str) -> None:
        self._registry.remove_rule(rule_id)

    def set_enabled(self, rule_id: str, enabled: bool) -> None:
        self._registry.set_enabled(rule_id, enabled)

    def get_rule(self, rule_id: str) -> AlertRule | None:
        return self._registry.get_rule(rule_id)

    def list_rules(self) -> list[AlertRule]:
        return self._registry.list_rules()

    # ── Alerts ──────────────────────────────────────────────────

    def get_active_alerts(self) -> list[Alert]:
        return self._store.list_active()

    def acknowledge_alert(self, alert_id: str, user_id: str) -> Alert:
        return self._store.acknowledge(alert_id, user_id)

    async def trigger_alert(
        self, candidate: CandidateAlert,
    ) -> tuple[Alert | None, dict[str, DeliveryStatus]]:
        """Push a candidate through dedup and dispatch outside the schedule.

        The candidate's rule must be registered; it supplies the channels.
        """
        rule = self._registry.get_rule(candidate.rule_id)
        if rule is None:
            raise NotFoundError(f"unknown rule: {candidate.rule_id!r}")
        alert = self._store.trigger(candidate)
        if alert is None:
            return None, {}
        results = await self._dispatcher.dispatch(alert, rule)
        return alert, results

    # ── Lifecycle ───────────────────────────────────────────────

    async def start(self) -> None:
        await self._scheduler.start()

    async def stop(self) -> None:
        await self._scheduler.stop()

    async def run_once(self) -> list[Alert]:
        return await self._scheduler.run_once()

    async def close(self) -> None:
        await self.stop()
        await self._dispatcher.close()

    def snapshot(self) -> dict[str, object]:
        """Return a snapshot of engine state for health endpoints."""
        rules = self._registry.list_rules()
        sched = self._scheduler
        return {
            "running": sched.running,
            "rules": len(rules),
            "enabled_rules": sum(1 for r in rules if r.enabled),
            "active_alerts": len(self._store.list_active()),
            "total_alerts": len(self._store),
            "ticks": sched.ticks,
            "rule_errors": sched.rule_errors,
            "alerts_triggered": sched.alerts_triggered,
            "last_tick_at": (
                sched.last_tick_at.isoformat() if sched.last_tick_at else None
            ),
            "deliveries": self._dispatcher.stats(),
        }
