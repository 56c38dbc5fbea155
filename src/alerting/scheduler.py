"""AlertScheduler — periodic evaluation of every enabled rule."""

from __future__ import annotations

import asyncio
import datetime

import structlog

from src.alerting.dispatcher import NotificationDispatcher
from src.alerting.evaluators import evaluate_rule
from src.alerting.registry import RuleRegistry
from src.alerting.repository import SyncRepository
from src.alerting.store import AlertStore
from src.alerting.types import Alert, AlertRule, Clock, utc_now

logger = structlog.get_logger(__name__)

DEFAULT_INTERVAL_SECS = 60.0


class AlertScheduler:
    """Background task that runs an evaluation pass every ``interval_secs``.

    Usage::

        scheduler = AlertScheduler(registry, store, dispatcher, repository)
        await scheduler.start()   # runs one pass immediately
        # ...
        await scheduler.stop()

    A failure while evaluating one rule is logged and the remaining rules
    still run; nothing raised by a rule ends the loop.  ``stop()`` cancels
    the pending wait but lets a pass that is already running finish.
    """

    def __init__(
        self,
        registry: RuleRegistry,
        store: AlertStore,
        dispatcher: NotificationDispatcher,
        repository: SyncRepository,
        interval_secs: float = DEFAULT_INTERVAL_SECS,
        clock: Clock | None = None,
    ) -> None:
        if interval_secs <= 0:
            raise ValueError("interval_secs must be positive")
        self._registry = registry
        self._store = store
        self._dispatcher = dispatcher
        self._repository = repository
        self._interval = interval_secs
        self._clock = clock or utc_now
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._stop_event = asyncio.Event()
        self._pass_lock = asyncio.Lock()

        self.ticks = 0
        self.rule_errors = 0
        self.alerts_triggered = 0
        self.last_tick_at: datetime.datetime | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def interval_secs(self) -> float:
        return self._interval

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._stop_event = asyncio.Event()
        logger.info("alert_scheduler_started", interval_secs=self._interval)
        await self.run_once()
        if self._running:
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if not self._running and self._task is None:
            return
        self._running = False
        self._stop_event.set()
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("alert_scheduler_stopped")

    async def run_once(self) -> list[Alert]:
        """Evaluate every enabled rule once; return the alerts newly triggered."""
        async with self._pass_lock:
            now = self._clock()
            self.ticks += 1
            self.last_tick_at = now
            triggered: list[Alert] = []
            for rule in self._registry.enabled_rules():
                triggered.extend(await self._evaluate(rule, now))
            self.alerts_triggered += len(triggered)
            return triggered

    async def _evaluate(self, rule: AlertRule, now: datetime.datetime) -> list[Alert]:
        try:
            candidates = await evaluate_rule(rule, self._repository, now)
        except Exception:
            self.rule_errors += 1
            logger.exception(
                "rule_evaluation_error",
                rule_id=rule.id,
                kind=rule.kind.value,
            )
            return []

        triggered: list[Alert] = []
        for candidate in candidates:
            alert = self._store.trigger(candidate, now)
            if alert is None:
                continue
            triggered.append(alert)
            await self._dispatcher.dispatch(alert, rule)
        return triggered

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                return
            except TimeoutError:
                pass
            try:
                await self.run_once()
            except Exception:
                logger.exception("alert_scheduler_loop_error")
