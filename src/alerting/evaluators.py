"""Condition evaluators — turn repository rows into candidate alerts.

Each ``evaluate_*`` coroutine performs exactly one repository query and
hands the rows to a pure ``build_*`` function.  Nothing here mutates shared
state; deduplication and delivery happen downstream.
"""

from __future__ import annotations

import datetime
from collections import Counter
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from src.alerting.exceptions import RepositoryError, ValidationError
from src.alerting.repository import SyncRepository
from src.alerting.types import (
    GENERAL_RESOURCE,
    AlertRule,
    CandidateAlert,
    ErrorRateCondition,
    FailureBurstCondition,
    RuleKind,
    Severity,
    StuckTaskCondition,
    SyncTask,
    join_resource_key,
)

T = TypeVar("T")

Evaluator = Callable[
    [AlertRule, SyncRepository, datetime.datetime],
    Awaitable[list[CandidateAlert]],
]


async def _query(
    rule: AlertRule, fn: Callable[..., Awaitable[T]], *args: object,
) -> T:
    """Call a repository coroutine, normalising failures to RepositoryError."""
    try:
        return await fn(*args)
    except RepositoryError:
        raise
    except Exception as exc:
        raise RepositoryError(
            f"repository query failed for rule {rule.id!r}: {exc}"
        ) from exc


# ── Pure builders ───────────────────────────────────────────────


def build_failure_burst(
    rule_id: str,
    condition: FailureBurstCondition,
    failed: Sequence[SyncTask],
) -> list[CandidateAlert]:
    """One HIGH candidate per (task_type, source) group at or over threshold."""
    counts = Counter((t.task_type, t.source) for t in failed)
    candidates: list[CandidateAlert] = []
    for (task_type, source), count in counts.items():
        if count < condition.count_threshold:
            continue
        candidates.append(CandidateAlert(
            rule_id=rule_id,
            kind=RuleKind.FAILURE_BURST,
            severity=Severity.HIGH,
            title=f"{task_type} - {source} sync failing repeatedly",
            message=(
                f"{task_type} - {source} sync failed {count} times in the last"
                f" {condition.window_minutes} minutes"
                f" (threshold {condition.count_threshold})."
            ),
            resource_key=join_resource_key(task_type, source),
            metadata={
                "task_type": task_type,
                "source": source,
                "failure_count": count,
                "threshold": condition.count_threshold,
                "window_minutes": condition.window_minutes,
            },
        ))
    return candidates


def build_stuck_tasks(
    rule_id: str,
    condition: StuckTaskCondition,
    running: Sequence[SyncTask],
    now: datetime.datetime,
) -> list[CandidateAlert]:
    """One CRITICAL candidate per task running past the timeout."""
    candidates: list[CandidateAlert] = []
    for task in running:
        running_minutes = None
        if task.started_at is not None:
            running_minutes = int((now - task.started_at).total_seconds() // 60)
        candidates.append(CandidateAlert(
            rule_id=rule_id,
            kind=RuleKind.STUCK_TASK,
            severity=Severity.CRITICAL,
            title="Sync task timed out",
            message=(
                f"Task {task.id} ({task.task_type} - {task.source}) has been"
                f" running for more than {condition.timeout_minutes} minutes"
                " and may be stuck."
            ),
            resource_key=task.id,
            task_id=task.id,
            metadata={
                "task": task.model_dump(mode="json"),
                "running_minutes": running_minutes,
                "timeout_minutes": condition.timeout_minutes,
            },
        ))
    return candidates


def build_error_rate(
    rule_id: str,
    condition: ErrorRateCondition,
    error_count: int,
) -> list[CandidateAlert]:
    """A single MEDIUM candidate when the error-log count reaches threshold."""
    if error_count < condition.count_threshold:
        return []
    return [CandidateAlert(
        rule_id=rule_id,
        kind=RuleKind.ERROR_RATE,
        severity=Severity.MEDIUM,
        title="Error log volume over threshold",
        message=(
            f"{error_count} error log entries in the last"
            f" {condition.window_minutes} minutes"
            f" (threshold {condition.count_threshold})."
        ),
        resource_key=GENERAL_RESOURCE,
        metadata={
            "error_count": error_count,
            "threshold": condition.count_threshold,
            "window_minutes": condition.window_minutes,
        },
    )]


# ── Evaluators ──────────────────────────────────────────────────


async def evaluate_failure_burst(
    rule: AlertRule, repository: SyncRepository, now: datetime.datetime,
) -> list[CandidateAlert]:
    cond = rule.condition
    if not isinstance(cond, FailureBurstCondition):
        raise ValidationError(f"rule {rule.id!r} has no FailureBurstCondition")
    since = now - datetime.timedelta(minutes=cond.window_minutes)
    failed = await _query(
        rule, repository.query_failed_tasks, since, cond.task_type, cond.source,
    )
    return build_failure_burst(rule.id, cond, failed)


async def evaluate_stuck_task(
    rule: AlertRule, repository: SyncRepository, now: datetime.datetime,
) -> list[CandidateAlert]:
    cond = rule.condition
    if not isinstance(cond, StuckTaskCondition):
        raise ValidationError(f"rule {rule.id!r} has no StuckTaskCondition")
    started_before = now - datetime.timedelta(minutes=cond.timeout_minutes)
    running = await _query(
        rule,
        repository.query_running_tasks, started_before, cond.task_type, cond.source,
    )
    return build_stuck_tasks(rule.id, cond, running, now)


async def evaluate_error_rate(
    rule: AlertRule, repository: SyncRepository, now: datetime.datetime,
) -> list[CandidateAlert]:
    cond = rule.condition
    if not isinstance(cond, ErrorRateCondition):
        raise ValidationError(f"rule {rule.id!r} has no ErrorRateCondition")
    since = now - datetime.timedelta(minutes=cond.window_minutes)
    count = await _query(rule, repository.count_error_logs, since)
    return build_error_rate(rule.id, cond, int(count or 0))


EVALUATORS: dict[RuleKind, Evaluator] = {
    RuleKind.FAILURE_BURST: evaluate_failure_burst,
    RuleKind.STUCK_TASK: evaluate_stuck_task,
    RuleKind.ERROR_RATE: evaluate_error_rate,
}


async def evaluate_rule(
    rule: AlertRule, repository: SyncRepository, now: datetime.datetime,
) -> list[CandidateAlert]:
    """Run the evaluator registered for ``rule.kind``."""
    evaluator = EVALUATORS.get(rule.kind)
    if evaluator is None:
        raise ValidationError(f"no evaluator for rule kind {rule.kind!r}")
    return await evaluator(rule, repository, now)
