"""Read-side collaborators consumed by the evaluators and channels.

The engine never talks to a database directly: it sees task and log records
through :class:`SyncRepository` and recipient addresses through
:class:`RecipientResolver`.  In-memory implementations are provided for
tests and local dry runs.
"""

from __future__ import annotations

import abc
import datetime
from collections.abc import Iterable, Mapping, Sequence

from src.alerting.types import SyncLog, SyncTask, TaskStatus


class SyncRepository(abc.ABC):
    """Time-windowed read access to sync task and log records."""

    @abc.abstractmethod
    async def query_failed_tasks(
        self,
        since: datetime.datetime,
        task_type: str | None = None,
        source: str | None = None,
    ) -> list[SyncTask]:
        """Failed tasks with ``updated_at >= since`` (inclusive)."""

    @abc.abstractmethod
    async def query_running_tasks(
        self,
        started_before: datetime.datetime,
        task_type: str | None = None,
        source: str | None = None,
    ) -> list[SyncTask]:
        """Running tasks with ``started_at <= started_before`` (inclusive)."""

    @abc.abstractmethod
    async def count_error_logs(self, since: datetime.datetime) -> int:
        """Number of error-level log lines with ``created_at >= since``."""


class RecipientResolver(abc.ABC):
    """Maps opaque recipient ids to delivery addresses for a channel."""

    @abc.abstractmethod
    async def resolve_addresses(
        self, recipient_ids: Sequence[str], channel: str,
    ) -> list[str]:
        """Return addresses for *recipient_ids*; unknown ids are dropped."""


def _matches(task: SyncTask, task_type: str | None, source: str | None) -> bool:
    if task_type is not None and task.task_type != task_type:
        return False
    return source is None or task.source == source


class InMemorySyncRepository(SyncRepository):
    """List-backed repository.

    Usage::

        repo = InMemorySyncRepository()
        repo.add_task(SyncTask(id="t1", task_type="sync", source="crm",
                               status=TaskStatus.FAILED, updated_at=now))
        failed = await repo.query_failed_tasks(now - timedelta(minutes=30))
    """

    def __init__(
        self,
        tasks: Iterable[SyncTask] = (),
        logs: Iterable[SyncLog] = (),
    ) -> None:
        self._tasks: list[SyncTask] = list(tasks)
        self._logs: list[SyncLog] = list(logs)

    @property
    def tasks(self) -> list[SyncTask]:
        return list(self._tasks)

    def add_task(self, task: SyncTask) -> None:
        self._tasks.append(task)

    def add_log(self, log: SyncLog) -> None:
        self._logs.append(log)

    def clear(self) -> None:
        self._tasks.clear()
        self._logs.clear()

    async def query_failed_tasks(
        self,
        since: datetime.datetime,
        task_type: str | None = None,
        source: str | None = None,
    ) -> list[SyncTask]:
        return [
            t for t in self._tasks
            if t.status == TaskStatus.FAILED
            and t.updated_at >= since
            and _matches(t, task_type, source)
        ]

    async def query_running_tasks(
        self,
        started_before: datetime.datetime,
        task_type: str | None = None,
        source: str | None = None,
    ) -> list[SyncTask]:
        return [
            t for t in self._tasks
            if t.status == TaskStatus.RUNNING
            and t.started_at is not None
            and t.started_at <= started_before
            and _matches(t, task_type, source)
        ]

    async def count_error_logs(self, since: datetime.datetime) -> int:
        return sum(
            1 for log in self._logs
            if log.level.lower() == "error" and log.created_at >= since
        )


class StaticRecipientResolver(RecipientResolver):
    """Resolves recipients from a fixed ``{channel: {recipient_id: address}}`` map."""

    def __init__(self, directory: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._directory: dict[str, dict[str, str]] = {
            channel: dict(entries) for channel, entries in (directory or {}).items()
        }

    async def resolve_addresses(
        self, recipient_ids: Sequence[str], channel: str,
    ) -> list[str]:
        entries = self._directory.get(channel, {})
        addresses: list[str] = []
        for rid in recipient_ids:
            address = entries.get(rid)
            if address and address not in addresses:
                addresses.append(address)
        return addresses
