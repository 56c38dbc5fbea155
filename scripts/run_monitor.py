#!/usr/bin/env python3
"""Alert engine entrypoint — runs the scheduler against an in-memory repository.

Intended for local dry runs: the repository is seeded with a small failure
scenario so the default rules have something to fire on.

Usage::

    # Run with default config
    python scripts/run_monitor.py

    # Custom config file, no seeded data
    python scripts/run_monitor.py --config config/settings.yaml --no-seed

    # Override log level / renderer
    python scripts/run_monitor.py --log-level DEBUG --log-format console
"""

from __future__ import annotations

import argparse
import asyncio
import datetime
import signal
import sys

import structlog

from src.alerting.factory import create_engine
from src.alerting.repository import InMemorySyncRepository
from src.alerting.types import SyncLog, SyncTask, TaskStatus
from src.core.config import load_settings
from src.core.logging import setup_logging

logger = structlog.get_logger(__name__)


def _seed(repo: InMemorySyncRepository) -> None:
    """Three recent CRM failures, one stuck ERP task, and an error burst."""
    now = datetime.datetime.now(datetime.UTC)
    for i in range(3):
        repo.add_task(SyncTask(
            id=f"crm-{i}",
            task_type="sync",
            source="crm",
            status=TaskStatus.FAILED,
            started_at=now - datetime.timedelta(minutes=12 - i),
            updated_at=now - datetime.timedelta(minutes=10 - i * 3),
        ))
    repo.add_task(SyncTask(
        id="erp-stuck",
        task_type="sync",
        source="erp",
        status=TaskStatus.RUNNING,
        started_at=now - datetime.timedelta(minutes=75),
        updated_at=now - datetime.timedelta(minutes=75),
    ))
    for i in range(12):
        repo.add_log(SyncLog(
            level="error",
            message=f"upstream timeout #{i}",
            created_at=now - datetime.timedelta(minutes=i % 8),
        ))


async def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(level=args.log_level, fmt=args.log_format)

    repo = InMemorySyncRepository()
    if not args.no_seed:
        _seed(repo)

    engine = create_engine(settings, repo)
    await engine.start()
    logger.info("monitor_running", **engine.snapshot())

    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            pass

    try:
        if args.once:
            stop_event.set()
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    await engine.close()
    for alert in engine.get_active_alerts():
        logger.info(
            "active_alert",
            alert_id=alert.id,
            severity=alert.severity.label,
            title=alert.title,
        )
    logger.info("monitor_stopped", **engine.snapshot())
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Sync-health alert monitor")
    parser.add_argument("--config", default=None, help="Path to settings YAML")
    parser.add_argument("--log-level", default=None, help="Override log level")
    parser.add_argument(
        "--log-format", default=None, choices=["json", "console"],
        help="Override log renderer",
    )
    parser.add_argument(
        "--no-seed", action="store_true",
        help="Start with an empty repository",
    )
    parser.add_argument(
        "--once", action="store_true",
        help="Run a single evaluation pass and exit",
    )
    args = parser.parse_args()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
