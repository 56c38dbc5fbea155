"""Structured logging setup using structlog.

All records go to stderr. Alert dispatch records (the ``decision_log``
logger) can additionally be appended to a JSONL audit file.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import structlog

from src.core.config import get_settings

DECISION_LOGGER = "decision_log"

# Third-party loggers that are too chatty at INFO.
_NOISY_LOGGERS = ("aiohttp.access", "aiohttp.client", "asyncio")

_decision_handler: logging.Handler | None = None


def _formatter(renderer: structlog.types.Processor) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def _attach_decision_log(path: str) -> None:
    """Replace the audit-file handler on the decision logger."""
    global _decision_handler  # noqa: PLW0603

    decision_logger = logging.getLogger(DECISION_LOGGER)
    if _decision_handler is not None:
        decision_logger.removeHandler(_decision_handler)
        _decision_handler.close()
        _decision_handler = None
    if not path:
        return

    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    # The audit trail is always JSON, whatever the console renderer is.
    handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    handler.setLevel(logging.INFO)
    decision_logger.addHandler(handler)
    decision_logger.setLevel(logging.INFO)
    _decision_handler = handler


def setup_logging(
    level: str | None = None,
    fmt: str | None = None,
    service: str = "sync-alerts",
    decision_log_path: str | None = None,
) -> None:
    """Configure structlog with JSON or console renderer.

    Args:
        level: Log level override (e.g. "DEBUG"). Uses config if None.
        fmt: Renderer format override ("json" or "console"). Uses config if None.
        service: Value bound to every record under the ``service`` key.
        decision_log_path: JSONL file for dispatch records. Uses config if
            None; an empty string disables the file.
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.logging.level).upper(), logging.INFO)
    log_format = fmt or settings.logging.format
    if decision_log_path is None:
        decision_log_path = settings.logging.decision_log_path

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_formatter(renderer))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    _attach_decision_log(decision_log_path)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service)
