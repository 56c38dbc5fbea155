"""Core module — config and logging."""

from src.core.config import Settings, get_settings, load_settings, reset_settings
from src.core.logging import setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
