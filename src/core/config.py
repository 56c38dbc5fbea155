"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    decision_log_path: str = ""


class GatewayConfig(BaseModel):
    """HTTP notification gateway (email or SMS relay)."""

    enabled: bool = False
    url: str = ""
    api_token: SecretStr = SecretStr("")
    timeout_secs: float = 10.0


class NotificationsConfig(BaseModel):
    """Outbound notification gateways."""

    email: GatewayConfig = GatewayConfig()
    sms: GatewayConfig = GatewayConfig()


class AlertingConfig(BaseModel):
    """Rule evaluation and alert lifecycle configuration."""

    check_interval_secs: float = Field(default=60.0, gt=0)
    retrigger_cooldown_secs: float = Field(default=0.0, ge=0)
    dashboard_feed_size: int = Field(default=200, ge=1)
    load_default_rules: bool = True
    rules: list[dict[str, Any]] = Field(default_factory=list)


class Settings(BaseModel):
    """Root settings container."""

    alerting: AlertingConfig = AlertingConfig()
    notifications: NotificationsConfig = NotificationsConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
