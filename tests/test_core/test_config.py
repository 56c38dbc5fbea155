"""Tests for src/core/config.py — YAML loading, defaults, SecretStr."""

from __future__ import annotations

from pathlib import Path

import pydantic
import pytest
import yaml

from src.core.config import (
    AlertingConfig,
    GatewayConfig,
    LoggingConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    """Settings should have sensible defaults when no YAML is provided."""

    def test_default_alerting_config(self) -> None:
        cfg = AlertingConfig()
        assert cfg.check_interval_secs == 60.0
        assert cfg.retrigger_cooldown_secs == 0.0
        assert cfg.load_default_rules is True
        assert cfg.rules == []

    def test_default_gateway_disabled(self) -> None:
        cfg = GatewayConfig()
        assert cfg.enabled is False
        assert cfg.url == ""
        assert cfg.api_token.get_secret_value() == ""

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "json"

    def test_default_settings(self) -> None:
        s = Settings()
        assert s.alerting.dashboard_feed_size == 200
        assert s.notifications.email.enabled is False
        assert s.notifications.sms.enabled is False
        assert s.logging.level == "INFO"


class TestValidation:
    def test_non_positive_interval_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AlertingConfig(check_interval_secs=0)

    def test_negative_cooldown_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AlertingConfig(retrigger_cooldown_secs=-1)


class TestYamlLoading:
    """Settings should load correctly from YAML files."""

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "alerting": {
                "check_interval_secs": 15,
                "load_default_rules": False,
                "rules": [
                    {
                        "id": "crm-failures",
                        "kind": "failure_burst",
                        "condition": {"count_threshold": 5},
                    },
                ],
            },
            "notifications": {
                "email": {
                    "enabled": True,
                    "url": "https://relay.example/email",
                    "api_token": "tok-123",
                },
            },
            "logging": {
                "level": "DEBUG",
                "format": "console",
            },
        }
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        settings = load_settings(config_file)

        assert settings.alerting.check_interval_secs == 15
        assert settings.alerting.load_default_rules is False
        assert settings.alerting.rules[0]["id"] == "crm-failures"
        assert settings.notifications.email.enabled is True
        assert settings.notifications.email.api_token.get_secret_value() == "tok-123"
        assert settings.logging.level == "DEBUG"
        assert settings.logging.format == "console"

    def test_load_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.alerting.check_interval_secs == 60.0

    def test_load_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        settings = load_settings(config_file)
        assert settings.alerting.load_default_rules is True

    def test_partial_yaml_merges_with_defaults(self, tmp_path: Path) -> None:
        config_data = {"notifications": {"sms": {"enabled": True}}}
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        settings = load_settings(config_file)
        assert settings.notifications.sms.enabled is True
        # Other defaults still intact
        assert settings.notifications.email.enabled is False
        assert settings.alerting.check_interval_secs == 60.0

    def test_get_settings_caches(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"logging": {"level": "WARNING"}}))
        loaded = load_settings(config_file)
        assert get_settings() is loaded


class TestSecretStr:
    """Gateway tokens should use SecretStr to prevent leaking."""

    def test_secret_str_repr_does_not_leak(self) -> None:
        cfg = GatewayConfig(api_token="super-secret")  # type: ignore[arg-type]
        repr_str = repr(cfg)
        assert "super-secret" not in repr_str
        assert "**********" in repr_str

    def test_secret_str_get_value(self) -> None:
        cfg = GatewayConfig(api_token="my-secret")  # type: ignore[arg-type]
        assert cfg.api_token.get_secret_value() == "my-secret"
