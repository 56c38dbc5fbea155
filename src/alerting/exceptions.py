"""Alerting engine exceptions."""

from __future__ import annotations


class AlertingError(Exception):
    """Base exception for alerting engine errors."""


class ValidationError(AlertingError):
    """A rule (or rule update) is malformed and was not stored."""


class NotFoundError(AlertingError):
    """An unknown rule id or alert id was referenced."""


class RepositoryError(AlertingError):
    """A repository query failed during rule evaluation."""


class NotificationError(AlertingError):
    """A notification channel failed to deliver an alert."""
