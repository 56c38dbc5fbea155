"""Notification channels — dashboard feed, email and SMS delivery."""

from __future__ import annotations

import abc
from collections import deque
from collections.abc import Sequence
from enum import StrEnum
from typing import Any

import aiohttp
import structlog

from src.alerting.exceptions import NotificationError
from src.alerting.formatters import (
    format_dashboard_entry,
    format_email_body,
    format_sms_text,
    format_subject,
)
from src.alerting.repository import RecipientResolver
from src.alerting.types import Alert, AlertRule, ChannelName, Severity
from src.core.config import GatewayConfig

logger = structlog.get_logger(__name__)


class DeliveryStatus(StrEnum):
    """Outcome of a single channel delivery attempt."""

    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


# ── External sender contracts ───────────────────────────────────


class EmailSender(abc.ABC):
    """Provider-side email delivery."""

    @abc.abstractmethod
    async def send(
        self,
        addresses: Sequence[str],
        subject: str,
        body: str,
        severity: Severity,
        metadata: dict[str, Any],
    ) -> bool:
        """Deliver one message to *addresses*. Returns True on success."""

    async def close(self) -> None:
        return None


class SmsSender(abc.ABC):
    """Provider-side SMS delivery."""

    @abc.abstractmethod
    async def send(
        self,
        numbers: Sequence[str],
        text: str,
        severity: Severity,
        metadata: dict[str, Any],
    ) -> bool:
        """Deliver *text* to *numbers*. Returns True on success."""

    async def close(self) -> None:
        return None


class DashboardPublisher(abc.ABC):
    """Pushes dashboard entries to wherever the UI reads them from."""

    @abc.abstractmethod
    async def publish(self, entry: dict[str, Any]) -> bool:
        """Publish a rendered alert. Returns True on success."""


# ── Channels ────────────────────────────────────────────────────


class NotificationChannel(abc.ABC):
    """Base class for alert delivery channels."""

    name: str = ""

    @abc.abstractmethod
    async def send(self, alert: Alert, rule: AlertRule) -> DeliveryStatus:
        """Deliver *alert* routed by *rule*."""

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""
        return None


class DashboardChannel(NotificationChannel):
    """Keeps a bounded feed of recent alerts for the dashboard.

    An optional :class:`DashboardPublisher` receives each entry as well; a
    publisher failure is reported after the entry has been recorded locally.
    """

    name = ChannelName.DASHBOARD.value

    def __init__(
        self,
        publisher: DashboardPublisher | None = None,
        max_entries: int = 200,
    ) -> None:
        self._publisher = publisher
        self._feed: deque[dict[str, Any]] = deque(maxlen=max_entries)

    @property
    def feed(self) -> list[dict[str, Any]]:
        """Recorded entries, most recent first."""
        return list(reversed(self._feed))

    async def send(self, alert: Alert, rule: AlertRule) -> DeliveryStatus:
        entry = format_dashboard_entry(alert)
        self._feed.append(entry)
        logger.info("dashboard_alert_recorded", alert_id=alert.id)
        if self._publisher is None:
            return DeliveryStatus.SENT
        ok = await self._publisher.publish(entry)
        return DeliveryStatus.SENT if ok else DeliveryStatus.FAILED


class EmailChannel(NotificationChannel):
    """Resolves the rule's recipients to email addresses and sends one message."""

    name = ChannelName.EMAIL.value

    def __init__(self, sender: EmailSender, resolver: RecipientResolver) -> None:
        self._sender = sender
        self._resolver = resolver

    async def send(self, alert: Alert, rule: AlertRule) -> DeliveryStatus:
        addresses = await self._resolver.resolve_addresses(rule.recipients, self.name)
        if not addresses:
            logger.warning(
                "email_no_recipients",
                alert_id=alert.id,
                rule_id=rule.id,
            )
            return DeliveryStatus.SKIPPED
        ok = await self._sender.send(
            addresses,
            format_subject(alert),
            format_email_body(alert),
            alert.severity,
            dict(alert.metadata),
        )
        return DeliveryStatus.SENT if ok else DeliveryStatus.FAILED

    async def close(self) -> None:
        await self._sender.close()


class SmsChannel(NotificationChannel):
    """Resolves the rule's recipients to phone numbers and sends a short text."""

    name = ChannelName.SMS.value

    def __init__(self, sender: SmsSender, resolver: RecipientResolver) -> None:
        self._sender = sender
        self._resolver = resolver

    async def send(self, alert: Alert, rule: AlertRule) -> DeliveryStatus:
        numbers = await self._resolver.resolve_addresses(rule.recipients, self.name)
        if not numbers:
            logger.warning(
                "sms_no_recipients",
                alert_id=alert.id,
                rule_id=rule.id,
            )
            return DeliveryStatus.SKIPPED
        ok = await self._sender.send(
            numbers,
            format_sms_text(alert),
            alert.severity,
            dict(alert.metadata),
        )
        return DeliveryStatus.SENT if ok else DeliveryStatus.FAILED

    async def close(self) -> None:
        await self._sender.close()


# ── HTTP gateway senders ────────────────────────────────────────


class _HttpGateway:
    """JSON-over-HTTP relay shared by the email and SMS gateway senders."""

    def __init__(self, config: GatewayConfig) -> None:
        self._url = config.url
        self._token = config.api_token.get_secret_value()
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_secs)
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _post(self, payload: dict[str, Any]) -> bool:
        headers = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            session = self._get_session()
            async with session.post(self._url, json=payload, headers=headers) as resp:
                if 200 <= resp.status < 300:
                    return True
                body = await resp.text()
        except aiohttp.ClientError as exc:
            raise NotificationError(f"gateway request failed: {exc}") from exc
        raise NotificationError(
            f"gateway returned HTTP {resp.status}: {body[:200]}"
        )

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


class HttpEmailGateway(_HttpGateway, EmailSender):
    """Posts email jobs to an HTTP relay."""

    async def send(
        self,
        addresses: Sequence[str],
        subject: str,
        body: str,
        severity: Severity,
        metadata: dict[str, Any],
    ) -> bool:
        return await self._post({
            "to": list(addresses),
            "subject": subject,
            "body": body,
            "severity": severity.label,
            "metadata": metadata,
        })


class HttpSmsGateway(_HttpGateway, SmsSender):
    """Posts SMS jobs to an HTTP relay."""

    async def send(
        self,
        numbers: Sequence[str],
        text: str,
        severity: Severity,
        metadata: dict[str, Any],
    ) -> bool:
        return await self._post({
            "to": list(numbers),
            "text": text,
            "severity": severity.label,
            "metadata": metadata,
        })
