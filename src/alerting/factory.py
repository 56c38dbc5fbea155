"""Convenience factory for wiring an alert engine from settings."""

from __future__ import annotations

import datetime

import structlog

from src.alerting.channels import (
    DashboardChannel,
    DashboardPublisher,
    EmailChannel,
    EmailSender,
    HttpEmailGateway,
    HttpSmsGateway,
    NotificationChannel,
    SmsChannel,
    SmsSender,
)
from src.alerting.defaults import default_rules
from src.alerting.engine import AlertEngine
from src.alerting.repository import (
    RecipientResolver,
    StaticRecipientResolver,
    SyncRepository,
)
from src.alerting.types import Clock
from src.core.config import Settings

logger = structlog.get_logger(__name__)


def create_engine(
    settings: Settings,
    repository: SyncRepository,
    resolver: RecipientResolver | None = None,
    email_sender: EmailSender | None = None,
    sms_sender: SmsSender | None = None,
    publisher: DashboardPublisher | None = None,
    clock: Clock | None = None,
) -> AlertEngine:
    """Build an engine with channels and rules taken from *settings*.

    The dashboard channel is always registered.  Email and SMS are registered
    when a sender is passed explicitly or their HTTP gateway is enabled.
    """
    alerting = settings.alerting
    notifications = settings.notifications

    if email_sender is None and notifications.email.enabled:
        email_sender = HttpEmailGateway(notifications.email)
    if sms_sender is None and notifications.sms.enabled:
        sms_sender = HttpSmsGateway(notifications.sms)

    if resolver is None and (email_sender is not None or sms_sender is not None):
        logger.warning("recipient_resolver_missing")
        resolver = StaticRecipientResolver()

    channels: list[NotificationChannel] = [
        DashboardChannel(publisher=publisher, max_entries=alerting.dashboard_feed_size),
    ]
    if email_sender is not None and resolver is not None:
        channels.append(EmailChannel(email_sender, resolver))
    if sms_sender is not None and resolver is not None:
        channels.append(SmsChannel(sms_sender, resolver))

    engine = AlertEngine(
        repository=repository,
        channels=channels,
        interval_secs=alerting.check_interval_secs,
        retrigger_cooldown=datetime.timedelta(seconds=alerting.retrigger_cooldown_secs),
        clock=clock,
    )

    if alerting.load_default_rules:
        for rule in default_rules():
            engine.add_rule(rule)
    for rule_data in alerting.rules:
        engine.add_rule(rule_data)

    logger.info(
        "alert_engine_created",
        channels=engine.dispatcher.channel_names,
        rules=[r.id for r in engine.list_rules()],
    )
    return engine
