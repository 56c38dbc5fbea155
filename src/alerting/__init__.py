"""Sync-health alerting: rules, evaluation, dedup, and notification."""

from src.alerting.channels import (
    DashboardChannel,
    DashboardPublisher,
    DeliveryStatus,
    EmailChannel,
    EmailSender,
    HttpEmailGateway,
    HttpSmsGateway,
    NotificationChannel,
    SmsChannel,
    SmsSender,
)
from src.alerting.defaults import default_rules
from src.alerting.dispatcher import NotificationDispatcher
from src.alerting.engine import AlertEngine
from src.alerting.exceptions import (
    AlertingError,
    NotFoundError,
    NotificationError,
    RepositoryError,
    ValidationError,
)
from src.alerting.factory import create_engine
from src.alerting.registry import RuleRegistry
from src.alerting.repository import (
    InMemorySyncRepository,
    RecipientResolver,
    StaticRecipientResolver,
    SyncRepository,
)
from src.alerting.scheduler import AlertScheduler
from src.alerting.store import AlertStore
from src.alerting.types import (
    Alert,
    AlertKey,
    AlertRule,
    CandidateAlert,
    ChannelName,
    ErrorRateCondition,
    FailureBurstCondition,
    RuleKind,
    Severity,
    StuckTaskCondition,
    SyncLog,
    SyncTask,
    TaskStatus,
)

__all__ = [
    "Alert",
    "AlertEngine",
    "AlertKey",
    "AlertRule",
    "AlertScheduler",
    "AlertStore",
    "AlertingError",
    "CandidateAlert",
    "ChannelName",
    "DashboardChannel",
    "DashboardPublisher",
    "DeliveryStatus",
    "EmailChannel",
    "EmailSender",
    "ErrorRateCondition",
    "FailureBurstCondition",
    "HttpEmailGateway",
    "HttpSmsGateway",
    "InMemorySyncRepository",
    "NotFoundError",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationError",
    "RecipientResolver",
    "RepositoryError",
    "RuleKind",
    "RuleRegistry",
    "Severity",
    "SmsChannel",
    "SmsSender",
    "StaticRecipientResolver",
    "StuckTaskCondition",
    "SyncLog",
    "SyncRepository",
    "SyncTask",
    "TaskStatus",
    "ValidationError",
    "create_engine",
    "default_rules",
]
