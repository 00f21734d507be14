"""
Notification Infrastructure Layer
=================================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Concrete implementation of the notification repository
- External: SMTP and SMS webhook transports
"""

from pawflow.notifications.infrastructure.models import (
    UserNotificationModel,
    NotificationPreferenceModel,
)
from pawflow.notifications.infrastructure.repositories import SQLAlchemyNotificationRepository
from pawflow.notifications.infrastructure.external import (
    CircuitBreaker,
    CircuitState,
    SmtpEmailTransport,
    SmsWebhookClient,
    build_email_transport,
    build_sms_client,
)

__all__ = [
    "UserNotificationModel",
    "NotificationPreferenceModel",
    "SQLAlchemyNotificationRepository",
    "CircuitBreaker",
    "CircuitState",
    "SmtpEmailTransport",
    "SmsWebhookClient",
    "build_email_transport",
    "build_sms_client",
]
