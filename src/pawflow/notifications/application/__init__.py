"""
Notification Application Layer
==============================

Contains:
- Services: NotificationDispatcher (the automation notification gateway)
- Repository and transport interfaces
- DTOs: Data transfer objects for the inbox API
"""

from pawflow.notifications.application.services import (
    NotificationDispatcher,
    INotificationRepository,
    IEmailTransport,
    ISmsTransport,
)
from pawflow.notifications.application.dto import (
    NotificationCreateRequest,
    SnoozeRequest,
    PreferencesUpdateRequest,
    NotificationResponse,
    NotificationListResponse,
    NotificationEnvelope,
    PreferencesResponse,
    PreferencesEnvelope,
    StatusChangeResponse,
)

__all__ = [
    # Services
    "NotificationDispatcher",
    # DTOs
    "NotificationCreateRequest",
    "SnoozeRequest",
    "PreferencesUpdateRequest",
    "NotificationResponse",
    "NotificationListResponse",
    "NotificationEnvelope",
    "PreferencesResponse",
    "PreferencesEnvelope",
    "StatusChangeResponse",
    # Interfaces
    "INotificationRepository",
    "IEmailTransport",
    "ISmsTransport",
]
