"""
Notification Domain Layer
=========================

Contains:
- Entities: Notification, NotificationPreferences, UserContact

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from pawflow.notifications.domain.entities import (
    Notification,
    NotificationPreferences,
    UserContact,
)

__all__ = [
    "Notification",
    "NotificationPreferences",
    "UserContact",
]
