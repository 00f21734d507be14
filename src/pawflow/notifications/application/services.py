"""
Notification Application Services
=================================

NotificationDispatcher stores a notification in the user's inbox and fans
it out over the channels the user has enabled:

- email: preference on, SMTP configured and the user has an address
- sms: preference on, SMS webhook configured and the user has a phone
- push: preference on (recorded only, delivered by the client app)

A failing email or SMS channel is logged and left out of ``channel_sent``;
it never fails the caller.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from pawflow.automation.application import INotificationGateway
from pawflow.config import (
    NotificationChannel,
    NotificationStatus,
    VALID_NOTIFICATION_STATUSES,
)
from pawflow.core import NotificationDeliveryException, ValidationException
from pawflow.notifications.domain import (
    Notification,
    NotificationPreferences,
    UserContact,
)
from pawflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository / Transport Interfaces ==========

class INotificationRepository(ABC):
    """Interface for notification, preference and contact data access."""

    @abstractmethod
    async def create(
        self,
        user_id: str,
        title: str,
        body: Optional[str],
        category: str,
        metadata: Dict[str, Any]
    ) -> Notification:
        """Insert a notification with status ``new``."""

    @abstractmethod
    async def set_channels(self, notification_id: str, channels: List[str]) -> None:
        """Record the channels a notification was sent on."""

    @abstractmethod
    async def list(
        self,
        user_id: str,
        status: Optional[str],
        limit: int
    ) -> List[Notification]:
        """A user's notifications, newest first."""

    @abstractmethod
    async def update_status(
        self,
        user_id: str,
        notification_id: str,
        status: str,
        snoozed_until: Optional[datetime],
        clear_snooze: bool
    ) -> int:
        """Change a notification's status; returns affected rows."""

    @abstractmethod
    async def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        """Stored preferences, None if the user never saved any."""

    @abstractmethod
    async def save_preferences(self, preferences: NotificationPreferences) -> None:
        """Insert or replace a user's preferences."""

    @abstractmethod
    async def get_contact(self, user_id: str) -> Optional[UserContact]:
        """Email and phone of a user."""


class IEmailTransport(ABC):
    @abstractmethod
    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver an email; raises NotificationDeliveryException."""


class ISmsTransport(ABC):
    @abstractmethod
    async def send(self, to: str, body: str) -> None:
        """Deliver an SMS; raises NotificationDeliveryException."""


# ========== Application Services ==========

class NotificationDispatcher(INotificationGateway):
    """Inbox storage plus channel fan-out."""

    DEFAULT_TITLE = "Notification"
    DEFAULT_CATEGORY = "system"
    DEFAULT_LIST_LIMIT = 100
    MAX_LIST_LIMIT = 200

    def __init__(
        self,
        repository: INotificationRepository,
        email: Optional[IEmailTransport] = None,
        sms: Optional[ISmsTransport] = None
    ):
        self._repo = repository
        self._email = email
        self._sms = sms

    async def send_notification(
        self,
        user_id: str,
        title: str,
        body: str,
        category: str = "system",
        metadata: Optional[dict] = None
    ) -> None:
        await self.create_notification(
            user_id, title=title, body=body, category=category, metadata=metadata
        )

    async def create_notification(
        self,
        user_id: str,
        body: Optional[str] = None,
        title: Optional[str] = None,
        category: Optional[str] = None,
        metadata: Optional[dict] = None,
        channels: Optional[Sequence[str]] = None
    ) -> Notification:
        """
        Store a notification and dispatch it.

        Args:
            channels: Restricts delivery to these channels when given
        """
        notification = await self._repo.create(
            user_id=user_id,
            title=title or self.DEFAULT_TITLE,
            body=body,
            category=category or self.DEFAULT_CATEGORY,
            metadata=dict(metadata or {}),
        )
        notification.channel_sent = await self.dispatch_channels(notification, channels)
        return notification

    async def dispatch_channels(
        self,
        notification: Notification,
        channels_override: Optional[Sequence[str]] = None
    ) -> List[str]:
        prefs = await self.get_preferences(notification.user_id)
        contact = await self._repo.get_contact(notification.user_id)

        def wanted(channel: str) -> bool:
            if channels_override is not None and channel not in channels_override:
                return False
            return prefs.allows(channel)

        sent = []

        if wanted(NotificationChannel.EMAIL) and self._email and contact and contact.email:
            try:
                await self._email.send(
                    contact.email, notification.title or self.DEFAULT_TITLE, notification.body or ""
                )
                sent.append(NotificationChannel.EMAIL)
            except NotificationDeliveryException as e:
                logger.error(
                    "Email dispatch failed",
                    extra={"notification_id": notification.id, "error": e.message}
                )

        if wanted(NotificationChannel.SMS) and self._sms and contact and contact.phone:
            try:
                await self._sms.send(contact.phone, notification.body or "")
                sent.append(NotificationChannel.SMS)
            except NotificationDeliveryException as e:
                logger.error(
                    "SMS dispatch failed",
                    extra={"notification_id": notification.id, "error": e.message}
                )

        if wanted(NotificationChannel.PUSH):
            sent.append(NotificationChannel.PUSH)

        await self._repo.set_channels(notification.id, sent)
        logger.info(
            "Notification dispatched",
            extra={"notification_id": notification.id, "channels": sent}
        )
        return sent

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        stored = await self._repo.get_preferences(user_id)
        return stored or NotificationPreferences(user_id=user_id)

    async def update_preferences(
        self,
        user_id: str,
        email_enabled: Optional[bool] = None,
        sms_enabled: Optional[bool] = None,
        push_enabled: Optional[bool] = None
    ) -> NotificationPreferences:
        """Change the given switches; the others keep their current value."""
        current = await self.get_preferences(user_id)
        updated = NotificationPreferences(
            user_id=user_id,
            email_enabled=current.email_enabled if email_enabled is None else email_enabled,
            sms_enabled=current.sms_enabled if sms_enabled is None else sms_enabled,
            push_enabled=current.push_enabled if push_enabled is None else push_enabled,
        )
        await self._repo.save_preferences(updated)
        return updated

    async def list_notifications(
        self,
        user_id: str,
        status: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Notification]:
        if limit is None or limit <= 0:
            limit = self.DEFAULT_LIST_LIMIT
        return await self._repo.list(user_id, status, min(limit, self.MAX_LIST_LIMIT))

    async def update_notification_status(
        self,
        user_id: str,
        notification_id: str,
        status: str,
        snoozed_until: Optional[datetime] = None
    ) -> int:
        """
        Move a notification to ``status``.

        Snoozing with a time sets ``snoozed_until``; any other status
        clears it.
        """
        if status not in VALID_NOTIFICATION_STATUSES:
            raise ValidationException(
                f"Invalid notification status: {status}",
                details={"allowed": VALID_NOTIFICATION_STATUSES}
            )

        snoozing = status == NotificationStatus.SNOOZED
        return await self._repo.update_status(
            user_id,
            notification_id,
            status,
            snoozed_until=snoozed_until if snoozing else None,
            clear_snooze=not snoozing,
        )
