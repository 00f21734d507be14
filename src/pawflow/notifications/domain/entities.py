"""
Notification Domain Entities
============================

In-app notifications and per-user channel preferences.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pawflow.config import NotificationChannel, NotificationStatus


@dataclass
class Notification:
    """
    A message in a user's inbox.

    ``channel_sent`` records the channels that accepted the notification
    when it was dispatched.
    """

    id: str
    user_id: str
    title: str
    body: Optional[str]
    category: str = "system"
    status: str = NotificationStatus.NEW
    channel_sent: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    snoozed_until: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class NotificationPreferences:
    """Channel switches for one user; users without a row get the defaults."""

    user_id: str
    email_enabled: bool = True
    sms_enabled: bool = False
    push_enabled: bool = True

    def allows(self, channel: str) -> bool:
        if channel == NotificationChannel.EMAIL:
            return self.email_enabled
        if channel == NotificationChannel.SMS:
            return self.sms_enabled
        if channel == NotificationChannel.PUSH:
            return self.push_enabled
        return False


@dataclass(frozen=True)
class UserContact:
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
