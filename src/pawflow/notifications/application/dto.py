"""
Notification Application DTOs
=============================

Data Transfer Objects for the notification inbox API.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


# ========== Request DTOs ==========

class NotificationCreateRequest(BaseModel):
    """Request model for posting a notification to the caller's inbox."""
    body: str = Field(..., min_length=1, description="Notification text")
    title: Optional[str] = Field(None, description="Defaults to 'Notification'")
    category: Optional[str] = Field(None, description="Defaults to 'system'")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    channels: Optional[List[str]] = Field(
        None, description="Restrict delivery to these channels (email, sms, push)"
    )


class SnoozeRequest(BaseModel):
    minutes: int = Field(default=60, ge=1, description="Minutes until the notification resurfaces")


class PreferencesUpdateRequest(BaseModel):
    """Omitted switches keep their current value."""
    email_enabled: Optional[bool] = None
    sms_enabled: Optional[bool] = None
    push_enabled: Optional[bool] = None


# ========== Response DTOs ==========

class NotificationResponse(BaseModel):
    id: str
    user_id: str
    title: str
    body: Optional[str] = None
    category: str
    status: str
    channel_sent: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    snoozed_until: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, notification: Any) -> "NotificationResponse":
        return cls(
            id=notification.id,
            user_id=notification.user_id,
            title=notification.title,
            body=notification.body,
            category=notification.category,
            status=notification.status,
            channel_sent=list(notification.channel_sent),
            metadata=dict(notification.metadata),
            snoozed_until=notification.snoozed_until,
            created_at=notification.created_at,
            updated_at=notification.updated_at
        )


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]


class NotificationEnvelope(BaseModel):
    notification: NotificationResponse


class PreferencesResponse(BaseModel):
    user_id: str
    email_enabled: bool
    sms_enabled: bool
    push_enabled: bool

    @classmethod
    def from_domain(cls, preferences: Any) -> "PreferencesResponse":
        return cls(
            user_id=preferences.user_id,
            email_enabled=preferences.email_enabled,
            sms_enabled=preferences.sms_enabled,
            push_enabled=preferences.push_enabled
        )


class PreferencesEnvelope(BaseModel):
    preferences: PreferencesResponse


class StatusChangeResponse(BaseModel):
    success: bool = True
