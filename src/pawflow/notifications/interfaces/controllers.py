"""
Notification Controllers (API Routes)
=====================================

FastAPI routes for a user's notification inbox and channel preferences.

The caller is identified by the ``X-User-ID`` header set by the gateway in
front of the API.
"""

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pawflow.config import NotificationStatus, VALID_NOTIFICATION_STATUSES
from pawflow.core import ResourceNotFoundException, ValidationException, utcnow
from pawflow.infrastructure.database import get_session_maker
from pawflow.notifications.application import (
    NotificationCreateRequest,
    NotificationDispatcher,
    NotificationEnvelope,
    NotificationListResponse,
    NotificationResponse,
    PreferencesEnvelope,
    PreferencesResponse,
    PreferencesUpdateRequest,
    SnoozeRequest,
    StatusChangeResponse,
)
from pawflow.notifications.infrastructure import SQLAlchemyNotificationRepository
from pawflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
notifications_router = APIRouter(prefix="/notifications", tags=["Notifications"])


# ========== Dependencies ==========

def get_notification_dispatcher(
    request: Request,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_maker)
) -> NotificationDispatcher:
    """The running engine's dispatcher; inbox-only when no engine is started."""
    engine = getattr(request.app.state, "engine", None)
    if engine is not None:
        return engine.notifications
    return NotificationDispatcher(SQLAlchemyNotificationRepository(session_factory))


def get_current_user_id(x_user_id: str = Header(..., alias="X-User-ID", min_length=1)) -> str:
    return x_user_id


async def _change_status(
    dispatcher: NotificationDispatcher,
    user_id: str,
    notification_id: str,
    new_status: str,
    **kwargs
) -> StatusChangeResponse:
    updated = await dispatcher.update_notification_status(user_id, notification_id, new_status, **kwargs)
    if not updated:
        raise ResourceNotFoundException("Notification", notification_id)
    return StatusChangeResponse(success=True)


# ========== Inbox ==========

@notifications_router.get(
    "",
    response_model=NotificationListResponse,
    summary="List the caller's notifications"
)
async def list_notifications(
    status_filter: Optional[str] = Query(None, alias="status", description="Notification status"),
    limit: Optional[int] = Query(None, description="Defaults to 100, capped at 200"),
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    if status_filter and status_filter not in VALID_NOTIFICATION_STATUSES:
        raise ValidationException(
            f"Invalid notification status: {status_filter}",
            details={"allowed": VALID_NOTIFICATION_STATUSES}
        )
    items = await dispatcher.list_notifications(user_id, status=status_filter, limit=limit)
    return NotificationListResponse(notifications=[NotificationResponse.from_domain(n) for n in items])


@notifications_router.post(
    "",
    response_model=NotificationEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Post a notification to the caller's inbox",
    description="Stored and delivered over the channels the caller's preferences allow."
)
async def create_notification(
    request: NotificationCreateRequest,
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    notification = await dispatcher.create_notification(
        user_id,
        body=request.body,
        title=request.title,
        category=request.category,
        metadata=request.metadata,
        channels=request.channels
    )
    return NotificationEnvelope(notification=NotificationResponse.from_domain(notification))


@notifications_router.post(
    "/{notification_id}/read",
    response_model=StatusChangeResponse,
    summary="Mark a notification as read"
)
async def mark_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    return await _change_status(dispatcher, user_id, notification_id, NotificationStatus.READ)


@notifications_router.post(
    "/{notification_id}/snooze",
    response_model=StatusChangeResponse,
    summary="Snooze a notification"
)
async def snooze(
    notification_id: str,
    request: Optional[SnoozeRequest] = None,
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    minutes = request.minutes if request else SnoozeRequest().minutes
    return await _change_status(
        dispatcher,
        user_id,
        notification_id,
        NotificationStatus.SNOOZED,
        snoozed_until=utcnow() + timedelta(minutes=minutes)
    )


@notifications_router.post(
    "/{notification_id}/dismiss",
    response_model=StatusChangeResponse,
    summary="Dismiss a notification"
)
async def dismiss(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    return await _change_status(dispatcher, user_id, notification_id, NotificationStatus.DISMISSED)


# ========== Preferences ==========

@notifications_router.get(
    "/preferences/me",
    response_model=PreferencesEnvelope,
    summary="The caller's channel preferences"
)
async def get_preferences(
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    preferences = await dispatcher.get_preferences(user_id)
    return PreferencesEnvelope(preferences=PreferencesResponse.from_domain(preferences))


@notifications_router.put(
    "/preferences/me",
    response_model=PreferencesEnvelope,
    summary="Update the caller's channel preferences"
)
async def update_preferences(
    request: PreferencesUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    preferences = await dispatcher.update_preferences(
        user_id,
        email_enabled=request.email_enabled,
        sms_enabled=request.sms_enabled,
        push_enabled=request.push_enabled
    )
    logger.info("Notification preferences updated", extra={"user_id": user_id})
    return PreferencesEnvelope(preferences=PreferencesResponse.from_domain(preferences))
