"""
Notification Infrastructure Repositories
========================================

SQLAlchemy implementation of the notification repository interface.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pawflow.core import as_utc
from pawflow.notifications.application import INotificationRepository
from pawflow.notifications.domain import (
    Notification,
    NotificationPreferences,
    UserContact,
)
from pawflow.notifications.infrastructure.models import (
    NotificationPreferenceModel,
    UserNotificationModel,
)
from pawflow.shared.infrastructure.models import UserModel, new_id, utc_now


def _to_notification(model: UserNotificationModel) -> Notification:
    return Notification(
        id=model.id,
        user_id=model.user_id,
        title=model.title,
        body=model.body,
        category=model.category,
        status=model.status,
        channel_sent=list(model.channel_sent or []),
        metadata=dict(model.extra_metadata or {}),
        snoozed_until=as_utc(model.snoozed_until),
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


class SQLAlchemyNotificationRepository(INotificationRepository):
    """
    SQLAlchemy implementation of notification repository.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(
        self,
        user_id: str,
        title: str,
        body: Optional[str],
        category: str,
        metadata: Dict[str, Any]
    ) -> Notification:
        model = UserNotificationModel(
            id=new_id(),
            user_id=user_id,
            title=title,
            body=body,
            category=category,
            extra_metadata=metadata,
            channel_sent=[],
        )
        async with self._session_factory() as session:
            session.add(model)
            await session.commit()
            return _to_notification(model)

    async def set_channels(self, notification_id: str, channels: List[str]) -> None:
        stmt = (
            update(UserNotificationModel)
            .where(UserNotificationModel.id == notification_id)
            .values(channel_sent=list(channels), updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def list(
        self,
        user_id: str,
        status: Optional[str],
        limit: int
    ) -> List[Notification]:
        stmt = select(UserNotificationModel).where(UserNotificationModel.user_id == user_id)
        if status:
            stmt = stmt.where(UserNotificationModel.status == status)
        stmt = stmt.order_by(UserNotificationModel.created_at.desc()).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_to_notification(model) for model in result.scalars().all()]

    async def update_status(
        self,
        user_id: str,
        notification_id: str,
        status: str,
        snoozed_until: Optional[datetime],
        clear_snooze: bool
    ) -> int:
        values: Dict[str, Any] = {"status": status, "updated_at": utc_now()}
        if snoozed_until is not None:
            values["snoozed_until"] = snoozed_until
        elif clear_snooze:
            values["snoozed_until"] = None

        stmt = (
            update(UserNotificationModel)
            .where(
                UserNotificationModel.user_id == user_id,
                UserNotificationModel.id == notification_id
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount

    async def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        async with self._session_factory() as session:
            model = await session.get(NotificationPreferenceModel, user_id)
        if model is None:
            return None
        return NotificationPreferences(
            user_id=model.user_id,
            email_enabled=model.email_enabled,
            sms_enabled=model.sms_enabled,
            push_enabled=model.push_enabled,
        )

    async def save_preferences(self, preferences: NotificationPreferences) -> None:
        async with self._session_factory() as session:
            model = await session.get(NotificationPreferenceModel, preferences.user_id)
            if model is None:
                model = NotificationPreferenceModel(user_id=preferences.user_id)
                session.add(model)
            model.email_enabled = preferences.email_enabled
            model.sms_enabled = preferences.sms_enabled
            model.push_enabled = preferences.push_enabled
            await session.commit()

    async def get_contact(self, user_id: str) -> Optional[UserContact]:
        async with self._session_factory() as session:
            model = await session.get(UserModel, user_id)
        if model is None:
            return None
        return UserContact(user_id=model.id, name=model.name, email=model.email, phone=model.phone)
