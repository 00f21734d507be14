"""
SLA Breach Predicates
=====================

Queries returning the ids of entities currently in breach of a target.

Ages are counted in whole elapsed minutes: an entity breaches a 60 minute
threshold once 61 full minutes have passed.
"""

from datetime import datetime
from typing import Set

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pawflow.config import AppointmentStatus, SLAEntityType
from pawflow.core import older_than_cutoff
from pawflow.shared.infrastructure.models import AppointmentModel, MessageModel
from pawflow.sla.application import BreachPredicateRegistry
from pawflow.sla.domain import SlaTarget


class PendingAppointmentsPredicate:
    """Appointments still pending too long after their scheduled time."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def __call__(self, target: SlaTarget, now: datetime) -> Set[str]:
        stmt = select(AppointmentModel.id).where(
            AppointmentModel.status == AppointmentStatus.PENDING,
            AppointmentModel.scheduled_at <= older_than_cutoff(now, target.threshold_minutes)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return set(result.scalars().all())


class UnansweredChatsPredicate:
    """Conversations whose latest message is older than the threshold."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def __call__(self, target: SlaTarget, now: datetime) -> Set[str]:
        stmt = (
            select(MessageModel.conversation_id)
            .group_by(MessageModel.conversation_id)
            .having(
                func.max(MessageModel.created_at)
                <= older_than_cutoff(now, target.threshold_minutes)
            )
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return set(result.scalars().all())


def build_predicate_registry(
    session_factory: async_sessionmaker[AsyncSession]
) -> BreachPredicateRegistry:
    """Registry with every built-in entity type."""
    registry = BreachPredicateRegistry()
    registry.register(SLAEntityType.APPOINTMENT_PENDING, PendingAppointmentsPredicate(session_factory))
    registry.register(SLAEntityType.CHAT_UNANSWERED, UnansweredChatsPredicate(session_factory))
    return registry
