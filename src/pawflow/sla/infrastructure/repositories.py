"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database. Incident status changes are conditional
updates on the current status.
"""

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pawflow.config import ACTIVE_INCIDENT_STATUSES, IncidentStatus
from pawflow.core import as_utc
from pawflow.shared.infrastructure.models import new_id
from pawflow.sla.application import ISlaIncidentRepository, ISlaTargetRepository
from pawflow.sla.domain import SlaIncident, SlaTarget
from pawflow.sla.infrastructure.models import SlaIncidentModel, SlaTargetModel


def _to_target(model: SlaTargetModel) -> SlaTarget:
    return SlaTarget(
        id=model.id,
        name=model.name,
        entity_type=model.entity_type,
        threshold_minutes=model.threshold_minutes,
        warning_minutes=model.warning_minutes,
        severity=model.severity,
        is_active=model.is_active,
        created_at=as_utc(model.created_at),
    )


def _to_incident(
    model: SlaIncidentModel,
    target_name: Optional[str] = None,
    severity: Optional[str] = None
) -> SlaIncident:
    return SlaIncident(
        id=model.id,
        target_id=model.target_id,
        entity_type=model.entity_type,
        entity_id=model.entity_id,
        status=model.status,
        breach_reason=model.breach_reason,
        opened_at=as_utc(model.opened_at),
        acknowledged_at=as_utc(model.acknowledged_at),
        resolved_at=as_utc(model.resolved_at),
        target_name=target_name,
        severity=severity,
    )


class SQLAlchemySlaTargetRepository(ISlaTargetRepository):
    """
    SQLAlchemy implementation of SLA target repository.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_active(self) -> List[SlaTarget]:
        stmt = (
            select(SlaTargetModel)
            .where(SlaTargetModel.is_active.is_(True))
            .order_by(SlaTargetModel.name.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_to_target(model) for model in result.scalars().all()]

    async def list(self) -> List[SlaTarget]:
        stmt = select(SlaTargetModel).order_by(SlaTargetModel.name.asc())
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_to_target(model) for model in result.scalars().all()]

    async def get(self, target_id: str) -> Optional[SlaTarget]:
        async with self._session_factory() as session:
            model = await session.get(SlaTargetModel, target_id)
            return _to_target(model) if model else None

    async def exists(self, entity_type: str, name: str) -> bool:
        stmt = select(SlaTargetModel.id).where(
            SlaTargetModel.entity_type == entity_type,
            SlaTargetModel.name == name
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.first() is not None

    async def create(self, data: Any) -> SlaTarget:
        model = SlaTargetModel(
            id=new_id(),
            name=data.name,
            entity_type=data.entity_type,
            threshold_minutes=data.threshold_minutes,
            warning_minutes=data.warning_minutes,
            severity=data.severity,
            is_active=data.is_active,
        )
        async with self._session_factory() as session:
            session.add(model)
            await session.commit()
            return _to_target(model)

    async def update(self, target_id: str, data: Any) -> Optional[SlaTarget]:
        async with self._session_factory() as session:
            model = await session.get(SlaTargetModel, target_id)
            if model is None:
                return None

            if data.threshold_minutes is not None:
                model.threshold_minutes = data.threshold_minutes
            if data.warning_minutes is not None:
                model.warning_minutes = data.warning_minutes
            if data.severity is not None:
                model.severity = data.severity
            if data.is_active is not None:
                model.is_active = data.is_active

            await session.commit()
            return _to_target(model)


class SQLAlchemySlaIncidentRepository(ISlaIncidentRepository):
    """
    SQLAlchemy implementation of SLA incident repository.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_active_for_target(self, target_id: str) -> List[SlaIncident]:
        stmt = (
            select(SlaIncidentModel)
            .where(
                SlaIncidentModel.target_id == target_id,
                SlaIncidentModel.status.in_(ACTIVE_INCIDENT_STATUSES)
            )
            .order_by(SlaIncidentModel.opened_at.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_to_incident(model) for model in result.scalars().all()]

    async def open(
        self,
        target: SlaTarget,
        entity_id: str,
        opened_at: datetime
    ) -> SlaIncident:
        model = SlaIncidentModel(
            id=new_id(),
            target_id=target.id,
            entity_type=target.entity_type,
            entity_id=entity_id,
            status=IncidentStatus.OPEN,
            breach_reason=target.breach_reason,
            opened_at=opened_at,
        )
        async with self._session_factory() as session:
            session.add(model)
            await session.commit()
        return _to_incident(model, target.name, target.severity)

    async def resolve(self, incident_id: str, resolved_at: datetime) -> bool:
        stmt = (
            update(SlaIncidentModel)
            .where(
                SlaIncidentModel.id == incident_id,
                SlaIncidentModel.status.in_(ACTIVE_INCIDENT_STATUSES)
            )
            .values(status=IncidentStatus.RESOLVED, resolved_at=resolved_at)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount == 1

    async def resolve_for_entity(
        self,
        entity_type: str,
        entity_id: str,
        resolved_at: datetime
    ) -> int:
        stmt = (
            update(SlaIncidentModel)
            .where(
                SlaIncidentModel.entity_type == entity_type,
                SlaIncidentModel.entity_id == entity_id,
                SlaIncidentModel.status.in_(ACTIVE_INCIDENT_STATUSES)
            )
            .values(status=IncidentStatus.RESOLVED, resolved_at=resolved_at)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount

    async def get(self, incident_id: str) -> Optional[SlaIncident]:
        stmt = (
            select(SlaIncidentModel, SlaTargetModel.name, SlaTargetModel.severity)
            .outerjoin(SlaTargetModel, SlaTargetModel.id == SlaIncidentModel.target_id)
            .where(SlaIncidentModel.id == incident_id)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).first()
        return _to_incident(*row) if row else None

    async def acknowledge(self, incident_id: str, acknowledged_at: datetime) -> bool:
        stmt = (
            update(SlaIncidentModel)
            .where(
                SlaIncidentModel.id == incident_id,
                SlaIncidentModel.status == IncidentStatus.OPEN
            )
            .values(status=IncidentStatus.ACKNOWLEDGED, acknowledged_at=acknowledged_at)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount == 1

    async def list_recent(
        self,
        limit: int = 100,
        status: Optional[str] = None
    ) -> List[SlaIncident]:
        stmt = (
            select(SlaIncidentModel, SlaTargetModel.name, SlaTargetModel.severity)
            .outerjoin(SlaTargetModel, SlaTargetModel.id == SlaIncidentModel.target_id)
        )
        if status:
            stmt = stmt.where(SlaIncidentModel.status == status)
        stmt = stmt.order_by(SlaIncidentModel.opened_at.desc()).limit(limit)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [_to_incident(*row) for row in rows]
