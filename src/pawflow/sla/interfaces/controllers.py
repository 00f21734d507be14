"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA targets and incidents.

Controllers are thin - they delegate to repositories. Incidents are opened
and resolved by the monitor; operators may only acknowledge them.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pawflow.config import IncidentStatus, VALID_INCIDENT_STATUSES
from pawflow.core import (
    InvalidStateTransition,
    ResourceNotFoundException,
    ValidationException,
    utcnow,
)
from pawflow.infrastructure.database import get_session_maker
from pawflow.shared.infrastructure.logging import get_logger
from pawflow.sla.application import (
    SlaIncidentEnvelope,
    SlaIncidentListResponse,
    SlaIncidentResponse,
    SlaTargetCreateRequest,
    SlaTargetEnvelope,
    SlaTargetListResponse,
    SlaTargetResponse,
    SlaTargetUpdateRequest,
)
from pawflow.sla.infrastructure import (
    SQLAlchemySlaIncidentRepository,
    SQLAlchemySlaTargetRepository,
)

logger = get_logger(__name__)
sla_router = APIRouter(prefix="/automation/sla", tags=["SLA Monitoring"])


# ========== Dependencies ==========

def get_target_repository(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_maker)
) -> SQLAlchemySlaTargetRepository:
    return SQLAlchemySlaTargetRepository(session_factory)


def get_incident_repository(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_maker)
) -> SQLAlchemySlaIncidentRepository:
    return SQLAlchemySlaIncidentRepository(session_factory)


# ========== Targets ==========

@sla_router.get(
    "/targets",
    response_model=SlaTargetListResponse,
    summary="List SLA targets"
)
async def list_targets(
    targets: SQLAlchemySlaTargetRepository = Depends(get_target_repository)
):
    items = await targets.list()
    return SlaTargetListResponse(targets=[SlaTargetResponse.from_domain(t) for t in items])


@sla_router.post(
    "/targets",
    response_model=SlaTargetEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create an SLA target",
    description="""
    **Entity types**: `appointment.pending`, `chat.unanswered`

    A target with an entity type that has no breach predicate never opens
    incidents.
    """
)
async def create_target(
    request: SlaTargetCreateRequest,
    targets: SQLAlchemySlaTargetRepository = Depends(get_target_repository)
):
    target = await targets.create(request)
    logger.info(
        "SLA target created",
        extra={"target_id": target.id, "entity_type": target.entity_type}
    )
    return SlaTargetEnvelope(target=SlaTargetResponse.from_domain(target))


@sla_router.put(
    "/targets/{target_id}",
    response_model=SlaTargetEnvelope,
    summary="Update an SLA target",
    description="Changes take effect on the next SLA evaluation tick."
)
async def update_target(
    target_id: str,
    request: SlaTargetUpdateRequest,
    targets: SQLAlchemySlaTargetRepository = Depends(get_target_repository)
):
    target = await targets.update(target_id, request)
    if target is None:
        raise ResourceNotFoundException("SlaTarget", target_id)
    return SlaTargetEnvelope(target=SlaTargetResponse.from_domain(target))


# ========== Incidents ==========

@sla_router.get(
    "/incidents",
    response_model=SlaIncidentListResponse,
    summary="Latest SLA incidents"
)
async def list_incidents(
    status_filter: Optional[str] = Query(None, alias="status", description="Incident status"),
    limit: int = Query(100, ge=1, le=500),
    incidents: SQLAlchemySlaIncidentRepository = Depends(get_incident_repository)
):
    if status_filter and status_filter not in VALID_INCIDENT_STATUSES:
        raise ValidationException(
            f"Invalid incident status: {status_filter}",
            details={"allowed": VALID_INCIDENT_STATUSES}
        )
    items = await incidents.list_recent(limit=limit, status=status_filter)
    return SlaIncidentListResponse(incidents=[SlaIncidentResponse.from_domain(i) for i in items])


@sla_router.post(
    "/incidents/{incident_id}/acknowledge",
    response_model=SlaIncidentEnvelope,
    summary="Acknowledge an open incident"
)
async def acknowledge_incident(
    incident_id: str,
    incidents: SQLAlchemySlaIncidentRepository = Depends(get_incident_repository)
):
    incident = await incidents.get(incident_id)
    if incident is None:
        raise ResourceNotFoundException("SlaIncident", incident_id)

    now = utcnow()
    incident.acknowledge(now)
    if not await incidents.acknowledge(incident_id, now):
        # Resolved by the monitor in the meantime
        raise InvalidStateTransition("SlaIncident", IncidentStatus.RESOLVED, IncidentStatus.ACKNOWLEDGED)

    logger.info("SLA incident acknowledged", extra={"incident_id": incident_id})
    return SlaIncidentEnvelope(incident=SlaIncidentResponse.from_domain(incident))
