"""
Automation Controllers (API Routes)
===================================

FastAPI routes for workflow administration, run history, manual triggers
and operational metrics.

Controllers are thin - they delegate to repositories and application
services.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pawflow.automation.application import (
    MetricsResponse,
    TriggerEnqueuer,
    TriggerResponse,
    WorkflowCreateRequest,
    WorkflowEnvelope,
    WorkflowListResponse,
    WorkflowResponse,
    WorkflowRunListResponse,
    WorkflowRunResponse,
    WorkflowToggleRequest,
    WorkflowUpdateRequest,
)
from pawflow.automation.infrastructure import (
    SQLAlchemyMetricsRepository,
    SQLAlchemyWorkflowRepository,
    SQLAlchemyWorkflowRunRepository,
)
from pawflow.config import VALID_RUN_STATUSES
from pawflow.core import ResourceNotFoundException, ValidationException, utcnow
from pawflow.infrastructure.database import get_session_maker
from pawflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/automation", tags=["Automation"])

SessionFactory = async_sessionmaker[AsyncSession]


# ========== Dependencies ==========

def get_workflow_repository(
    session_factory: SessionFactory = Depends(get_session_maker)
) -> SQLAlchemyWorkflowRepository:
    return SQLAlchemyWorkflowRepository(session_factory)


def get_run_repository(
    session_factory: SessionFactory = Depends(get_session_maker)
) -> SQLAlchemyWorkflowRunRepository:
    return SQLAlchemyWorkflowRunRepository(session_factory)


def get_trigger_enqueuer(
    workflows: SQLAlchemyWorkflowRepository = Depends(get_workflow_repository),
    runs: SQLAlchemyWorkflowRunRepository = Depends(get_run_repository)
) -> TriggerEnqueuer:
    return TriggerEnqueuer(workflows, runs)


# ========== Workflows ==========

@router.get(
    "/workflows",
    response_model=WorkflowListResponse,
    summary="List workflows"
)
async def list_workflows(
    workflows: SQLAlchemyWorkflowRepository = Depends(get_workflow_repository)
):
    items = await workflows.list()
    return WorkflowListResponse(workflows=[WorkflowResponse.from_domain(w) for w in items])


@router.get(
    "/workflows/{workflow_id}",
    response_model=WorkflowEnvelope,
    summary="Get a workflow with its conditions and actions"
)
async def get_workflow(
    workflow_id: str,
    workflows: SQLAlchemyWorkflowRepository = Depends(get_workflow_repository)
):
    workflow = await workflows.get(workflow_id)
    if workflow is None:
        raise ResourceNotFoundException("Workflow", workflow_id)
    return WorkflowEnvelope(workflow=WorkflowResponse.from_domain(workflow))


@router.post(
    "/workflows",
    response_model=WorkflowEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workflow"
)
async def create_workflow(
    request: WorkflowCreateRequest,
    workflows: SQLAlchemyWorkflowRepository = Depends(get_workflow_repository)
):
    workflow = await workflows.create(request)
    logger.info(
        "Workflow created",
        extra={"workflow_id": workflow.id, "trigger_type": workflow.trigger_type}
    )
    return WorkflowEnvelope(workflow=WorkflowResponse.from_domain(workflow))


@router.put(
    "/workflows/{workflow_id}",
    response_model=WorkflowEnvelope,
    summary="Update a workflow",
    description="""
    Omitted name, description, trigger, delay and active flag keep their
    current values. Conditions and actions are replaced by the submitted lists.

    Runs already queued keep the payload they were created with.
    """
)
async def update_workflow(
    workflow_id: str,
    request: WorkflowUpdateRequest,
    workflows: SQLAlchemyWorkflowRepository = Depends(get_workflow_repository)
):
    workflow = await workflows.update(workflow_id, request)
    if workflow is None:
        raise ResourceNotFoundException("Workflow", workflow_id)
    return WorkflowEnvelope(workflow=WorkflowResponse.from_domain(workflow))


@router.patch(
    "/workflows/{workflow_id}/toggle",
    response_model=WorkflowEnvelope,
    summary="Activate or deactivate a workflow"
)
async def toggle_workflow(
    workflow_id: str,
    request: WorkflowToggleRequest,
    workflows: SQLAlchemyWorkflowRepository = Depends(get_workflow_repository)
):
    workflow = await workflows.set_active(workflow_id, request.is_active)
    if workflow is None:
        raise ResourceNotFoundException("Workflow", workflow_id)
    logger.info(
        "Workflow toggled",
        extra={"workflow_id": workflow_id, "is_active": request.is_active}
    )
    return WorkflowEnvelope(workflow=WorkflowResponse.from_domain(workflow))


@router.delete(
    "/workflows/{workflow_id}",
    summary="Delete a workflow",
    description="Queued runs of the workflow are left in place and are never picked up."
)
async def delete_workflow(
    workflow_id: str,
    workflows: SQLAlchemyWorkflowRepository = Depends(get_workflow_repository)
):
    if not await workflows.delete(workflow_id):
        raise ResourceNotFoundException("Workflow", workflow_id)
    logger.info("Workflow deleted", extra={"workflow_id": workflow_id})
    return {"deleted": True}


# ========== Runs & Triggers ==========

@router.get(
    "/runs",
    response_model=WorkflowRunListResponse,
    summary="Latest workflow runs"
)
async def list_runs(
    status_filter: Optional[str] = Query(None, alias="status", description="Run status"),
    limit: int = Query(50, ge=1, le=200),
    runs: SQLAlchemyWorkflowRunRepository = Depends(get_run_repository)
):
    if status_filter and status_filter not in VALID_RUN_STATUSES:
        raise ValidationException(
            f"Invalid run status: {status_filter}",
            details={"allowed": VALID_RUN_STATUSES}
        )
    items = await runs.list_recent(limit=limit, status=status_filter)
    return WorkflowRunListResponse(runs=[WorkflowRunResponse.from_domain(r) for r in items])


@router.post(
    "/triggers/{trigger_type}",
    response_model=TriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Fire a trigger",
    description="Enqueues one run per active workflow listening to the trigger. "
                "Runs execute on the next scheduler tick after their delay."
)
async def fire_trigger(
    trigger_type: str,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    enqueuer: TriggerEnqueuer = Depends(get_trigger_enqueuer)
):
    runs = await enqueuer.enqueue_trigger(trigger_type, payload or {})
    return TriggerResponse(queued=True, runs=len(runs))


# ========== Metrics ==========

@router.get(
    "/metrics",
    response_model=MetricsResponse,
    summary="Operational counters and recent runs"
)
async def get_metrics(
    session_factory: SessionFactory = Depends(get_session_maker),
    runs: SQLAlchemyWorkflowRunRepository = Depends(get_run_repository)
):
    metrics = await SQLAlchemyMetricsRepository(session_factory).collect(utcnow())
    recent = await runs.list_recent(limit=10)
    return MetricsResponse(
        metrics=metrics,
        recent_runs=[WorkflowRunResponse.from_domain(r) for r in recent]
    )
