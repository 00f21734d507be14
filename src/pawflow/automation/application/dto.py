"""
Automation Application DTOs
===========================

Pydantic models for the workflow administration API.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from pawflow.config import ActionType


RunStatusStr = Literal["queued", "running", "completed", "failed"]


# ========== Request DTOs ==========

class WorkflowActionDTO(BaseModel):
    """Action as submitted by the admin UI."""
    action_type: str = Field(
        default=ActionType.SEND_NOTIFICATION,
        min_length=1,
        description="Action type key"
    )
    action_config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Handler-specific configuration"
    )

    @field_validator("action_config", mode="before")
    @classmethod
    def default_config(cls, v: Any) -> Any:
        return v or {}


class WorkflowCreateRequest(BaseModel):
    """Request model for creating a workflow."""
    name: str = Field(..., min_length=1, description="Workflow name")
    description: Optional[str] = Field(None, description="Free-text description")
    trigger: str = Field(..., min_length=1, description="Trigger type the workflow listens to")
    minutes_delay: Optional[int] = Field(None, ge=0, description="Minutes to wait before running")
    is_active: bool = Field(default=False, description="Whether triggers enqueue runs")
    conditions: List[str] = Field(default_factory=list, description="Display-only conditions")
    actions: List[WorkflowActionDTO] = Field(default_factory=list, description="Ordered actions")


class WorkflowUpdateRequest(BaseModel):
    """
    Request model for updating a workflow.

    Omitted scalar fields keep their current value; conditions and actions
    are always replaced.
    """
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    trigger: Optional[str] = Field(None, min_length=1)
    minutes_delay: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    conditions: List[str] = Field(default_factory=list)
    actions: List[WorkflowActionDTO] = Field(default_factory=list)


class WorkflowToggleRequest(BaseModel):
    """Request model for activating or deactivating a workflow."""
    is_active: bool


# ========== Response DTOs ==========

class WorkflowActionResponse(BaseModel):
    id: Optional[int] = None
    action_type: str
    action_config: Dict[str, Any] = Field(default_factory=dict)


class WorkflowResponse(BaseModel):
    """Workflow as shown in the admin UI."""
    id: str
    name: str
    description: Optional[str] = None
    trigger: str
    minutes_delay: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    conditions: List[str] = Field(default_factory=list)
    actions: List[WorkflowActionResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, workflow: Any) -> "WorkflowResponse":
        return cls(
            id=workflow.id,
            name=workflow.name,
            description=workflow.description,
            trigger=workflow.trigger_type,
            minutes_delay=workflow.minutes_delay,
            is_active=workflow.is_active,
            created_at=workflow.created_at,
            updated_at=workflow.updated_at,
            conditions=list(workflow.conditions),
            actions=[
                WorkflowActionResponse(
                    id=action.id,
                    action_type=action.action_type,
                    action_config=action.action_config.to_dict()
                )
                for action in workflow.actions
            ]
        )


class WorkflowListResponse(BaseModel):
    workflows: List[WorkflowResponse]


class WorkflowEnvelope(BaseModel):
    workflow: WorkflowResponse


class WorkflowRunResponse(BaseModel):
    """Run history entry."""
    id: str
    workflow_id: str
    workflow_name: Optional[str] = None
    status: RunStatusStr
    trigger_payload: Dict[str, Any] = Field(default_factory=dict)
    queued_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result_payload: Optional[List[Dict[str, Any]]] = None
    error_message: Optional[str] = None

    @classmethod
    def from_domain(cls, run: Any) -> "WorkflowRunResponse":
        return cls(
            id=run.id,
            workflow_id=run.workflow_id,
            workflow_name=run.workflow_name,
            status=run.status,
            trigger_payload=run.trigger_payload.to_dict(),
            queued_at=run.queued_at,
            started_at=run.started_at,
            completed_at=run.completed_at,
            result_payload=run.result_payload,
            error_message=run.error_message
        )


class WorkflowRunListResponse(BaseModel):
    runs: List[WorkflowRunResponse]


class TriggerResponse(BaseModel):
    """Response for a manually fired trigger."""
    queued: bool = True
    runs: int = Field(0, description="Number of runs enqueued")


class OperationalMetrics(BaseModel):
    pending_over_24h: int
    in_progress_overrun: int
    chats_awaiting_reply: int


class MetricsResponse(BaseModel):
    metrics: OperationalMetrics
    recent_runs: List[WorkflowRunResponse] = Field(default_factory=list)
