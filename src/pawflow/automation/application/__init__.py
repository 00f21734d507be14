"""
Automation Application Layer
============================

Contains:
- Services: trigger fan-out, run scheduling, run execution
- Actions: pluggable action handlers
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from pawflow.automation.application.actions import (
    ActionRegistry,
    ActionHandler,
    INotificationGateway,
    IAppointmentRepository,
    SendNotificationAction,
    UpdateStatusAction,
    build_action_registry,
)
from pawflow.automation.application.dto import (
    WorkflowActionDTO,
    WorkflowCreateRequest,
    WorkflowUpdateRequest,
    WorkflowToggleRequest,
    WorkflowResponse,
    WorkflowListResponse,
    WorkflowEnvelope,
    WorkflowRunResponse,
    WorkflowRunListResponse,
    TriggerResponse,
    OperationalMetrics,
    MetricsResponse,
)
from pawflow.automation.application.services import (
    IWorkflowRepository,
    IWorkflowRunRepository,
    TriggerEnqueuer,
    RunExecutor,
    RunScheduler,
    describe_error,
)

__all__ = [
    # Actions
    "ActionRegistry",
    "ActionHandler",
    "SendNotificationAction",
    "UpdateStatusAction",
    "build_action_registry",
    # DTOs
    "WorkflowActionDTO",
    "WorkflowCreateRequest",
    "WorkflowUpdateRequest",
    "WorkflowToggleRequest",
    "WorkflowResponse",
    "WorkflowListResponse",
    "WorkflowEnvelope",
    "WorkflowRunResponse",
    "WorkflowRunListResponse",
    "TriggerResponse",
    "OperationalMetrics",
    "MetricsResponse",
    # Services
    "TriggerEnqueuer",
    "RunExecutor",
    "RunScheduler",
    "describe_error",
    # Repository / Collaborator Interfaces
    "IWorkflowRepository",
    "IWorkflowRunRepository",
    "INotificationGateway",
    "IAppointmentRepository",
]
