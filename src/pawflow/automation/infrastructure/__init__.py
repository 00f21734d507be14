"""
Automation Infrastructure Layer
===============================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Concrete implementations of repository interfaces

This layer implements the interfaces defined in the application layer.
"""

from pawflow.automation.infrastructure.models import (
    WorkflowModel,
    WorkflowConditionModel,
    WorkflowActionModel,
    WorkflowRunModel,
)
from pawflow.automation.infrastructure.repositories import (
    SQLAlchemyWorkflowRepository,
    SQLAlchemyWorkflowRunRepository,
    SQLAlchemyAppointmentRepository,
    SQLAlchemyMetricsRepository,
)

__all__ = [
    # Models
    "WorkflowModel",
    "WorkflowConditionModel",
    "WorkflowActionModel",
    "WorkflowRunModel",
    # Repositories
    "SQLAlchemyWorkflowRepository",
    "SQLAlchemyWorkflowRunRepository",
    "SQLAlchemyAppointmentRepository",
    "SQLAlchemyMetricsRepository",
]
