"""
Automation Domain Layer
=======================

Domain layer for workflow automation.

Contains:
- Entities: Workflow, WorkflowAction, WorkflowRun (run lifecycle)
- Value Objects: Document (permissive payload/config), ActionOutcome

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from pawflow.automation.domain.entities import Workflow, WorkflowAction, WorkflowRun
from pawflow.automation.domain.value_objects import ActionOutcome, Document, skip

__all__ = [
    # Entities
    "Workflow",
    "WorkflowAction",
    "WorkflowRun",
    # Value Objects
    "ActionOutcome",
    "Document",
    "skip",
]
