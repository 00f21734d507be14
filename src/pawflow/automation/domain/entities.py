"""
Automation Domain Entities
==========================

Pure Python domain entities for workflow automation.

A Workflow maps a trigger type to an ordered list of actions. Each firing of
a trigger produces a WorkflowRun that carries a snapshot of the trigger
payload and moves strictly forward through its lifecycle:

    queued -> running -> completed | failed
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pawflow.config import RunStatus
from pawflow.core import InvalidStateTransition
from pawflow.automation.domain.value_objects import ActionOutcome, Document


@dataclass
class WorkflowAction:
    """One step of a workflow."""

    action_type: str
    action_config: Document = field(default_factory=Document)
    position: int = 0
    id: Optional[int] = None


@dataclass
class Workflow:
    """
    Configured rule mapping a trigger type to ordered actions.

    ``minutes_delay`` of None or 0 makes runs eligible as soon as they are
    queued.
    """

    id: str
    name: str
    trigger_type: str
    minutes_delay: Optional[int] = None
    is_active: bool = True
    description: Optional[str] = None
    conditions: List[str] = field(default_factory=list)
    actions: List[WorkflowAction] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.minutes_delay is not None and self.minutes_delay < 0:
            raise ValueError("minutes_delay cannot be negative")


# Allowed forward moves of the run lifecycle
_RUN_TRANSITIONS = {
    RunStatus.QUEUED: {RunStatus.RUNNING},
    RunStatus.RUNNING: {RunStatus.COMPLETED, RunStatus.FAILED},
    RunStatus.COMPLETED: set(),
    RunStatus.FAILED: set(),
}


@dataclass
class WorkflowRun:
    """
    One execution of a workflow.

    ``trigger_payload`` is a snapshot taken at enqueue time; later edits to
    the workflow never change it. ``result_payload`` is only set on
    completion and ``error_message`` only on failure.
    """

    id: str
    workflow_id: str
    trigger_payload: Document
    status: str
    queued_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result_payload: Optional[List[Dict[str, Any]]] = None
    error_message: Optional[str] = None

    # Denormalized from the workflow when loaded for scheduling
    workflow_name: Optional[str] = None
    minutes_delay: Optional[int] = None

    @property
    def is_finished(self) -> bool:
        return self.status in (RunStatus.COMPLETED, RunStatus.FAILED)

    @property
    def eligible_at(self) -> datetime:
        return self.queued_at + timedelta(minutes=self.minutes_delay or 0)

    def is_due(self, now: datetime) -> bool:
        """True once the workflow's delay has elapsed."""
        return self.status == RunStatus.QUEUED and self.eligible_at <= now

    def _move(self, target: str) -> None:
        if target not in _RUN_TRANSITIONS[self.status]:
            raise InvalidStateTransition("WorkflowRun", self.status, target)
        self.status = target

    def mark_running(self, at: datetime) -> None:
        self._move(RunStatus.RUNNING)
        self.started_at = at

    def mark_completed(self, outcomes: List[ActionOutcome], at: datetime) -> None:
        self._move(RunStatus.COMPLETED)
        self.completed_at = at
        self.result_payload = [outcome.to_dict() for outcome in outcomes]

    def mark_failed(self, error_message: str, at: datetime) -> None:
        self._move(RunStatus.FAILED)
        self.completed_at = at
        self.error_message = error_message
