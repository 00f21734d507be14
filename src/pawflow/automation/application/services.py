"""
Automation Application Services
===============================

Trigger fan-out, run scheduling and run execution.

Delivery is at-least-once on a single node: triggers persist queued runs,
a periodic tick picks up due runs in FIFO order, and the executor claims
each run with a conditional update before executing its actions.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Mapping, Optional

from pydantic_core import to_jsonable_python

from pawflow.automation.application.actions import ActionRegistry
from pawflow.automation.domain import (
    ActionOutcome, Document, Workflow, WorkflowAction, WorkflowRun
)
from pawflow.core import Clock, utcnow
from pawflow.shared.infrastructure.logging import get_context_logger, get_logger
from pawflow.shared.infrastructure.scheduler import TickGuard

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IWorkflowRepository(ABC):
    """Interface for workflow data access."""

    @abstractmethod
    async def list_active_by_trigger(self, trigger_type: str) -> List[Workflow]:
        """Active workflows subscribed to ``trigger_type``."""

    @abstractmethod
    async def list_actions(self, workflow_id: str) -> List[WorkflowAction]:
        """Actions of a workflow in execution order."""

    @abstractmethod
    async def get(self, workflow_id: str) -> Optional[Workflow]:
        """Workflow with its conditions and actions."""

    @abstractmethod
    async def list(self) -> List[Workflow]:
        """All workflows, newest first."""

    @abstractmethod
    async def create(self, data: Any) -> Workflow:
        """Create a workflow with its conditions and actions."""

    @abstractmethod
    async def update(self, workflow_id: str, data: Any) -> Optional[Workflow]:
        """Update a workflow, replacing its conditions and actions."""

    @abstractmethod
    async def set_active(self, workflow_id: str, is_active: bool) -> Optional[Workflow]:
        """Activate or deactivate a workflow."""

    @abstractmethod
    async def delete(self, workflow_id: str) -> bool:
        """Delete a workflow with its conditions and actions."""


class IWorkflowRunRepository(ABC):
    """Interface for workflow run data access."""

    @abstractmethod
    async def create(
        self,
        workflow_id: str,
        trigger_payload: Document,
        queued_at: datetime
    ) -> WorkflowRun:
        """Persist a new queued run."""

    @abstractmethod
    async def list_due(self, now: datetime, limit: int) -> List[WorkflowRun]:
        """Queued runs whose delay has elapsed, oldest first."""

    @abstractmethod
    async def claim(self, run_id: str, started_at: datetime) -> bool:
        """Move a run queued -> running; False if it was no longer queued."""

    @abstractmethod
    async def save_outcome(self, run: WorkflowRun) -> None:
        """Persist a completed or failed run."""

    @abstractmethod
    async def get(self, run_id: str) -> Optional[WorkflowRun]:
        """Run by id."""

    @abstractmethod
    async def list_recent(
        self,
        limit: int = 50,
        status: Optional[str] = None
    ) -> List[WorkflowRun]:
        """Most recently queued runs."""


# ========== Application Services ==========

class TriggerEnqueuer:
    """
    Creates one queued run per active workflow subscribed to a trigger.

    Execution is deferred to the RunScheduler; storage errors propagate to
    the caller.
    """

    def __init__(
        self,
        workflow_repository: IWorkflowRepository,
        run_repository: IWorkflowRunRepository,
        clock: Clock = utcnow
    ):
        self._workflow_repo = workflow_repository
        self._run_repo = run_repository
        self._clock = clock

    async def enqueue_trigger(
        self,
        trigger_type: str,
        payload: Optional[Mapping[str, Any]] = None
    ) -> List[WorkflowRun]:
        """
        Enqueue runs for ``trigger_type``.

        Args:
            trigger_type: Trigger name; empty names are ignored
            payload: Event data; snapshotted together with the trigger name

        Returns:
            The runs created (empty when no active workflow matched)
        """
        if not trigger_type:
            return []

        workflows = await self._workflow_repo.list_active_by_trigger(trigger_type)
        if not workflows:
            return []

        # Dates, UUIDs and decimals are stored in their JSON form
        snapshot = Document(to_jsonable_python(
            Document.parse(payload).merged(triggerType=trigger_type).to_dict()
        ))
        queued_at = self._clock()

        runs = []
        for workflow in workflows:
            runs.append(await self._run_repo.create(workflow.id, snapshot, queued_at))

        logger.info(
            "Trigger enqueued",
            extra={
                "trigger_type": trigger_type,
                "workflow_ids": [w.id for w in workflows],
                "runs_created": len(runs)
            }
        )
        return runs


def describe_error(error: BaseException) -> str:
    """Message text recorded on a failed run."""
    return str(error) or type(error).__name__


class RunExecutor:
    """
    Owns the run lifecycle: claim, execute actions in order, finalize.

    An action that raises stops the run and marks it failed; results of
    the actions that ran before it are discarded.
    """

    def __init__(
        self,
        workflow_repository: IWorkflowRepository,
        run_repository: IWorkflowRunRepository,
        registry: ActionRegistry,
        clock: Clock = utcnow
    ):
        self._workflow_repo = workflow_repository
        self._run_repo = run_repository
        self._registry = registry
        self._clock = clock

    async def execute(self, run: WorkflowRun) -> bool:
        """
        Execute a queued run.

        Returns:
            False if another executor had already claimed the run
        """
        log = get_context_logger(__name__, run_id=run.id, workflow_id=run.workflow_id)

        started_at = self._clock()
        if not await self._run_repo.claim(run.id, started_at):
            log.info("Run already claimed, skipping")
            return False
        run.mark_running(started_at)

        outcomes: List[ActionOutcome] = []
        try:
            actions = await self._workflow_repo.list_actions(run.workflow_id)
            for action in actions:
                result = await self._registry.execute(
                    action.action_type, action.action_config, run.trigger_payload
                )
                outcomes.append(ActionOutcome(action.action_type, result))
        except Exception as e:
            run.mark_failed(describe_error(e), self._clock())
            await self._run_repo.save_outcome(run)
            log.error(
                "Workflow run failed",
                extra={"error": run.error_message, "actions_completed": len(outcomes)}
            )
            return True

        run.mark_completed(outcomes, self._clock())
        await self._run_repo.save_outcome(run)
        log.info(
            "Workflow run completed",
            extra={
                "actions": len(outcomes),
                "skipped": sum(1 for outcome in outcomes if outcome.skipped)
            }
        )
        return True


class RunScheduler:
    """
    Periodic tick executing due runs.

    At most ``batch_size`` runs per tick, oldest first, one after another.
    A tick fired while the previous one is still running does nothing.
    """

    def __init__(
        self,
        run_repository: IWorkflowRunRepository,
        executor: RunExecutor,
        batch_size: int = 10,
        clock: Clock = utcnow
    ):
        self._run_repo = run_repository
        self._executor = executor
        self._batch_size = batch_size
        self._clock = clock
        self._guard = TickGuard("workflow_runs")

    @property
    def state(self) -> str:
        return self._guard.state

    async def tick(self) -> int:
        """
        Process one batch of due runs.

        Returns:
            Number of runs handed to the executor (0 if the tick was skipped)
        """
        async with self._guard.hold() as acquired:
            if not acquired:
                return 0

            runs = await self._run_repo.list_due(self._clock(), self._batch_size)
            for run in runs:
                await self._executor.execute(run)

            if runs:
                logger.info("Run scheduler tick processed runs", extra={"runs": len(runs)})
            return len(runs)
