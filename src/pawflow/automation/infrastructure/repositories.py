"""
Automation Infrastructure Repositories
======================================

SQLAlchemy implementations of the automation repository interfaces.

Each method runs in its own short session and commits before returning,
so every engine write is a single committed statement. Claiming a run and
finalizing it are separate units of work.
"""

from datetime import datetime, timedelta
from typing import Any, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pawflow.automation.application import (
    IAppointmentRepository,
    IWorkflowRepository,
    IWorkflowRunRepository,
    OperationalMetrics,
)
from pawflow.automation.domain import Document, Workflow, WorkflowAction, WorkflowRun
from pawflow.automation.infrastructure.models import (
    WorkflowActionModel,
    WorkflowConditionModel,
    WorkflowModel,
    WorkflowRunModel,
)
from pawflow.config import AppointmentStatus, RunStatus
from pawflow.core import as_utc, older_than_cutoff
from pawflow.shared.infrastructure.logging import get_logger
from pawflow.shared.infrastructure.models import (
    AppointmentModel,
    ConversationModel,
    new_id,
)

logger = get_logger(__name__)


def _to_action(model: WorkflowActionModel) -> WorkflowAction:
    return WorkflowAction(
        id=model.id,
        action_type=model.action_type,
        action_config=Document.parse(model.action_config),
        position=model.position,
    )


def _to_run(
    model: WorkflowRunModel,
    workflow_name: Optional[str] = None,
    minutes_delay: Optional[int] = None
) -> WorkflowRun:
    return WorkflowRun(
        id=model.id,
        workflow_id=model.workflow_id,
        trigger_payload=Document.parse(model.trigger_payload),
        status=model.status,
        queued_at=as_utc(model.queued_at),
        started_at=as_utc(model.started_at),
        completed_at=as_utc(model.completed_at),
        result_payload=model.result_payload,
        error_message=model.error_message,
        workflow_name=workflow_name,
        minutes_delay=minutes_delay,
    )


class SQLAlchemyWorkflowRepository(IWorkflowRepository):
    """
    SQLAlchemy implementation of workflow repository.

    Conditions and actions are stored in child tables ordered by
    ``position``; updates replace them wholesale.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_active_by_trigger(self, trigger_type: str) -> List[Workflow]:
        stmt = select(WorkflowModel).where(
            WorkflowModel.trigger_type == trigger_type,
            WorkflowModel.is_active.is_(True)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_workflow(model) for model in result.scalars().all()]

    async def list_actions(self, workflow_id: str) -> List[WorkflowAction]:
        async with self._session_factory() as session:
            return await self._load_actions(session, workflow_id)

    async def get(self, workflow_id: str) -> Optional[Workflow]:
        async with self._session_factory() as session:
            return await self._load(session, workflow_id)

    async def list(self) -> List[Workflow]:
        stmt = select(WorkflowModel.id).order_by(WorkflowModel.created_at.desc())
        async with self._session_factory() as session:
            ids = (await session.execute(stmt)).scalars().all()
            workflows = []
            for workflow_id in ids:
                workflow = await self._load(session, workflow_id)
                if workflow:
                    workflows.append(workflow)
            return workflows

    async def create(self, data: Any) -> Workflow:
        workflow_id = new_id()
        async with self._session_factory() as session:
            session.add(WorkflowModel(
                id=workflow_id,
                name=data.name,
                description=data.description or None,
                trigger_type=data.trigger,
                minutes_delay=data.minutes_delay,
                is_active=bool(data.is_active),
            ))
            await session.flush()
            self._add_children(session, workflow_id, data.conditions, data.actions)
            await session.commit()
            return await self._load(session, workflow_id)

    async def update(self, workflow_id: str, data: Any) -> Optional[Workflow]:
        async with self._session_factory() as session:
            model = await session.get(WorkflowModel, workflow_id)
            if model is None:
                return None

            model.name = data.name or model.name
            model.description = data.description or model.description
            model.trigger_type = data.trigger or model.trigger_type
            if data.minutes_delay is not None:
                model.minutes_delay = data.minutes_delay
            if data.is_active is not None:
                model.is_active = data.is_active

            await self._delete_children(session, workflow_id)
            self._add_children(session, workflow_id, data.conditions, data.actions)
            await session.commit()
            return await self._load(session, workflow_id)

    async def set_active(self, workflow_id: str, is_active: bool) -> Optional[Workflow]:
        async with self._session_factory() as session:
            model = await session.get(WorkflowModel, workflow_id)
            if model is None:
                return None
            model.is_active = is_active
            await session.commit()
            return await self._load(session, workflow_id)

    async def delete(self, workflow_id: str) -> bool:
        async with self._session_factory() as session:
            await self._delete_children(session, workflow_id)
            result = await session.execute(
                delete(WorkflowModel).where(WorkflowModel.id == workflow_id)
            )
            await session.commit()
            return result.rowcount > 0

    # ---------- helpers ----------

    @staticmethod
    def _to_workflow(model: WorkflowModel) -> Workflow:
        return Workflow(
            id=model.id,
            name=model.name,
            description=model.description,
            trigger_type=model.trigger_type,
            minutes_delay=model.minutes_delay,
            is_active=model.is_active,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )

    @staticmethod
    async def _load_actions(session: AsyncSession, workflow_id: str) -> List[WorkflowAction]:
        stmt = (
            select(WorkflowActionModel)
            .where(WorkflowActionModel.workflow_id == workflow_id)
            .order_by(WorkflowActionModel.position.asc(), WorkflowActionModel.id.asc())
        )
        result = await session.execute(stmt)
        return [_to_action(model) for model in result.scalars().all()]

    async def _load(self, session: AsyncSession, workflow_id: str) -> Optional[Workflow]:
        model = await session.get(WorkflowModel, workflow_id, populate_existing=True)
        if model is None:
            return None

        workflow = self._to_workflow(model)
        conditions = await session.execute(
            select(WorkflowConditionModel.condition_text)
            .where(WorkflowConditionModel.workflow_id == workflow_id)
            .order_by(WorkflowConditionModel.position.asc(), WorkflowConditionModel.id.asc())
        )
        workflow.conditions = list(conditions.scalars().all())
        workflow.actions = await self._load_actions(session, workflow_id)
        return workflow

    @staticmethod
    def _add_children(
        session: AsyncSession,
        workflow_id: str,
        conditions: List[str],
        actions: List[Any]
    ) -> None:
        for index, condition in enumerate(conditions or []):
            if not condition:
                continue
            session.add(WorkflowConditionModel(
                workflow_id=workflow_id, condition_text=condition, position=index
            ))
        for index, action in enumerate(actions or []):
            session.add(WorkflowActionModel(
                workflow_id=workflow_id,
                action_type=action.action_type,
                action_config=dict(action.action_config or {}),
                position=index,
            ))

    @staticmethod
    async def _delete_children(session: AsyncSession, workflow_id: str) -> None:
        await session.execute(
            delete(WorkflowConditionModel).where(WorkflowConditionModel.workflow_id == workflow_id)
        )
        await session.execute(
            delete(WorkflowActionModel).where(WorkflowActionModel.workflow_id == workflow_id)
        )


class SQLAlchemyWorkflowRunRepository(IWorkflowRunRepository):
    """
    SQLAlchemy implementation of workflow run repository.

    Status changes are conditional updates on the current status, so a run
    can only move forward and only one executor can claim it.
    """

    # Queued rows examined per query while looking for due runs
    SCAN_SIZE = 100

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(
        self,
        workflow_id: str,
        trigger_payload: Document,
        queued_at: datetime
    ) -> WorkflowRun:
        model = WorkflowRunModel(
            id=new_id(),
            workflow_id=workflow_id,
            trigger_payload=trigger_payload.to_dict(),
            status=RunStatus.QUEUED,
            queued_at=queued_at,
        )
        async with self._session_factory() as session:
            session.add(model)
            await session.commit()
        return _to_run(model)

    async def list_due(self, now: datetime, limit: int) -> List[WorkflowRun]:
        """
        Queued runs past their workflow's delay, oldest ``queued_at`` first.

        The delay lives on the workflow, so candidates are read in queue
        order and filtered here until ``limit`` due runs are found. Runs
        whose workflow was deleted are never returned.
        """
        stmt = (
            select(WorkflowRunModel, WorkflowModel.name, WorkflowModel.minutes_delay)
            .join(WorkflowModel, WorkflowModel.id == WorkflowRunModel.workflow_id)
            .where(
                WorkflowRunModel.status == RunStatus.QUEUED,
                WorkflowRunModel.queued_at <= now
            )
            .order_by(WorkflowRunModel.queued_at.asc(), WorkflowRunModel.id.asc())
        )

        due: List[WorkflowRun] = []
        offset = 0
        async with self._session_factory() as session:
            while len(due) < limit:
                rows = (await session.execute(stmt.limit(self.SCAN_SIZE).offset(offset))).all()
                for model, name, minutes_delay in rows:
                    run = _to_run(model, name, minutes_delay)
                    if run.is_due(now):
                        due.append(run)
                        if len(due) == limit:
                            break
                if len(rows) < self.SCAN_SIZE:
                    break
                offset += self.SCAN_SIZE
        return due

    async def claim(self, run_id: str, started_at: datetime) -> bool:
        stmt = (
            update(WorkflowRunModel)
            .where(
                WorkflowRunModel.id == run_id,
                WorkflowRunModel.status == RunStatus.QUEUED
            )
            .values(status=RunStatus.RUNNING, started_at=started_at)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount == 1

    async def save_outcome(self, run: WorkflowRun) -> None:
        if not run.is_finished:
            raise ValueError(f"Run {run.id} is not finished (status={run.status})")

        if run.status == RunStatus.COMPLETED:
            values = {"result_payload": run.result_payload}
        else:
            values = {"error_message": run.error_message}

        stmt = (
            update(WorkflowRunModel)
            .where(
                WorkflowRunModel.id == run.id,
                WorkflowRunModel.status == RunStatus.RUNNING
            )
            .values(status=run.status, completed_at=run.completed_at, **values)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()

        if result.rowcount != 1:
            logger.warning(
                "Run outcome not recorded, run was not running",
                extra={"run_id": run.id, "status": run.status}
            )

    async def get(self, run_id: str) -> Optional[WorkflowRun]:
        stmt = (
            select(WorkflowRunModel, WorkflowModel.name, WorkflowModel.minutes_delay)
            .outerjoin(WorkflowModel, WorkflowModel.id == WorkflowRunModel.workflow_id)
            .where(WorkflowRunModel.id == run_id)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).first()
        if row is None:
            return None
        return _to_run(*row)

    async def list_recent(
        self,
        limit: int = 50,
        status: Optional[str] = None
    ) -> List[WorkflowRun]:
        stmt = (
            select(WorkflowRunModel, WorkflowModel.name, WorkflowModel.minutes_delay)
            .join(WorkflowModel, WorkflowModel.id == WorkflowRunModel.workflow_id)
        )
        if status:
            stmt = stmt.where(WorkflowRunModel.status == status)
        stmt = stmt.order_by(WorkflowRunModel.queued_at.desc()).limit(limit)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [_to_run(*row) for row in rows]


class SQLAlchemyAppointmentRepository(IAppointmentRepository):
    """Appointment writes issued by the ``update_status`` action."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def set_status(self, appointment_id: str, status: str) -> int:
        stmt = (
            update(AppointmentModel)
            .where(AppointmentModel.id == appointment_id)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount


class SQLAlchemyMetricsRepository:
    """Operational counters shown next to the run history."""

    # Grace period before an in-progress appointment counts as overrunning
    OVERRUN_GRACE_MINUTES = 30
    CHAT_REPLY_MINUTES = 30

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def collect(self, now: datetime) -> OperationalMetrics:
        async with self._session_factory() as session:
            pending_over_24h = await session.scalar(
                select(func.count(AppointmentModel.id)).where(
                    AppointmentModel.status == AppointmentStatus.PENDING,
                    AppointmentModel.scheduled_at <= older_than_cutoff(now, 24 * 60 + 59)
                )
            )

            in_progress = await session.execute(
                select(AppointmentModel.scheduled_at, AppointmentModel.duration_minutes).where(
                    AppointmentModel.status == AppointmentStatus.IN_PROGRESS
                )
            )
            in_progress_overrun = sum(
                1
                for scheduled_at, duration in in_progress.all()
                if as_utc(scheduled_at) <= older_than_cutoff(
                    now, (duration or 0) + self.OVERRUN_GRACE_MINUTES
                )
            )

            chats_awaiting_reply = await session.scalar(
                select(func.count(ConversationModel.id)).where(
                    ConversationModel.last_message_at <= older_than_cutoff(now, self.CHAT_REPLY_MINUTES)
                )
            )

        return OperationalMetrics(
            pending_over_24h=pending_over_24h or 0,
            in_progress_overrun=in_progress_overrun,
            chats_awaiting_reply=chats_awaiting_reply or 0,
        )
