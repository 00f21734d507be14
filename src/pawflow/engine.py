"""
Automation Engine
=================

Wires repositories, services and the two periodic ticks together and
exposes the operations other modules call:

- ``enqueue_trigger(trigger_type, payload)`` after a domain event
- ``close_incidents_for_entity(entity_type, entity_id)`` when an entity
  recovers before the next SLA tick
"""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pawflow.automation.application import (
    INotificationGateway,
    RunExecutor,
    RunScheduler,
    TriggerEnqueuer,
    build_action_registry,
)
from pawflow.automation.domain import WorkflowRun
from pawflow.automation.infrastructure import (
    SQLAlchemyAppointmentRepository,
    SQLAlchemyWorkflowRepository,
    SQLAlchemyWorkflowRunRepository,
)
from pawflow.config import Settings, settings as default_settings
from pawflow.core import Clock, utcnow
from pawflow.notifications.application import (
    IEmailTransport,
    ISmsTransport,
    NotificationDispatcher,
)
from pawflow.notifications.infrastructure import (
    SQLAlchemyNotificationRepository,
    SmsWebhookClient,
    build_email_transport,
    build_sms_client,
)
from pawflow.shared.infrastructure.logging import get_logger
from pawflow.shared.infrastructure.scheduler import PollingScheduler
from pawflow.sla.application import IncidentReconciler, SLAMonitor
from pawflow.sla.infrastructure import (
    SQLAlchemySlaIncidentRepository,
    SQLAlchemySlaTargetRepository,
    build_predicate_registry,
    seed_sla_targets,
)

logger = get_logger(__name__)

RUN_JOB_ID = "workflow_runs"
SLA_JOB_ID = "sla_evaluation"


class AutomationEngine:
    """
    Composition root of the automation engine.

    ``start`` registers the run tick and the SLA tick with the polling
    scheduler; ``stop`` stops firing them without waiting for a tick in
    flight.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: Optional[Settings] = None,
        clock: Clock = utcnow,
        email: Optional[IEmailTransport] = None,
        sms: Optional[ISmsTransport] = None,
        notification_gateway: Optional[INotificationGateway] = None
    ):
        self.config = config or default_settings
        self._sms = sms

        # Automation
        self.workflows = SQLAlchemyWorkflowRepository(session_factory)
        self.runs = SQLAlchemyWorkflowRunRepository(session_factory)
        self.notifications = NotificationDispatcher(
            SQLAlchemyNotificationRepository(session_factory), email=email, sms=sms
        )
        self.registry = build_action_registry(
            notification_gateway or self.notifications,
            SQLAlchemyAppointmentRepository(session_factory)
        )
        self.enqueuer = TriggerEnqueuer(self.workflows, self.runs, clock)
        self.executor = RunExecutor(self.workflows, self.runs, self.registry, clock)
        self.run_scheduler = RunScheduler(
            self.runs, self.executor, self.config.automation_batch_size, clock
        )

        # SLA
        self.targets = SQLAlchemySlaTargetRepository(session_factory)
        self.incidents = SQLAlchemySlaIncidentRepository(session_factory)
        self.predicates = build_predicate_registry(session_factory)
        self.reconciler = IncidentReconciler(self.incidents, clock)
        self.sla_monitor = SLAMonitor(self.targets, self.predicates, self.reconciler, clock)

        self._scheduler = PollingScheduler()
        self._scheduler.add_job(
            RUN_JOB_ID, self.run_scheduler.tick, self.config.automation_poll_interval_seconds
        )
        self._scheduler.add_job(
            SLA_JOB_ID, self.sla_monitor.tick, self.config.sla_evaluation_interval_seconds
        )

    @classmethod
    def from_settings(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        config: Optional[Settings] = None
    ) -> "AutomationEngine":
        """Engine with notification transports built from configuration."""
        config = config or default_settings
        return cls(
            session_factory,
            config=config,
            email=build_email_transport(config),
            sms=build_sms_client(config),
        )

    # ========== Lifecycle ==========

    async def start(self) -> None:
        if not self.config.scheduler_enabled:
            logger.info("Background scheduler disabled")
            return
        await self._scheduler.start()

    async def stop(self) -> None:
        await self._scheduler.stop()
        if isinstance(self._sms, SmsWebhookClient):
            await self._sms.close()

    @property
    def is_running(self) -> bool:
        return self._scheduler.is_running

    def status(self) -> Dict[str, str]:
        """Scheduler and tick states for health checks."""
        return {
            "scheduler": "running" if self.is_running else "stopped",
            RUN_JOB_ID: self.run_scheduler.state,
            SLA_JOB_ID: self.sla_monitor.state,
        }

    # ========== Operations ==========

    async def enqueue_trigger(
        self,
        trigger_type: str,
        payload: Optional[Mapping[str, Any]] = None
    ) -> List[WorkflowRun]:
        return await self.enqueuer.enqueue_trigger(trigger_type, payload)

    async def close_incidents_for_entity(self, entity_type: str, entity_id: str) -> int:
        return await self.reconciler.close_incidents_for_entity(entity_type, entity_id)

    async def seed_sla_targets(self, path: Optional[Union[str, Path]] = None) -> int:
        return await seed_sla_targets(self.targets, path or self.config.sla_seed_path)
