"""
SLA Application Services
=========================

Breach evaluation and incident reconciliation.

The monitor evaluates every active target on a periodic tick. Each target's
breach predicate yields the set of entity ids currently in breach, and the
reconciler opens and resolves incidents until they match that set.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from pawflow.core import Clock, utcnow
from pawflow.shared.infrastructure.logging import get_logger
from pawflow.shared.infrastructure.scheduler import TickGuard
from pawflow.sla.domain import ReconciliationResult, SlaIncident, SlaTarget

logger = get_logger(__name__)

BreachPredicate = Callable[[SlaTarget, datetime], Awaitable[Set[str]]]


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISlaTargetRepository(ABC):
    """Interface for SLA target data access."""

    @abstractmethod
    async def list_active(self) -> List[SlaTarget]:
        """Targets evaluated by the monitor."""

    @abstractmethod
    async def list(self) -> List[SlaTarget]:
        """All targets ordered by name."""

    @abstractmethod
    async def get(self, target_id: str) -> Optional[SlaTarget]:
        """Target by id."""

    @abstractmethod
    async def exists(self, entity_type: str, name: str) -> bool:
        """Whether a target with this entity type and name exists."""

    @abstractmethod
    async def create(self, data: Any) -> SlaTarget:
        """Create a target."""

    @abstractmethod
    async def update(self, target_id: str, data: Any) -> Optional[SlaTarget]:
        """Update threshold, warning, severity or active flag."""


class ISlaIncidentRepository(ABC):
    """Interface for SLA incident data access."""

    @abstractmethod
    async def list_active_for_target(self, target_id: str) -> List[SlaIncident]:
        """Open and acknowledged incidents of a target."""

    @abstractmethod
    async def open(
        self,
        target: SlaTarget,
        entity_id: str,
        opened_at: datetime
    ) -> SlaIncident:
        """Insert an open incident."""

    @abstractmethod
    async def resolve(self, incident_id: str, resolved_at: datetime) -> bool:
        """Resolve an incident if it is still open or acknowledged."""

    @abstractmethod
    async def resolve_for_entity(
        self,
        entity_type: str,
        entity_id: str,
        resolved_at: datetime
    ) -> int:
        """Resolve every active incident of an entity; returns the count."""

    @abstractmethod
    async def get(self, incident_id: str) -> Optional[SlaIncident]:
        """Incident by id."""

    @abstractmethod
    async def acknowledge(self, incident_id: str, acknowledged_at: datetime) -> bool:
        """Acknowledge an incident if it is still open."""

    @abstractmethod
    async def list_recent(
        self,
        limit: int = 100,
        status: Optional[str] = None
    ) -> List[SlaIncident]:
        """Most recently opened incidents."""


# ========== Breach Predicates ==========

class BreachPredicateRegistry:
    """
    Maps SLA entity types to breach predicates.

    A predicate receives the target and the evaluation time and returns the
    ids of the entities in breach. Entity types without a predicate have no
    breaching entities.
    """

    def __init__(self):
        self._predicates: Dict[str, BreachPredicate] = {}

    def register(self, entity_type: str, predicate: BreachPredicate) -> None:
        self._predicates[entity_type] = predicate

    async def find_breaches(self, target: SlaTarget, now: datetime) -> Set[str]:
        predicate = self._predicates.get(target.entity_type)
        if predicate is None:
            logger.warning(
                "No breach predicate for entity type",
                extra={"target_id": target.id, "entity_type": target.entity_type}
            )
            return set()
        return set(await predicate(target, now))


# ========== Application Services ==========

class IncidentReconciler:
    """
    Keeps a target's active incidents equal to its breaching entity set.

    Matching is scoped per target: two targets watching the same entity
    track it with separate incidents.
    """

    def __init__(
        self,
        incident_repository: ISlaIncidentRepository,
        clock: Clock = utcnow
    ):
        self._incident_repo = incident_repository
        self._clock = clock

    async def reconcile(
        self,
        target: SlaTarget,
        breaching_ids: Set[str],
        now: Optional[datetime] = None
    ) -> ReconciliationResult:
        """
        Open incidents for new breaches and resolve cleared ones.

        An unchanged breach set performs no writes.
        """
        now = now or self._clock()
        active = await self._incident_repo.list_active_for_target(target.id)
        tracked = {incident.entity_id for incident in active}

        opened = []
        for entity_id in sorted(breaching_ids - tracked):
            await self._incident_repo.open(target, entity_id, now)
            opened.append(entity_id)

        resolved = []
        for incident in active:
            if incident.entity_id in breaching_ids:
                continue
            if await self._incident_repo.resolve(incident.id, now):
                resolved.append(incident.id)

        result = ReconciliationResult(target_id=target.id, opened=opened, resolved=resolved)
        if result.changed:
            logger.info(
                "SLA incidents reconciled",
                extra={
                    "target_id": target.id,
                    "entity_type": target.entity_type,
                    "incidents_opened": len(opened),
                    "incidents_resolved": len(resolved)
                }
            )
        return result

    async def close_incidents_for_entity(self, entity_type: str, entity_id: str) -> int:
        """
        Resolve every active incident of one entity, across all targets.

        For callers that know a breach condition has cleared before the next
        monitor tick.
        """
        if not entity_type or not entity_id:
            return 0

        count = await self._incident_repo.resolve_for_entity(entity_type, entity_id, self._clock())
        if count:
            logger.info(
                "SLA incidents closed for entity",
                extra={"entity_type": entity_type, "entity_id": entity_id, "incidents_resolved": count}
            )
        return count


class SLAMonitor:
    """
    Periodic tick evaluating every active SLA target.

    Targets are evaluated one after another. A storage error aborts the
    rest of the tick; the next tick starts over with all targets.
    """

    def __init__(
        self,
        target_repository: ISlaTargetRepository,
        predicates: BreachPredicateRegistry,
        reconciler: IncidentReconciler,
        clock: Clock = utcnow
    ):
        self._target_repo = target_repository
        self._predicates = predicates
        self._reconciler = reconciler
        self._clock = clock
        self._guard = TickGuard("sla")

    @property
    def state(self) -> str:
        return self._guard.state

    async def evaluate(self, target: SlaTarget, now: datetime) -> ReconciliationResult:
        """Evaluate one target and reconcile its incidents."""
        breaching = await self._predicates.find_breaches(target, now)
        return await self._reconciler.reconcile(target, breaching, now)

    async def tick(self) -> List[ReconciliationResult]:
        """
        Evaluate all active targets.

        Returns:
            One result per evaluated target (empty if the tick was skipped)
        """
        async with self._guard.hold() as acquired:
            if not acquired:
                return []

            now = self._clock()
            results = []
            for target in await self._target_repo.list_active():
                results.append(await self.evaluate(target, now))
            return results
