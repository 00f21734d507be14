import asyncio
from datetime import timedelta

import pytest

from pawflow.automation.infrastructure import SQLAlchemyAppointmentRepository
from pawflow.config import AppointmentStatus, IncidentStatus, SLAEntityType
from pawflow.core import RepositoryException
from pawflow.shared.infrastructure.models import (
    AppointmentModel,
    ConversationModel,
    MessageModel,
)
from pawflow.shared.infrastructure.scheduler import TickState
from pawflow.sla.application import (
    BreachPredicateRegistry,
    IncidentReconciler,
    SLAMonitor,
    SlaTargetCreateRequest,
)
from pawflow.sla.infrastructure import (
    SQLAlchemySlaIncidentRepository,
    SQLAlchemySlaTargetRepository,
    build_predicate_registry,
)


class CountingIncidentRepository(SQLAlchemySlaIncidentRepository):
    """Counts incident writes issued by the reconciler."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.writes = 0

    async def open(self, target, entity_id, opened_at):
        self.writes += 1
        return await super().open(target, entity_id, opened_at)

    async def resolve(self, incident_id, resolved_at):
        self.writes += 1
        return await super().resolve(incident_id, resolved_at)


@pytest.fixture
def targets(session_factory):
    return SQLAlchemySlaTargetRepository(session_factory)


@pytest.fixture
def incidents(session_factory):
    return CountingIncidentRepository(session_factory)


@pytest.fixture
def reconciler(incidents, clock):
    return IncidentReconciler(incidents, clock)


@pytest.fixture
def monitor(targets, session_factory, reconciler, clock):
    return SLAMonitor(targets, build_predicate_registry(session_factory), reconciler, clock)


async def _target(targets, entity_type=SLAEntityType.APPOINTMENT_PENDING, threshold=60, name="Pending follow-up", **kwargs):
    return await targets.create(SlaTargetCreateRequest(
        name=name, entity_type=entity_type, threshold_minutes=threshold, **kwargs
    ))


@pytest.mark.asyncio
async def test_pending_appointment_opens_then_resolves(monitor, targets, incidents, session_factory, add_rows, clock):
    target = await _target(targets, threshold=60)
    await add_rows(AppointmentModel(
        id="ap-1", status=AppointmentStatus.PENDING, scheduled_at=clock() - timedelta(minutes=90)
    ))

    [result] = await monitor.tick()
    assert result.opened == ["ap-1"]

    [incident] = await incidents.list_active_for_target(target.id)
    assert incident.status == IncidentStatus.OPEN
    assert incident.entity_id == "ap-1"
    assert incident.entity_type == SLAEntityType.APPOINTMENT_PENDING
    assert incident.breach_reason == "Breach detected for appointment.pending"
    assert incident.opened_at == clock()
    assert incidents.writes == 1

    [unchanged] = await monitor.tick()
    assert not unchanged.changed
    assert incidents.writes == 1

    await SQLAlchemyAppointmentRepository(session_factory).set_status("ap-1", AppointmentStatus.CONFIRMED)
    clock.advance(minutes=1)
    [result] = await monitor.tick()
    assert result.resolved == [incident.id]

    resolved = await incidents.get(incident.id)
    assert resolved.status == IncidentStatus.RESOLVED
    assert resolved.resolved_at == clock()
    assert resolved.target_name == "Pending follow-up"
    assert await incidents.list_active_for_target(target.id) == []


@pytest.mark.asyncio
async def test_threshold_counts_whole_minutes(monitor, targets, incidents, add_rows, clock):
    target = await _target(targets, threshold=60)
    await add_rows(
        AppointmentModel(id="exactly-60", status=AppointmentStatus.PENDING,
                         scheduled_at=clock() - timedelta(minutes=60, seconds=59)),
        AppointmentModel(id="past-61", status=AppointmentStatus.PENDING,
                         scheduled_at=clock() - timedelta(minutes=61)),
        AppointmentModel(id="done", status=AppointmentStatus.COMPLETED,
                         scheduled_at=clock() - timedelta(hours=5)),
    )

    await monitor.tick()

    active = await incidents.list_active_for_target(target.id)
    assert [i.entity_id for i in active] == ["past-61"]


@pytest.mark.asyncio
async def test_unanswered_chat_uses_latest_message(monitor, targets, incidents, add_rows, clock):
    target = await _target(targets, entity_type=SLAEntityType.CHAT_UNANSWERED, threshold=30, name="Chat reply")
    now = clock()
    await add_rows(
        ConversationModel(id="c-answered"),
        ConversationModel(id="c-waiting"),
    )
    await add_rows(
        MessageModel(conversation_id="c-answered", body="hi", created_at=now - timedelta(minutes=50)),
        MessageModel(conversation_id="c-answered", body="hello!", created_at=now - timedelta(minutes=10)),
        MessageModel(conversation_id="c-waiting", body="anyone?", created_at=now - timedelta(minutes=45)),
        MessageModel(conversation_id="c-waiting", body="hello?", created_at=now - timedelta(minutes=40)),
    )

    await monitor.tick()

    active = await incidents.list_active_for_target(target.id)
    assert [i.entity_id for i in active] == ["c-waiting"]


@pytest.mark.asyncio
async def test_targets_track_same_entity_separately(monitor, targets, incidents, add_rows, clock):
    strict = await _target(targets, threshold=30, name="Strict")
    relaxed = await _target(targets, threshold=60, name="Relaxed")
    await add_rows(AppointmentModel(
        id="ap-1", status=AppointmentStatus.PENDING, scheduled_at=clock() - timedelta(minutes=90)
    ))

    results = await monitor.tick()

    assert sorted(r.target_id for r in results) == sorted([strict.id, relaxed.id])
    assert len(await incidents.list_active_for_target(strict.id)) == 1
    assert len(await incidents.list_active_for_target(relaxed.id)) == 1


@pytest.mark.asyncio
async def test_close_incidents_for_entity_across_targets(monitor, targets, incidents, reconciler, add_rows, clock):
    await _target(targets, threshold=30, name="Strict")
    await _target(targets, threshold=60, name="Relaxed")
    await add_rows(
        AppointmentModel(id="ap-1", status=AppointmentStatus.PENDING,
                         scheduled_at=clock() - timedelta(minutes=90)),
        AppointmentModel(id="ap-2", status=AppointmentStatus.PENDING,
                         scheduled_at=clock() - timedelta(minutes=90)),
    )
    await monitor.tick()

    [one, _] = [i for i in await incidents.list_recent() if i.entity_id == "ap-1"]
    assert await incidents.acknowledge(one.id, clock()) is True

    closed = await reconciler.close_incidents_for_entity(SLAEntityType.APPOINTMENT_PENDING, "ap-1")
    assert closed == 2

    by_entity = {}
    for incident in await incidents.list_recent():
        by_entity.setdefault(incident.entity_id, []).append(incident.status)
    assert by_entity["ap-1"] == [IncidentStatus.RESOLVED, IncidentStatus.RESOLVED]
    assert by_entity["ap-2"] == [IncidentStatus.OPEN, IncidentStatus.OPEN]

    assert await reconciler.close_incidents_for_entity(SLAEntityType.APPOINTMENT_PENDING, "ap-1") == 0
    assert await reconciler.close_incidents_for_entity(SLAEntityType.CHAT_UNANSWERED, "ap-2") == 0


@pytest.mark.asyncio
async def test_acknowledged_incident_stays_until_breach_clears(monitor, targets, incidents, session_factory, add_rows, clock):
    target = await _target(targets)
    await add_rows(AppointmentModel(
        id="ap-1", status=AppointmentStatus.PENDING, scheduled_at=clock() - timedelta(minutes=90)
    ))
    await monitor.tick()
    [incident] = await incidents.list_active_for_target(target.id)
    await incidents.acknowledge(incident.id, clock())

    [result] = await monitor.tick()
    assert not result.changed
    [still] = await incidents.list_active_for_target(target.id)
    assert still.status == IncidentStatus.ACKNOWLEDGED

    await SQLAlchemyAppointmentRepository(session_factory).set_status("ap-1", AppointmentStatus.CANCELLED)
    [result] = await monitor.tick()
    assert result.resolved == [incident.id]


@pytest.mark.asyncio
async def test_unknown_entity_type_resolves_open_incidents(targets, incidents, reconciler, clock):
    target = await _target(targets, entity_type="invoice.overdue", name="Invoices")
    await incidents.open(target, "inv-1", clock())

    monitor = SLAMonitor(targets, BreachPredicateRegistry(), reconciler, clock)
    [result] = await monitor.tick()

    assert len(result.resolved) == 1
    assert await incidents.list_active_for_target(target.id) == []


@pytest.mark.asyncio
async def test_inactive_targets_are_not_evaluated(monitor, targets, incidents, add_rows, clock):
    await _target(targets, is_active=False)
    await add_rows(AppointmentModel(
        id="ap-1", status=AppointmentStatus.PENDING, scheduled_at=clock() - timedelta(minutes=90)
    ))

    assert await monitor.tick() == []
    assert await incidents.list_recent() == []


@pytest.mark.asyncio
async def test_storage_error_aborts_tick_and_releases_guard(targets, reconciler, clock):
    await _target(targets, name="A")
    await _target(targets, name="B")

    evaluated = []

    async def failing(target, now):
        evaluated.append(target.name)
        raise RepositoryException("database unavailable")

    registry = BreachPredicateRegistry()
    registry.register(SLAEntityType.APPOINTMENT_PENDING, failing)
    monitor = SLAMonitor(targets, registry, reconciler, clock)

    with pytest.raises(RepositoryException):
        await monitor.tick()
    assert evaluated == ["A"]
    assert monitor.state == TickState.IDLE

    with pytest.raises(RepositoryException):
        await monitor.tick()
    assert evaluated == ["A", "A"]


@pytest.mark.asyncio
async def test_overlapping_sla_tick_is_dropped(targets, reconciler, clock):
    await _target(targets)
    release = asyncio.Event()
    calls = []

    async def slow(target, now):
        calls.append(target.id)
        await release.wait()
        return set()

    registry = BreachPredicateRegistry()
    registry.register(SLAEntityType.APPOINTMENT_PENDING, slow)
    monitor = SLAMonitor(targets, registry, reconciler, clock)

    first = asyncio.create_task(monitor.tick())
    while not calls:
        await asyncio.sleep(0.01)

    assert await monitor.tick() == []
    release.set()
    assert len(await first) == 1
    assert len(calls) == 1
