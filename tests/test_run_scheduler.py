import asyncio

import pytest

from pawflow.automation.application import (
    RunExecutor,
    RunScheduler,
    TriggerEnqueuer,
    build_action_registry,
)
from pawflow.automation.infrastructure import SQLAlchemyAppointmentRepository
from pawflow.config import RunStatus
from pawflow.core import RepositoryException
from pawflow.shared.infrastructure.scheduler import TickState

NOTIFY = {"action_type": "send_notification", "action_config": {"user_id": "u-1"}}


@pytest.fixture
def executor(workflow_repo, run_repo, session_factory, gateway, clock):
    registry = build_action_registry(gateway, SQLAlchemyAppointmentRepository(session_factory))
    return RunExecutor(workflow_repo, run_repo, registry, clock)


@pytest.fixture
def enqueuer(workflow_repo, run_repo, clock):
    return TriggerEnqueuer(workflow_repo, run_repo, clock)


@pytest.mark.asyncio
async def test_delayed_run_waits_for_its_deadline(make_workflow, enqueuer, run_repo, executor, clock):
    await make_workflow("appointment.created", minutes_delay=5, actions=[NOTIFY])
    [run] = await enqueuer.enqueue_trigger("appointment.created", {})
    scheduler = RunScheduler(run_repo, executor, batch_size=10, clock=clock)

    clock.advance(minutes=4, seconds=59)
    assert await scheduler.tick() == 0
    assert (await run_repo.get(run.id)).status == RunStatus.QUEUED

    clock.advance(seconds=1)
    assert await scheduler.tick() == 1
    assert (await run_repo.get(run.id)).status == RunStatus.COMPLETED


@pytest.mark.asyncio
async def test_oldest_runs_first_and_batch_spills_over(make_workflow, enqueuer, run_repo, executor, clock, gateway):
    await make_workflow("message.received", actions=[NOTIFY])
    queued = []
    for i in range(5):
        queued.extend(await enqueuer.enqueue_trigger("message.received", {"n": i}))
        clock.advance(seconds=1)

    scheduler = RunScheduler(run_repo, executor, batch_size=3, clock=clock)

    due = await run_repo.list_due(clock(), 3)
    assert [r.id for r in due] == [r.id for r in queued[:3]]

    assert await scheduler.tick() == 3
    assert [c["metadata"]["payload"]["n"] for c in gateway.calls] == [0, 1, 2]

    assert await scheduler.tick() == 2
    assert await scheduler.tick() == 0
    assert len(gateway.calls) == 5


@pytest.mark.asyncio
async def test_delayed_head_does_not_block_due_runs(make_workflow, enqueuer, run_repo, clock):
    await make_workflow("slow", minutes_delay=30)
    await make_workflow("fast")
    [slow] = await enqueuer.enqueue_trigger("slow", {})
    clock.advance(seconds=1)
    [fast] = await enqueuer.enqueue_trigger("fast", {})

    due = await run_repo.list_due(clock(), 10)
    assert [r.id for r in due] == [fast.id]


@pytest.mark.asyncio
async def test_runs_of_deleted_workflows_are_never_picked(make_workflow, enqueuer, workflow_repo, run_repo, clock):
    workflow = await make_workflow("appointment.created")
    await enqueuer.enqueue_trigger("appointment.created", {})
    await workflow_repo.delete(workflow.id)

    assert await run_repo.list_due(clock(), 10) == []


@pytest.mark.asyncio
async def test_overlapping_tick_is_dropped():
    class BlockingRuns:
        def __init__(self):
            self.list_due_calls = 0
            self.release = asyncio.Event()

        async def list_due(self, now, limit):
            self.list_due_calls += 1
            await self.release.wait()
            return []

    runs = BlockingRuns()
    scheduler = RunScheduler(runs, executor=None, batch_size=10)

    first = asyncio.create_task(scheduler.tick())
    await asyncio.sleep(0)
    assert scheduler.state == TickState.RUNNING

    assert await scheduler.tick() == 0
    assert await scheduler.tick() == 0

    runs.release.set()
    await first
    assert runs.list_due_calls == 1
    assert scheduler.state == TickState.IDLE


@pytest.mark.asyncio
async def test_storage_failure_aborts_tick_and_releases_guard():
    class FailingRuns:
        calls = 0

        async def list_due(self, now, limit):
            self.calls += 1
            raise RepositoryException("database unavailable")

    runs = FailingRuns()
    scheduler = RunScheduler(runs, executor=None)

    with pytest.raises(RepositoryException):
        await scheduler.tick()
    assert scheduler.state == TickState.IDLE

    with pytest.raises(RepositoryException):
        await scheduler.tick()
    assert runs.calls == 2
