import pytest

from pawflow.automation.application import (
    ActionRegistry,
    RunExecutor,
    RunScheduler,
    TriggerEnqueuer,
    build_action_registry,
)
from pawflow.automation.infrastructure import SQLAlchemyAppointmentRepository
from pawflow.config import AppointmentStatus, RunStatus
from pawflow.shared.infrastructure.models import AppointmentModel

from conftest import START


class ActionFailed(Exception):
    pass


@pytest.fixture
def appointments(session_factory):
    return SQLAlchemyAppointmentRepository(session_factory)


@pytest.fixture
def enqueuer(workflow_repo, run_repo, clock):
    return TriggerEnqueuer(workflow_repo, run_repo, clock)


@pytest.mark.asyncio
async def test_failing_action_fails_run_without_results(make_workflow, enqueuer, workflow_repo, run_repo, clock):
    calls = []

    async def ok(config, payload):
        calls.append(config["step"])
        return {"ok": True}

    async def boom(config, payload):
        calls.append(config["step"])
        raise ActionFailed("grooming table unavailable")

    registry = ActionRegistry()
    registry.register("ok", ok)
    registry.register("boom", boom)

    await make_workflow("appointment.created", actions=[
        {"action_type": "ok", "action_config": {"step": 1}},
        {"action_type": "boom", "action_config": {"step": 2}},
        {"action_type": "ok", "action_config": {"step": 3}},
    ])
    [run] = await enqueuer.enqueue_trigger("appointment.created", {})

    executor = RunExecutor(workflow_repo, run_repo, registry, clock)
    assert await executor.execute(run) is True

    stored = await run_repo.get(run.id)
    assert calls == [1, 2]
    assert stored.status == RunStatus.FAILED
    assert stored.error_message == "grooming table unavailable"
    assert stored.result_payload is None
    assert stored.started_at == START
    assert stored.completed_at == START


@pytest.mark.asyncio
async def test_skipped_action_still_completes_run(make_workflow, enqueuer, workflow_repo, run_repo, gateway, appointments, clock):
    await make_workflow("appointment.created", actions=[
        {"action_type": "update_status", "action_config": {}},
        {"action_type": "send_notification", "action_config": {"user_id": "u-1", "title": "Booked"}},
    ])
    [run] = await enqueuer.enqueue_trigger("appointment.created", {"appointment_id": "ap-1"})

    executor = RunExecutor(workflow_repo, run_repo, build_action_registry(gateway, appointments), clock)
    await executor.execute(run)

    stored = await run_repo.get(run.id)
    assert stored.status == RunStatus.COMPLETED
    assert stored.error_message is None
    assert stored.result_payload == [
        {"action": "update_status", "result": {"skipped": "Missing appointment or status"}},
        {"action": "send_notification", "result": {"sent": True}},
    ]
    assert gateway.calls[0]["user_id"] == "u-1"
    assert gateway.calls[0]["title"] == "Booked"


@pytest.mark.asyncio
async def test_unknown_actions_are_skipped(make_workflow, enqueuer, workflow_repo, run_repo, gateway, appointments, clock):
    await make_workflow("appointment.created", actions=[
        {"action_type": "create_task", "action_config": {}},
        {"action_type": "teleport", "action_config": {}},
    ])
    [run] = await enqueuer.enqueue_trigger("appointment.created", {})

    executor = RunExecutor(workflow_repo, run_repo, build_action_registry(gateway, appointments), clock)
    await executor.execute(run)

    stored = await run_repo.get(run.id)
    assert stored.status == RunStatus.COMPLETED
    assert stored.result_payload == [
        {"action": "create_task", "result": {"skipped": "Action create_task not implemented"}},
        {"action": "teleport", "result": {"skipped": "Action teleport not implemented"}},
    ]


@pytest.mark.asyncio
async def test_notification_target_falls_back_to_payload(make_workflow, enqueuer, workflow_repo, run_repo, gateway, appointments, clock):
    await make_workflow("message.received", actions=[
        {"action_type": "send_notification", "action_config": {}},
    ])
    await enqueuer.enqueue_trigger("message.received", {"user_id": "u-9", "message": "New chat message"})
    await enqueuer.enqueue_trigger("message.received", {})

    executor = RunExecutor(workflow_repo, run_repo, build_action_registry(gateway, appointments), clock)
    for run in await run_repo.list_due(clock(), 10):
        await executor.execute(run)

    assert len(gateway.calls) == 1
    call = gateway.calls[0]
    assert call["user_id"] == "u-9"
    assert call["body"] == "New chat message"
    assert call["title"] == "Automation"
    assert call["category"] == "system"

    results = [r.result_payload for r in await run_repo.list_recent()]
    assert [{"action": "send_notification", "result": {"skipped": "Missing target user id"}}] in results
    assert [{"action": "send_notification", "result": {"sent": True}}] in results


@pytest.mark.asyncio
async def test_update_status_overwrites_appointment(make_workflow, enqueuer, workflow_repo, run_repo, gateway, appointments, session_factory, add_rows, clock):
    await add_rows(AppointmentModel(id="ap-1", status=AppointmentStatus.PENDING, scheduled_at=START))
    await make_workflow("appointment.paid", actions=[
        {"action_type": "update_status", "action_config": {"next_status": "confirmed"}},
    ])
    [run] = await enqueuer.enqueue_trigger("appointment.paid", {"appointment_id": "ap-1"})
    [ghost] = await enqueuer.enqueue_trigger("appointment.paid", {"appointment_id": "missing"})

    executor = RunExecutor(workflow_repo, run_repo, build_action_registry(gateway, appointments), clock)
    await executor.execute(run)
    await executor.execute(ghost)

    async with session_factory() as session:
        appointment = await session.get(AppointmentModel, "ap-1")
    assert appointment.status == AppointmentStatus.CONFIRMED
    assert (await run_repo.get(ghost.id)).result_payload == [
        {"action": "update_status", "result": {"updated": True}}
    ]


@pytest.mark.asyncio
async def test_claimed_run_is_not_executed_twice(make_workflow, enqueuer, workflow_repo, run_repo, gateway, appointments, clock):
    await make_workflow("appointment.created", actions=[
        {"action_type": "send_notification", "action_config": {"user_id": "u-1"}},
    ])
    [run] = await enqueuer.enqueue_trigger("appointment.created", {})
    executor = RunExecutor(workflow_repo, run_repo, build_action_registry(gateway, appointments), clock)

    [first_copy] = await run_repo.list_due(clock(), 10)
    [second_copy] = await run_repo.list_due(clock(), 10)

    assert await executor.execute(first_copy) is True
    assert await executor.execute(second_copy) is False
    assert len(gateway.calls) == 1


@pytest.mark.asyncio
async def test_failed_run_does_not_stop_the_batch(make_workflow, enqueuer, workflow_repo, run_repo, gateway, clock):
    async def boom(config, payload):
        raise ActionFailed()

    registry = ActionRegistry()
    registry.register("boom", boom)
    registry.register("ok", lambda config, payload: _ok())

    await make_workflow("a", actions=[{"action_type": "boom"}])
    await make_workflow("b", actions=[{"action_type": "ok"}])
    [failing] = await enqueuer.enqueue_trigger("a", {})
    clock.advance(seconds=1)
    [passing] = await enqueuer.enqueue_trigger("b", {})

    scheduler = RunScheduler(run_repo, RunExecutor(workflow_repo, run_repo, registry, clock), clock=clock)
    assert await scheduler.tick() == 2

    failed = await run_repo.get(failing.id)
    assert failed.status == RunStatus.FAILED
    assert failed.error_message == "ActionFailed"
    assert (await run_repo.get(passing.id)).status == RunStatus.COMPLETED


async def _ok():
    return {"ok": True}


@pytest.mark.asyncio
async def test_unfinished_run_outcome_is_rejected(make_workflow, enqueuer, run_repo, clock):
    await make_workflow("appointment.created")
    [run] = await enqueuer.enqueue_trigger("appointment.created", {})
    assert await run_repo.claim(run.id, clock())
    run.mark_running(clock())
    assert not run.is_finished

    with pytest.raises(ValueError):
        await run_repo.save_outcome(run)
    assert (await run_repo.get(run.id)).status == RunStatus.RUNNING

    run.mark_completed([], clock())
    assert run.is_finished
    await run_repo.save_outcome(run)
    assert (await run_repo.get(run.id)).status == RunStatus.COMPLETED
