from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio

from pawflow.config import AppointmentStatus, IncidentStatus
from pawflow.infrastructure.database import get_session_maker
from pawflow.main import app
from pawflow.shared.infrastructure.models import AppointmentModel, ConversationModel
from pawflow.sla.application import SlaTargetCreateRequest
from pawflow.sla.infrastructure import (
    SQLAlchemySlaIncidentRepository,
    SQLAlchemySlaTargetRepository,
)

WORKFLOW = {
    "name": "Booking confirmation",
    "trigger": "appointment.created",
    "is_active": True,
    "minutes_delay": 0,
    "conditions": ["status is pending"],
    "actions": [
        {"action_config": {"title": "Thanks for booking"}},
        {"action_type": "update_status", "action_config": {"next_status": "confirmed"}},
    ],
}


@pytest_asyncio.fixture
async def client(session_factory):
    app.dependency_overrides[get_session_maker] = lambda: session_factory
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def targets(session_factory):
    return SQLAlchemySlaTargetRepository(session_factory)


@pytest.fixture
def incidents(session_factory):
    return SQLAlchemySlaIncidentRepository(session_factory)


@pytest.mark.asyncio
async def test_workflow_lifecycle(client):
    created = await client.post("/automation/workflows", json=WORKFLOW)
    assert created.status_code == 201
    workflow = created.json()["workflow"]
    assert workflow["trigger"] == "appointment.created"
    assert workflow["conditions"] == ["status is pending"]
    assert [a["action_type"] for a in workflow["actions"]] == ["send_notification", "update_status"]

    workflow_id = workflow["id"]
    fetched = await client.get(f"/automation/workflows/{workflow_id}")
    assert fetched.json()["workflow"]["name"] == "Booking confirmation"

    updated = await client.put(
        f"/automation/workflows/{workflow_id}",
        json={"name": "Renamed", "actions": [{"action_type": "create_task"}]},
    )
    body = updated.json()["workflow"]
    assert body["name"] == "Renamed"
    assert body["trigger"] == "appointment.created"
    assert body["is_active"] is True
    assert body["conditions"] == []
    assert [a["action_type"] for a in body["actions"]] == ["create_task"]

    toggled = await client.patch(f"/automation/workflows/{workflow_id}/toggle", json={"is_active": False})
    assert toggled.json()["workflow"]["is_active"] is False

    listed = await client.get("/automation/workflows")
    assert [w["id"] for w in listed.json()["workflows"]] == [workflow_id]

    deleted = await client.delete(f"/automation/workflows/{workflow_id}")
    assert deleted.json() == {"deleted": True}
    assert (await client.get(f"/automation/workflows/{workflow_id}")).status_code == 404


@pytest.mark.asyncio
async def test_missing_workflow_returns_404(client):
    response = await client.delete("/automation/workflows/nope")
    assert response.status_code == 404
    assert "correlation_id" in response.json()


@pytest.mark.asyncio
async def test_invalid_workflow_is_rejected(client):
    response = await client.post("/automation/workflows", json={"name": "No trigger"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_trigger_enqueues_runs(client):
    await client.post("/automation/workflows", json=WORKFLOW)
    await client.post("/automation/workflows", json={**WORKFLOW, "name": "Inactive", "is_active": False})

    fired = await client.post("/automation/triggers/appointment.created", json={"appointment_id": "ap-1"})
    assert fired.status_code == 202
    assert fired.json() == {"queued": True, "runs": 1}

    runs = (await client.get("/automation/runs", params={"status": "queued"})).json()["runs"]
    assert len(runs) == 1
    assert runs[0]["workflow_name"] == "Booking confirmation"
    assert runs[0]["trigger_payload"] == {"triggerType": "appointment.created", "appointment_id": "ap-1"}

    assert (await client.get("/automation/runs", params={"status": "completed"})).json()["runs"] == []


@pytest.mark.asyncio
async def test_trigger_without_body(client):
    response = await client.post("/automation/triggers/message.received")
    assert response.status_code == 202
    assert response.json()["runs"] == 0


@pytest.mark.asyncio
async def test_invalid_run_status_returns_400(client):
    response = await client.get("/automation/runs", params={"status": "exploded"})
    assert response.status_code == 400
    assert response.json()["details"]["allowed"] == ["queued", "running", "completed", "failed"]


@pytest.mark.asyncio
async def test_metrics_counts_overdue_work(client, add_rows):
    now = datetime.now(timezone.utc)
    await add_rows(
        AppointmentModel(id="old", status=AppointmentStatus.PENDING, scheduled_at=now - timedelta(days=3)),
        AppointmentModel(id="fresh", status=AppointmentStatus.PENDING, scheduled_at=now - timedelta(hours=2)),
        AppointmentModel(id="overrun", status=AppointmentStatus.IN_PROGRESS,
                         scheduled_at=now - timedelta(hours=3), duration_minutes=60),
        AppointmentModel(id="on-time", status=AppointmentStatus.IN_PROGRESS,
                         scheduled_at=now - timedelta(minutes=20), duration_minutes=60),
        ConversationModel(id="c-1", last_message_at=now - timedelta(hours=1)),
        ConversationModel(id="c-2", last_message_at=now - timedelta(minutes=5)),
    )

    response = await client.get("/automation/metrics")
    assert response.status_code == 200
    assert response.json()["metrics"] == {
        "pending_over_24h": 1,
        "in_progress_overrun": 1,
        "chats_awaiting_reply": 1,
    }
    assert response.json()["recent_runs"] == []


@pytest.mark.asyncio
async def test_sla_target_admin(client):
    created = await client.post("/automation/sla/targets", json={
        "name": "Pending follow-up",
        "entity_type": "appointment.pending",
        "threshold_minutes": 60,
    })
    assert created.status_code == 201
    target = created.json()["target"]
    assert target["severity"] == "medium"
    assert target["is_active"] is True

    updated = await client.put(
        f"/automation/sla/targets/{target['id']}",
        json={"threshold_minutes": 90, "severity": "high"},
    )
    assert updated.json()["target"]["threshold_minutes"] == 90
    assert updated.json()["target"]["severity"] == "high"
    assert updated.json()["target"]["name"] == "Pending follow-up"

    listed = await client.get("/automation/sla/targets")
    assert [t["id"] for t in listed.json()["targets"]] == [target["id"]]

    assert (await client.put("/automation/sla/targets/nope", json={})).status_code == 404


@pytest.mark.asyncio
async def test_acknowledge_incident(client, targets, incidents):
    target = await targets.create(SlaTargetCreateRequest(
        name="Pending follow-up", entity_type="appointment.pending", threshold_minutes=60, severity="high"
    ))
    incident = await incidents.open(target, "ap-1", datetime.now(timezone.utc))

    listed = (await client.get("/automation/sla/incidents", params={"status": "open"})).json()["incidents"]
    assert [i["id"] for i in listed] == [incident.id]
    assert listed[0]["target_name"] == "Pending follow-up"
    assert listed[0]["severity"] == "high"

    acked = await client.post(f"/automation/sla/incidents/{incident.id}/acknowledge")
    assert acked.status_code == 200
    assert acked.json()["incident"]["status"] == IncidentStatus.ACKNOWLEDGED
    assert acked.json()["incident"]["acknowledged_at"] is not None

    again = await client.post(f"/automation/sla/incidents/{incident.id}/acknowledge")
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_acknowledge_resolved_or_missing_incident(client, targets, incidents):
    target = await targets.create(SlaTargetCreateRequest(
        name="Pending follow-up", entity_type="appointment.pending", threshold_minutes=60
    ))
    incident = await incidents.open(target, "ap-1", datetime.now(timezone.utc))
    await incidents.resolve(incident.id, datetime.now(timezone.utc))

    assert (await client.post(f"/automation/sla/incidents/{incident.id}/acknowledge")).status_code == 409
    assert (await client.post("/automation/sla/incidents/nope/acknowledge")).status_code == 404
    assert (await client.get("/automation/sla/incidents", params={"status": "closed"})).status_code == 400


@pytest.mark.asyncio
async def test_health_reports_scheduler(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "scheduler" in response.json()["checks"]
    assert response.headers["X-Correlation-ID"]
