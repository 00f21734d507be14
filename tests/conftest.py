from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from pawflow.automation.application import INotificationGateway, WorkflowCreateRequest
from pawflow.automation.infrastructure import (
    SQLAlchemyWorkflowRepository,
    SQLAlchemyWorkflowRunRepository,
)
from pawflow.infrastructure.database import build_session_maker, create_tables

START = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingGateway(INotificationGateway):
    def __init__(self):
        self.calls: List[Dict[str, Any]] = []

    async def send_notification(
        self,
        user_id: str,
        title: str,
        body: str,
        category: str = "system",
        metadata: Optional[dict] = None
    ) -> None:
        self.calls.append({
            "user_id": user_id,
            "title": title,
            "body": body,
            "category": category,
            "metadata": metadata,
        })


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pawflow.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_maker(db_engine)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def workflow_repo(session_factory):
    return SQLAlchemyWorkflowRepository(session_factory)


@pytest.fixture
def run_repo(session_factory):
    return SQLAlchemyWorkflowRunRepository(session_factory)


@pytest.fixture
def make_workflow(workflow_repo):
    async def _make(
        trigger: str = "appointment.created",
        *,
        name: str = "Workflow",
        is_active: bool = True,
        minutes_delay: Optional[int] = None,
        actions: Optional[List[Dict[str, Any]]] = None,
        conditions: Optional[List[str]] = None,
    ):
        return await workflow_repo.create(WorkflowCreateRequest(
            name=name,
            trigger=trigger,
            is_active=is_active,
            minutes_delay=minutes_delay,
            actions=actions or [],
            conditions=conditions or [],
        ))

    return _make


@pytest.fixture
def add_rows(session_factory):
    async def _add(*models):
        async with session_factory() as session:
            session.add_all(models)
            await session.commit()

    return _add
