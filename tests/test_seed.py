import pytest

from pawflow.core import ConfigurationException
from pawflow.sla.infrastructure import (
    SQLAlchemySlaTargetRepository,
    load_sla_targets,
    seed_sla_targets,
)

SEED = """
sla_targets:
  - name: Pending appointment follow-up
    entity_type: appointment.pending
    threshold_minutes: 60
    severity: high
  - name: Unanswered chat
    entity_type: chat.unanswered
    threshold_minutes: 30
    warning_minutes: 15
"""


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "sla_targets.yaml"
    path.write_text(SEED)
    return path


def test_load_parses_entries(seed_file):
    pending, chat = load_sla_targets(seed_file)

    assert pending.entity_type == "appointment.pending"
    assert pending.severity == "high"
    assert chat.threshold_minutes == 30
    assert chat.warning_minutes == 15
    assert chat.severity == "medium"
    assert chat.is_active


def test_missing_file_loads_nothing(tmp_path):
    assert load_sla_targets(tmp_path / "absent.yaml") == []


@pytest.mark.parametrize("content", [
    "sla_targets: [",
    "- just a list",
    "sla_targets: {name: x}",
    "sla_targets:\n  - name: Broken\n    entity_type: appointment.pending\n    threshold_minutes: -5\n",
])
def test_invalid_files_are_rejected(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content)

    with pytest.raises(ConfigurationException):
        load_sla_targets(path)


@pytest.mark.asyncio
async def test_seed_is_idempotent_and_keeps_edits(session_factory, seed_file):
    repo = SQLAlchemySlaTargetRepository(session_factory)

    assert await seed_sla_targets(repo, seed_file) == 2
    assert await seed_sla_targets(repo, seed_file) == 0

    targets = await repo.list()
    assert [t.name for t in targets] == ["Pending appointment follow-up", "Unanswered chat"]
    assert targets[0].threshold_minutes == 60
