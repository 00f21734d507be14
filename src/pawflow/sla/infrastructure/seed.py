"""
SLA Target Seeding
==================

Loads default SLA targets from YAML at startup.

File format::

    sla_targets:
      - name: Pending appointment follow-up
        entity_type: appointment.pending
        threshold_minutes: 60
        severity: high

A target is inserted only when no target with the same entity type and
name exists, so operator edits made through the API are never overwritten.
"""

from pathlib import Path
from typing import List, Union

import yaml
from pydantic import ValidationError

from pawflow.core import ConfigurationException
from pawflow.shared.infrastructure.logging import get_logger
from pawflow.sla.application import ISlaTargetRepository, SlaTargetCreateRequest

logger = get_logger(__name__)


def load_sla_targets(path: Union[str, Path]) -> List[SlaTargetCreateRequest]:
    """
    Parse the seed file.

    Returns an empty list when the file does not exist.

    Raises:
        ConfigurationException: If the file or one of its entries is invalid
    """
    seed_file = Path(path)

    if not seed_file.exists():
        logger.info("SLA seed file not found, skipping", extra={"path": str(seed_file)})
        return []

    with open(seed_file, "r") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Invalid SLA seed file {seed_file}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationException(f"SLA seed file {seed_file} must contain a mapping")

    entries = data.get("sla_targets") or []
    if not isinstance(entries, list):
        raise ConfigurationException("'sla_targets' must be a list")

    targets = []
    for index, entry in enumerate(entries):
        try:
            targets.append(SlaTargetCreateRequest.model_validate(entry))
        except ValidationError as e:
            raise ConfigurationException(
                f"Invalid SLA target at position {index}",
                details={"errors": e.errors(include_url=False)}
            )
    return targets


async def seed_sla_targets(
    repository: ISlaTargetRepository,
    path: Union[str, Path]
) -> int:
    """
    Insert seed targets that do not exist yet.

    Returns:
        Number of targets created
    """
    created = 0
    for target in load_sla_targets(path):
        if await repository.exists(target.entity_type, target.name):
            continue
        await repository.create(target)
        created += 1

    if created:
        logger.info("SLA targets seeded", extra={"targets_created": created, "path": str(path)})
    return created
