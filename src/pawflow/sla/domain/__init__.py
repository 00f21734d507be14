"""
SLA Domain Layer
=================

Domain layer for SLA monitoring.

Contains:
- Entities: SlaTarget, SlaIncident (incident lifecycle)
- Value Objects: ReconciliationResult

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from pawflow.sla.domain.entities import SlaIncident, SlaTarget
from pawflow.sla.domain.value_objects import ReconciliationResult

__all__ = [
    # Entities
    "SlaTarget",
    "SlaIncident",
    # Value Objects
    "ReconciliationResult",
]
