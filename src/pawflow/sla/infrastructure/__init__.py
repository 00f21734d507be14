"""
SLA Infrastructure Layer
=========================

Infrastructure layer for SLA module.

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Concrete implementations of repository interfaces
- Predicates: Breach queries per entity type
- Seed: YAML loader for default targets

This layer implements the interfaces defined in the application layer.
"""

from pawflow.sla.infrastructure.models import SlaTargetModel, SlaIncidentModel
from pawflow.sla.infrastructure.repositories import (
    SQLAlchemySlaTargetRepository,
    SQLAlchemySlaIncidentRepository,
)
from pawflow.sla.infrastructure.predicates import (
    PendingAppointmentsPredicate,
    UnansweredChatsPredicate,
    build_predicate_registry,
)
from pawflow.sla.infrastructure.seed import load_sla_targets, seed_sla_targets

__all__ = [
    "SlaTargetModel",
    "SlaIncidentModel",
    "SQLAlchemySlaTargetRepository",
    "SQLAlchemySlaIncidentRepository",
    "PendingAppointmentsPredicate",
    "UnansweredChatsPredicate",
    "build_predicate_registry",
    "load_sla_targets",
    "seed_sla_targets",
]
