"""
SLA Application Layer
======================

Application layer for SLA monitoring module.

Contains:
- Services: breach evaluation and incident reconciliation
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from pawflow.sla.application.dto import (
    SlaTargetCreateRequest,
    SlaTargetUpdateRequest,
    SlaTargetResponse,
    SlaTargetListResponse,
    SlaTargetEnvelope,
    SlaIncidentResponse,
    SlaIncidentListResponse,
    SlaIncidentEnvelope,
)
from pawflow.sla.application.services import (
    BreachPredicate,
    BreachPredicateRegistry,
    IncidentReconciler,
    SLAMonitor,
    ISlaTargetRepository,
    ISlaIncidentRepository,
)

__all__ = [
    # DTOs
    "SlaTargetCreateRequest",
    "SlaTargetUpdateRequest",
    "SlaTargetResponse",
    "SlaTargetListResponse",
    "SlaTargetEnvelope",
    "SlaIncidentResponse",
    "SlaIncidentListResponse",
    "SlaIncidentEnvelope",
    # Services
    "BreachPredicate",
    "BreachPredicateRegistry",
    "IncidentReconciler",
    "SLAMonitor",
    # Repository Interfaces
    "ISlaTargetRepository",
    "ISlaIncidentRepository",
]
