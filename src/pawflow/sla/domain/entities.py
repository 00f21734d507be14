"""
SLA Domain Entities
====================

Pure Python domain entities for SLA monitoring.

An SlaTarget names a breach predicate (selected by ``entity_type``) and a
threshold. Each breaching entity gets one SlaIncident per target:

    open -> acknowledged -> resolved
    open -> resolved

Resolved incidents are kept for audit and never reopened; a new breach of
the same entity opens a new incident.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pawflow.config import ACTIVE_INCIDENT_STATUSES, IncidentStatus, Severity
from pawflow.core import InvalidStateTransition


@dataclass
class SlaTarget:
    """
    Named breach rule over an entity type.

    ``warning_minutes`` is informational and not evaluated by the monitor.
    """

    id: str
    name: str
    entity_type: str
    threshold_minutes: int
    is_active: bool = True
    warning_minutes: Optional[int] = None
    severity: str = Severity.MEDIUM
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.threshold_minutes < 0:
            raise ValueError("threshold_minutes cannot be negative")

    @property
    def breach_reason(self) -> str:
        return f"Breach detected for {self.entity_type}"


@dataclass
class SlaIncident:
    """One entity's breach of one target."""

    id: str
    target_id: str
    entity_type: str
    entity_id: str
    status: str
    opened_at: datetime
    breach_reason: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    # Denormalized from the target for listings
    target_name: Optional[str] = None
    severity: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_INCIDENT_STATUSES

    def acknowledge(self, at: datetime) -> None:
        if self.status != IncidentStatus.OPEN:
            raise InvalidStateTransition("SlaIncident", self.status, IncidentStatus.ACKNOWLEDGED)
        self.status = IncidentStatus.ACKNOWLEDGED
        self.acknowledged_at = at

    def resolve(self, at: datetime) -> None:
        if not self.is_active:
            raise InvalidStateTransition("SlaIncident", self.status, IncidentStatus.RESOLVED)
        self.status = IncidentStatus.RESOLVED
        self.resolved_at = at
