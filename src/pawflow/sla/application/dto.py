"""
SLA Application DTOs
=====================

Data Transfer Objects for SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses.
"""

from pydantic import BaseModel, Field
from typing import Any, List, Literal, Optional
from datetime import datetime


# ========== Type Aliases for Literals ==========
SeverityStr = Literal["low", "medium", "high", "critical"]
IncidentStatusStr = Literal["open", "acknowledged", "resolved"]


# ========== Request DTOs ==========

class SlaTargetCreateRequest(BaseModel):
    """Request model for creating an SLA target."""
    name: str = Field(..., min_length=1, description="Target name")
    entity_type: str = Field(..., min_length=1, description="Breach predicate key, e.g. appointment.pending")
    threshold_minutes: int = Field(..., ge=0, description="Minutes before an entity is in breach")
    warning_minutes: Optional[int] = Field(None, ge=0, description="Informational warning threshold")
    severity: SeverityStr = Field(default="medium")
    is_active: bool = Field(default=True)


class SlaTargetUpdateRequest(BaseModel):
    """Omitted fields keep their current value."""
    threshold_minutes: Optional[int] = Field(None, ge=0)
    warning_minutes: Optional[int] = Field(None, ge=0)
    severity: Optional[SeverityStr] = None
    is_active: Optional[bool] = None


# ========== Response DTOs ==========

class SlaTargetResponse(BaseModel):
    id: str
    name: str
    entity_type: str
    threshold_minutes: int
    warning_minutes: Optional[int] = None
    severity: str
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, target: Any) -> "SlaTargetResponse":
        return cls(
            id=target.id,
            name=target.name,
            entity_type=target.entity_type,
            threshold_minutes=target.threshold_minutes,
            warning_minutes=target.warning_minutes,
            severity=target.severity,
            is_active=target.is_active,
            created_at=target.created_at
        )


class SlaTargetListResponse(BaseModel):
    targets: List[SlaTargetResponse]


class SlaTargetEnvelope(BaseModel):
    target: SlaTargetResponse


class SlaIncidentResponse(BaseModel):
    """Incident as shown on the SLA board."""
    id: str
    target_id: str
    target_name: Optional[str] = None
    severity: Optional[str] = None
    entity_type: str
    entity_id: str
    status: IncidentStatusStr
    breach_reason: Optional[str] = None
    opened_at: datetime
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, incident: Any) -> "SlaIncidentResponse":
        return cls(
            id=incident.id,
            target_id=incident.target_id,
            target_name=incident.target_name,
            severity=incident.severity,
            entity_type=incident.entity_type,
            entity_id=incident.entity_id,
            status=incident.status,
            breach_reason=incident.breach_reason,
            opened_at=incident.opened_at,
            acknowledged_at=incident.acknowledged_at,
            resolved_at=incident.resolved_at
        )


class SlaIncidentListResponse(BaseModel):
    incidents: List[SlaIncidentResponse]


class SlaIncidentEnvelope(BaseModel):
    incident: SlaIncidentResponse
