"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for SLA module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pawflow.config import IncidentStatus, Severity
from pawflow.infrastructure.database import Base
from pawflow.shared.infrastructure.models import new_id, utc_now


class SlaTargetModel(Base):
    """
    Database model for SlaTarget entity.

    Maps to the 'sla_targets' table.
    """
    __tablename__ = "sla_targets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    threshold_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    warning_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default=Severity.MEDIUM)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    def __repr__(self) -> str:
        return f"<SlaTargetModel(name={self.name}, entity_type={self.entity_type})>"


class SlaIncidentModel(Base):
    """
    Database model for SlaIncident entity.

    Maps to the 'sla_incidents' table. Resolved rows are kept for audit.
    """
    __tablename__ = "sla_incidents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    target_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sla_targets.id"), nullable=False
    )
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=IncidentStatus.OPEN)
    breach_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_sla_incidents_target_entity_status", "target_id", "entity_id", "status"),
        Index("ix_sla_incidents_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<SlaIncidentModel(entity_id={self.entity_id}, status={self.status})>"
