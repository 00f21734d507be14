"""
Automation Infrastructure Models
================================

SQLAlchemy ORM models for workflows and their runs.

Actions and conditions use autoincrement keys so that rows sharing a
``position`` keep their insertion order.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
)
from sqlalchemy.orm import Mapped, mapped_column

from pawflow.config import RunStatus
from pawflow.infrastructure.database import Base
from pawflow.shared.infrastructure.models import new_id, utc_now


class WorkflowModel(Base):
    """Maps to the 'automation_workflows' table."""
    __tablename__ = "automation_workflows"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    trigger_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    minutes_delay: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )


class WorkflowConditionModel(Base):
    """Maps to the 'automation_workflow_conditions' table."""
    __tablename__ = "automation_workflow_conditions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workflow_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("automation_workflows.id", ondelete="CASCADE"), nullable=False, index=True
    )
    condition_text: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class WorkflowActionModel(Base):
    """Maps to the 'automation_workflow_actions' table."""
    __tablename__ = "automation_workflow_actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workflow_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("automation_workflows.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action_type: Mapped[str] = mapped_column(String(100), nullable=False)
    action_config: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class WorkflowRunModel(Base):
    """
    Maps to the 'automation_workflow_runs' table.

    Rows are never deleted; finished runs are kept for audit.
    """
    __tablename__ = "automation_workflow_runs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    # No FK: deleting a workflow leaves its run history in place
    workflow_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    trigger_payload: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=RunStatus.QUEUED)
    queued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    result_payload: Mapped[Optional[list[Any]]] = mapped_column(JSON, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_automation_workflow_runs_status_queued_at", "status", "queued_at"),
    )
