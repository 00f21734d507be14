"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="pawflow", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="sqlite+aiosqlite:///./pawflow.db",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Automation Engine ==========
    automation_poll_interval_ms: int = Field(
        default=15000,
        description="Milliseconds between workflow run scheduler ticks",
        gt=0
    )
    sla_evaluation_interval_ms: int = Field(
        default=60000,
        description="Milliseconds between SLA evaluation ticks",
        gt=0
    )
    automation_batch_size: int = Field(
        default=10,
        description="Maximum queued runs executed per scheduler tick",
        ge=1
    )
    scheduler_enabled: bool = Field(
        default=True,
        description="Start the background schedulers with the application"
    )
    sla_seed_path: Path = Field(
        default=Path("sla_targets.yaml"),
        description="Path to YAML file with default SLA targets"
    )

    # ========== Email (SMTP) ==========
    smtp_host: Optional[str] = Field(default=None, description="SMTP server host")
    smtp_port: int = Field(default=587, description="SMTP server port", ge=1, le=65535)
    smtp_secure: bool = Field(default=False, description="Use implicit TLS for SMTP")
    smtp_user: Optional[str] = Field(default=None, description="SMTP username")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")
    smtp_from: str = Field(
        default="no-reply@groomypaws.com",
        description="Sender address for notification emails"
    )

    # ========== SMS Webhook ==========
    sms_webhook_url: Optional[str] = Field(
        default=None,
        description="Webhook URL that relays SMS messages"
    )
    sms_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for SMS webhook calls",
        ge=0.1,
        le=30
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @property
    def automation_poll_interval_seconds(self) -> float:
        return self.automation_poll_interval_ms / 1000

    @property
    def sla_evaluation_interval_seconds(self) -> float:
        return self.sla_evaluation_interval_ms / 1000


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class RunStatus(str):
    """Workflow run lifecycle statuses."""
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class IncidentStatus(str):
    """SLA incident statuses."""
    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class ActionType(str):
    """Workflow action types known to the engine."""
    SEND_NOTIFICATION = "send_notification"
    UPDATE_STATUS = "update_status"
    CREATE_TASK = "create_task"        # Accepted, not implemented
    ASSIGN_OWNER = "assign_owner"      # Accepted, not implemented


class SLAEntityType(str):
    """Entity types an SLA target can watch."""
    APPOINTMENT_PENDING = "appointment.pending"
    CHAT_UNANSWERED = "chat.unanswered"


class AppointmentStatus(str):
    """Appointment statuses owned by the booking module."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class NotificationStatus(str):
    """User notification inbox statuses."""
    NEW = "new"
    READ = "read"
    SNOOZED = "snoozed"
    DISMISSED = "dismissed"


class NotificationChannel(str):
    """Delivery channels for notifications."""
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


class Severity(str):
    """SLA target severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ========== Lists for validation ==========

VALID_RUN_STATUSES = [
    RunStatus.QUEUED, RunStatus.RUNNING,
    RunStatus.COMPLETED, RunStatus.FAILED
]
VALID_INCIDENT_STATUSES = [
    IncidentStatus.OPEN, IncidentStatus.ACKNOWLEDGED, IncidentStatus.RESOLVED
]
ACTIVE_INCIDENT_STATUSES = [IncidentStatus.OPEN, IncidentStatus.ACKNOWLEDGED]
VALID_NOTIFICATION_STATUSES = [
    NotificationStatus.NEW, NotificationStatus.READ,
    NotificationStatus.SNOOZED, NotificationStatus.DISMISSED
]
