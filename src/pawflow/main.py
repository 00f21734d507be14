"""
Pawflow - Main Application
==========================

Back-office automation engine for a grooming business.

Modules:
- Automation: trigger-driven workflows with delayed, audited runs
- SLA Monitoring: breach detection with automatic incidents
- Notifications: inbox storage and email/SMS/push delivery

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, transports, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from pawflow.config import settings
from pawflow.core import ApplicationException

# Infrastructure
from pawflow.infrastructure.database import (
    close_database,
    create_tables,
    get_session_maker,
    init_database,
)
from pawflow.engine import AutomationEngine

# Module Routers
from pawflow.automation.interfaces import automation_router
from pawflow.sla.interfaces import sla_router
from pawflow.notifications.interfaces import notifications_router

# Middleware
from pawflow.shared.api import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)

# Logging
from pawflow.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Seed default SLA targets
    4. Start the run and SLA ticks

    SHUTDOWN:
    1. Stop the ticks (in-flight ticks are not drained)
    2. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting automation engine", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    init_database()

    # Development convenience; production schemas are migrated
    await create_tables()

    engine = AutomationEngine.from_settings(get_session_maker(), settings)
    await engine.seed_sla_targets()
    await engine.start()
    app.state.engine = engine

    logger.info("Automation engine started", extra=engine.status())

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down automation engine")
    await engine.stop()
    await close_database()
    logger.info("Automation engine shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Pawflow Automation API",
    description="""
    ## Back-office automation

    ### Workflows
    - `GET/POST /automation/workflows`, `GET/PUT/DELETE /automation/workflows/{id}`
    - `PATCH /automation/workflows/{id}/toggle`
    - `GET /automation/runs` - latest runs, filter by `status`
    - `POST /automation/triggers/{trigger_type}` - fire a trigger
    - `GET /automation/metrics` - operational counters

    ### SLA
    - `GET/POST /automation/sla/targets`, `PUT /automation/sla/targets/{id}`
    - `GET /automation/sla/incidents`
    - `POST /automation/sla/incidents/{id}/acknowledge`

    ### Notifications (caller from `X-User-ID`)
    - `GET/POST /notifications`
    - `POST /notifications/{id}/read`, `/snooze`, `/dismiss`
    - `GET/PUT /notifications/preferences/me`

    Runs are executed by a background tick every `AUTOMATION_POLL_INTERVAL_MS`;
    SLA targets are evaluated every `SLA_EVALUATION_INTERVAL_MS`.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(automation_router)
app.include_router(sla_router)
app.include_router(notifications_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "scheduler": "running",
                        "workflow_runs": "idle",
                        "sla_evaluation": "idle"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports whether the background ticks are scheduled and whether each
    one is currently in flight.
    """
    engine = getattr(request.app.state, "engine", None)
    checks = engine.status() if engine else {"scheduler": "not_started"}

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pawflow.main:app",
        host=settings.host,
        port=settings.port,
        log_level="info"
    )
