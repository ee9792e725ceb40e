"""
AgroDesk - Main Application
===========================

Farmer complaint desk: ticket lifecycle and SLA engine.

Modules:
- Tickets: creation, status transitions, assignment, call logs
- Reporting: dashboard counts, SLA compliance, MTTR and breach reports

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects and access policy
- Infrastructure: Database, YAML SLA configuration
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

# Configuration and Core
from agrodesk.config import settings
from agrodesk.core import ApplicationException

# Infrastructure
from agrodesk.infrastructure.database import (
    close_database,
    create_tables,
    get_engine,
    get_session_context,
    init_database,
)
from agrodesk.tickets.infrastructure import SLAConfigManager, seed_catalogs

# Module Routers
from agrodesk.reporting.interfaces import dashboard_router, reports_router
from agrodesk.tickets.interfaces import call_logs_router, tickets_router

# Shared API
from agrodesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    MetricsMiddleware,
    application_exception_handler,
    global_exception_handler,
    validation_exception_handler,
)
from agrodesk.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create tables and seed status catalogs
    4. Load SLA configuration and watch it for changes

    SHUTDOWN:
    1. Stop the config watcher
    2. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting AgroDesk", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Create tables (for development - use Alembic in production)
    # If the database is not available the server still starts, but
    # database-dependent endpoints will fail
    try:
        await create_tables()
        async with get_session_context() as session:
            await seed_catalogs(session)
    except (OSError, SQLAlchemyError) as e:
        logger.warning("Database not available - running in degraded mode", extra={"error": str(e)})

    logger.info("Loading SLA configuration")
    sla_config_manager = SLAConfigManager()
    sla_config_manager.load(settings.sla_config_path)
    if settings.sla_watch_config:
        sla_config_manager.start_watching()
    app.state.sla_config_manager = sla_config_manager

    logger.info("AgroDesk started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down AgroDesk")
    sla_config_manager.stop_watching()
    await close_database()
    logger.info("AgroDesk shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="AgroDesk API",
    description="""
    ## Farmer Complaint Desk

    Tickets raised by farmers against the zone → branch → line hierarchy,
    routed to field executives and tracked against resolution SLAs.

    ---

    ### Tickets

    - `POST /tickets`, `GET /tickets`, `GET /tickets/{id}`
    - `PUT /tickets/{id}`, `PUT /tickets/{id}/status`, `PUT /tickets/{id}/assign`

    ### Call Logs

    - `POST /call-logs`, `GET /call-logs/ticket/{id}`, `GET /call-logs/recent`

    ### Dashboard & Reports

    - `GET /dashboard/stats`, `GET /dashboard/sla`, `GET /dashboard/breakdown`
    - `GET /reports/mttr`, `GET /reports/sla-breaches`, `GET /reports/performance`

    ---

    ### SLA Windows (minutes, configurable in `sla_config.yaml`)

    | Priority | Window |
    |----------|--------|
    | Critical | 30     |
    | Urgent   | 120    |
    | Normal   | 480    |

    ### Access

    The authentication gateway forwards the caller as `X-Actor-Id`,
    `X-Actor-Role`, `X-Actor-Zone-Id`, `X-Actor-Branch-Id` and
    `X-Actor-Superuser` headers. Executives see only their zone and
    change only tickets assigned to them.
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
app.add_middleware(MetricsMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(tickets_router)
app.include_router(call_logs_router)
app.include_router(dashboard_router)
app.include_router(reports_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service health",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "database": "connected",
                        "sla_config": "loaded"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports database connectivity and whether the SLA configuration is
    loaded; ``status`` is ``degraded`` when either is missing.
    """
    checks = {"database": "connected", "sla_config": "loaded"}

    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (RuntimeError, OSError, SQLAlchemyError):
        checks["database"] = "unavailable"

    if getattr(request.app.state, "sla_config_manager", None) is None:
        checks["sla_config"] = "not_loaded"

    healthy = checks["database"] == "connected" and checks["sla_config"] == "loaded"
    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "AgroDesk",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "agrodesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
