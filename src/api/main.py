"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures routers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import (
    PostgresAccountRepository,
    PostgresApplicantRepository,
    PostgresRecoveryCodeRepository,
    run_migrations,
)
from src.adapters.scheduler.background import build_jobs, create_scheduler
from src.adapters.smtp.console import ConsoleEmailSender
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.applicants import ApplicantService
from src.domain.recovery import RecoveryCodeService

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "applicants",
        "description": "Applicant lifecycle - identity, contact verification and credentials",
    },
    {
        "name": "admin",
        "description": "Admin review queue, approvals and account administration",
    },
    {
        "name": "auth",
        "description": "Logins, session checks and password recovery",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations on startup
    - Starts the background maintenance scheduler
    - Stops the scheduler and closes the pool on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing and timeouts
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        timeout=settings.pool_timeout_seconds,
        kwargs={"options": f"-c statement_timeout={settings.statement_timeout_ms}"},
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    # Store pool in app state for dependency injection
    app.state.pool = pool

    scheduler = None
    if settings.scheduler_enabled:
        recovery_service = RecoveryCodeService(
            repository=PostgresRecoveryCodeRepository(pool),
            user_validity=timedelta(seconds=settings.user_recovery_ttl_seconds),
        )
        applicant_service = ApplicantService(
            applicants=PostgresApplicantRepository(pool),
            accounts=PostgresAccountRepository(pool),
            email_sender=ConsoleEmailSender(),
            decided_grace=timedelta(seconds=settings.decided_grace_seconds),
        )
        scheduler = create_scheduler(
            build_jobs(recovery_service, applicant_service),
            interval_seconds=settings.sweep_interval_seconds,
        )
        scheduler.start()
        logger.info("Background job scheduler started")

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if scheduler is not None:
        scheduler.shutdown(wait=True)
        logger.info("Background job scheduler stopped")
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="onboarding-gate",
    description="Applicant onboarding and approval API - applicant lifecycle, "
    "admin review and recovery codes",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
