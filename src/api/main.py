"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository import InMemoryIdentityRepository, run_migrations
from src.api.dependencies import build_email_sender, build_token_service
from src.api.errors import register_exception_handlers
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.credentials import CredentialHasher

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "user",
        "description": "Registration, OTP verification and password rotation",
    },
    {
        "name": "auth",
        "description": "Login and session token introspection",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Builds the token service, hasher and mail sender from settings
    - Creates the database connection pool and runs migrations (postgres backend)
    - Closes connection pool on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")

    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET is required in environment or .env")

    app.state.settings = settings
    app.state.token_service = build_token_service(settings)
    app.state.hasher = CredentialHasher(rounds=settings.bcrypt_cost)
    app.state.email_sender = build_email_sender(settings)

    pool = None
    if settings.store_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )

        logger.info("Running database migrations...")
        run_migrations(pool)

        # Store pool in app state for dependency injection
        app.state.pool = pool
    else:
        logger.warning("Using in-memory identity store - data is lost on restart")
        app.state.pool = None
        app.state.repository = InMemoryIdentityRepository()

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="tasktrack-identity",
    description="Account identity and access API - registration with OTP verification, "
    "JWT sessions, role guards and password rotation",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
