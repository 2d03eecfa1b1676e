"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures backends, exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.cache import InMemoryTrustCache, RedisTrustCache
from src.adapters.repository import (
    InMemoryChallengeRepository,
    InMemoryCredentialStore,
    PostgresChallengeRepository,
    PostgresCredentialStore,
    run_migrations,
)
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.ports import ResultKind

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Authentication API v1 - Registration, login, password and profile flows",
    },
]


def configure_backends(app: FastAPI, settings: Settings) -> None:
    """
    Create the credential store, challenge repository and trust cache
    selected by settings and store them in app state.
    """
    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        app.state.pool = pool
        app.state.store = PostgresCredentialStore(pool)
        app.state.challenge_repository = PostgresChallengeRepository(
            pool, max_attempts=settings.otp_max_attempts
        )
    else:
        logger.warning("Using in-memory credential store; data is lost on restart")
        app.state.pool = None
        app.state.store = InMemoryCredentialStore()
        app.state.challenge_repository = InMemoryChallengeRepository(
            max_attempts=settings.otp_max_attempts
        )

    if settings.cache_backend == "redis":
        app.state.trust_cache = RedisTrustCache.from_url(
            settings.redis_url, ttl_seconds=settings.trusted_device_ttl_seconds
        )
    else:
        app.state.trust_cache = InMemoryTrustCache()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates backends (and runs migrations) on startup
    - Closes connection pool and cache on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")
    configure_backends(app, settings)
    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    app.state.trust_cache.close()
    if app.state.pool is not None:
        app.state.pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="breeze-auth",
    description="Authentication orchestration API - registration, login with trusted devices, "
    "password and profile management behind one-time passcodes",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Convert collaborator failures into one generic error.

    Details are logged, never returned to the caller.
    """
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": ResultKind.SOMETHING_WENT_WRONG.message},
    )


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database and cache validation.

    Returns 200 OK if application and backends are healthy.
    Raises exception if a backend connection fails.
    """
    pool = request.app.state.pool
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")
    request.app.state.trust_cache.ping()

    return {"status": "healthy"}
