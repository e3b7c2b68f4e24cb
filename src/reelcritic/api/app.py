"""FastAPI application factory for ReelCritic.

Creates the application with:
- Resource routers under /api/v1 (users, movies, genre, likes, tmdb, dashboard)
- Liveness and readiness probes under /health
- Lifecycle management for the database, caches and the TMDB client
- Request correlation, inbound rate limiting, security headers and CORS
- The ``{error, message}`` error envelope for every failure path
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ExceptionHandler

from reelcritic.api.errors import (
    api_error_handler,
    generic_exception_handler,
    http_exception_handler,
    upstream_error_handler,
    validation_error_handler,
)
from reelcritic.api.middleware import (
    CorrelationMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
)
from reelcritic.api.routers import dashboard, genres, health, likes, movies, tmdb, users
from reelcritic.config import Settings
from reelcritic.config import settings as default_settings
from reelcritic.errors import ApiError
from reelcritic.observability import configure_logging
from reelcritic.runtime import AppServices, build_services, close_services
from reelcritic.tmdb.errors import UpstreamError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup:
    - Configure structured logging
    - Build the service container unless one was supplied to ``create_app``

    On shutdown:
    - Close the TMDB client and database connections we opened
    """
    settings: Settings = app.state.settings
    configure_logging(json_format=settings.env != "dev", level=settings.log_level)

    logger.info(f"Starting ReelCritic ({settings.env})")
    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        app.state.services = await build_services(settings)
    logger.info("ReelCritic startup complete")

    yield

    logger.info("Shutting down ReelCritic")
    if owns_services:
        await close_services(app.state.services)
        app.state.services = None
    logger.info("ReelCritic shutdown complete")


def create_app(settings: Settings | None = None, services: AppServices | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``services`` lets callers (tests, embedding applications) provide an
    already built container; the lifespan then leaves it open on shutdown.
    """
    settings = settings or (services.settings if services is not None else default_settings)

    app = FastAPI(
        title="ReelCritic",
        description="Movie review backend with a cached TMDB catalogue",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.services = services

    if settings.enable_rate_limiting:
        app.add_middleware(RateLimitMiddleware)
    if settings.enable_security_headers:
        app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )
    # Added last, so it is outermost and every layer below logs with the ids
    app.add_middleware(CorrelationMiddleware)

    # Register exception handlers
    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_error_handler))
    app.add_exception_handler(UpstreamError, cast(ExceptionHandler, upstream_error_handler))
    app.add_exception_handler(
        RequestValidationError, cast(ExceptionHandler, validation_error_handler)
    )
    app.add_exception_handler(
        StarletteHTTPException, cast(ExceptionHandler, http_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    # Include routers
    app.include_router(health.router)
    for module in (users, movies, genres, likes, tmdb, dashboard):
        app.include_router(module.router, prefix=API_PREFIX)

    return app
