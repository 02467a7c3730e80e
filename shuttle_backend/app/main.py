"""
Shuttle Tracker Backend application.

Mounts the v1 API, the request logging middleware and the error envelope
handlers. Tables are created on startup.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from shuttle_backend.app.core.config import settings
from shuttle_backend.app.api.v1.router import router as api_v1_router
from shuttle_backend.app.db.session import engine, Base
from shuttle_backend.app.core.redis_client import ping_redis
from shuttle_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from shuttle_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Register every table on Base.metadata
from shuttle_backend.app.models.organization import Organization  # noqa: F401
from shuttle_backend.app.models.user import User  # noqa: F401
from shuttle_backend.app.models.route import Route  # noqa: F401
from shuttle_backend.app.models.route_stop import RouteStop  # noqa: F401
from shuttle_backend.app.models.route_session import RouteSession  # noqa: F401
from shuttle_backend.app.models.route_session_location import RouteSessionLocation  # noqa: F401
from shuttle_backend.app.models.audit_log import AuditLog  # noqa: F401

configure_logging(settings.log_level)
logger = logging.getLogger("shuttle")


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Live shuttle tracking: driver trip sessions, GPS reporting and rider status",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Liveness plus Redis reachability.
    
    Redis being down degrades transitions (they cannot take their slot)
    but not reads, so the service still reports healthy.
    """
    redis_ok = await ping_redis()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "ok" if redis_ok else "unavailable",
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Shuttle Tracker Backend API",
        "docs": "/docs",
        "health": "/health",
    }
