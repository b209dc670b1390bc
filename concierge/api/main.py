"""
FastAPI application with assembled routers.

Initializes the FastAPI app with all API routers and configures the uvicorn
server.

Dependencies: fastapi, concierge.api.routers, uvicorn
System role: API entry point with router assembly and server launch
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from concierge.api.deps.dependencies import get_service_cache
from concierge.api.routers.error_handling import error_response
from concierge.boundary.db.create_tables import create_tables
from concierge.configs import get_settings
from concierge.core.calling.webhook_cache import run_periodic_cleanup, webhook_cache
from concierge.observability import configure_logging
from concierge.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware

from .routers import (
    bookings_router,
    gemini_router,
    health_router,
    notifications_router,
    providers_router,
    service_requests_router,
    twilio_router,
    users_router,
    vapi_router,
    workflows_router,
)

API_PREFIX = "/api/v1"
API_VERSION = "1.0.0"

ROUTE_GROUPS = {
    "health": "/health",
    "users": f"{API_PREFIX}/users",
    "serviceRequests": f"{API_PREFIX}/service-requests",
    "gemini": f"{API_PREFIX}/gemini",
    "workflows": f"{API_PREFIX}/workflows",
    "providers": f"{API_PREFIX}/providers",
    "vapi": f"{API_PREFIX}/vapi",
    "notifications": f"{API_PREFIX}/notifications",
    "twilio": f"{API_PREFIX}/twilio",
    "bookings": f"{API_PREFIX}/bookings",
    "docs": "/docs",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = logging.getLogger("uvicorn")

    # Startup
    if settings.database.auto_create_tables:
        await create_tables()

    logger.info("Pre-warming service cache...")
    cache = get_service_cache()
    _ = cache.calling_service
    _ = cache.research_service
    _ = cache.recommendation_service
    _ = cache.twilio
    logger.info(
        "Service cache pre-warmed",
        extra={"kestra_enabled": settings.features.kestra_enabled},
    )
    cleanup_task = asyncio.create_task(run_periodic_cleanup(webhook_cache))

    yield

    # Shutdown
    cleanup_task.cancel()
    with suppress(asyncio.CancelledError):
        await cleanup_task
    cache.clear()
    webhook_cache.clear()
    logger.info("Service cache cleared")


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(400, "Validation error", exc.errors())


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    app = FastAPI(
        title="AI Concierge API",
        description="Finds, screens and books local service providers by phone",
        version=API_VERSION,
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Liveness probe lives outside the versioned prefix
    app.include_router(health_router)

    @app.get(API_PREFIX, tags=["health"])
    async def api_root() -> dict[str, Any]:
        """API information and available route groups."""
        return {"message": "AI Concierge API", "version": API_VERSION, "endpoints": ROUTE_GROUPS}

    # Register all routers with /api/v1 prefix for versioning
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(service_requests_router, prefix=API_PREFIX)
    app.include_router(gemini_router, prefix=API_PREFIX)
    app.include_router(workflows_router, prefix=API_PREFIX)
    app.include_router(providers_router, prefix=API_PREFIX)
    app.include_router(vapi_router, prefix=API_PREFIX)
    app.include_router(notifications_router, prefix=API_PREFIX)
    app.include_router(twilio_router, prefix=API_PREFIX)
    app.include_router(bookings_router, prefix=API_PREFIX)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "concierge.api.main:app",
        host="0.0.0.0",
        port=8000,
    )
