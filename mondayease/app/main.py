"""
MondayEase - Multi-tenant dashboards on top of Monday.com

FastAPI application entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mondayease import __version__
from mondayease.app.api import (
    boards_router,
    clients_router,
    hooks_router,
    members_router,
    oauth_router,
    tasks_router,
    views_router,
    workflows_router,
)
from mondayease.app.dependencies import (
    get_settings,
    get_store,
    initialize_services,
    shutdown_services,
)
from mondayease.errors import AppError
from mondayease.integrations.base import IntegrationError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting MondayEase services...")
    try:
        await initialize_services()
        logger.info("MondayEase services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise

    yield

    # Shutdown
    logger.info("Shutting down MondayEase services...")
    try:
        await shutdown_services()
        logger.info("MondayEase services shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


# Create FastAPI application
settings = get_settings()

app = FastAPI(
    title="MondayEase",
    description="Per-member task lists, custom views and client dashboards over Monday.com boards",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(IntegrationError)
async def integration_error_handler(request: Request, exc: IntegrationError) -> JSONResponse:
    """Upstream failures surface as 502 with the upstream message."""
    logger.error(f"{request.method} {request.url.path} upstream error: {exc}")
    return JSONResponse(status_code=502, content={"error": exc.message or "Unknown error"})


# Include routers
for router in (
    tasks_router,
    views_router,
    boards_router,
    workflows_router,
    oauth_router,
    members_router,
    clients_router,
    hooks_router,
):
    app.include_router(router, prefix="/api/v1")


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint with service info."""
    return {
        "service": "mondayease",
        "version": __version__,
        "status": "running",
    }


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, Any]:
    """Health check endpoint with storage status."""
    try:
        healthy = await get_store().ping()
        return {
            "status": "healthy" if healthy else "degraded",
            "storage": settings.storage_backend,
            "database": "connected" if healthy else "disconnected",
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mondayease.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
