"""
Bot Tracker

Heartbeat registry for distributed bot instances. Instances register
themselves and their usage counters; an operator pushes broadcast messages
that each instance polls for and acknowledges. All state is held in memory.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import Settings
from app.exceptions import TrackerError
from app.logging_config import setup_logging
from app.models import HealthResponse, ServiceDescriptor
from app.routers import broadcasts_router, instances_router
from app.store import BroadcastLog, Clock, InstanceRegistry, iso_timestamp, now_ms

SERVICE_NAME = "Bot Tracker API"
SERVICE_VERSION = "1.0.0"

ENDPOINTS = [
    "GET  /api/health - Health check",
    "GET  /api/stats - Get tracker statistics",
    "POST /api/register - Register bot instance",
    "GET  /api/instances - Get all instances",
    "POST /api/broadcast - Send broadcast",
    "GET  /api/broadcasts - Get all broadcasts",
    "GET  /api/broadcasts/:instanceId - Get pending broadcasts",
    "POST /api/broadcast-delivered - Acknowledge broadcast delivery",
]

logger = logging.getLogger(__name__)


def _first_error_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    error = errors[0]
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def create_app(
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """
    Build the tracker application with its own, empty stores.

    Args:
        settings: Service settings; read from the environment when omitted.
        clock: Millisecond clock shared by both stores, for tests.
    """
    settings = settings or Settings.from_env()
    clock = clock or now_ms
    setup_logging("DEBUG" if settings.debug else settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info(f"{SERVICE_NAME} starting on port {settings.port}")
        if settings.uses_default_owner_key:
            logger.warning("OWNER_KEY is not set; using the built-in default key")
        yield
        logger.info(f"{SERVICE_NAME} stopped")

    app = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        description="""
Heartbeat registry for bot instances with operator broadcasts.
Instances register periodically, poll for pending broadcasts and
acknowledge their delivery.
        """,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.registry = InstanceRegistry(clock=clock)
    app.state.broadcasts = BroadcastLog(owner_key=settings.owner_key, clock=clock)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TrackerError)
    async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
        logger.warning(
            f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}"
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        message = _first_error_message(exc)
        logger.warning(f"{request.method} {request.url.path} -> 400: {message}")
        return JSONResponse(status_code=400, content={"error": message})

    @app.get("/api", response_model=ServiceDescriptor, tags=["Service"])
    async def describe_service() -> ServiceDescriptor:
        """Service descriptor with the list of endpoints."""
        return ServiceDescriptor(
            status=SERVICE_NAME, version=SERVICE_VERSION, endpoints=ENDPOINTS
        )

    @app.get("/api/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(timestamp=iso_timestamp(now_ms()))

    # Include routers
    app.include_router(instances_router)
    app.include_router(broadcasts_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
