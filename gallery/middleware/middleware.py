# gallery/middleware/middleware.py
"""
Middleware components for the gallery backend.

This module contains the request logging middleware, CORS handling and
the lifespan event handler that builds the storage services on startup
and releases the database pool on shutdown.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from gallery.configs import settings
from gallery.db import close_db, init_db
from gallery.monitoring import bind_request_id, clear_context, configure_logging, get_logger
from gallery.services.storage.config_service import StorageConfigService
from gallery.services.storage.manager import StorageManager
from gallery.services.upload import PhotoUploadService
from gallery.utils.helpers import host

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Manage application startup and shutdown events with service initialization."""
    configure_logging()
    logger.info(f"Starting {app.title}...")

    try:
        await init_db()

        config_service = StorageConfigService()
        created = await config_service.initialize_default_configs()
        storage_manager = StorageManager(config_service)

        app.state.config_service = config_service
        app.state.storage_manager = storage_manager
        app.state.upload_service = PhotoUploadService(storage_manager)

        logger.info(
            "Services initialized successfully",
            default_configs_created=[p.value for p in created],
            active_providers=[p.value for p in await config_service.get_active_providers()],
        )
    except Exception:
        logger.exception("Failed to initialize services")
        raise

    yield

    logger.info(f"Shutting down {app.title}...")
    try:
        app.state.storage_manager.clear_cache()
        await close_db()
        logger.info("Services cleaned up successfully")
    except Exception:
        logger.exception("Error during service cleanup")


def configure_cors(app: FastAPI) -> None:
    """Configure CORS middleware for the application."""
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    if frontend_url := settings.PRODUCTION_FRONTEND_URL:
        allowed_origins.append(frontend_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Bind a request id and log request summary and timing information."""
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        bind_request_id(request_id)

        start_time = perf_counter()
        logger.info("Request", method=request.method, path=request.url.path, ip=host(request))

        try:
            response = await call_next(request)
            duration = perf_counter() - start_time
            logger.info(
                "Response",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration=round(duration, 4),
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()
