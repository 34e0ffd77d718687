# gallery/main.py

"""Gallery Backend - pluggable photo storage over local disk, S3 and Google Drive."""

from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

from gallery.configs import settings
from gallery.errors import (
    DatabaseError,
    StorageError,
    UploadError,
    database_exception_handler,
    storage_exception_handler,
    upload_exception_handler,
)
from gallery.middleware import LoggingMiddleware, configure_cors, lifespan
from gallery.routes import admin_router, photos_router, storage_router
from gallery.utils.helpers import today_str

app = FastAPI(
    title=settings.APP_NAME,
    description="Gallery storage API",
    version="1.0.0",
    lifespan=lifespan,
    swagger_ui_parameters={
        "docExpansion": "none",
        "operationsSorter": "method",
    },
)

configure_cors(app)

app.add_middleware(LoggingMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)


routes = [
    storage_router,
    photos_router,
    admin_router,
]

_ = [app.include_router(router) for router in routes]

errors = [
    (StorageError, storage_exception_handler),
    (UploadError, upload_exception_handler),
    (DatabaseError, database_exception_handler),
]

_ = [app.add_exception_handler(exc_type, handler) for exc_type, handler in errors]


@app.get(
    "/health",
    tags=["🩺 Health"],
    summary="Health check endpoint",
    response_class=ORJSONResponse,
    responses={
        200: {
            "content": {
                "application/json": {
                    "example": {
                        "version": "1.0.0",
                        "status": "ok",
                        "timestamp": "2025-01-01",
                        "activeProviders": ["local"],
                    },
                },
            },
        },
    },
    operation_id="health_check",
)
async def health_check(request: Request) -> ORJSONResponse:
    """
    Health check endpoint.

    Parameters
    ----------
    request : Request
        Current request context.

    Returns
    -------
    ORJSONResponse
        Version, date and the currently enabled storage providers.
    """
    active = await request.app.state.config_service.get_active_providers()
    return ORJSONResponse(
        {
            "version": app.version,
            "status": "ok",
            "timestamp": today_str(),
            "activeProviders": [provider.value for provider in active],
        },
    )


if __name__ == "__main__":
    from uvicorn import run

    run(
        "gallery.main:app",
        host="127.0.0.1",
        port=8000,
        log_level="info",
        reload=settings.DEBUG,
    )
