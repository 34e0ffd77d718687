# gallery/routes/storage.py
"""Serve proxy streaming stored objects from any configured provider."""

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from starlette.status import HTTP_404_NOT_FOUND

from gallery.configs import SERVE_ROUTE_PREFIX, settings
from gallery.dependencies import StorageManagerDep
from gallery.errors.storage import StorageError
from gallery.monitoring import get_logger
from gallery.utils.helpers import join_path, mime_type_for

logger = get_logger(__name__)

router = APIRouter(prefix=SERVE_ROUTE_PREFIX, tags=["🗄️ Storage"])


@router.get(
    "/{provider}/{file_path:path}",
    response_class=Response,
    summary="Serve a stored file",
    responses={
        200: {"content": {"image/jpeg": {}}, "description": "Raw file bytes"},
        404: {
            "description": "Not Found",
            "content": {"application/json": {"example": {"detail": "File not found"}}},
        },
    },
    operation_id="serve_storage_file",
)
async def serve_file(provider: str, file_path: str, manager: StorageManagerDep) -> Response:
    """
    Stream a stored file through the application.

    Parameters
    ----------
    provider : str
        Storage provider id, e.g. ``local`` or ``aws-s3``.
    file_path : str
        Provider-native path; the URL is percent-encoded per segment and
        arrives here already decoded.
    manager : StorageManager
        Storage manager dependency.

    Returns
    -------
    Response
        File bytes with their MIME type and a long-lived cache header.

    Raises
    ------
    HTTPException
        404 when the provider is unknown or unavailable, or the file
        cannot be read.
    """
    path = join_path(file_path)
    try:
        adapter = await manager.get_provider(provider)
    except StorageError as e:
        logger.info("Serve request for unavailable provider", provider_id=provider, reason=e.detail)
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="File not found") from e

    data = await adapter.get_file_buffer(path)
    if data is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="File not found")

    try:
        media_type = (await adapter.get_file_info(path)).mime_type
    except StorageError:
        media_type = mime_type_for(path)

    return Response(
        content=data,
        media_type=media_type,
        headers={"Cache-Control": f"public, max-age={settings.SERVE_CACHE_MAX_AGE}"},
    )
