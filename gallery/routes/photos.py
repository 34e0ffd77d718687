# gallery/routes/photos.py
"""Photo upload endpoint."""

from typing import Annotated

from fastapi import APIRouter, Form, UploadFile
from fastapi.responses import ORJSONResponse
from starlette.status import HTTP_201_CREATED, HTTP_500_INTERNAL_SERVER_ERROR

from gallery.configs import settings
from gallery.dependencies import UploadServiceDep
from gallery.errors.upload import ImageTooLargeError, UnsupportedImageTypeError
from gallery.schemas.upload import PhotoUploadOptions, UploadSuccess

router = APIRouter(prefix="/api/photos", tags=["📷 Photos"])

BYTES_PER_MB = 1024 * 1024


def validate_image_type(content_type: str | None) -> str:
    """Reject content types outside the configured image allow-list."""
    if not content_type or content_type not in settings.UPLOAD_ALLOWED_TYPES:
        raise UnsupportedImageTypeError(
            content_type=content_type or "unknown",
            allowed_types=settings.UPLOAD_ALLOWED_TYPES,
        )
    return content_type


def validate_image_size(data: bytes) -> None:
    if len(data) > settings.MAX_UPLOAD_SIZE_MB * BYTES_PER_MB:
        raise ImageTooLargeError(
            max_size_mb=settings.MAX_UPLOAD_SIZE_MB,
            actual_size_mb=len(data) / BYTES_PER_MB,
        )


def parse_tags(tags: str | None) -> list[str]:
    """Split a comma separated tag list, dropping blanks."""
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


@router.post(
    "/upload",
    response_class=ORJSONResponse,
    status_code=HTTP_201_CREATED,
    summary="Upload a photo",
    responses={
        413: {
            "description": "Image too large",
            "content": {"application/json": {"example": {"detail": "Your image is too large."}}},
        },
        415: {
            "description": "Unsupported image type",
            "content": {
                "application/json": {"example": {"detail": "This image format isn't supported."}},
            },
        },
        500: {
            "description": "Upload failed",
            "content": {
                "application/json": {"example": {"success": False, "error": "Provider is not enabled"}},
            },
        },
    },
    operation_id="upload_photo",
)
async def upload_photo(
    file: UploadFile,
    upload_service: UploadServiceDep,
    album_id: Annotated[str | None, Form(alias="albumId")] = None,
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    tags: Annotated[str | None, Form(description="Comma separated tags")] = None,
    storage_provider: Annotated[str | None, Form(alias="storageProvider")] = None,
    uploaded_by: Annotated[str | None, Form(alias="uploadedBy")] = None,
) -> ORJSONResponse:
    """
    Upload a photo with its thumbnails and persist its record.

    Parameters
    ----------
    file : UploadFile
        The image to upload.
    album_id : str | None
        Target album; its provider and folder take precedence.
    storage_provider : str | None
        Provider used when no album decides it.

    Returns
    -------
    ORJSONResponse
        201 with the upload result, or 500 with ``{"success": false, "error": ...}``.
    """
    mime_type = validate_image_type(file.content_type)
    data = await file.read()
    validate_image_size(data)

    options = PhotoUploadOptions(
        album_id=album_id,
        title=title,
        description=description,
        tags=parse_tags(tags),
        storage_provider=storage_provider,
        uploaded_by=uploaded_by,
    )
    outcome = await upload_service.upload_photo(data, file.filename or "photo", mime_type, options)

    status_code = HTTP_201_CREATED if isinstance(outcome, UploadSuccess) else HTTP_500_INTERNAL_SERVER_ERROR
    return ORJSONResponse(content=outcome.model_dump(mode="json", by_alias=True), status_code=status_code)
