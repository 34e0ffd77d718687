"""
Photo upload orchestration.

Runs one upload through album resolution, compression, primary upload,
thumbnail ladder, blur placeholder, EXIF extraction, uploader lookup and
record persistence, in that order. Steps up to and including the
primary upload are hard failures; later steps degrade gracefully.
"""

import asyncio
from pathlib import PurePosixPath
from time import time
from typing import Any, Final
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from gallery.configs.settings import settings
from gallery.db.database import async_session_maker, transaction
from gallery.models import AlbumDB, PhotoDB
from gallery.monitoring import get_logger
from gallery.repositories import AlbumRepository, PhotoRepository, UserRepository
from gallery.schemas.storage import StorageUploadResult
from gallery.schemas.upload import (
    PhotoResponse,
    PhotoUploadOptions,
    UploadFailure,
    UploadOutcome,
    UploadSuccess,
)
from gallery.services.images import (
    ImageCompressionService,
    ThumbnailGenerator,
    extract_exif,
    read_dimensions,
)
from gallery.services.images.thumbnails import FALLBACK_BLUR_DATA_URL
from gallery.services.storage.base import StorageService
from gallery.services.storage.manager import StorageManager
from gallery.utils.helpers import join_path

logger = get_logger(__name__)

SYSTEM_USER_ID = UUID(int=0)
PRIMARY_PROFILE = "gallery"
PRIMARY_MIME_TYPE = "image/jpeg"
THUMBNAIL_PREFERENCE = ("medium", "small")
# Default for upload_photo's timeout: read UPLOAD_TIMEOUT_SECONDS at call time
USE_CONFIGURED_TIMEOUT: Final[Any] = object()

type Written = list[tuple[StorageService, StorageUploadResult]]


def primary_filename(original_filename: str, timestamp_ms: int | None = None) -> str:
    """Build ``{epoch_ms}-{stem}.jpg`` for the compressed primary image."""
    stem = PurePosixPath(original_filename).stem or "photo"
    timestamp_ms = int(time() * 1000) if timestamp_ms is None else timestamp_ms
    return f"{timestamp_ms}-{stem}.jpg"


def canonical_thumbnail(thumbnails: dict[str, str]) -> str | None:
    """Prefer ``medium``, then ``small``, then whichever rung exists."""
    for name in THUMBNAIL_PREFERENCE:
        if name in thumbnails:
            return thumbnails[name]
    return next(iter(thumbnails.values()), None)


def _parse_uuid(value: str | None) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


class PhotoUploadService:
    """Turns one uploaded image into stored renditions and a photo record."""

    def __init__(
        self,
        storage_manager: StorageManager,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        compression: ImageCompressionService | None = None,
        thumbnails: ThumbnailGenerator | None = None,
    ) -> None:
        self.storage_manager = storage_manager
        self._session_maker = session_maker or async_session_maker
        self.compression = compression or ImageCompressionService()
        self.thumbnails = thumbnails or ThumbnailGenerator()

    async def upload_photo(
        self,
        data: bytes,
        original_filename: str,
        mime_type: str,
        options: PhotoUploadOptions | None = None,
        timeout: float | None = USE_CONFIGURED_TIMEOUT,
    ) -> UploadOutcome:
        """
        Upload a photo and persist its record.

        Args:
            data: Original image bytes
            original_filename: Client-side filename
            mime_type: Client-declared MIME type, kept on the record
            options: Album, title, tags and provider choices
            timeout: Deadline in seconds for the whole pipeline. Left out,
                ``UPLOAD_TIMEOUT_SECONDS`` applies; None means unbounded

        Returns:
            UploadOutcome: ``UploadSuccess`` or ``UploadFailure``; only
            task cancellation escapes. Objects stored before a failure
            or timeout are deleted best-effort
        """
        options = options or PhotoUploadOptions()
        deadline = settings.UPLOAD_TIMEOUT_SECONDS if timeout is USE_CONFIGURED_TIMEOUT else timeout
        written: Written = []
        try:
            async with asyncio.timeout(deadline):
                return await self._run(data, original_filename, mime_type, options, written)
        except TimeoutError:
            logger.warning("Photo upload timed out", filename=original_filename, timeout=deadline)
            await self._cleanup(written)
            return UploadFailure(error=f"Upload timed out after {deadline} seconds")
        except Exception as e:
            logger.exception("Photo upload failed", filename=original_filename)
            await self._cleanup(written)
            return UploadFailure(error=str(e) or "Upload failed")

    async def _run(
        self,
        data: bytes,
        original_filename: str,
        mime_type: str,
        options: PhotoUploadOptions,
        written: Written,
    ) -> UploadSuccess:
        # 1. Album
        album = await self._resolve_album(options.album_id)
        provider_id = options.storage_provider or settings.DEFAULT_STORAGE_PROVIDER
        if album is not None and album.storage_provider:
            provider_id = album.storage_provider
        album_path = join_path(album.storage_path or "") if album is not None else ""
        storage = await self.storage_manager.get_provider(provider_id)

        # 2. Compression
        compressed = await self.compression.compress_image(data, PRIMARY_PROFILE)

        # 3. Primary upload
        filename = primary_filename(original_filename)
        primary = await storage.upload_file(
            compressed.compressed,
            filename,
            PRIMARY_MIME_TYPE,
            album_path or None,
            self._metadata(options, original_filename),
        )
        written.append((storage, primary))
        logger.info("Primary image uploaded", provider_id=provider_id, path=primary.path)

        # 4. Thumbnail ladder
        uploads = await self._upload_thumbnails(storage, data, filename, album_path, written)
        thumbnails = {name: result.url for name, result in uploads.items()}
        thumbnail_path = canonical_thumbnail(thumbnails)

        # 5. Blur placeholder
        blur_data_url = await self._blur_placeholder(data)

        # 6. EXIF and dimensions
        exif = await asyncio.get_running_loop().run_in_executor(None, extract_exif, data)
        width, height = await asyncio.get_running_loop().run_in_executor(None, read_dimensions, data)

        # 7. Uploader
        uploaded_by = await self._resolve_uploader(options.uploaded_by)

        # 8. Record and album counter
        photo = PhotoDB(
            album_id=album.id if album is not None else None,
            title=options.title or original_filename,
            description=options.description or "",
            filename=primary.filename,
            original_filename=original_filename,
            mime_type=mime_type,
            size=len(compressed.compressed),
            original_size=len(data),
            compression_ratio=compressed.compression_ratio,
            width=width,
            height=height,
            storage_provider=str(provider_id),
            storage_file_id=primary.file_id,
            storage_url=primary.url,
            storage_path=primary.path,
            storage_folder_id=primary.folder_id,
            thumbnail_path=thumbnail_path,
            thumbnails=thumbnails,
            blur_data_url=blur_data_url,
            tags=options.tags,
            exif=exif.model_dump(mode="json", by_alias=True, exclude_none=True) if exif else None,
            uploaded_by=uploaded_by,
        )
        saved = await self._save_photo(photo)
        # The record now owns the stored objects
        written.clear()
        if album is not None:
            await self._increment_album_count(album.id)

        logger.info(
            "Photo upload completed",
            photo_id=str(saved.id),
            provider_id=provider_id,
            thumbnails=sorted(thumbnails),
        )
        return UploadSuccess(
            photo=saved,
            thumbnail_path=thumbnail_path,
            thumbnails=thumbnails,
            blur_data_url=blur_data_url,
            exif=exif,
        )

    async def _resolve_album(self, album_id: str | None) -> AlbumDB | None:
        """Find the target album; unknown or malformed ids mean no album."""
        if not album_id:
            return None
        key = _parse_uuid(album_id)
        if key is None:
            logger.warning("Ignoring malformed album id", album_id=album_id)
            return None
        async with transaction(self._session_maker) as session:
            album = await AlbumRepository(session).get_by_id(key)
        if album is None:
            logger.warning("Album not found, using default storage", album_id=album_id)
        return album

    async def _upload_thumbnails(
        self,
        storage: StorageService,
        data: bytes,
        filename: str,
        album_path: str,
        written: Written,
    ) -> dict[str, StorageUploadResult]:
        """Generate and upload every rung, one after another; failed rungs are left out."""
        try:
            rendered = await self.thumbnails.generate_all_thumbnails(data)
        except Exception as e:
            logger.warning("Thumbnail generation failed", filename=filename, error=str(e))
            return {}

        uploaded: dict[str, StorageUploadResult] = {}
        for name, thumbnail in rendered.items():
            folder = join_path(album_path, thumbnail.size.folder)
            try:
                uploaded[name] = await storage.upload_file(
                    thumbnail.data,
                    f"{name}-{filename}",
                    PRIMARY_MIME_TYPE,
                    folder,
                    {"originalFile": filename, "thumbnailSize": name},
                )
                written.append((storage, uploaded[name]))
            except Exception as e:
                logger.warning("Thumbnail upload failed", size=name, folder=folder, error=str(e))
        return uploaded

    async def _blur_placeholder(self, data: bytes) -> str:
        try:
            return await self.thumbnails.generate_blur_placeholder(data)
        except Exception as e:
            logger.warning("Blur placeholder failed", error=str(e))
            return FALLBACK_BLUR_DATA_URL

    async def _resolve_uploader(self, uploaded_by: str | None) -> UUID:
        """Explicit uploader, else the system account, else the all-zero id."""
        if uploaded_by:
            explicit = _parse_uuid(uploaded_by)
            if explicit is not None:
                return explicit
            logger.warning("Ignoring malformed uploader id", uploaded_by=uploaded_by)
        try:
            async with transaction(self._session_maker) as session:
                user = await UserRepository(session).get_by_username(settings.SYSTEM_USERNAME)
        except Exception as e:
            logger.warning("System user lookup failed", error=str(e))
            return SYSTEM_USER_ID
        return user.id if user is not None else SYSTEM_USER_ID

    async def _save_photo(self, photo: PhotoDB) -> PhotoResponse:
        async with transaction(self._session_maker) as session:
            saved = await PhotoRepository(session).add(photo)
            return PhotoResponse.model_validate(saved)

    async def _cleanup(self, written: Written) -> None:
        """Best-effort removal of objects stored by an upload that did not finish."""
        for storage, upload in written:
            try:
                await storage.delete_file(upload.path)
            except Exception as e:
                logger.warning("Could not remove orphaned upload", path=upload.path, error=str(e))

    async def _increment_album_count(self, album_id: UUID) -> None:
        try:
            async with transaction(self._session_maker) as session:
                await AlbumRepository(session).increment_photo_count(album_id)
        except Exception as e:
            logger.warning("Failed to update album photo count", album_id=str(album_id), error=str(e))

    def _metadata(self, options: PhotoUploadOptions, original_filename: str) -> dict[str, Any]:
        return {
            "originalFilename": original_filename,
            "albumId": options.album_id,
            "tags": options.tags,
            "description": options.description or "",
        }
