"""
Local filesystem storage implementation.

Files live under the configured base path; logical paths map directly
onto relative filesystem paths. Metadata is kept in a JSON sidecar
``<file>.meta`` next to each file and hidden from listings.
"""

from asyncio import get_running_loop
from datetime import UTC, datetime
from os import W_OK, access
from pathlib import Path
from shutil import rmtree
from typing import Any

import aiofiles
import aiofiles.os
import orjson

from gallery.errors.storage import StorageNotFoundError, StorageOperationError
from gallery.monitoring import get_logger
from gallery.schemas.storage import (
    LocalConfig,
    StorageConfig,
    StorageFileInfo,
    StorageFolderInfo,
    StorageFolderResult,
    StorageProviderId,
    StorageUploadResult,
)
from gallery.services.storage.common import build_serve_url, translate_errors, unique_filename
from gallery.utils.helpers import join_path, mime_type_for

logger = get_logger(__name__)

META_SUFFIX = ".meta"


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=UTC)


class LocalStorage:
    """
    Local filesystem storage implementation.

    Suitable for development and single-host deployments.
    """

    def __init__(self, config: StorageConfig) -> None:
        self._config = config
        self.settings = LocalConfig.model_validate(config.config)
        self.base_path = Path(self.settings.base_path).expanduser().resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    @property
    def provider_id(self) -> StorageProviderId:
        return StorageProviderId.LOCAL

    @property
    def config(self) -> StorageConfig:
        return self._config

    def _resolve(self, path: str | None) -> Path:
        """
        Map a logical path to an absolute path under the base directory.

        Raises:
            StorageOperationError: If the path escapes the base directory
        """
        target = (self.base_path / join_path(path)).resolve()
        if not target.is_relative_to(self.base_path):
            raise StorageOperationError(
                self.provider_id,
                "resolve_path",
                detail=f"Path '{path}' escapes the storage root",
            )
        return target

    def _relative(self, target: Path) -> str:
        return target.relative_to(self.base_path).as_posix()

    @staticmethod
    def _meta_path(target: Path) -> Path:
        return target.with_name(target.name + META_SUFFIX)

    async def _read_metadata(self, target: Path) -> dict[str, Any]:
        meta_path = self._meta_path(target)
        if not await aiofiles.os.path.isfile(meta_path):
            return {}
        async with aiofiles.open(meta_path, "rb") as f:
            return orjson.loads(await f.read())

    async def _write_metadata(self, target: Path, metadata: dict[str, Any]) -> None:
        async with aiofiles.open(self._meta_path(target), "wb") as f:
            await f.write(orjson.dumps(metadata, default=str))

    async def _file_info(self, target: Path) -> StorageFileInfo:
        stat = await aiofiles.os.stat(target)
        relative = self._relative(target)
        metadata = await self._read_metadata(target)
        return StorageFileInfo(
            file_id=relative,
            name=target.name,
            path=relative,
            size=stat.st_size,
            mime_type=metadata.get("mimeType") or mime_type_for(target.name),
            url=self.get_file_url(relative),
            created_at=_timestamp(stat.st_ctime),
            modified_at=_timestamp(stat.st_mtime),
            metadata=metadata,
        )

    async def _folder_info(self, target: Path) -> StorageFolderInfo:
        stat = await aiofiles.os.stat(target)
        relative = self._relative(target)
        entries = await aiofiles.os.listdir(target)
        file_count = sum(
            1 for e in entries if (target / e).is_file() and not e.endswith(META_SUFFIX)
        )
        folder_count = sum(1 for e in entries if (target / e).is_dir())
        return StorageFolderInfo(
            folder_id=relative,
            name=target.name,
            path=relative,
            url=self.get_folder_url(relative),
            created_at=_timestamp(stat.st_ctime),
            modified_at=_timestamp(stat.st_mtime),
            file_count=file_count,
            folder_count=folder_count,
        )

    async def upload_file(
        self,
        data: bytes,
        filename: str,
        mime_type: str,
        folder_path: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StorageUploadResult:
        with translate_errors(self.provider_id, "upload_file"):
            folder = self._resolve(folder_path)
            await aiofiles.os.makedirs(folder, exist_ok=True)

            async def exists(name: str) -> bool:
                return await aiofiles.os.path.exists(folder / name)

            final_name = await unique_filename(Path(filename).name, exists)
            target = folder / final_name

            async with aiofiles.open(target, "xb") as f:
                await f.write(data)

            stored_metadata = {**(metadata or {}), "mimeType": mime_type}
            await self._write_metadata(target, stored_metadata)

        relative = self._relative(target)
        logger.debug("Stored file locally", path=relative, size=len(data))
        return StorageUploadResult(
            provider=self.provider_id,
            file_id=relative,
            filename=final_name,
            url=self.get_file_url(relative),
            path=relative,
            folder_id=join_path(folder_path),
            size=len(data),
            mime_type=mime_type,
            metadata=metadata or {},
        )

    async def delete_file(self, path: str) -> None:
        with translate_errors(self.provider_id, "delete_file", path):
            target = self._resolve(path)
            if not await aiofiles.os.path.isfile(target):
                raise StorageNotFoundError(self.provider_id, "delete_file", path)
            await aiofiles.os.remove(target)
            meta_path = self._meta_path(target)
            if await aiofiles.os.path.exists(meta_path):
                await aiofiles.os.remove(meta_path)

    async def get_file_info(self, path: str) -> StorageFileInfo:
        with translate_errors(self.provider_id, "get_file_info", path):
            target = self._resolve(path)
            if not await aiofiles.os.path.isfile(target):
                raise StorageNotFoundError(self.provider_id, "get_file_info", path)
            return await self._file_info(target)

    async def list_files(
        self,
        folder_path: str | None = None,
        page_size: int | None = None,
    ) -> list[StorageFileInfo]:
        with translate_errors(self.provider_id, "list_files", folder_path or ""):
            folder = self._resolve(folder_path)
            if not await aiofiles.os.path.isdir(folder):
                raise StorageNotFoundError(self.provider_id, "list_files", folder_path or "")
            names = sorted(await aiofiles.os.listdir(folder))
            files: list[StorageFileInfo] = []
            for name in names:
                target = folder / name
                if name.endswith(META_SUFFIX) or not target.is_file():
                    continue
                files.append(await self._file_info(target))
                if page_size is not None and len(files) >= page_size:
                    break
            return files

    async def update_file_metadata(self, path: str, metadata: dict[str, Any]) -> None:
        with translate_errors(self.provider_id, "update_file_metadata", path):
            target = self._resolve(path)
            if not await aiofiles.os.path.isfile(target):
                raise StorageNotFoundError(self.provider_id, "update_file_metadata", path)
            existing = await self._read_metadata(target)
            await self._write_metadata(target, {**existing, **metadata})

    async def create_folder(self, name: str, parent_path: str | None = None) -> StorageFolderResult:
        with translate_errors(self.provider_id, "create_folder"):
            target = self._resolve(join_path(parent_path, name))
            await aiofiles.os.makedirs(target, exist_ok=True)
        relative = self._relative(target)
        return StorageFolderResult(
            provider=self.provider_id,
            folder_id=relative,
            name=target.name,
            path=relative,
            url=self.get_folder_url(relative),
        )

    async def delete_folder(self, path: str) -> None:
        with translate_errors(self.provider_id, "delete_folder", path):
            target = self._resolve(path)
            if target == self.base_path:
                raise StorageOperationError(
                    self.provider_id,
                    "delete_folder",
                    detail="Refusing to delete the storage root",
                )
            if not await aiofiles.os.path.isdir(target):
                raise StorageNotFoundError(self.provider_id, "delete_folder", path)
            await get_running_loop().run_in_executor(None, rmtree, target)

    async def get_folder_info(self, path: str) -> StorageFolderInfo:
        with translate_errors(self.provider_id, "get_folder_info", path):
            target = self._resolve(path)
            if not await aiofiles.os.path.isdir(target):
                raise StorageNotFoundError(self.provider_id, "get_folder_info", path)
            return await self._folder_info(target)

    async def list_folders(self, parent_path: str | None = None) -> list[StorageFolderInfo]:
        with translate_errors(self.provider_id, "list_folders", parent_path or ""):
            parent = self._resolve(parent_path)
            if not await aiofiles.os.path.isdir(parent):
                raise StorageNotFoundError(self.provider_id, "list_folders", parent_path or "")
            folders = []
            for name in sorted(await aiofiles.os.listdir(parent)):
                target = parent / name
                if target.is_dir():
                    folders.append(await self._folder_info(target))
            return folders

    async def file_exists(self, path: str) -> bool:
        try:
            return await aiofiles.os.path.isfile(self._resolve(path))
        except Exception:
            return False

    async def folder_exists(self, path: str) -> bool:
        try:
            return await aiofiles.os.path.isdir(self._resolve(path))
        except Exception:
            return False

    def get_file_url(self, path: str) -> str:
        return build_serve_url(self.provider_id, path)

    def get_folder_url(self, path: str) -> str:
        return build_serve_url(self.provider_id, path)

    async def get_file_buffer(self, path: str) -> bytes | None:
        try:
            target = self._resolve(path)
            async with aiofiles.open(target, "rb") as f:
                return await f.read()
        except Exception as e:
            logger.warning("Could not read local file", path=path, error=str(e))
            return None

    async def validate_connection(self) -> bool:
        try:
            await aiofiles.os.makedirs(self.base_path, exist_ok=True)
            return access(self.base_path, W_OK)
        except Exception as e:
            logger.warning("Local storage is not writable", base_path=str(self.base_path), error=str(e))
            return False
