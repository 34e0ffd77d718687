"""
Storage manager.

The single entry point callers use to reach a storage backend: it
resolves a provider id through the configuration service and hands back
a cached adapter bound to the current configuration.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from gallery.errors.storage import (
    ConfigNotFoundError,
    ProviderUnavailableError,
    StorageError,
)
from gallery.monitoring import get_logger
from gallery.schemas.storage import (
    ConnectionTestResult,
    FolderTreeNode,
    StorageConfig,
    StorageFileInfo,
    StorageFolderInfo,
    StorageFolderResult,
    StorageProviderId,
    StorageUploadResult,
)
from gallery.services.storage import create_storage_service
from gallery.services.storage.base import StorageService
from gallery.services.storage.config_service import (
    StorageConfigService,
    config_errors,
    parse_provider_id,
)
from gallery.utils.helpers import join_path, mime_type_for

logger = get_logger(__name__)

DEFAULT_TREE_DEPTH = 10

type AdapterFactory = Callable[[StorageConfig], StorageService]


class StorageManager:
    """
    Resolves provider ids to initialized adapters.

    Adapters are cached per provider and rebuilt whenever the stored
    configuration's ``updated_at`` changes.
    """

    def __init__(
        self,
        config_service: StorageConfigService,
        factory: AdapterFactory = create_storage_service,
    ) -> None:
        self.config_service = config_service
        self._factory = factory
        self._adapters: dict[StorageProviderId, tuple[datetime | None, StorageService]] = {}

    async def get_provider(self, provider_id: str | StorageProviderId) -> StorageService:
        """
        Return a ready adapter for a provider.

        Raises:
            ProviderUnavailableError: If the provider has no config, is
                disabled, fails validation or cannot be initialized
        """
        try:
            key = parse_provider_id(provider_id)
            config = await self.config_service.get_config(key)
        except ConfigNotFoundError as e:
            raise ProviderUnavailableError(str(provider_id), "Configuration not found") from e

        if errors := config_errors(config):
            raise ProviderUnavailableError(key, "; ".join(errors), errors=errors)

        cached = self._adapters.get(key)
        if cached is not None and cached[0] == config.updated_at:
            return cached[1]

        try:
            adapter = self._factory(config)
        except StorageError:
            raise
        except Exception as e:
            logger.exception("Failed to initialize storage adapter", provider_id=key.value)
            raise ProviderUnavailableError(key, f"Failed to initialize adapter: {e}") from e

        self._adapters[key] = (config.updated_at, adapter)
        logger.info("Storage adapter initialized", provider_id=key.value)
        return adapter

    def clear_cache(self) -> None:
        self._adapters.clear()

    def remove_from_cache(self, provider_id: str | StorageProviderId) -> None:
        try:
            self._adapters.pop(StorageProviderId(provider_id), None)
        except ValueError:
            return

    async def get_active_providers(self) -> list[StorageProviderId]:
        return await self.config_service.get_active_providers()

    async def validate_provider(self, provider_id: str | StorageProviderId) -> ConnectionTestResult:
        """Run the provider's connection check; never raises."""
        key = str(provider_id)
        try:
            adapter = await self.get_provider(provider_id)
            ok = await adapter.validate_connection()
        except StorageError as e:
            return ConnectionTestResult(provider_id=key, success=False, message=e.detail)
        message = "Connection successful" if ok else "Connection failed"
        return ConnectionTestResult(provider_id=key, success=ok, message=message)

    # --- Album (folder) operations ---

    async def create_album(
        self,
        provider_id: str | StorageProviderId,
        album_name: str,
        parent_path: str | None = None,
    ) -> StorageFolderResult:
        adapter = await self.get_provider(provider_id)
        return await adapter.create_folder(album_name, parent_path)

    async def delete_album(self, provider_id: str | StorageProviderId, album_path: str) -> None:
        adapter = await self.get_provider(provider_id)
        await adapter.delete_folder(album_path)

    async def get_album_info(self, provider_id: str | StorageProviderId, album_path: str) -> StorageFolderInfo:
        adapter = await self.get_provider(provider_id)
        return await adapter.get_folder_info(album_path)

    async def get_album_url(self, provider_id: str | StorageProviderId, album_path: str) -> str:
        adapter = await self.get_provider(provider_id)
        return adapter.get_folder_url(album_path)

    async def get_folder_tree(
        self,
        provider_id: str | StorageProviderId,
        path: str | None = None,
        max_depth: int = DEFAULT_TREE_DEPTH,
    ) -> list[FolderTreeNode]:
        """List folders recursively below ``path`` down to ``max_depth`` levels."""
        adapter = await self.get_provider(provider_id)

        async def walk(parent: str | None, depth: int) -> list[FolderTreeNode]:
            if depth >= max_depth:
                return []
            nodes = []
            for folder in await adapter.list_folders(parent):
                nodes.append(
                    FolderTreeNode(
                        name=folder.name,
                        path=folder.path,
                        folder_id=folder.folder_id,
                        children=await walk(folder.path, depth + 1),
                    ),
                )
            return nodes

        return await walk(join_path(path) or None, 0)

    # --- Photo (file) operations ---

    async def upload_photo(
        self,
        provider_id: str | StorageProviderId,
        data: bytes,
        filename: str,
        mime_type: str,
        album_path: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StorageUploadResult:
        adapter = await self.get_provider(provider_id)
        return await adapter.upload_file(data, filename, mime_type, album_path, metadata)

    async def upload_buffer(
        self,
        provider_id: str | StorageProviderId,
        data: bytes,
        filename: str,
        album_path: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StorageUploadResult:
        """Upload bytes, deriving the MIME type from the filename."""
        return await self.upload_photo(
            provider_id,
            data,
            filename,
            mime_type_for(filename),
            album_path,
            metadata,
        )

    async def delete_photo(self, provider_id: str | StorageProviderId, path: str) -> None:
        adapter = await self.get_provider(provider_id)
        await adapter.delete_file(path)

    async def get_photo_info(self, provider_id: str | StorageProviderId, path: str) -> StorageFileInfo:
        adapter = await self.get_provider(provider_id)
        return await adapter.get_file_info(path)

    async def list_album_photos(
        self,
        provider_id: str | StorageProviderId,
        album_path: str | None = None,
        page_size: int | None = None,
    ) -> list[StorageFileInfo]:
        adapter = await self.get_provider(provider_id)
        return await adapter.list_files(album_path, page_size)

    async def get_photo_url(self, provider_id: str | StorageProviderId, path: str) -> str:
        adapter = await self.get_provider(provider_id)
        return adapter.get_file_url(path)

    async def get_photo_buffer(self, provider_id: str | StorageProviderId, path: str) -> bytes | None:
        """Read a stored file; None when the provider or file is unavailable."""
        try:
            adapter = await self.get_provider(provider_id)
        except StorageError as e:
            logger.warning("Provider unavailable for read", provider_id=str(provider_id), error=e.detail)
            return None
        return await adapter.get_file_buffer(path)
