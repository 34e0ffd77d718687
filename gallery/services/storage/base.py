"""
Base storage protocol for file storage operations.

This module defines the capability contract every storage backend
implements (local filesystem, AWS S3, Google Drive). Paths are logical,
``/``-separated and relative to the backend's root; folders are a
logical construct that each backend maps onto its own model.
"""

from abc import abstractmethod
from typing import Any, Protocol

from gallery.schemas.storage import (
    StorageConfig,
    StorageFileInfo,
    StorageFolderInfo,
    StorageFolderResult,
    StorageProviderId,
    StorageUploadResult,
)


class StorageService(Protocol):
    """
    Protocol defining the interface for storage services.

    All storage implementations must implement these methods
    to ensure consistent behavior across different backends.
    Backend failures surface as ``StorageOperationError``; the
    ``*_exists`` checks and ``get_file_buffer`` never raise.
    """

    @property
    @abstractmethod
    def provider_id(self) -> StorageProviderId: ...

    @property
    @abstractmethod
    def config(self) -> StorageConfig: ...

    @abstractmethod
    async def upload_file(
        self,
        data: bytes,
        filename: str,
        mime_type: str,
        folder_path: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StorageUploadResult:
        """
        Write bytes under a logical folder.

        An existing file with the same name is never overwritten; the
        name is disambiguated and the adjusted identifiers returned.

        Args:
            data: Raw file bytes
            filename: Desired file name
            mime_type: MIME type of the content
            folder_path: Logical folder, created when missing
            metadata: Extra key/value metadata stored with the file

        Returns:
            StorageUploadResult: Normalized location of the stored file
        """
        ...

    @abstractmethod
    async def delete_file(self, path: str) -> None: ...

    @abstractmethod
    async def get_file_info(self, path: str) -> StorageFileInfo:
        """
        Describe a file.

        Raises:
            StorageNotFoundError: If the file does not exist
        """
        ...

    @abstractmethod
    async def list_files(
        self,
        folder_path: str | None = None,
        page_size: int | None = None,
    ) -> list[StorageFileInfo]: ...

    @abstractmethod
    async def update_file_metadata(self, path: str, metadata: dict[str, Any]) -> None:
        """Merge ``metadata`` into the file's stored metadata."""
        ...

    @abstractmethod
    async def create_folder(self, name: str, parent_path: str | None = None) -> StorageFolderResult: ...

    @abstractmethod
    async def delete_folder(self, path: str) -> None:
        """Delete a folder and everything below it."""
        ...

    @abstractmethod
    async def get_folder_info(self, path: str) -> StorageFolderInfo: ...

    @abstractmethod
    async def list_folders(self, parent_path: str | None = None) -> list[StorageFolderInfo]: ...

    @abstractmethod
    async def file_exists(self, path: str) -> bool: ...

    @abstractmethod
    async def folder_exists(self, path: str) -> bool: ...

    @abstractmethod
    def get_file_url(self, path: str) -> str: ...

    @abstractmethod
    def get_folder_url(self, path: str) -> str: ...

    @abstractmethod
    async def get_file_buffer(self, path: str) -> bytes | None:
        """
        Read a file's bytes.

        Returns:
            bytes | None: File content, or None when it cannot be read
        """
        ...

    @abstractmethod
    async def validate_connection(self) -> bool:
        """Cheap reachability check for admin connection tests."""
        ...
