"""
Storage services package.

This package provides the storage backends (local filesystem, AWS S3,
Google Drive), the configuration service and the storage manager that
resolves a provider id to a ready adapter.
"""

from collections.abc import Callable

from gallery.schemas.storage import StorageConfig, StorageProviderId
from gallery.services.storage.aws_s3 import AwsS3Storage
from gallery.services.storage.base import StorageService
from gallery.services.storage.google_drive import GoogleDriveStorage
from gallery.services.storage.local import LocalStorage

ADAPTERS: dict[StorageProviderId, Callable[[StorageConfig], StorageService]] = {
    StorageProviderId.LOCAL: LocalStorage,
    StorageProviderId.AWS_S3: AwsS3Storage,
    StorageProviderId.GOOGLE_DRIVE: GoogleDriveStorage,
}


def create_storage_service(config: StorageConfig) -> StorageService:
    """
    Build the adapter for a provider configuration.

    Args:
        config: Validated configuration of the provider

    Returns:
        StorageService: Adapter bound to that configuration
    """
    return ADAPTERS[config.provider_id](config)


__all__ = [
    "ADAPTERS",
    "AwsS3Storage",
    "GoogleDriveStorage",
    "LocalStorage",
    "StorageService",
    "create_storage_service",
]
