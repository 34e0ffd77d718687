# gallery/dependencies/dependencies.py

"""Application dependencies resolving the storage services from app state."""

from typing import Annotated

from fastapi import Depends, Request

from gallery.services.storage.config_service import StorageConfigService
from gallery.services.storage.manager import StorageManager
from gallery.services.upload import PhotoUploadService


def get_config_service(request: Request) -> StorageConfigService:
    """Dependency to get the application's storage config service."""
    return request.app.state.config_service


def get_storage_manager(request: Request) -> StorageManager:
    """Dependency to get the application's storage manager."""
    return request.app.state.storage_manager


def get_upload_service(request: Request) -> PhotoUploadService:
    """Dependency to get the application's photo upload service."""
    return request.app.state.upload_service


ConfigServiceDep = Annotated[StorageConfigService, Depends(get_config_service)]
StorageManagerDep = Annotated[StorageManager, Depends(get_storage_manager)]
UploadServiceDep = Annotated[PhotoUploadService, Depends(get_upload_service)]
