# gallery/dependencies/__init__.py

from gallery.dependencies.dependencies import (
    ConfigServiceDep,
    StorageManagerDep,
    UploadServiceDep,
    get_config_service,
    get_storage_manager,
    get_upload_service,
)

__all__ = [
    "ConfigServiceDep",
    "StorageManagerDep",
    "UploadServiceDep",
    "get_config_service",
    "get_storage_manager",
    "get_upload_service",
]
