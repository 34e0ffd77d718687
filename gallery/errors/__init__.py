from gallery.errors.base import BaseAppError, create_exception_handler
from gallery.errors.database import (
    DatabaseError,
    DuplicateEntryError,
    database_exception_handler,
)
from gallery.errors.storage import (
    ConfigNotFoundError,
    ProviderUnavailableError,
    StorageConnectionError,
    StorageError,
    StorageNotFoundError,
    StorageOperationError,
    storage_exception_handler,
)
from gallery.errors.upload import (
    ImageProcessingError,
    ImageTooLargeError,
    InvalidImageError,
    UnsupportedImageTypeError,
    UploadError,
    upload_exception_handler,
)

__all__ = [
    "BaseAppError",
    "ConfigNotFoundError",
    "DatabaseError",
    "DuplicateEntryError",
    "ImageProcessingError",
    "ImageTooLargeError",
    "InvalidImageError",
    "ProviderUnavailableError",
    "StorageConnectionError",
    "StorageError",
    "StorageNotFoundError",
    "StorageOperationError",
    "UnsupportedImageTypeError",
    "UploadError",
    "create_exception_handler",
    "database_exception_handler",
    "storage_exception_handler",
    "upload_exception_handler",
]
