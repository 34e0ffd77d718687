from gallery.services.images import ImageCompressionService, ThumbnailGenerator
from gallery.services.storage.config_service import StorageConfigService
from gallery.services.storage.manager import StorageManager
from gallery.services.upload import PhotoUploadService

__all__ = [
    "ImageCompressionService",
    "PhotoUploadService",
    "StorageConfigService",
    "StorageManager",
    "ThumbnailGenerator",
]
