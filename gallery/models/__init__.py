from gallery.models.gallery import AlbumDB, PhotoDB, UserDB
from gallery.models.storage_config import StorageConfigDB

__all__ = ["AlbumDB", "PhotoDB", "StorageConfigDB", "UserDB"]
