from gallery.repositories.base import BaseRepository
from gallery.repositories.gallery import AlbumRepository, PhotoRepository, UserRepository
from gallery.repositories.storage_config import StorageConfigRepository

__all__ = [
    "AlbumRepository",
    "BaseRepository",
    "PhotoRepository",
    "StorageConfigRepository",
    "UserRepository",
]
