"""Repositories for albums, photos and users."""

from uuid import UUID

from sqlalchemy import update

from gallery.models import AlbumDB, PhotoDB, UserDB
from gallery.models.storage_config import utcnow
from gallery.repositories.base import BaseRepository


class AlbumRepository(BaseRepository[AlbumDB]):
    model = AlbumDB

    async def increment_photo_count(self, album_id: UUID, amount: int = 1) -> bool:
        """
        Atomically bump an album's photo counter.

        Returns:
            bool: True if an album row was updated
        """
        statement = (
            update(AlbumDB)
            .where(AlbumDB.id == album_id)  # type: ignore[arg-type]
            .values(photo_count=AlbumDB.photo_count + amount, updated_at=utcnow())
        )
        result = await self.session.execute(statement)
        return bool(result.rowcount)


class PhotoRepository(BaseRepository[PhotoDB]):
    model = PhotoDB


class UserRepository(BaseRepository[UserDB]):
    model = UserDB

    async def get_by_username(self, username: str) -> UserDB | None:
        return await self.get_by_field("username", username)
