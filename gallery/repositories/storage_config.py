"""Repository for storage provider configuration documents."""

from sqlalchemy import select

from gallery.models import StorageConfigDB
from gallery.repositories.base import BaseRepository


class StorageConfigRepository(BaseRepository[StorageConfigDB]):
    """Data access for ``storage_configs``."""

    model = StorageConfigDB

    async def get_by_provider(self, provider_id: str) -> StorageConfigDB | None:
        return await self.get_by_field("provider_id", provider_id)

    async def list_all(self) -> list[StorageConfigDB]:
        statement = select(StorageConfigDB).order_by(StorageConfigDB.provider_id)
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def existing_provider_ids(self) -> set[str]:
        result = await self.session.execute(select(StorageConfigDB.provider_id))
        return set(result.scalars().all())
