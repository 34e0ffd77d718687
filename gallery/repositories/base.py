"""Base repository for database operations."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from gallery.errors.database import DuplicateEntryError

type FilterValue = str | int | float | bool | UUID | datetime | None


class BaseRepository[ModelT: SQLModel]:
    """
    Base repository implementing common CRUD operations.

    Attributes:
        model: The SQLModel database model type.
        id_field: The name of the primary key field (default: "id").
    """

    model: type[ModelT]
    id_field: str = "id"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, db_obj: ModelT) -> ModelT:
        """
        Persist a new or modified model instance.

        Raises:
            DuplicateEntryError: If a unique constraint is violated
        """
        self.session.add(db_obj)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            mssg = f"{self.model.__name__} violates a unique constraint"
            raise DuplicateEntryError(mssg) from e
        await self.session.refresh(db_obj)
        return db_obj

    async def get_by_id(self, record_id: UUID) -> ModelT | None:
        id_column = getattr(self.model, self.id_field)
        result = await self.session.execute(select(self.model).where(id_column == record_id))
        return result.scalar_one_or_none()

    async def get_by_field(self, field_name: str, value: FilterValue) -> ModelT | None:
        """
        Get a record by a specific field value.

        Args:
            field_name: Name of the field to search
            value: Value to search for

        Returns:
            ModelT | None: Record if found, None otherwise
        """
        field = getattr(self.model, field_name)
        result = await self.session.execute(select(self.model).where(field == value))
        return result.scalar_one_or_none()

    async def update(self, db_obj: ModelT, data: dict[str, Any]) -> ModelT:
        """Apply ``data`` to an existing record and persist it."""
        for key, value in data.items():
            setattr(db_obj, key, value)
        return await self.add(db_obj)
