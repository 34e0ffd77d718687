"""Storage provider configuration model using SQLModel."""

from datetime import UTC, datetime
from typing import Any, cast
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declared_attr
from sqlmodel import Column, Field, SQLModel, String

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class StorageConfigDB(SQLModel, table=True):
    """
    One configuration document per storage provider.

    ``config`` holds the provider-specific fields (credentials for S3 and
    Drive, base path for local) and is validated before use.
    """

    __tablename__ = cast("declared_attr[str]", "storage_configs")

    id: UUID = Field(default_factory=uuid4, primary_key=True, nullable=False)

    provider_id: str = Field(
        sa_column=Column(String(32), unique=True, nullable=False, index=True),
        description="Provider key (local, aws-s3, google-drive)",
    )
    name: str = Field(sa_column=Column(String(100), nullable=False))
    is_enabled: bool = Field(default=False, nullable=False)
    config: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSONType, nullable=False),
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
