"""Album, photo and user database models using SQLModel."""

from datetime import datetime
from typing import Any, cast
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Index
from sqlalchemy.orm import declared_attr
from sqlmodel import Column, Field, ForeignKey, SQLModel, String

from gallery.models.storage_config import JSONType, utcnow


class UserDB(SQLModel, table=True):
    """Minimal uploader identity."""

    __tablename__ = cast("declared_attr[str]", "users")

    id: UUID = Field(default_factory=uuid4, primary_key=True, nullable=False)
    username: str = Field(
        sa_column=Column(String(50), unique=True, nullable=False, index=True),
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class AlbumDB(SQLModel, table=True):
    """
    Photo album.

    When ``storage_provider`` is set every photo uploaded into the album
    lands on that provider under ``storage_path``.
    """

    __tablename__ = cast("declared_attr[str]", "albums")

    id: UUID = Field(default_factory=uuid4, primary_key=True, nullable=False)
    name: str = Field(sa_column=Column(String(200), nullable=False))
    alias: str = Field(sa_column=Column(String(200), unique=True, nullable=False, index=True))
    description: str | None = Field(default=None, sa_column=Column(String(2000)))
    storage_provider: str | None = Field(default=None, sa_column=Column(String(32)))
    storage_path: str | None = Field(default=None, sa_column=Column(String(1024)))
    photo_count: int = Field(default=0, nullable=False)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class PhotoDB(SQLModel, table=True):
    """Persisted photo record with its provider location metadata."""

    __tablename__ = cast("declared_attr[str]", "photos")

    __table_args__ = (Index("ix_photos_album_uploaded", "album_id", "uploaded_at"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True, nullable=False)

    album_id: UUID | None = Field(
        default=None,
        sa_column=Column(
            "album_id",
            ForeignKey("albums.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
    )

    title: str = Field(sa_column=Column(String(300), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(String(5000)))
    filename: str = Field(sa_column=Column(String(512), unique=True, nullable=False))
    original_filename: str = Field(sa_column=Column(String(512), nullable=False))
    mime_type: str = Field(sa_column=Column(String(100), nullable=False))
    size: int = Field(default=0, nullable=False)
    original_size: int = Field(default=0, nullable=False)
    compression_ratio: float = Field(default=1.0, nullable=False)
    width: int = Field(default=0, nullable=False)
    height: int = Field(default=0, nullable=False)

    # Storage location
    storage_provider: str = Field(sa_column=Column(String(32), nullable=False))
    storage_file_id: str = Field(sa_column=Column(String(1024), nullable=False))
    storage_url: str = Field(sa_column=Column(String(2048), nullable=False))
    storage_path: str = Field(sa_column=Column(String(1024), nullable=False))
    storage_folder_id: str | None = Field(default=None, sa_column=Column(String(1024)))
    thumbnail_path: str | None = Field(default=None, sa_column=Column(String(2048)))
    thumbnails: dict[str, str] = Field(
        default_factory=dict,
        sa_column=Column(JSONType, nullable=False),
    )
    blur_data_url: str | None = Field(default=None, sa_column=Column(String(8192)))

    tags: list[str] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    exif: dict[str, Any] | None = Field(default=None, sa_column=Column(JSONType))
    is_published: bool = Field(default=True, nullable=False)
    is_leading: bool = Field(default=False, nullable=False)
    uploaded_by: UUID = Field(nullable=False)

    uploaded_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
