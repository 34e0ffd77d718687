"""
Photo upload schemas.

Options accepted by the upload orchestrator and the discriminated
result it returns.
"""

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from gallery.schemas.images import ExifData


class PhotoUploadOptions(BaseModel):
    """Caller-supplied options for one photo upload."""

    model_config = ConfigDict(populate_by_name=True)

    album_id: str | None = Field(default=None, alias="albumId")
    title: str | None = Field(default=None, max_length=300)
    description: str | None = Field(default=None, max_length=5000)
    tags: list[str] = Field(default_factory=list)
    uploaded_by: str | None = Field(default=None, alias="uploadedBy")
    storage_provider: str | None = Field(default=None, alias="storageProvider")


class PhotoResponse(BaseModel):
    """Persisted photo record (safe for API responses)."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    album_id: UUID | None = Field(default=None, alias="albumId")
    title: str
    description: str | None = None
    filename: str
    original_filename: str = Field(alias="originalFilename")
    mime_type: str = Field(alias="mimeType")
    size: int
    original_size: int = Field(alias="originalSize")
    compression_ratio: float = Field(alias="compressionRatio")
    width: int
    height: int
    storage_provider: str = Field(alias="storageProvider")
    storage_file_id: str = Field(alias="storageFileId")
    storage_url: str = Field(alias="storageUrl")
    storage_path: str = Field(alias="storagePath")
    storage_folder_id: str | None = Field(default=None, alias="storageFolderId")
    thumbnail_path: str | None = Field(default=None, alias="thumbnailPath")
    thumbnails: dict[str, str] = Field(default_factory=dict)
    blur_data_url: str | None = Field(default=None, alias="blurDataURL")
    tags: list[str] = Field(default_factory=list)
    exif: dict[str, Any] | None = None
    is_published: bool = Field(alias="isPublished")
    is_leading: bool = Field(alias="isLeading")
    uploaded_by: UUID = Field(alias="uploadedBy")
    uploaded_at: datetime = Field(alias="uploadedAt")
    updated_at: datetime = Field(alias="updatedAt")


class UploadSuccess(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    photo: PhotoResponse
    thumbnail_path: str | None = Field(default=None, alias="thumbnailPath")
    thumbnails: dict[str, str] = Field(default_factory=dict)
    blur_data_url: str = Field(alias="blurDataURL")
    exif: ExifData | None = None


class UploadFailure(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[False] = False
    error: str


type UploadOutcome = Annotated[UploadSuccess | UploadFailure, Field(discriminator="success")]
