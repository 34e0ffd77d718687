"""
Storage schemas for the gallery backend.

Provider configuration documents, the normalized results every adapter
returns, and the per-provider config shapes adapters parse their
settings into.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from gallery.configs.settings import settings


class StorageProviderId(StrEnum):
    """Stable keys identifying each storage backend."""

    LOCAL = "local"
    AWS_S3 = "aws-s3"
    GOOGLE_DRIVE = "google-drive"


class StorageConfig(BaseModel):
    """One provider's stored configuration document."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    provider_id: StorageProviderId = Field(alias="providerId")
    name: str
    is_enabled: bool = Field(default=False, alias="isEnabled")
    config: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @model_validator(mode="after")
    def _normalize_config(self) -> Self:
        self.config = normalize_provider_config(self.provider_id, self.config)
        return self

    def provider_settings(self) -> BaseModel:
        """Parse ``config`` into the provider's typed settings model."""
        return PROVIDER_CONFIG_MODELS[self.provider_id].model_validate(self.config)


class StorageConfigUpdate(BaseModel):
    """Partial update for a provider configuration."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    is_enabled: bool | None = Field(default=None, alias="isEnabled")
    config: dict[str, Any] | None = None


class StorageConfigUpsert(BaseModel):
    """Full provider configuration used by bulk create-or-replace."""

    model_config = ConfigDict(populate_by_name=True)

    provider_id: StorageProviderId = Field(alias="providerId")
    name: str
    is_enabled: bool = Field(default=False, alias="isEnabled")
    config: dict[str, Any] = Field(default_factory=dict)


class StorageConfigList(BaseModel):
    """All provider configurations plus the currently enabled ids."""

    model_config = ConfigDict(populate_by_name=True)

    configs: list[StorageConfig]
    active_providers: list[StorageProviderId] = Field(alias="activeProviders")


class ConfigValidationResult(BaseModel):
    """Outcome of checking a provider config against its required fields."""

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    errors: list[str] = Field(default_factory=list)


class ConnectionTestResult(BaseModel):
    """Outcome of an admin connection test."""

    model_config = ConfigDict(populate_by_name=True)

    provider_id: str = Field(alias="providerId")
    success: bool
    message: str


# --- Provider-specific config shapes ---


class LocalConfig(BaseModel):
    """Settings for the local filesystem adapter."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    base_path: str = Field(default=settings.LOCAL_STORAGE_PATH, alias="basePath")
    max_file_size: str = Field(default="100MB", alias="maxFileSize")


class AwsS3Config(BaseModel):
    """Settings for the S3 adapter."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    access_key_id: str = Field(default="", alias="accessKeyId")
    secret_access_key: str = Field(default="", alias="secretAccessKey")
    region: str = "us-east-1"
    bucket_name: str = Field(default="", alias="bucketName")
    endpoint_url: str | None = Field(default=None, alias="endpointUrl")


class GoogleDriveConfig(BaseModel):
    """Settings for the Google Drive adapter."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    client_id: str = Field(default="", alias="clientId")
    client_secret: str = Field(default="", alias="clientSecret")
    refresh_token: str = Field(default="", alias="refreshToken")
    folder_id: str | None = Field(default=None, alias="folderId")
    storage_type: Literal["appdata", "visible"] = Field(default="appdata", alias="storageType")
    token_uri: str = Field(default="https://oauth2.googleapis.com/token", alias="tokenUri")


PROVIDER_CONFIG_MODELS: dict[StorageProviderId, type[BaseModel]] = {
    StorageProviderId.LOCAL: LocalConfig,
    StorageProviderId.AWS_S3: AwsS3Config,
    StorageProviderId.GOOGLE_DRIVE: GoogleDriveConfig,
}


def normalize_provider_config(provider_id: StorageProviderId, config: dict[str, Any]) -> dict[str, Any]:
    """
    Store every known setting under its camelCase key.

    snake_case spellings of a provider field are renamed to the field's
    alias. When both spellings are present a blank value never replaces
    a filled one. Unknown keys are kept as given.
    """
    model = PROVIDER_CONFIG_MODELS.get(provider_id)
    if model is None:
        return dict(config)
    aliases = {name: field.alias for name, field in model.model_fields.items() if field.alias}
    normalized: dict[str, Any] = {}
    for key, value in config.items():
        target = aliases.get(key, key)
        if target in normalized and value in (None, ""):
            continue
        normalized[target] = value
    return normalized


# --- Normalized adapter results ---


class StorageUploadResult(BaseModel):
    """Normalized outcome of an adapter upload."""

    model_config = ConfigDict(populate_by_name=True)

    provider: StorageProviderId
    file_id: str = Field(alias="fileId")
    filename: str
    url: str
    path: str
    folder_id: str | None = Field(default=None, alias="folderId")
    size: int
    mime_type: str = Field(alias="mimeType")
    metadata: dict[str, Any] = Field(default_factory=dict)


class StorageFolderResult(BaseModel):
    """Normalized outcome of folder creation."""

    model_config = ConfigDict(populate_by_name=True)

    provider: StorageProviderId
    folder_id: str = Field(alias="folderId")
    name: str
    path: str
    url: str


class StorageFileInfo(BaseModel):
    """Normalized file descriptor."""

    model_config = ConfigDict(populate_by_name=True)

    file_id: str = Field(alias="fileId")
    name: str
    path: str
    size: int = 0
    mime_type: str = Field(alias="mimeType")
    url: str
    created_at: datetime | None = Field(default=None, alias="createdAt")
    modified_at: datetime | None = Field(default=None, alias="modifiedAt")
    metadata: dict[str, Any] = Field(default_factory=dict)


class StorageFolderInfo(BaseModel):
    """Normalized folder descriptor."""

    model_config = ConfigDict(populate_by_name=True)

    folder_id: str = Field(alias="folderId")
    name: str
    path: str
    url: str
    created_at: datetime | None = Field(default=None, alias="createdAt")
    modified_at: datetime | None = Field(default=None, alias="modifiedAt")
    file_count: int | None = Field(default=None, alias="fileCount")
    folder_count: int | None = Field(default=None, alias="folderCount")


class FolderTreeNode(BaseModel):
    """One folder in a recursive folder listing."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    path: str
    folder_id: str = Field(alias="folderId")
    children: list["FolderTreeNode"] = Field(default_factory=list)
