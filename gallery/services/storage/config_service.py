"""
Storage configuration service.

Persistent CRUD over per-provider configuration documents with an
in-memory TTL cache. The cache is refreshed wholesale when it expires
and cleared by every mutation.
"""

from asyncio import Lock
from time import monotonic
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from gallery.configs.settings import settings
from gallery.db.database import async_session_maker, transaction
from gallery.errors.storage import ConfigNotFoundError
from gallery.models import StorageConfigDB
from gallery.models.storage_config import utcnow
from gallery.monitoring import get_logger
from gallery.repositories import StorageConfigRepository
from gallery.schemas.storage import (
    ConfigValidationResult,
    StorageConfig,
    StorageConfigUpdate,
    StorageConfigUpsert,
    StorageProviderId,
    normalize_provider_config,
)

logger = get_logger(__name__)


def default_configs() -> dict[StorageProviderId, tuple[str, dict[str, Any]]]:
    """Safe initial documents: every provider disabled, credentials empty."""
    return {
        StorageProviderId.GOOGLE_DRIVE: (
            "Google Drive",
            {
                "clientId": "",
                "clientSecret": "",
                "refreshToken": "",
                "folderId": "",
                "storageType": "appdata",
            },
        ),
        StorageProviderId.AWS_S3: (
            "AWS S3",
            {
                "accessKeyId": "",
                "secretAccessKey": "",
                "region": "us-east-1",
                "bucketName": "",
            },
        ),
        StorageProviderId.LOCAL: (
            "Local Storage",
            {"basePath": settings.LOCAL_STORAGE_PATH, "maxFileSize": "100MB"},
        ),
    }


# Provider id -> (settings field, error message) pairs that must be non-empty
REQUIRED_FIELDS: dict[StorageProviderId, list[tuple[str, str]]] = {
    StorageProviderId.GOOGLE_DRIVE: [
        ("client_id", "Client ID is required"),
        ("client_secret", "Client Secret is required"),
        ("refresh_token", "Refresh Token is required"),
    ],
    StorageProviderId.AWS_S3: [
        ("access_key_id", "Access Key ID is required"),
        ("secret_access_key", "Secret Access Key is required"),
        ("bucket_name", "Bucket Name is required"),
    ],
    StorageProviderId.LOCAL: [
        ("base_path", "Base Path is required"),
    ],
}


def config_errors(config: StorageConfig) -> list[str]:
    """Return every reason ``config`` is not usable; empty when it is."""
    errors: list[str] = []
    if not config.is_enabled:
        errors.append("Provider is not enabled")
    try:
        parsed = config.provider_settings()
    except ValidationError as e:
        errors.extend(f"Invalid {'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        return errors
    for field, message in REQUIRED_FIELDS.get(config.provider_id, []):
        value = getattr(parsed, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(message)
    return errors


def parse_provider_id(provider_id: str | StorageProviderId) -> StorageProviderId:
    """
    Coerce a raw provider id.

    Raises:
        ConfigNotFoundError: If the id names no known provider
    """
    try:
        return StorageProviderId(provider_id)
    except ValueError as e:
        raise ConfigNotFoundError(str(provider_id)) from e


class StorageConfigService:
    """
    Loads, caches and validates storage provider configurations.

    Instances are independent: each owns its cache, so tests and
    multiple applications can hold separate services side by side.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        ttl: float | None = None,
    ) -> None:
        """
        Args:
            session_maker: Session factory for the config table
            ttl: Cache lifetime in seconds; defaults to the configured 5 minutes
        """
        self._session_maker = session_maker or async_session_maker
        self._ttl = settings.STORAGE_CONFIG_CACHE_TTL if ttl is None else ttl
        self._cache: dict[StorageProviderId, StorageConfig] = {}
        self._last_refresh: float | None = None
        self._generation = 0
        self._lock = Lock()

    def _is_fresh(self) -> bool:
        return self._last_refresh is not None and monotonic() - self._last_refresh < self._ttl

    async def _load(self) -> dict[StorageProviderId, StorageConfig]:
        if self._is_fresh():
            return self._cache

        async with self._lock:
            if self._is_fresh():
                return self._cache

            generation = self._generation
            async with transaction(self._session_maker) as session:
                rows = await StorageConfigRepository(session).list_all()

            configs: dict[StorageProviderId, StorageConfig] = {}
            for row in rows:
                try:
                    provider_id = StorageProviderId(row.provider_id)
                except ValueError:
                    logger.warning("Ignoring config for unknown provider", provider_id=row.provider_id)
                    continue
                configs[provider_id] = StorageConfig.model_validate(row)

            # A mutation during the load makes this snapshot stale
            if generation != self._generation:
                return configs

            self._cache = configs
            self._last_refresh = monotonic()
            logger.debug("Storage config cache refreshed", providers=len(configs))
            return self._cache

    def invalidate_cache(self) -> None:
        """Drop every cached config so the next read hits the database."""
        self._cache = {}
        self._last_refresh = None
        self._generation += 1

    async def get_config(self, provider_id: str | StorageProviderId) -> StorageConfig:
        """
        Get one provider's configuration.

        Raises:
            ConfigNotFoundError: If no document exists for the provider
        """
        key = parse_provider_id(provider_id)
        configs = await self._load()
        if key not in configs:
            raise ConfigNotFoundError(key)
        return configs[key]

    async def get_all_configs(self) -> list[StorageConfig]:
        configs = await self._load()
        return sorted(configs.values(), key=lambda c: c.provider_id.value)

    async def get_active_providers(self) -> list[StorageProviderId]:
        return [config.provider_id for config in await self.get_all_configs() if config.is_enabled]

    async def is_provider_enabled(self, provider_id: str | StorageProviderId) -> bool:
        """Soft check: any lookup failure counts as disabled."""
        try:
            config = await self.get_config(provider_id)
        except ConfigNotFoundError:
            return False
        except Exception as e:
            logger.warning("Could not check provider state", provider_id=str(provider_id), error=str(e))
            return False
        return config.is_enabled

    async def update_config(
        self,
        provider_id: str | StorageProviderId,
        update: StorageConfigUpdate,
    ) -> StorageConfig:
        """
        Apply a partial update to an existing provider document.

        ``config`` keys are merged into the stored config; other fields
        replace their stored value. No document is created.

        Raises:
            ConfigNotFoundError: If no document exists for the provider
        """
        key = parse_provider_id(provider_id)
        changes = update.model_dump(exclude_unset=True, exclude_none=True)

        async with transaction(self._session_maker) as session:
            repo = StorageConfigRepository(session)
            row = await repo.get_by_provider(key.value)
            if row is not None:
                if "config" in changes:
                    changes["config"] = {
                        **normalize_provider_config(key, row.config),
                        **normalize_provider_config(key, changes["config"]),
                    }
                changes["updated_at"] = utcnow()
                row = await repo.update(row, changes)
                result = StorageConfig.model_validate(row)

        if row is None:
            raise ConfigNotFoundError(key)

        self.invalidate_cache()
        logger.info("Storage config updated", provider_id=key.value, fields=sorted(changes))
        return result

    async def upsert_configs(self, configs: list[StorageConfigUpsert]) -> list[StorageConfig]:
        """Create or fully replace each given provider document."""
        saved: list[StorageConfig] = []
        async with transaction(self._session_maker) as session:
            repo = StorageConfigRepository(session)
            for item in configs:
                row = await repo.get_by_provider(item.provider_id.value)
                if row is None:
                    row = StorageConfigDB(
                        provider_id=item.provider_id.value,
                        name=item.name,
                        is_enabled=item.is_enabled,
                        config=normalize_provider_config(item.provider_id, item.config),
                    )
                    row = await repo.add(row)
                else:
                    row = await repo.update(
                        row,
                        {
                            "name": item.name,
                            "is_enabled": item.is_enabled,
                            "config": normalize_provider_config(item.provider_id, item.config),
                            "updated_at": utcnow(),
                        },
                    )
                saved.append(StorageConfig.model_validate(row))

        self.invalidate_cache()
        logger.info("Storage configs upserted", providers=[c.provider_id.value for c in saved])
        return saved

    async def initialize_default_configs(self) -> list[StorageProviderId]:
        """
        Insert a disabled default document for every provider missing one.

        Returns:
            list[StorageProviderId]: Providers that were created
        """
        created: list[StorageProviderId] = []
        async with transaction(self._session_maker) as session:
            repo = StorageConfigRepository(session)
            existing = await repo.existing_provider_ids()
            for provider_id, (name, config) in default_configs().items():
                if provider_id.value in existing:
                    continue
                await repo.add(
                    StorageConfigDB(
                        provider_id=provider_id.value,
                        name=name,
                        is_enabled=False,
                        config=config,
                    ),
                )
                created.append(provider_id)

        self.invalidate_cache()
        if created:
            logger.info("Default storage configs created", providers=[p.value for p in created])
        return created

    async def validate_config(self, provider_id: str | StorageProviderId) -> ConfigValidationResult:
        try:
            config = await self.get_config(provider_id)
        except ConfigNotFoundError:
            return ConfigValidationResult(is_valid=False, errors=["Configuration not found"])
        errors = config_errors(config)
        return ConfigValidationResult(is_valid=not errors, errors=errors)
