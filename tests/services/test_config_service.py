# tests/services/test_config_service.py
"""Tests for the storage configuration service and its TTL cache."""

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from gallery.errors import ConfigNotFoundError
from gallery.schemas.storage import (
    StorageConfig,
    StorageConfigUpdate,
    StorageConfigUpsert,
    StorageProviderId,
)
from gallery.services.storage.config_service import (
    StorageConfigService,
    config_errors,
    parse_provider_id,
)


class TestDefaults:
    """Tests for default configuration seeding."""

    async def test_defaults_created_once(self, config_service: StorageConfigService) -> None:
        """Test every provider is seeded on the first call only."""
        created = await config_service.initialize_default_configs()
        again = await config_service.initialize_default_configs()

        assert sorted(created) == sorted(StorageProviderId)
        assert again == []

    async def test_defaults_are_disabled(self, config_service: StorageConfigService) -> None:
        """Test seeded providers start disabled with empty credentials."""
        await config_service.initialize_default_configs()

        configs = await config_service.get_all_configs()
        s3 = await config_service.get_config(StorageProviderId.AWS_S3)

        assert len(configs) == 3
        assert all(not c.is_enabled for c in configs)
        assert await config_service.get_active_providers() == []
        assert s3.config["accessKeyId"] == ""
        assert s3.config["region"] == "us-east-1"

    async def test_existing_rows_are_kept(self, local_config_service: StorageConfigService) -> None:
        """Test seeding does not overwrite a provider that already has a row."""
        await local_config_service.initialize_default_configs()

        local = await local_config_service.get_config("local")
        assert local.is_enabled is True


class TestLookups:
    """Tests for reads and provider id parsing."""

    async def test_missing_config_raises(self, config_service: StorageConfigService) -> None:
        """Test a provider without a row is reported as not found."""
        with pytest.raises(ConfigNotFoundError):
            await config_service.get_config("local")

    async def test_unknown_provider_raises(self, config_service: StorageConfigService) -> None:
        """Test an unrecognized provider id is reported as not found."""
        with pytest.raises(ConfigNotFoundError):
            await config_service.get_config("dropbox")

    def test_parse_provider_id(self) -> None:
        """Test raw ids are coerced to provider ids."""
        assert parse_provider_id("aws-s3") is StorageProviderId.AWS_S3
        with pytest.raises(ConfigNotFoundError):
            parse_provider_id("ftp")

    async def test_is_provider_enabled_never_raises(
        self,
        local_config_service: StorageConfigService,
    ) -> None:
        """Test the enabled check answers False for anything unusable."""
        assert await local_config_service.is_provider_enabled("local") is True
        assert await local_config_service.is_provider_enabled("aws-s3") is False
        assert await local_config_service.is_provider_enabled("dropbox") is False

    async def test_active_providers(self, local_config_service: StorageConfigService) -> None:
        """Test only enabled providers are reported active."""
        assert await local_config_service.get_active_providers() == [StorageProviderId.LOCAL]


class TestMutations:
    """Tests for partial updates and bulk upserts."""

    async def test_update_merges_config(self, config_service: StorageConfigService) -> None:
        """Test updated config keys merge with the stored ones."""
        await config_service.initialize_default_configs()

        updated = await config_service.update_config(
            "aws-s3",
            StorageConfigUpdate(is_enabled=True, config={"bucketName": "photos"}),
        )

        assert updated.is_enabled is True
        assert updated.config["bucketName"] == "photos"
        assert updated.config["region"] == "us-east-1"
        assert updated.name == "AWS S3"

    async def test_update_with_snake_case_keys(self, config_service: StorageConfigService) -> None:
        """Test snake_case keys replace the seeded camelCase blanks instead of sitting beside them."""
        await config_service.initialize_default_configs()

        updated = await config_service.update_config(
            "aws-s3",
            StorageConfigUpdate(
                is_enabled=True,
                config={"access_key_id": "AKIAEXAMPLE", "secret_access_key": "s3cr3t", "bucket_name": "photos"},
            ),
        )
        parsed = updated.provider_settings()

        assert updated.config == {
            "accessKeyId": "AKIAEXAMPLE",
            "secretAccessKey": "s3cr3t",
            "region": "us-east-1",
            "bucketName": "photos",
        }
        assert parsed.bucket_name == "photos"
        assert parsed.access_key_id == "AKIAEXAMPLE"
        assert (await config_service.validate_config("aws-s3")).is_valid is True

    async def test_update_is_visible_immediately(self, config_service: StorageConfigService) -> None:
        """Test a read after an update never returns the cached value."""
        await config_service.initialize_default_configs()
        before = await config_service.get_config("local")

        await config_service.update_config("local", StorageConfigUpdate(name="Disk"))

        after = await config_service.get_config("local")
        assert before.name == "Local Storage"
        assert after.name == "Disk"

    async def test_update_missing_provider_raises(self, config_service: StorageConfigService) -> None:
        """Test updating a provider without a row creates nothing."""
        with pytest.raises(ConfigNotFoundError):
            await config_service.update_config("local", StorageConfigUpdate(is_enabled=True))

        assert await config_service.get_all_configs() == []

    async def test_upsert_creates_and_replaces(self, config_service: StorageConfigService) -> None:
        """Test upsert inserts new rows and replaces existing ones wholesale."""
        await config_service.initialize_default_configs()

        saved = await config_service.upsert_configs(
            [
                StorageConfigUpsert(
                    provider_id=StorageProviderId.AWS_S3,
                    name="Bucket",
                    is_enabled=True,
                    config={"bucketName": "photos"},
                ),
            ],
        )

        s3 = await config_service.get_config("aws-s3")
        assert [c.provider_id for c in saved] == [StorageProviderId.AWS_S3]
        assert s3.name == "Bucket"
        assert s3.config == {"bucketName": "photos"}


class TestCache:
    """Tests for the TTL cache."""

    async def test_cache_serves_stale_until_invalidated(
        self,
        session_maker: async_sessionmaker[AsyncSession],
    ) -> None:
        """Test a cached read ignores writes made through another service."""
        reader = StorageConfigService(session_maker)
        writer = StorageConfigService(session_maker)
        await writer.initialize_default_configs()

        assert (await reader.get_config("local")).name == "Local Storage"
        await writer.update_config("local", StorageConfigUpdate(name="Disk"))

        assert (await reader.get_config("local")).name == "Local Storage"
        reader.invalidate_cache()
        assert (await reader.get_config("local")).name == "Disk"

    async def test_expired_cache_reloads(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        """Test an expired cache goes back to the database."""
        reader = StorageConfigService(session_maker, ttl=0)
        writer = StorageConfigService(session_maker)
        await writer.initialize_default_configs()

        assert (await reader.get_config("local")).name == "Local Storage"
        await writer.update_config("local", StorageConfigUpdate(name="Disk"))

        assert (await reader.get_config("local")).name == "Disk"


class TestValidation:
    """Tests for required-field validation."""

    async def test_default_s3_is_invalid(self, config_service: StorageConfigService) -> None:
        """Test the seeded S3 config reports every missing field."""
        await config_service.initialize_default_configs()

        result = await config_service.validate_config("aws-s3")

        assert result.is_valid is False
        assert result.errors == [
            "Provider is not enabled",
            "Access Key ID is required",
            "Secret Access Key is required",
            "Bucket Name is required",
        ]

    async def test_missing_config_is_invalid(self, config_service: StorageConfigService) -> None:
        """Test validating an absent provider reports it as not found."""
        result = await config_service.validate_config("google-drive")

        assert result.is_valid is False
        assert result.errors == ["Configuration not found"]

    async def test_enabled_local_is_valid(self, local_config_service: StorageConfigService) -> None:
        """Test a complete enabled config passes."""
        result = await local_config_service.validate_config("local")

        assert result.is_valid is True
        assert result.errors == []

    async def test_snake_case_fields_accepted(self, config_service: StorageConfigService) -> None:
        """Test required fields may be stored in snake_case."""
        [saved] = await config_service.upsert_configs(
            [
                StorageConfigUpsert(
                    provider_id=StorageProviderId.GOOGLE_DRIVE,
                    name="Google Drive",
                    is_enabled=True,
                    config={"client_id": "id", "client_secret": "secret", "refresh_token": "token"},
                ),
            ],
        )

        assert config_errors(saved) == []
        assert saved.config == {"clientId": "id", "clientSecret": "secret", "refreshToken": "token"}

    def test_blank_alias_does_not_hide_snake_case_value(self) -> None:
        """Test a stored document holding both spellings resolves to the filled value."""
        config = StorageConfig(
            provider_id=StorageProviderId.AWS_S3,
            name="AWS S3",
            is_enabled=True,
            config={"accessKeyId": "", "access_key_id": "AKIA", "secretAccessKey": "s", "bucketName": "b"},
        )

        assert config.config["accessKeyId"] == "AKIA"
        assert config_errors(config) == []

    def test_invalid_setting_is_reported(self) -> None:
        """Test settings the provider cannot parse are listed as errors."""
        config = StorageConfig(
            provider_id=StorageProviderId.GOOGLE_DRIVE,
            name="Google Drive",
            is_enabled=True,
            config={"clientId": "id", "clientSecret": "s", "refreshToken": "t", "storageType": "shared"},
        )

        [error] = config_errors(config)
        assert error.startswith("Invalid storageType")

    async def test_blank_values_count_as_missing(self, config_service: StorageConfigService) -> None:
        """Test whitespace-only required values are rejected."""
        [saved] = await config_service.upsert_configs(
            [
                StorageConfigUpsert(
                    provider_id=StorageProviderId.LOCAL,
                    name="Local Storage",
                    is_enabled=True,
                    config={"basePath": "   "},
                ),
            ],
        )

        assert config_errors(saved) == ["Base Path is required"]
