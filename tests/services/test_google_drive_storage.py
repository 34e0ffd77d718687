# tests/services/test_google_drive_storage.py
"""Tests for the Google Drive adapter against an in-memory Drive service."""

from typing import Any
from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from gallery.errors import StorageNotFoundError, StorageOperationError
from gallery.schemas.storage import StorageConfig, StorageProviderId
from gallery.services.storage.google_drive import (
    APPDATA_FOLDER,
    FOLDER_MIME_TYPE,
    GoogleDriveStorage,
    escape_query_value,
)


def _folder(service: Any, name: str) -> dict[str, Any]:
    return next(i for i in service.store.values() if i["name"] == name and i["mimeType"] == FOLDER_MIME_TYPE)


class TestDriveUpload:
    """Tests for uploads and folder resolution."""

    async def test_upload_round_trip(self, drive_storage: GoogleDriveStorage, fake_drive_service: Any) -> None:
        """Test an upload creates its folder chain and can be read back."""
        result = await drive_storage.upload_file(
            b"jpeg-bytes",
            "photo.jpg",
            "image/jpeg",
            "album/hero",
            {"originalFile": "photo.jpg", "thumbnailSize": "hero"},
        )

        hero = _folder(fake_drive_service, "hero")
        assert result.provider == StorageProviderId.GOOGLE_DRIVE
        assert result.path == "album/hero/photo.jpg"
        assert result.url == "/api/storage/serve/google-drive/album/hero/photo.jpg"
        assert result.folder_id == hero["id"]
        assert fake_drive_service.store[result.file_id]["properties"] == {
            "originalFile": "photo.jpg",
            "thumbnailSize": "hero",
        }
        assert await drive_storage.get_file_buffer("album/hero/photo.jpg") == b"jpeg-bytes"

    async def test_existing_folders_are_reused(
        self,
        drive_storage: GoogleDriveStorage,
        fake_drive_service: Any,
    ) -> None:
        """Test repeated uploads into one folder do not create duplicates."""
        await drive_storage.upload_file(b"a", "a.jpg", "image/jpeg", "album")
        await drive_storage.upload_file(b"b", "b.jpg", "image/jpeg", "album")

        assert fake_drive_service.folder_names() == ["album"]

    async def test_collision_gets_new_name(self, drive_storage: GoogleDriveStorage) -> None:
        """Test a second upload with the same name gets a distinct name."""
        first = await drive_storage.upload_file(b"first", "photo.jpg", "image/jpeg", "album")
        second = await drive_storage.upload_file(b"second", "photo.jpg", "image/jpeg", "album")

        assert first.filename == "photo.jpg"
        assert second.filename.startswith("photo-")
        assert await drive_storage.get_file_buffer(second.path) == b"second"

    async def test_names_with_quotes(self, drive_storage: GoogleDriveStorage) -> None:
        """Test names containing quotes resolve through escaped queries."""
        await drive_storage.upload_file(b"x", "it's.jpg", "image/jpeg", "o'brien")

        assert await drive_storage.file_exists("o'brien/it's.jpg") is True

    def test_escape_query_value(self) -> None:
        """Test quotes and backslashes are escaped for Drive queries."""
        assert escape_query_value("it's") == "it\\'s"
        assert escape_query_value("a\\b") == "a\\\\b"


class TestDriveRoots:
    """Tests for hidden and visible storage roots."""

    async def test_appdata_root(self, drive_storage: GoogleDriveStorage, fake_drive_service: Any) -> None:
        """Test the default root is the hidden application data folder."""
        await drive_storage.upload_file(b"x", "a.jpg", "image/jpeg", "album")

        assert drive_storage.spaces == APPDATA_FOLDER
        assert _folder(fake_drive_service, "album")["parents"] == [APPDATA_FOLDER]

    async def test_visible_root_uses_folder_id(self, fake_drive_service: Any) -> None:
        """Test a visible store roots folders under the configured folder id."""
        storage = GoogleDriveStorage(
            StorageConfig(
                provider_id=StorageProviderId.GOOGLE_DRIVE,
                name="Google Drive",
                is_enabled=True,
                config={
                    "clientId": "client",
                    "clientSecret": "secret",
                    "refreshToken": "1//refresh",
                    "storageType": "visible",
                    "folderId": "shared-folder",
                },
            ),
        )
        storage._service = fake_drive_service

        await storage.upload_file(b"x", "a.jpg", "image/jpeg", "album")

        assert storage.spaces == "drive"
        assert _folder(fake_drive_service, "album")["parents"] == ["shared-folder"]

    def test_visible_root_defaults_to_my_drive(self) -> None:
        """Test a visible store without a folder id roots at My Drive."""
        storage = GoogleDriveStorage(
            StorageConfig(
                provider_id=StorageProviderId.GOOGLE_DRIVE,
                name="Google Drive",
                config={"refreshToken": "1//refresh", "storageType": "visible"},
            ),
        )

        assert storage.root_id == "root"


class TestDriveFiles:
    """Tests for file info, metadata and deletion."""

    async def test_missing_file_raises_not_found(self, drive_storage: GoogleDriveStorage) -> None:
        """Test info and delete for an absent path are reported as not found."""
        with pytest.raises(StorageNotFoundError):
            await drive_storage.get_file_info("album/missing.jpg")
        with pytest.raises(StorageNotFoundError):
            await drive_storage.delete_file("album/missing.jpg")

    async def test_file_info_and_metadata(self, drive_storage: GoogleDriveStorage) -> None:
        """Test file info exposes size and merged properties."""
        await drive_storage.upload_file(b"12345", "a.jpg", "image/jpeg", "album", {"title": "Old"})

        await drive_storage.update_file_metadata("album/a.jpg", {"caption": "New"})
        info = await drive_storage.get_file_info("album/a.jpg")

        assert info.size == 5
        assert info.mime_type == "image/jpeg"
        assert info.path == "album/a.jpg"
        assert info.metadata == {"title": "Old", "caption": "New"}

    async def test_delete_file(self, drive_storage: GoogleDriveStorage) -> None:
        """Test a deleted file is gone."""
        await drive_storage.upload_file(b"x", "a.jpg", "image/jpeg", "album")

        await drive_storage.delete_file("album/a.jpg")

        assert await drive_storage.file_exists("album/a.jpg") is False
        assert await drive_storage.get_file_buffer("album/a.jpg") is None

    async def test_http_404_maps_to_not_found(
        self,
        drive_storage: GoogleDriveStorage,
        fake_drive_service: Any,
    ) -> None:
        """Test a Drive 404 on a path operation surfaces as not found."""
        await drive_storage.create_folder("album")

        def gone(**_: Any) -> None:
            raise HttpError(resp=MagicMock(status=404, reason="Not Found"), content=b"File not found")

        fake_drive_service.files().get = gone

        with pytest.raises(StorageNotFoundError):
            await drive_storage.get_folder_info("album")

    async def test_other_http_errors_are_operation_errors(
        self,
        drive_storage: GoogleDriveStorage,
        fake_drive_service: Any,
    ) -> None:
        """Test non-404 Drive failures become operation errors."""

        def failing(**_: Any) -> None:
            raise HttpError(resp=MagicMock(status=500, reason="Backend Error"), content=b"Backend Error")

        fake_drive_service.files().create = failing

        with pytest.raises(StorageOperationError) as exc_info:
            await drive_storage.create_folder("album")

        assert not isinstance(exc_info.value, StorageNotFoundError)


class TestDriveFolders:
    """Tests for folder listing, info and deletion."""

    async def test_folder_lifecycle(self, drive_storage: GoogleDriveStorage) -> None:
        """Test create, inspect, list and delete of a folder."""
        created = await drive_storage.create_folder("hero", "album")
        await drive_storage.upload_file(b"x", "a.jpg", "image/jpeg", "album")

        assert created.path == "album/hero"
        assert created.name == "hero"
        assert await drive_storage.folder_exists("album/hero") is True

        info = await drive_storage.get_folder_info("album")
        assert info.file_count == 1
        assert info.folder_count == 1

        folders = await drive_storage.list_folders("album")
        assert [(f.name, f.path) for f in folders] == [("hero", "album/hero")]

        files = await drive_storage.list_files("album")
        assert [(f.name, f.path) for f in files] == [("a.jpg", "album/a.jpg")]

        await drive_storage.delete_folder("album")

        assert await drive_storage.folder_exists("album") is False
        assert await drive_storage.file_exists("album/a.jpg") is False

    async def test_missing_folder_raises(self, drive_storage: GoogleDriveStorage) -> None:
        """Test operations on an absent folder are reported as not found."""
        with pytest.raises(StorageNotFoundError):
            await drive_storage.list_files("missing")
        with pytest.raises(StorageNotFoundError):
            await drive_storage.delete_folder("missing")

    async def test_root_cannot_be_deleted(self, drive_storage: GoogleDriveStorage) -> None:
        """Test deleting the storage root is refused as an operation error, not a missing folder."""
        with pytest.raises(StorageOperationError, match="Refusing to delete the storage root") as exc_info:
            await drive_storage.delete_folder("")

        assert not isinstance(exc_info.value, StorageNotFoundError)
        assert exc_info.value.status_code == 502

    async def test_validate_connection(self, drive_storage: GoogleDriveStorage) -> None:
        """Test the connection check succeeds against a reachable service."""
        assert await drive_storage.validate_connection() is True
