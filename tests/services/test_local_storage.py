# tests/services/test_local_storage.py
"""Tests for the local filesystem adapter."""

from pathlib import Path

import pytest

from gallery.errors import StorageNotFoundError, StorageOperationError
from gallery.schemas.storage import StorageConfig, StorageProviderId
from gallery.services.storage.local import LocalStorage


@pytest.fixture
def local_storage(storage_root: Path) -> LocalStorage:
    config = StorageConfig(
        provider_id=StorageProviderId.LOCAL,
        name="Local Storage",
        is_enabled=True,
        config={"basePath": str(storage_root)},
    )
    return LocalStorage(config)


class TestLocalUpload:
    """Tests for uploads and name collisions."""

    async def test_upload_round_trip(self, local_storage: LocalStorage, storage_root: Path) -> None:
        """Test an uploaded file can be read back byte for byte."""
        result = await local_storage.upload_file(
            b"jpeg-bytes",
            "photo.jpg",
            "image/jpeg",
            "album",
            {"title": "Sunset"},
        )

        assert result.provider == StorageProviderId.LOCAL
        assert result.path == "album/photo.jpg"
        assert result.url == "/api/storage/serve/local/album/photo.jpg"
        assert result.size == len(b"jpeg-bytes")
        assert (storage_root / "album" / "photo.jpg").read_bytes() == b"jpeg-bytes"
        assert await local_storage.get_file_buffer(result.path) == b"jpeg-bytes"

    async def test_collision_never_overwrites(self, local_storage: LocalStorage, storage_root: Path) -> None:
        """Test a second upload with the same name lands beside the first."""
        first = await local_storage.upload_file(b"first", "photo.jpg", "image/jpeg", "album")
        second = await local_storage.upload_file(b"second", "photo.jpg", "image/jpeg", "album")

        assert first.path != second.path
        assert second.filename.startswith("photo-")
        assert (storage_root / first.path).read_bytes() == b"first"
        assert (storage_root / second.path).read_bytes() == b"second"

    async def test_metadata_sidecar_hidden(self, local_storage: LocalStorage) -> None:
        """Test metadata is returned in file info and sidecars stay out of listings."""
        await local_storage.upload_file(b"x", "a.jpg", "image/jpeg", "album", {"albumId": "42"})

        files = await local_storage.list_files("album")
        info = await local_storage.get_file_info("album/a.jpg")

        assert [f.name for f in files] == ["a.jpg"]
        assert info.mime_type == "image/jpeg"
        assert info.metadata["albumId"] == "42"

    async def test_update_metadata_merges(self, local_storage: LocalStorage) -> None:
        await local_storage.upload_file(b"x", "a.jpg", "image/jpeg", None, {"title": "old"})

        await local_storage.update_file_metadata("a.jpg", {"title": "new", "tag": "bali"})

        metadata = (await local_storage.get_file_info("a.jpg")).metadata
        assert metadata["title"] == "new"
        assert metadata["tag"] == "bali"
        assert metadata["mimeType"] == "image/jpeg"

    async def test_list_files_page_size(self, local_storage: LocalStorage) -> None:
        for name in ("a.jpg", "b.jpg", "c.jpg"):
            await local_storage.upload_file(b"x", name, "image/jpeg", "album")

        files = await local_storage.list_files("album", page_size=2)

        assert [f.name for f in files] == ["a.jpg", "b.jpg"]


class TestLocalFiles:
    """Tests for file lookups and deletion."""

    async def test_missing_file_info_raises_not_found(self, local_storage: LocalStorage) -> None:
        with pytest.raises(StorageNotFoundError):
            await local_storage.get_file_info("nope.jpg")

    async def test_delete_file(self, local_storage: LocalStorage) -> None:
        result = await local_storage.upload_file(b"x", "a.jpg", "image/jpeg")

        await local_storage.delete_file(result.path)

        assert await local_storage.file_exists(result.path) is False
        with pytest.raises(StorageNotFoundError):
            await local_storage.delete_file(result.path)

    async def test_exists_and_buffer_never_raise(self, local_storage: LocalStorage) -> None:
        assert await local_storage.file_exists("../../etc/passwd") is False
        assert await local_storage.folder_exists("missing") is False
        assert await local_storage.get_file_buffer("missing.jpg") is None

    async def test_path_escape_rejected(self, local_storage: LocalStorage) -> None:
        with pytest.raises(StorageOperationError):
            await local_storage.upload_file(b"x", "a.jpg", "image/jpeg", "../outside")


class TestLocalFolders:
    """Tests for folder operations."""

    async def test_folder_lifecycle(self, local_storage: LocalStorage) -> None:
        created = await local_storage.create_folder("hero", "album")
        await local_storage.upload_file(b"x", "a.jpg", "image/jpeg", "album")

        info = await local_storage.get_folder_info("album")
        folders = await local_storage.list_folders("album")

        assert created.path == "album/hero"
        assert info.file_count == 1
        assert info.folder_count == 1
        assert [f.name for f in folders] == ["hero"]

        await local_storage.delete_folder("album")
        assert await local_storage.folder_exists("album") is False

    async def test_delete_root_refused(self, local_storage: LocalStorage) -> None:
        with pytest.raises(StorageOperationError):
            await local_storage.delete_folder("")

    async def test_validate_connection(self, local_storage: LocalStorage) -> None:
        assert await local_storage.validate_connection() is True
