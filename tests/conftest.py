# tests/conftest.py
"""Root pytest configuration and shared fixtures."""

import os
import tempfile
from collections.abc import AsyncGenerator, Callable
from io import BytesIO
from pathlib import Path

# Point the application at throwaway storage before gallery is imported anywhere
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="gallery-tests-"))
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT / 'app.db'}"
os.environ["LOCAL_STORAGE_PATH"] = str(_TEST_ROOT / "uploads")
os.environ["LOG_TO_FILE"] = "false"

import pytest
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from gallery.db import build_engine, build_session_maker, close_db, init_db
from gallery.schemas.storage import StorageConfigUpsert, StorageProviderId
from gallery.services.storage.config_service import StorageConfigService
from gallery.services.storage.manager import StorageManager

type ImageFactory = Callable[..., bytes]


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Fresh SQLite database with every table created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(db_engine)


@pytest.fixture
def config_service(session_maker: async_sessionmaker[AsyncSession]) -> StorageConfigService:
    return StorageConfigService(session_maker)


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
async def local_config_service(
    config_service: StorageConfigService,
    storage_root: Path,
) -> StorageConfigService:
    """Config service with only the local provider enabled, rooted in a temp dir."""
    await config_service.initialize_default_configs()
    await config_service.upsert_configs(
        [
            StorageConfigUpsert(
                provider_id=StorageProviderId.LOCAL,
                name="Local Storage",
                is_enabled=True,
                config={"basePath": str(storage_root), "maxFileSize": "100MB"},
            ),
        ],
    )
    return config_service


@pytest.fixture
def storage_manager(local_config_service: StorageConfigService) -> StorageManager:
    return StorageManager(local_config_service)


@pytest.fixture
def make_image() -> ImageFactory:
    """Build encoded image bytes of a given size, format and color."""

    def factory(
        width: int = 640,
        height: int = 480,
        fmt: str = "JPEG",
        color: str | tuple[int, ...] = "red",
        mode: str = "RGB",
        exif: Image.Exif | None = None,
    ) -> bytes:
        img = Image.new(mode, (width, height), color=color)
        buffer = BytesIO()
        options = {"exif": exif} if exif is not None else {}
        img.save(buffer, format=fmt, **options)
        return buffer.getvalue()

    return factory


@pytest.fixture
def jpeg_bytes(make_image: ImageFactory) -> bytes:
    return make_image(640, 480)
