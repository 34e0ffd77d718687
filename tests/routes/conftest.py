# tests/routes/conftest.py
"""Pytest fixtures for route tests."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from gallery.main import app
from gallery.services.storage.config_service import StorageConfigService
from gallery.services.storage.manager import StorageManager
from gallery.services.upload import PhotoUploadService


@pytest.fixture
async def client(
    local_config_service: StorageConfigService,
    storage_manager: StorageManager,
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client wired to test-scoped services."""
    app.state.config_service = local_config_service
    app.state.storage_manager = storage_manager
    app.state.upload_service = PhotoUploadService(storage_manager, session_maker)
    async with AsyncClient(
        base_url="http://test",
        transport=ASGITransport(app=app),
    ) as ac:
        yield ac
