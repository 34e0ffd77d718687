"""Database engine and session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from gallery.configs import pool_kwargs, settings
from gallery.monitoring import get_logger

logger = get_logger(__name__)


def build_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an async engine, adding pool options only where the driver supports them."""
    url = database_url or settings.DATABASE_URL
    return create_async_engine(url, echo=settings.DATABASE_ECHO, **pool_kwargs(url))


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[SQLModelAsyncSession]:
    return async_sessionmaker(
        bind,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine: AsyncEngine = build_engine()

async_session_maker: async_sessionmaker[SQLModelAsyncSession] = build_session_maker(engine)


async def get_session() -> AsyncGenerator[SQLModelAsyncSession]:
    """
    Dependency for getting async database sessions.

    Yields:
        SQLModelAsyncSession: Database session committed on success
    """
    async with transaction() as session:
        yield session


@asynccontextmanager
async def transaction(
    session_maker: async_sessionmaker[SQLModelAsyncSession] | None = None,
) -> AsyncGenerator[SQLModelAsyncSession]:
    """
    Context manager for explicit transaction management.

    Commits on successful exit and rolls back on exception.

    Args:
        session_maker: Session factory to use; defaults to the application one.

    Yields:
        SQLModelAsyncSession: Database session within a transaction
    """
    maker = session_maker or async_session_maker
    async with maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Transaction error")
            raise


async def init_db(bind: AsyncEngine | None = None) -> None:
    """
    Create all tables defined in SQLModel models.

    Called on application startup and by the test fixtures.
    """
    from gallery.models import AlbumDB, PhotoDB, StorageConfigDB, UserDB  # noqa: F401, PLC0415

    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database initialized successfully")


async def close_db(bind: AsyncEngine | None = None) -> None:
    """Dispose of the engine's connection pool."""
    await (bind or engine).dispose()
    logger.info("Database connections closed")
