"""
Async database engine, session factory and transaction scope.

Uses SQLAlchemy 2.x async engine with asyncpg driver for PostgreSQL.
Provides module-level engine and session factory singletons, an async
generator for FastAPI dependency injection, and the ``atomic`` context
manager every write path runs inside.

CHANGELOG:
- 2026-10-19: Add atomic() transaction scope (STORY-006)
- 2026-10-19: Read DATABASE_URL through Settings (STORY-002)
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from evtelemetry.config import get_settings

# Module-level singletons, initialized lazily via init_engine().
async_engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine(url: str | None = None) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Args:
        url: Optional database URL. Defaults to Settings.database_url.

    Returns:
        AsyncEngine: Configured async engine.
    """
    return create_async_engine(
        url or get_settings().database_url,
        echo=False,
        pool_pre_ping=True,
    )


def create_session_factory(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory.

    Args:
        engine: Optional async engine. If not provided, creates one from config.

    Returns:
        async_sessionmaker: Factory for creating AsyncSession instances.
    """
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def init_engine() -> None:
    """Initialize the module-level async engine and session factory.

    Call this at application startup (e.g., in a FastAPI lifespan event).
    Safe to call multiple times; subsequent calls are no-ops.
    """
    global async_engine, async_session_factory  # noqa: PLW0603
    if async_engine is None:
        async_engine = create_engine()
        async_session_factory = create_session_factory(async_engine)


async def dispose_engine() -> None:
    """Close pooled connections and reset the singletons."""
    global async_engine, async_session_factory  # noqa: PLW0603
    if async_engine is not None:
        await async_engine.dispose()
    async_engine = None
    async_session_factory = None


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for FastAPI dependency injection.

    Initializes the engine on first call if not already done.
    The session is automatically closed after the request completes.

    Yields:
        AsyncSession: An async SQLAlchemy session.
    """
    init_engine()
    assert async_session_factory is not None, "Session factory not initialized"
    async with async_session_factory() as session:
        yield session


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a block of statements as one transaction.

    Commits when the block exits normally. Any exception, including
    ``asyncio.CancelledError`` from a caller timeout, rolls the whole
    transaction back before propagating.

    Args:
        session: The session whose transaction scopes the block.

    Yields:
        AsyncSession: The same session, for convenience.
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise
