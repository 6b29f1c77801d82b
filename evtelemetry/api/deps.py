"""
FastAPI dependency injection providers.

Provides database sessions for use with FastAPI's Depends() mechanism.
Tests replace get_db through ``app.dependency_overrides``.

CHANGELOG:
- 2026-10-19: Drop bearer-auth dependencies (STORY-012)
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from evtelemetry.db.session import get_async_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session.

    Yields:
        AsyncSession: An async SQLAlchemy session.
    """
    async for session in get_async_session():
        yield session


# Annotated alias for route signatures:
#   async def my_route(db: DbSession): ...
DbSession = Annotated[AsyncSession, Depends(get_db)]
