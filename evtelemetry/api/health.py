"""
Health check endpoints.

GET /health is a liveness probe with no dependencies. GET /health/db runs a
trivial query so orchestration can hold traffic until the database answers.

CHANGELOG:
- 2026-10-19: Add database readiness probe (STORY-013)
"""

import logging

from fastapi import APIRouter, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from evtelemetry.api.deps import DbSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Return ``{"status": "ok"}`` while the process is serving requests."""
    return {"status": "ok"}


@router.get("/health/db")
async def health_db(db: DbSession) -> dict[str, str]:
    """Return ``{"status": "ok"}`` if the database answers ``SELECT 1``.

    Raises:
        HTTPException: 503 if the query fails.
    """
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("Database readiness check failed", exc_info=True)
        raise HTTPException(status_code=503, detail="Database unavailable.") from None
    return {"status": "ok"}
