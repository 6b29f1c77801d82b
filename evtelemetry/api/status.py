"""
GET /v1/status endpoints for the latest state of a meter or vehicle.

Serves the hot-storage row of a device through a Redis cache with a
configurable TTL. The cache entry is deleted by the ingestion coordinator
after each committed sample, so a hit is never older than the last commit
plus one TTL.

CHANGELOG:
- 2026-10-20: Use shared cache helpers from evtelemetry.cache.redis_client
- 2026-10-19: Serve meter_status / vehicle_status rows (STORY-011)

TODO:
- None
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from evtelemetry.api.deps import get_db
from evtelemetry.cache.redis_client import (
    cache_get_json,
    cache_set_json,
    status_cache_key,
)
from evtelemetry.db.models import Base, MeterStatus, VehicleStatus
from evtelemetry.schemas.telemetry import MeterStatusOut, VehicleStatusOut

router = APIRouter(prefix="/v1/status", tags=["status"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _read_status(
    request: Request,
    db: AsyncSession,
    kind: str,
    model: type[Base],
    schema: type[BaseModel],
    device_id: str,
) -> dict:
    """Return a device's status row as a JSON-compatible dict.

    Raises:
        HTTPException: 404 if the device has never been ingested.
    """
    key = status_cache_key(kind, device_id)
    cached = await cache_get_json(key)
    if cached is not None:
        return cached

    row = await db.get(model, device_id)
    if row is None:
        raise HTTPException(
            status_code=404,
            detail=f"No status found for {kind} '{device_id}'.",
        )

    body = schema.model_validate(row).model_dump(mode="json", by_alias=True)
    await cache_set_json(key, body, request.app.state.settings.cache_ttl_s)
    return body


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/meters/{meter_id}")
async def meter_status(
    request: Request,
    meter_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Return the latest ingested state of a meter."""
    return await _read_status(request, db, "meter", MeterStatus, MeterStatusOut, meter_id)


@router.get("/vehicles/{vehicle_id}")
async def vehicle_status(
    request: Request,
    vehicle_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Return the latest ingested state of a vehicle."""
    return await _read_status(
        request, db, "vehicle", VehicleStatus, VehicleStatusOut, vehicle_id
    )
