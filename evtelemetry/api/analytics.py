"""
GET /v1/analytics/performance/{vehicle_id} endpoint.

Returns AC/DC energy totals, average battery temperature, sample count and
the charging-efficiency ratio for a vehicle over a trailing window.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-010)

TODO:
- None
"""

import logging
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from evtelemetry.api.deps import get_db
from evtelemetry.schemas.telemetry import PerformanceMetrics
from evtelemetry.services.analytics import get_vehicle_performance

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])

MAX_WINDOW_HOURS = 24 * 365


@router.get("/performance/{vehicle_id}", response_model=PerformanceMetrics)
async def vehicle_performance(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    vehicle_id: Annotated[str, Path(min_length=1)],
    window_hours: Annotated[
        float | None,
        Query(
            gt=0,
            le=MAX_WINDOW_HOURS,
            description="Trailing window in hours (defaults to ANALYTICS_WINDOW_HOURS).",
        ),
    ] = None,
) -> PerformanceMetrics:
    """Return charging efficiency metrics for a vehicle.

    Args:
        request: The incoming FastAPI request.
        db: Async database session.
        vehicle_id: Vehicle identifier from the path.
        window_hours: Optional window override in hours.

    Returns:
        PerformanceMetrics: Serialized with camelCase keys.
    """
    if window_hours is None:
        window_hours = request.app.state.settings.analytics_window_hours

    return await get_vehicle_performance(
        db, vehicle_id, timedelta(hours=window_hours)
    )
