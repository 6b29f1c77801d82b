"""
Analytics service for vehicle charging efficiency.

Aggregates a trailing time window of both history tables for one vehicle:
DC energy, battery temperature and sample count from vehicle_samples, and AC
energy from meter_samples rows whose denormalized vehicle_id matches. Both
aggregates run as one statement (two subqueries cross-joined), served by the
(vehicle_id, timestamp) indexes.

CHANGELOG:
- 2026-10-20: Round half-up on exact binary halves
- 2026-10-19: Replace continuous-aggregate series with efficiency metrics (STORY-010)

TODO:
- None
"""

import logging
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from evtelemetry.db.models import MeterSample, VehicleSample
from evtelemetry.exceptions import AggregationUnavailable
from evtelemetry.schemas.telemetry import PerformanceMetrics

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=24)

ENERGY_DECIMALS = 2
RATIO_DECIMALS = 4


def round_half_up(value: float, decimals: int) -> float:
    """Round the exact binary value of a float, ties away from zero.

    Unlike the built-in round(), an exact half such as 10.125 goes up to
    10.13. A float that only looks like a half in decimal (2.675 is stored
    as 2.67499...) still rounds down.
    """
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def efficiency_ratio(total_dc_kwh: float, total_ac_kwh: float) -> float:
    """DC energy out per unit of AC energy in; 0 when no AC energy was seen."""
    if total_ac_kwh > 0:
        return total_dc_kwh / total_ac_kwh
    return 0.0


async def get_vehicle_performance(
    db: AsyncSession,
    vehicle_id: str,
    window: timedelta = DEFAULT_WINDOW,
    *,
    now: datetime | None = None,
) -> PerformanceMetrics:
    """Compute charging efficiency for a vehicle over a trailing window.

    A row is inside the window when its event timestamp is at or after
    ``now - window``. There is no upper bound, so samples stamped later
    than ``now`` are counted too. Aggregates over an empty set are 0, never
    null. Values are rounded half-up for presentation only.

    Args:
        db: Async database session.
        vehicle_id: The vehicle to report on.
        window: Length of the trailing window.
        now: Reference time the window start is measured back from.
            Defaults to the current UTC time.

    Returns:
        PerformanceMetrics: Totals, average temperature and efficiency ratio.

    Raises:
        AggregationUnavailable: If the query failed.
    """
    window_start = (now or datetime.now(UTC)) - window

    vehicle_stats = (
        select(
            func.coalesce(func.sum(VehicleSample.kwh_delivered_dc), 0.0).label("total_dc"),
            func.coalesce(func.avg(VehicleSample.battery_temp), 0.0).label("avg_temp"),
            func.count(VehicleSample.id).label("sample_count"),
        )
        .where(
            VehicleSample.vehicle_id == vehicle_id,
            VehicleSample.timestamp >= window_start,
        )
        .subquery("vehicle_stats")
    )
    meter_stats = (
        select(
            func.coalesce(func.sum(MeterSample.kwh_consumed_ac), 0.0).label("total_ac"),
        )
        .where(
            MeterSample.vehicle_id == vehicle_id,
            MeterSample.timestamp >= window_start,
        )
        .subquery("meter_stats")
    )
    stmt = select(
        vehicle_stats.c.total_dc,
        vehicle_stats.c.avg_temp,
        vehicle_stats.c.sample_count,
        meter_stats.c.total_ac,
    ).select_from(vehicle_stats.join(meter_stats, true()))

    try:
        result = await db.execute(stmt)
        row = result.mappings().one()
    except (SQLAlchemyError, OSError) as exc:
        logger.exception("Performance query failed for vehicle %s", vehicle_id)
        raise AggregationUnavailable(
            f"Could not aggregate telemetry for vehicle {vehicle_id!r}"
        ) from exc

    total_dc = float(row["total_dc"] or 0)
    total_ac = float(row["total_ac"] or 0)
    avg_temp = float(row["avg_temp"] or 0)
    sample_count = int(row["sample_count"] or 0)

    metrics = PerformanceMetrics(
        vehicle_id=vehicle_id,
        total_ac_kwh=round_half_up(total_ac, ENERGY_DECIMALS),
        total_dc_kwh=round_half_up(total_dc, ENERGY_DECIMALS),
        efficiency_ratio=round_half_up(
            efficiency_ratio(total_dc, total_ac), RATIO_DECIMALS
        ),
        avg_battery_temp=round_half_up(avg_temp, ENERGY_DECIMALS),
        total_samples=sample_count,
    )
    logger.debug(
        "Performance for %s since %s: %s",
        vehicle_id,
        window_start.isoformat(),
        metrics.model_dump(),
    )
    return metrics
