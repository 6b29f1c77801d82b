"""
Meter-to-vehicle identity resolution.

Looks up the vehicle a meter currently charges. A meter without a mapping
is an expected condition (mappings are administered elsewhere and may lag
behind new hardware), so the lookup returns None rather than raising.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-005)

TODO:
- None
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from evtelemetry.db.models import MeterVehicleMapping


async def resolve_vehicle_id(db: AsyncSession, meter_id: str) -> str | None:
    """Return the vehicle mapped to a meter, or None when unmapped.

    Runs inside the caller's transaction so the association is read at the
    same point in time as the sample is written.

    Args:
        db: Async SQLAlchemy session.
        meter_id: Identifier of the meter.

    Returns:
        str | None: The mapped vehicle_id, or None if the meter has no mapping.
    """
    stmt = select(MeterVehicleMapping.vehicle_id).where(
        MeterVehicleMapping.meter_id == meter_id
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()
