"""
Ingestion coordinator: dual write of telemetry into cold and hot storage.

Every sample is written twice inside one transaction:

1. appended to its history table (meter_samples / vehicle_samples);
2. upserted into its device's latest-state row (meter_status /
   vehicle_status), keyed on the device id.

Both writes commit together or not at all. Meter samples additionally carry
the vehicle mapped to the meter at ingestion time. The status cache for the
device is invalidated only after the transaction has committed.

Hot rows are last-write-wins: a sample that arrives late (older event time)
still overwrites the status row, because the row tracks the most recently
ingested sample rather than the most recent event.

CHANGELOG:
- 2026-10-19: Emulated upsert for dialects without ON CONFLICT (STORY-009)
- 2026-10-19: Replace batch ON CONFLICT DO NOTHING with dual write (STORY-008)

TODO:
- None
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

from sqlalchemy import insert, update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from evtelemetry.cache.redis_client import invalidate_status_cache
from evtelemetry.db.models import (
    Base,
    MeterSample,
    MeterStatus,
    VehicleSample,
    VehicleStatus,
)
from evtelemetry.db.session import atomic
from evtelemetry.exceptions import MalformedPayload, StorageUnavailable
from evtelemetry.schemas.telemetry import MeterPayload, VehiclePayload
from evtelemetry.services.identity import resolve_vehicle_id

logger = logging.getLogger(__name__)

# Dialects whose insert() construct supports ON CONFLICT DO UPDATE.
_ON_CONFLICT_INSERTS: dict[str, Callable[..., Any]] = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass(frozen=True)
class IngestReceipt:
    """Outcome of one committed ingestion.

    Attributes:
        kind: Device class of the sample ("meter" or "vehicle").
        device_id: The meter_id or vehicle_id the sample belongs to.
        sample_id: Primary key of the appended history row.
        vehicle_id: For meter samples, the resolved vehicle (None when the
            meter is unmapped). For vehicle samples, equal to device_id.
    """

    kind: Literal["meter", "vehicle"]
    device_id: str
    sample_id: uuid.UUID
    vehicle_id: str | None


async def ingest(
    db: AsyncSession,
    payload: MeterPayload | VehiclePayload,
) -> IngestReceipt:
    """Persist one telemetry sample to cold and hot storage atomically.

    Args:
        db: Async SQLAlchemy session. Must not have a transaction in progress
            that the caller expects to keep open; this call commits.
        payload: A decoded meter or vehicle payload.

    Returns:
        IngestReceipt: Identifiers of what was written.

    Raises:
        MalformedPayload: If payload is not a meter or vehicle variant.
        StorageUnavailable: If any statement or the commit failed. Nothing
            was persisted for this sample.
    """
    if isinstance(payload, MeterPayload):
        write = _ingest_meter
    elif isinstance(payload, VehiclePayload):
        write = _ingest_vehicle
    else:
        raise MalformedPayload(
            f"Unsupported payload type {type(payload).__name__}; "
            "expected a meter or vehicle sample"
        )

    try:
        async with atomic(db):
            receipt = await write(db, payload)
    except (SQLAlchemyError, OSError) as exc:
        logger.exception("Ingestion transaction rolled back for %s", _describe(payload))
        raise StorageUnavailable(
            f"Could not persist {_describe(payload)}: {exc.__class__.__name__}"
        ) from exc

    logger.info(
        "Ingested %s sample for %s (vehicle %s)",
        receipt.kind,
        receipt.device_id,
        receipt.vehicle_id,
    )
    await invalidate_status_cache(receipt.kind, receipt.device_id)
    return receipt


def _describe(payload: MeterPayload | VehiclePayload) -> str:
    if isinstance(payload, MeterPayload):
        return f"meter sample {payload.meter_id}"
    return f"vehicle sample {payload.vehicle_id}"


async def _ingest_meter(db: AsyncSession, data: MeterPayload) -> IngestReceipt:
    vehicle_id = await resolve_vehicle_id(db, data.meter_id)
    if vehicle_id is None:
        logger.warning("No vehicle mapping found for meter %s", data.meter_id)

    # Cold: append-only history.
    sample_id = uuid.uuid4()
    await db.execute(
        insert(MeterSample).values(
            id=sample_id,
            meter_id=data.meter_id,
            kwh_consumed_ac=data.kwh_consumed_ac,
            voltage=data.voltage,
            vehicle_id=vehicle_id,
            timestamp=data.timestamp,
        )
    )

    # Hot: latest state.
    await upsert_status(
        db,
        MeterStatus,
        "meter_id",
        {
            "meter_id": data.meter_id,
            "last_kwh_consumed_ac": data.kwh_consumed_ac,
            "last_voltage": data.voltage,
            "last_seen_at": data.timestamp,
            "updated_at": datetime.now(UTC),
        },
    )
    return IngestReceipt("meter", data.meter_id, sample_id, vehicle_id)


async def _ingest_vehicle(db: AsyncSession, data: VehiclePayload) -> IngestReceipt:
    sample_id = uuid.uuid4()
    await db.execute(
        insert(VehicleSample).values(
            id=sample_id,
            vehicle_id=data.vehicle_id,
            soc=data.soc,
            kwh_delivered_dc=data.kwh_delivered_dc,
            battery_temp=data.battery_temp,
            timestamp=data.timestamp,
        )
    )

    await upsert_status(
        db,
        VehicleStatus,
        "vehicle_id",
        {
            "vehicle_id": data.vehicle_id,
            "last_soc": data.soc,
            "last_kwh_delivered_dc": data.kwh_delivered_dc,
            "last_battery_temp": data.battery_temp,
            "last_seen_at": data.timestamp,
            "updated_at": datetime.now(UTC),
        },
    )
    return IngestReceipt("vehicle", data.vehicle_id, sample_id, data.vehicle_id)


async def upsert_status(
    db: AsyncSession,
    model: type[Base],
    key: str,
    values: dict[str, Any],
) -> None:
    """Insert a status row, or overwrite every non-key column if it exists.

    Uses the dialect's atomic conflict clause where one exists
    (ON CONFLICT DO UPDATE, ON DUPLICATE KEY UPDATE). Other dialects fall
    back to :func:`emulated_upsert`.

    Args:
        db: Async SQLAlchemy session, inside the caller's transaction.
        model: MeterStatus or VehicleStatus.
        key: Name of the primary key column.
        values: Full row, including the key.
    """
    dialect = db.get_bind().dialect.name
    changed = [column for column in values if column != key]

    if dialect in _ON_CONFLICT_INSERTS:
        stmt = _ON_CONFLICT_INSERTS[dialect](model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[key],
            set_={column: stmt.excluded[column] for column in changed},
        )
    elif dialect in ("mysql", "mariadb"):
        stmt = mysql_insert(model).values(**values)
        stmt = stmt.on_duplicate_key_update(
            {column: stmt.inserted[column] for column in changed}
        )
    else:
        await emulated_upsert(db, model, key, values)
        return

    await db.execute(stmt)


async def emulated_upsert(
    db: AsyncSession,
    model: type[Base],
    key: str,
    values: dict[str, Any],
) -> None:
    """Upsert without a native conflict clause.

    UPDATE by key; if no row matched, INSERT inside a savepoint. If that
    INSERT hits the key's uniqueness constraint a concurrent transaction
    created the row first, so the UPDATE is retried once.

    Raises:
        StorageUnavailable: If the row neither updates nor inserts.
    """
    key_column = getattr(model, key)
    update_stmt = (
        update(model)
        .where(key_column == values[key])
        .values({column: value for column, value in values.items() if column != key})
    )

    result = await db.execute(update_stmt)
    if result.rowcount:
        return

    try:
        async with db.begin_nested():
            await db.execute(insert(model).values(**values))
        return
    except IntegrityError:
        logger.info(
            "Concurrent insert of %s %s, retrying update",
            model.__tablename__,
            values[key],
        )

    result = await db.execute(update_stmt)
    if not result.rowcount:
        raise StorageUnavailable(
            f"Upsert of {model.__tablename__} row {values[key]!r} "
            "neither updated nor inserted"
        )
