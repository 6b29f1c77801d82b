"""
SQLAlchemy ORM models for the telemetry database.

Two storage shapes per device class:

- cold tables (meter_samples, vehicle_samples): append-only history, one
  immutable row per ingested sample, indexed on (device, timestamp) for
  trailing-window scans.
- hot tables (meter_status, vehicle_status): exactly one row per device,
  overwritten by an atomic upsert on every ingestion.

meter_vehicle_mappings is reference data maintained outside this service.

CHANGELOG:
- 2026-10-19: Add MeterVehicleMapping (STORY-005)
- 2026-10-19: Replace SungrowSample with cold/hot telemetry models (STORY-004)

TODO:
- None
"""

import datetime
import uuid

from sqlalchemy import DateTime, Double, Index, Text, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all telemetry ORM models."""

    pass


# ---------------------------------------------------------------------------
# Cold storage (append-only history)
# ---------------------------------------------------------------------------


class MeterSample(Base):
    """AC energy sample reported by a charging meter.

    Attributes:
        id: System-generated unique key.
        meter_id: Identifier of the reporting meter.
        kwh_consumed_ac: AC energy consumed in kWh (non-negative).
        voltage: Supply voltage in volts.
        vehicle_id: Vehicle mapped to the meter at ingestion time, or None
            when the meter had no mapping. Never revised afterwards.
        timestamp: Event time reported by the meter (UTC).
        recorded_at: Ingestion time assigned by the database.
    """

    __tablename__ = "meter_samples"
    __table_args__ = (
        Index("ix_meter_samples_meter_id_timestamp", "meter_id", "timestamp"),
        Index("ix_meter_samples_vehicle_id_timestamp", "vehicle_id", "timestamp"),
        Index("ix_meter_samples_timestamp", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    meter_id: Mapped[str] = mapped_column(Text, nullable=False)
    kwh_consumed_ac: Mapped[float] = mapped_column(Double, nullable=False)
    voltage: Mapped[float] = mapped_column(Double, nullable=False)
    vehicle_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    recorded_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        """Return string representation of the MeterSample."""
        return (
            f"MeterSample(meter_id={self.meter_id!r}, "
            f"timestamp={self.timestamp!r}, vehicle_id={self.vehicle_id!r})"
        )


class VehicleSample(Base):
    """DC charging sample reported by a vehicle.

    Attributes:
        id: System-generated unique key.
        vehicle_id: Identifier of the reporting vehicle.
        soc: Battery state of charge in percent (0-100).
        kwh_delivered_dc: DC energy delivered to the battery in kWh.
        battery_temp: Battery temperature in Celsius.
        timestamp: Event time reported by the vehicle (UTC).
        recorded_at: Ingestion time assigned by the database.
    """

    __tablename__ = "vehicle_samples"
    __table_args__ = (
        Index("ix_vehicle_samples_vehicle_id_timestamp", "vehicle_id", "timestamp"),
        Index("ix_vehicle_samples_timestamp", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    vehicle_id: Mapped[str] = mapped_column(Text, nullable=False)
    soc: Mapped[float] = mapped_column(Double, nullable=False)
    kwh_delivered_dc: Mapped[float] = mapped_column(Double, nullable=False)
    battery_temp: Mapped[float] = mapped_column(Double, nullable=False)
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    recorded_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        """Return string representation of the VehicleSample."""
        return (
            f"VehicleSample(vehicle_id={self.vehicle_id!r}, "
            f"timestamp={self.timestamp!r}, soc={self.soc!r})"
        )


# ---------------------------------------------------------------------------
# Hot storage (latest state, one row per device)
# ---------------------------------------------------------------------------


class MeterStatus(Base):
    """Latest ingested state of a meter."""

    __tablename__ = "meter_status"

    meter_id: Mapped[str] = mapped_column(Text, primary_key=True)
    last_kwh_consumed_ac: Mapped[float] = mapped_column(Double, nullable=False)
    last_voltage: Mapped[float] = mapped_column(Double, nullable=False)
    last_seen_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"MeterStatus(meter_id={self.meter_id!r}, "
            f"last_seen_at={self.last_seen_at!r})"
        )


class VehicleStatus(Base):
    """Latest ingested state of a vehicle."""

    __tablename__ = "vehicle_status"

    vehicle_id: Mapped[str] = mapped_column(Text, primary_key=True)
    last_soc: Mapped[float] = mapped_column(Double, nullable=False)
    last_kwh_delivered_dc: Mapped[float] = mapped_column(Double, nullable=False)
    last_battery_temp: Mapped[float] = mapped_column(Double, nullable=False)
    last_seen_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"VehicleStatus(vehicle_id={self.vehicle_id!r}, "
            f"last_seen_at={self.last_seen_at!r})"
        )


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


class MeterVehicleMapping(Base):
    """Association between a meter and the vehicle it charges.

    Populated by an administrative process; the service only reads it.
    """

    __tablename__ = "meter_vehicle_mappings"

    meter_id: Mapped[str] = mapped_column(Text, primary_key=True)
    vehicle_id: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return (
            f"MeterVehicleMapping(meter_id={self.meter_id!r}, "
            f"vehicle_id={self.vehicle_id!r})"
        )
