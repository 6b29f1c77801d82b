"""
Wire schemas for telemetry payloads and analytics results.

Incoming payloads are a discriminated union on ``type``: a meter sample or a
vehicle sample. Field names are camelCase on the wire and snake_case in
Python. Every timestamp is normalised to UTC on the way in.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-007)

TODO:
- None
"""

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from evtelemetry.exceptions import MalformedPayload

_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    allow_inf_nan=False,
    frozen=True,
)


class _SamplePayload(BaseModel):
    model_config = _WIRE_CONFIG

    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def timestamp_to_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC and convert aware ones to UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)


class MeterPayload(_SamplePayload):
    """Sample reported by a charging meter."""

    type: Literal["meter"]
    meter_id: str = Field(min_length=1)
    kwh_consumed_ac: float = Field(ge=0)
    voltage: float


class VehiclePayload(_SamplePayload):
    """Sample reported by a vehicle."""

    type: Literal["vehicle"]
    vehicle_id: str = Field(min_length=1)
    soc: float = Field(ge=0, le=100)
    kwh_delivered_dc: float
    battery_temp: float


TelemetryPayload = Annotated[
    MeterPayload | VehiclePayload,
    Field(discriminator="type"),
]

_payload_adapter: TypeAdapter[MeterPayload | VehiclePayload] = TypeAdapter(
    TelemetryPayload
)


def parse_payload(raw: dict[str, Any] | str | bytes) -> MeterPayload | VehiclePayload:
    """Decode a raw payload into its tagged variant.

    Args:
        raw: A parsed JSON object, or the JSON document itself.

    Returns:
        MeterPayload | VehiclePayload: The validated variant.

    Raises:
        MalformedPayload: If the tag is missing or unknown, a required field
            is missing, or a value is invalid.
    """
    try:
        if isinstance(raw, (str, bytes)):
            return _payload_adapter.validate_json(raw)
        return _payload_adapter.validate_python(raw)
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False, include_input=False)
        raise MalformedPayload(
            f"Invalid telemetry payload ({exc.error_count()} error(s))",
            errors=errors,
        ) from exc


class PerformanceMetrics(BaseModel):
    """Charging efficiency of a vehicle over a trailing window.

    Attributes:
        vehicle_id: The vehicle the metrics describe.
        total_ac_kwh: AC energy consumed by meters mapped to the vehicle.
        total_dc_kwh: DC energy delivered to the vehicle battery.
        efficiency_ratio: total_dc_kwh / total_ac_kwh, or 0 without AC energy.
        avg_battery_temp: Mean battery temperature over the vehicle samples.
        total_samples: Number of vehicle samples in the window.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    vehicle_id: str
    total_ac_kwh: float
    total_dc_kwh: float
    efficiency_ratio: float
    avg_battery_temp: float
    total_samples: int


class MeterStatusOut(BaseModel):
    """Latest state of a meter."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    meter_id: str
    last_kwh_consumed_ac: float
    last_voltage: float
    last_seen_at: datetime
    updated_at: datetime


class VehicleStatusOut(BaseModel):
    """Latest state of a vehicle."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    vehicle_id: str
    last_soc: float
    last_kwh_delivered_dc: float
    last_battery_temp: float
    last_seen_at: datetime
    updated_at: datetime
