"""
Tests for the analytics service (get_vehicle_performance).

Runs the aggregation query against an in-memory SQLite database.

Tests verify:
- Totals, average temperature, sample count and efficiency ratio.
- Empty windows yield zeros and never divide by zero.
- Window boundary: one second before the start is excluded, one second
  after is included.
- Only meter samples denormalized to the vehicle count toward AC energy.
- Presentation rounding (2 decimals for energy/temperature, 4 for the ratio),
  half-up on exact halves.
- Query failures surface as AggregationUnavailable.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-010)
"""

import math
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from evtelemetry.db.models import MeterSample, VehicleSample
from evtelemetry.exceptions import AggregationUnavailable
from evtelemetry.services.analytics import (
    DEFAULT_WINDOW,
    efficiency_ratio,
    get_vehicle_performance,
    round_half_up,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
WINDOW_START = NOW - DEFAULT_WINDOW


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _add_vehicle_samples(
    factory: async_sessionmaker[AsyncSession],
    vehicle_id: str,
    rows: list[tuple[float, float, datetime]],
) -> None:
    """Insert (kwh_delivered_dc, battery_temp, timestamp) rows."""
    async with factory() as session:
        session.add_all(
            VehicleSample(
                vehicle_id=vehicle_id,
                soc=50.0,
                kwh_delivered_dc=kwh,
                battery_temp=temp,
                timestamp=ts,
            )
            for kwh, temp, ts in rows
        )
        await session.commit()


async def _add_meter_samples(
    factory: async_sessionmaker[AsyncSession],
    vehicle_id: str | None,
    rows: list[tuple[float, datetime]],
    meter_id: str = "m-1",
) -> None:
    """Insert (kwh_consumed_ac, timestamp) rows attributed to vehicle_id."""
    async with factory() as session:
        session.add_all(
            MeterSample(
                meter_id=meter_id,
                kwh_consumed_ac=kwh,
                voltage=230.0,
                vehicle_id=vehicle_id,
                timestamp=ts,
            )
            for kwh, ts in rows
        )
        await session.commit()


def _ago(**kwargs: float) -> datetime:
    return NOW - timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class TestPerformanceAggregation:
    """Aggregates over the trailing window."""

    @pytest.mark.asyncio
    async def test_reference_example(self, session_factory, db_session) -> None:
        """DC [10, 5] and AC [20] give 15.00 / 20.00 / 0.7500 / 2."""
        await _add_vehicle_samples(
            session_factory,
            "v-1",
            [(10.0, 30.0, _ago(hours=2)), (5.0, 32.0, _ago(hours=1))],
        )
        await _add_meter_samples(session_factory, "v-1", [(20.0, _ago(hours=1))])

        metrics = await get_vehicle_performance(db_session, "v-1", now=NOW)

        assert metrics.vehicle_id == "v-1"
        assert metrics.total_dc_kwh == 15.00
        assert metrics.total_ac_kwh == 20.00
        assert metrics.efficiency_ratio == 0.7500
        assert metrics.avg_battery_temp == 31.00
        assert metrics.total_samples == 2

    @pytest.mark.asyncio
    async def test_no_data_returns_zeros(self, db_session) -> None:
        metrics = await get_vehicle_performance(db_session, "v-none", now=NOW)

        assert metrics.total_dc_kwh == 0
        assert metrics.total_ac_kwh == 0
        assert metrics.efficiency_ratio == 0
        assert metrics.avg_battery_temp == 0
        assert metrics.total_samples == 0

    @pytest.mark.asyncio
    async def test_no_meter_samples_gives_zero_ratio(
        self, session_factory, db_session
    ) -> None:
        """DC energy without AC energy must not divide by zero."""
        await _add_vehicle_samples(session_factory, "v-1", [(8.0, 25.0, _ago(hours=3))])

        metrics = await get_vehicle_performance(db_session, "v-1", now=NOW)

        assert metrics.total_dc_kwh == 8.0
        assert metrics.total_ac_kwh == 0
        assert metrics.efficiency_ratio == 0
        assert math.isfinite(metrics.efficiency_ratio)

    @pytest.mark.asyncio
    async def test_meter_samples_only_without_vehicle_samples(
        self, session_factory, db_session
    ) -> None:
        await _add_meter_samples(session_factory, "v-1", [(12.0, _ago(hours=1))])

        metrics = await get_vehicle_performance(db_session, "v-1", now=NOW)

        assert metrics.total_ac_kwh == 12.0
        assert metrics.total_dc_kwh == 0
        assert metrics.efficiency_ratio == 0
        assert metrics.total_samples == 0

    @pytest.mark.asyncio
    async def test_other_vehicles_and_unmapped_meters_excluded(
        self, session_factory, db_session
    ) -> None:
        await _add_vehicle_samples(session_factory, "v-1", [(10.0, 30.0, _ago(hours=1))])
        await _add_vehicle_samples(session_factory, "v-2", [(99.0, 50.0, _ago(hours=1))])
        await _add_meter_samples(session_factory, "v-1", [(20.0, _ago(hours=1))])
        await _add_meter_samples(session_factory, "v-2", [(77.0, _ago(hours=1))], meter_id="m-2")
        await _add_meter_samples(session_factory, None, [(55.0, _ago(hours=1))], meter_id="m-3")

        metrics = await get_vehicle_performance(db_session, "v-1", now=NOW)

        assert metrics.total_dc_kwh == 10.0
        assert metrics.total_ac_kwh == 20.0
        assert metrics.avg_battery_temp == 30.0
        assert metrics.total_samples == 1
        assert metrics.efficiency_ratio == 0.5


# ---------------------------------------------------------------------------
# Window boundaries
# ---------------------------------------------------------------------------


class TestWindowBoundaries:
    """Only samples at or after the window start contribute."""

    @pytest.mark.asyncio
    async def test_one_second_either_side_of_window_start(
        self, session_factory, db_session
    ) -> None:
        await _add_vehicle_samples(
            session_factory,
            "v-1",
            [
                (100.0, 90.0, WINDOW_START - timedelta(seconds=1)),
                (4.0, 20.0, WINDOW_START + timedelta(seconds=1)),
            ],
        )
        await _add_meter_samples(
            session_factory,
            "v-1",
            [
                (500.0, WINDOW_START - timedelta(seconds=1)),
                (8.0, WINDOW_START + timedelta(seconds=1)),
            ],
        )

        metrics = await get_vehicle_performance(db_session, "v-1", now=NOW)

        assert metrics.total_samples == 1
        assert metrics.total_dc_kwh == 4.0
        assert metrics.avg_battery_temp == 20.0
        assert metrics.total_ac_kwh == 8.0
        assert metrics.efficiency_ratio == 0.5

    @pytest.mark.asyncio
    async def test_custom_window(self, session_factory, db_session) -> None:
        await _add_vehicle_samples(
            session_factory,
            "v-1",
            [(1.0, 20.0, _ago(minutes=30)), (2.0, 20.0, _ago(hours=2))],
        )

        metrics = await get_vehicle_performance(
            db_session, "v-1", timedelta(hours=1), now=NOW
        )

        assert metrics.total_samples == 1
        assert metrics.total_dc_kwh == 1.0

    @pytest.mark.asyncio
    async def test_samples_after_now_are_counted(self, session_factory, db_session) -> None:
        """The window has a start but no end."""
        await _add_vehicle_samples(
            session_factory, "v-1", [(2.0, 20.0, NOW + timedelta(hours=1))]
        )

        metrics = await get_vehicle_performance(db_session, "v-1", now=NOW)

        assert metrics.total_samples == 1
        assert metrics.total_dc_kwh == 2.0

    @pytest.mark.asyncio
    async def test_defaults_to_current_time(self, session_factory, db_session) -> None:
        recent = datetime.now(UTC) - timedelta(minutes=5)
        await _add_vehicle_samples(session_factory, "v-1", [(3.0, 21.0, recent)])

        metrics = await get_vehicle_performance(db_session, "v-1")

        assert metrics.total_samples == 1


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------


class TestPresentationRounding:
    """Energy/temperature to 2 decimals, ratio to 4 decimals."""

    @pytest.mark.asyncio
    async def test_values_are_rounded(self, session_factory, db_session) -> None:
        await _add_vehicle_samples(
            session_factory,
            "v-1",
            [
                (10.0, 20.0, _ago(hours=3)),
                (0.004, 21.0, _ago(hours=2)),
                (0.0, 21.0, _ago(hours=1)),
            ],
        )
        await _add_meter_samples(session_factory, "v-1", [(3.0, _ago(hours=1))])

        metrics = await get_vehicle_performance(db_session, "v-1", now=NOW)

        assert metrics.total_dc_kwh == 10.0
        assert metrics.avg_battery_temp == 20.67
        assert metrics.efficiency_ratio == 3.3347
        assert metrics.total_ac_kwh == 3.0

    @pytest.mark.asyncio
    async def test_exact_halves_round_up(self, session_factory, db_session) -> None:
        """10.125 reports as 10.13, not the banker's 10.12."""
        await _add_vehicle_samples(session_factory, "v-1", [(10.125, 20.625, _ago(hours=1))])
        await _add_meter_samples(session_factory, "v-1", [(0.125, _ago(hours=1))])

        metrics = await get_vehicle_performance(db_session, "v-1", now=NOW)

        assert (metrics.total_dc_kwh, metrics.total_ac_kwh, metrics.avg_battery_temp) == (
            10.13,
            0.13,
            20.63,
        )
        assert metrics.efficiency_ratio == 81.0


class TestRoundHalfUp:
    """Rounding of the stored binary value."""

    @pytest.mark.parametrize(
        ("value", "decimals", "expected"),
        [
            (10.125, 2, 10.13),
            (0.125, 2, 0.13),
            (2.675, 2, 2.67),
            (3.33466, 4, 3.3347),
            (0.0, 2, 0.0),
        ],
    )
    def test_round_half_up(self, value: float, decimals: int, expected: float) -> None:
        assert round_half_up(value, decimals) == expected


class TestEfficiencyRatio:
    """The ratio guard on its own."""

    def test_ratio(self) -> None:
        assert efficiency_ratio(15.0, 20.0) == 0.75

    @pytest.mark.parametrize("total_ac", [0.0, -0.0])
    def test_zero_ac_gives_zero(self, total_ac: float) -> None:
        assert efficiency_ratio(15.0, total_ac) == 0.0


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestAggregationFailure:
    """Database errors surface as AggregationUnavailable."""

    @pytest.mark.asyncio
    async def test_query_error_raises_aggregation_unavailable(
        self, mock_db_session: AsyncMock
    ) -> None:
        mock_db_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection reset"))
        )

        with pytest.raises(AggregationUnavailable) as exc_info:
            await get_vehicle_performance(mock_db_session, "v-1", now=NOW)

        assert isinstance(exc_info.value.__cause__, OperationalError)
