"""
Initial schema: cold history tables and hot status tables.

Creates meter_samples and vehicle_samples (append-only, UUID keys, indexed
on device + timestamp for trailing-window scans) and meter_status /
vehicle_status (one row per device, keyed on the device id so the ingestion
upsert can target the primary key).

Revision ID: 001
Revises: None
Create Date: 2026-10-19

CHANGELOG:
- 2026-10-19: Replace sungrow_samples hypertable with telemetry tables (STORY-004)

TODO:
- None
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the four telemetry tables and their indexes."""
    # Cold storage.
    op.create_table(
        "meter_samples",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("meter_id", sa.Text(), nullable=False),
        sa.Column("kwh_consumed_ac", sa.Double(), nullable=False),
        sa.Column("voltage", sa.Double(), nullable=False),
        sa.Column("vehicle_id", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_meter_samples_meter_id_timestamp", "meter_samples", ["meter_id", "timestamp"]
    )
    op.create_index(
        "ix_meter_samples_vehicle_id_timestamp",
        "meter_samples",
        ["vehicle_id", "timestamp"],
    )
    op.create_index("ix_meter_samples_timestamp", "meter_samples", ["timestamp"])

    op.create_table(
        "vehicle_samples",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("vehicle_id", sa.Text(), nullable=False),
        sa.Column("soc", sa.Double(), nullable=False),
        sa.Column("kwh_delivered_dc", sa.Double(), nullable=False),
        sa.Column("battery_temp", sa.Double(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_vehicle_samples_vehicle_id_timestamp",
        "vehicle_samples",
        ["vehicle_id", "timestamp"],
    )
    op.create_index("ix_vehicle_samples_timestamp", "vehicle_samples", ["timestamp"])

    # Hot storage.
    op.create_table(
        "meter_status",
        sa.Column("meter_id", sa.Text(), nullable=False),
        sa.Column("last_kwh_consumed_ac", sa.Double(), nullable=False),
        sa.Column("last_voltage", sa.Double(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("meter_id"),
    )
    op.create_table(
        "vehicle_status",
        sa.Column("vehicle_id", sa.Text(), nullable=False),
        sa.Column("last_soc", sa.Double(), nullable=False),
        sa.Column("last_kwh_delivered_dc", sa.Double(), nullable=False),
        sa.Column("last_battery_temp", sa.Double(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("vehicle_id"),
    )


def downgrade() -> None:
    """Drop the telemetry tables (indexes go with them)."""
    op.drop_table("vehicle_status")
    op.drop_table("meter_status")
    op.drop_table("vehicle_samples")
    op.drop_table("meter_samples")
