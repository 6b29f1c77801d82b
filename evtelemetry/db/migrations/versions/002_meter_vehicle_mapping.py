"""
Meter-to-vehicle mapping table with the reference seed rows.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

CHANGELOG:
- 2026-10-19: Initial creation (STORY-005)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

SEED_MAPPINGS = [
    {"meter_id": "m-123", "vehicle_id": "v-tesla-01"},
    {"meter_id": "meter-02", "vehicle_id": "vehicle-02"},
]


def upgrade() -> None:
    """Create meter_vehicle_mappings and insert the seed mappings."""
    mappings = op.create_table(
        "meter_vehicle_mappings",
        sa.Column("meter_id", sa.Text(), nullable=False),
        sa.Column("vehicle_id", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("meter_id"),
    )
    op.bulk_insert(mappings, SEED_MAPPINGS)


def downgrade() -> None:
    """Drop meter_vehicle_mappings."""
    op.drop_table("meter_vehicle_mappings")
