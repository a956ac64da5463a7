"""Initial schema: sleep_records

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Ensure pgcrypto is available for gen_random_uuid()
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "sleep_records",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("sleep_duration_hours", sa.Float, nullable=True),
        sa.Column("deep_sleep_hours", sa.Float, nullable=True),
        sa.Column("rem_sleep_hours", sa.Float, nullable=True),
        sa.Column("light_sleep_hours", sa.Float, nullable=True),
        sa.Column("resting_heart_rate_bpm", sa.Integer, nullable=True),
        sa.Column("temperature_deviation_c", sa.Float, nullable=True),
        sa.Column("bedtime_start", sa.Text, nullable=True),
        sa.Column("bedtime_end", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        # Constraints
        sa.UniqueConstraint("user_id", "date", name="uq_sleep_records_user_date"),
        sa.CheckConstraint(
            "sleep_duration_hours >= 0 AND sleep_duration_hours <= 24",
            name="chk_sleep_duration_hours",
        ),
        sa.CheckConstraint("deep_sleep_hours >= 0", name="chk_deep_sleep_hours"),
        sa.CheckConstraint("rem_sleep_hours >= 0", name="chk_rem_sleep_hours"),
        sa.CheckConstraint("light_sleep_hours >= 0", name="chk_light_sleep_hours"),
        sa.CheckConstraint(
            "resting_heart_rate_bpm >= 30 AND resting_heart_rate_bpm <= 200",
            name="chk_resting_heart_rate_bpm",
        ),
        sa.CheckConstraint(
            "temperature_deviation_c >= -3 AND temperature_deviation_c <= 3",
            name="chk_temperature_deviation_c",
        ),
    )
    op.create_index(
        "idx_sleep_records_user_date", "sleep_records", ["user_id", sa.text("date DESC")]
    )


def downgrade() -> None:
    op.drop_index("idx_sleep_records_user_date", table_name="sleep_records")
    op.drop_table("sleep_records")
