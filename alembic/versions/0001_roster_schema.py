"""roster schema: staff, stations, shifts, calendar events, cycles

Revision ID: 0001_roster_schema
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_roster_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "staff",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("staff_id", sa.String(length=120), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("group_id", sa.String(length=1), nullable=False),
        sa.Column("certified", sa.JSON(), nullable=False),
        sa.Column("learning", sa.JSON(), nullable=False),
        sa.Column("excluded", sa.JSON(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("group_id IN ('A', 'B', 'C')", name="ck_staff_group"),
    )
    op.create_index("ix_staff_staff_id", "staff", ["staff_id"], unique=True)

    op.create_table(
        "stations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("requirements", sa.JSON(), nullable=False),
        sa.Column("is_pool", sa.Boolean(), nullable=False),
        sa.Column("blocked_roles", sa.JSON(), nullable=False),
    )

    op.create_table(
        "shifts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("staff_id", sa.String(length=120), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("station", sa.String(length=120), nullable=False),
        sa.Column("station_auto_generated", sa.Boolean(), nullable=False),
        sa.Column("special_roles", sa.JSON(), nullable=False),
        sa.Column("role_auto_generated", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("staff_id", "date", name="uq_shifts_staff_date"),
    )
    op.create_index("ix_shifts_staff_id", "shifts", ["staff_id"], unique=False)
    op.create_index("ix_shifts_date", "shifts", ["date"], unique=False)

    op.create_table(
        "calendar_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.CheckConstraint(
            "type IN ('NATIONAL_HOLIDAY', 'DEPARTMENT_CLOSED', 'MEETING')",
            name="ck_calendar_events_type",
        ),
    )
    op.create_index("ix_calendar_events_date", "calendar_events", ["date"], unique=True)

    op.create_table(
        "scheduling_cycles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("confirmed", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("start_date <= end_date", name="ck_scheduling_cycles_date_range"),
    )
    op.create_index("ix_scheduling_cycles_start_date", "scheduling_cycles", ["start_date"], unique=False)
    op.create_index("ix_scheduling_cycles_end_date", "scheduling_cycles", ["end_date"], unique=False)

    op.create_table(
        "roster_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cycle_start_date", sa.Date(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("roster_settings")
    op.drop_index("ix_scheduling_cycles_end_date", table_name="scheduling_cycles")
    op.drop_index("ix_scheduling_cycles_start_date", table_name="scheduling_cycles")
    op.drop_table("scheduling_cycles")
    op.drop_index("ix_calendar_events_date", table_name="calendar_events")
    op.drop_table("calendar_events")
    op.drop_index("ix_shifts_date", table_name="shifts")
    op.drop_index("ix_shifts_staff_id", table_name="shifts")
    op.drop_table("shifts")
    op.drop_table("stations")
    op.drop_index("ix_staff_staff_id", table_name="staff")
    op.drop_table("staff")
