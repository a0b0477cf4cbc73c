"""create timetable periods, entries and activity log

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 00:00:01.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "timetable_periods",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("label", sa.String(length=100), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("start_time", sa.String(length=5), nullable=True),
        sa.Column("end_time", sa.String(length=5), nullable=True),
        sa.Column("is_break", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_timetable_periods_school_id", "timetable_periods", ["school_id"])

    op.create_table(
        "timetable_entries",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("class_section_id", sa.String(length=36), nullable=False),
        sa.Column("day_of_week", sa.SmallInteger(), nullable=False),
        sa.Column("period_id", sa.String(length=36), nullable=False),
        sa.Column("subject_name", sa.String(length=200), nullable=False),
        sa.Column("teacher_user_id", sa.String(length=36), nullable=True),
        sa.Column("room", sa.String(length=100), nullable=True),
        sa.Column("start_time", sa.String(length=5), nullable=True),
        sa.Column("end_time", sa.String(length=5), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "school_id",
            "class_section_id",
            "day_of_week",
            "period_id",
            name="uq_timetable_entries_school_section_day_period",
        ),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_timetable_entries_day_of_week"),
    )
    op.create_index("ix_timetable_entries_school_id", "timetable_entries", ["school_id"])
    op.create_index("ix_timetable_entries_class_section_id", "timetable_entries", ["class_section_id"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_school_id", "activity_logs", ["school_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_school_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_timetable_entries_class_section_id", table_name="timetable_entries")
    op.drop_index("ix_timetable_entries_school_id", table_name="timetable_entries")
    op.drop_table("timetable_entries")
    op.drop_index("ix_timetable_periods_school_id", table_name="timetable_periods")
    op.drop_table("timetable_periods")
