"""create timetable slots, settings and generation runs

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "timetable_slots",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("term_id", sa.String(length=36), sa.ForeignKey("terms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("lesson_period_id", sa.String(length=36), sa.ForeignKey("lesson_periods.id"), nullable=False),
        sa.Column("room_id", sa.String(length=36), sa.ForeignKey("rooms.id"), nullable=False),
        sa.Column("trainer_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id"), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
        sa.Column("is_online_session", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("term_id", "day_of_week", "lesson_period_id", "room_id", name="uq_timetable_slots_room"),
        sa.UniqueConstraint(
            "term_id", "day_of_week", "lesson_period_id", "trainer_id", name="uq_timetable_slots_trainer"
        ),
        sa.UniqueConstraint("term_id", "day_of_week", "lesson_period_id", "class_id", name="uq_timetable_slots_class"),
    )
    op.create_index("ix_timetable_slots_term_id", "timetable_slots", ["term_id"])
    op.create_index("ix_timetable_slots_trainer_id", "timetable_slots", ["trainer_id"])
    op.create_index("ix_timetable_slots_class_id", "timetable_slots", ["class_id"])

    op.create_table(
        "timetable_settings",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("generation_deadline_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("timetable_generation_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("default_sessions_per_week", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("default_min_classes_per_day", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "enforce_room_department_affinity", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "timetable_generation_runs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("term_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("sessions_per_week", sa.Integer(), nullable=False),
        sa.Column("min_classes_per_day", sa.Integer(), nullable=False),
        sa.Column("regenerated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("slots_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("slots_deleted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("shortfall_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_timetable_generation_runs_term_id", "timetable_generation_runs", ["term_id"])


def downgrade() -> None:
    op.drop_index("ix_timetable_generation_runs_term_id", table_name="timetable_generation_runs")
    op.drop_table("timetable_generation_runs")
    op.drop_table("timetable_settings")
    op.drop_index("ix_timetable_slots_class_id", table_name="timetable_slots")
    op.drop_index("ix_timetable_slots_trainer_id", table_name="timetable_slots")
    op.drop_index("ix_timetable_slots_term_id", table_name="timetable_slots")
    op.drop_table("timetable_slots")
