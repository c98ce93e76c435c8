"""create school entities

Revision ID: 20261018_0001
Revises: None
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role_enum = sa.Enum("admin", "trainer", "staff", name="user_role")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("has_timetable_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "terms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("working_days", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "classes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_classes_code", "classes", ["code"], unique=True)

    op.create_table(
        "term_classes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("term_id", sa.String(length=36), sa.ForeignKey("terms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("term_id", "class_id", name="uq_term_classes_term_class"),
    )
    op.create_index("ix_term_classes_term_id", "term_classes", ["term_id"])
    op.create_index("ix_term_classes_class_id", "term_classes", ["class_id"])

    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("credit_hours", sa.Integer(), nullable=True),
    )
    op.create_index("ix_subjects_code", "subjects", ["code"], unique=True)

    op.create_table(
        "class_subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("term_id", sa.String(length=36), sa.ForeignKey("terms.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("class_id", "subject_id", "term_id", name="uq_class_subjects_identity"),
    )
    op.create_index("ix_class_subjects_class_id", "class_subjects", ["class_id"])
    op.create_index("ix_class_subjects_subject_id", "class_subjects", ["subject_id"])
    op.create_index("ix_class_subjects_term_id", "class_subjects", ["term_id"])

    op.create_table(
        "trainer_subject_assignments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "class_subject_id",
            sa.String(length=36),
            sa.ForeignKey("class_subjects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("term_id", sa.String(length=36), sa.ForeignKey("terms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("trainer_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_trainer_subject_assignments_class_subject_id", "trainer_subject_assignments", ["class_subject_id"]
    )
    op.create_index("ix_trainer_subject_assignments_term_id", "trainer_subject_assignments", ["term_id"])
    op.create_index("ix_trainer_subject_assignments_trainer_id", "trainer_subject_assignments", ["trainer_id"])

    op.create_table(
        "rooms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("room_type", sa.String(length=50), nullable=False, server_default="classroom"),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_rooms_name", "rooms", ["name"], unique=True)

    op.create_table(
        "lesson_periods",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )


def downgrade() -> None:
    op.drop_table("lesson_periods")
    op.drop_index("ix_rooms_name", table_name="rooms")
    op.drop_table("rooms")
    op.drop_table("trainer_subject_assignments")
    op.drop_table("class_subjects")
    op.drop_index("ix_subjects_code", table_name="subjects")
    op.drop_table("subjects")
    op.drop_table("term_classes")
    op.drop_index("ix_classes_code", table_name="classes")
    op.drop_table("classes")
    op.drop_table("terms")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    user_role_enum.drop(op.get_bind(), checkfirst=True)
