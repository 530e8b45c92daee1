"""create lessons and substitutions

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


lesson_status_enum = sa.Enum("scheduled", "cancelled", name="lesson_status")

ACTIVE_LESSON_PREDICATE = "status <> 'cancelled'"

ACTIVE_LESSON_INDEXES = (
    ("uq_lessons_active_teacher_slot", "teacher_id"),
    ("uq_lessons_active_class_slot", "class_section_id"),
    ("uq_lessons_active_room_slot", "room_id"),
)


def upgrade() -> None:
    op.create_table(
        "lessons",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("academic_year_id", sa.String(length=36), nullable=False),
        sa.Column("term_id", sa.String(length=36), nullable=False),
        sa.Column("class_section_id", sa.String(length=36), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("room_id", sa.String(length=36), nullable=False),
        sa.Column("time_slot_id", sa.String(length=36), nullable=False),
        sa.Column("status", lesson_status_enum, nullable=False, server_default="scheduled"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_lessons_school_term", "lessons", ["school_id", "term_id"])
    op.create_index("ix_lessons_class_section_id", "lessons", ["class_section_id"])
    op.create_index("ix_lessons_teacher_id", "lessons", ["teacher_id"])
    op.create_index("ix_lessons_room_id", "lessons", ["room_id"])
    for index_name, resource_column in ACTIVE_LESSON_INDEXES:
        op.create_index(
            index_name,
            "lessons",
            ["school_id", "term_id", resource_column, "time_slot_id"],
            unique=True,
            postgresql_where=sa.text(ACTIVE_LESSON_PREDICATE),
            sqlite_where=sa.text(ACTIVE_LESSON_PREDICATE),
        )

    op.create_table(
        "substitutions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("lesson_id", sa.String(length=36), nullable=False),
        sa.Column("original_teacher_id", sa.String(length=36), nullable=False),
        sa.Column("substitute_teacher_id", sa.String(length=36), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_substitutions_school_id", "substitutions", ["school_id"])
    op.create_index("ix_substitutions_lesson_id", "substitutions", ["lesson_id"])
    op.create_index("ix_substitutions_substitute_teacher_id", "substitutions", ["substitute_teacher_id"])
    op.create_index("ix_substitutions_date", "substitutions", ["date"])


def downgrade() -> None:
    op.drop_table("substitutions")
    for index_name, _ in ACTIVE_LESSON_INDEXES:
        op.drop_index(index_name, table_name="lessons")
    op.drop_table("lessons")
    lesson_status_enum.drop(op.get_bind(), checkfirst=True)
