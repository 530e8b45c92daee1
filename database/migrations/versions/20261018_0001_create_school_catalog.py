"""create school catalog

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


teacher_status_enum = sa.Enum("active", "inactive", name="teacher_status")


def _id_column() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True, nullable=False)


def _school_column() -> sa.Column:
    return sa.Column("school_id", sa.String(length=36), nullable=False)


def _created_at_column() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "academic_years",
        _id_column(),
        _school_column(),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        _created_at_column(),
        sa.UniqueConstraint("school_id", "name", name="uq_academic_years_school_name"),
    )
    op.create_index("ix_academic_years_school_id", "academic_years", ["school_id"])

    op.create_table(
        "terms",
        _id_column(),
        _school_column(),
        sa.Column("academic_year_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        _created_at_column(),
        sa.UniqueConstraint("academic_year_id", "name", name="uq_terms_year_name"),
    )
    op.create_index("ix_terms_school_id", "terms", ["school_id"])
    op.create_index("ix_terms_academic_year_id", "terms", ["academic_year_id"])

    op.create_table(
        "class_sections",
        _id_column(),
        _school_column(),
        sa.Column("academic_year_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        _created_at_column(),
        sa.UniqueConstraint("school_id", "academic_year_id", "name", name="uq_class_sections_school_year_name"),
    )
    op.create_index("ix_class_sections_school_id", "class_sections", ["school_id"])
    op.create_index("ix_class_sections_academic_year_id", "class_sections", ["academic_year_id"])

    op.create_table(
        "subjects",
        _id_column(),
        _school_column(),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        _created_at_column(),
        sa.UniqueConstraint("school_id", "code", name="uq_subjects_school_code"),
    )
    op.create_index("ix_subjects_school_id", "subjects", ["school_id"])

    op.create_table(
        "teachers",
        _id_column(),
        _school_column(),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("status", teacher_status_enum, nullable=False, server_default="active"),
        _created_at_column(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_teachers_school_id", "teachers", ["school_id"])

    op.create_table(
        "teacher_subjects",
        _id_column(),
        _school_column(),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        _created_at_column(),
        sa.UniqueConstraint("teacher_id", "subject_id", name="uq_teacher_subjects_teacher_subject"),
    )
    op.create_index("ix_teacher_subjects_school_id", "teacher_subjects", ["school_id"])
    op.create_index("ix_teacher_subjects_teacher_id", "teacher_subjects", ["teacher_id"])
    op.create_index("ix_teacher_subjects_subject_id", "teacher_subjects", ["subject_id"])

    op.create_table(
        "teacher_availability",
        _id_column(),
        _school_column(),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("period_id", sa.String(length=36), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at_column(),
        sa.UniqueConstraint(
            "teacher_id",
            "day_of_week",
            "period_id",
            name="uq_teacher_availability_teacher_day_period",
        ),
    )
    op.create_index("ix_teacher_availability_school_id", "teacher_availability", ["school_id"])
    op.create_index("ix_teacher_availability_teacher_id", "teacher_availability", ["teacher_id"])

    op.create_table(
        "rooms",
        _id_column(),
        _school_column(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("building", sa.String(length=200), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="30"),
        _created_at_column(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("school_id", "name", name="uq_rooms_school_name"),
    )
    op.create_index("ix_rooms_school_id", "rooms", ["school_id"])

    op.create_table(
        "room_subject_suitability",
        _id_column(),
        _school_column(),
        sa.Column("room_id", sa.String(length=36), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        _created_at_column(),
        sa.UniqueConstraint("room_id", "subject_id", name="uq_room_subject_suitability_room_subject"),
    )
    op.create_index("ix_room_subject_suitability_school_id", "room_subject_suitability", ["school_id"])
    op.create_index("ix_room_subject_suitability_room_id", "room_subject_suitability", ["room_id"])

    op.create_table(
        "period_sets",
        _id_column(),
        _school_column(),
        sa.Column("academic_year_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        _created_at_column(),
        sa.UniqueConstraint("school_id", "academic_year_id", "name", name="uq_period_sets_school_year_name"),
    )
    op.create_index("ix_period_sets_school_id", "period_sets", ["school_id"])
    op.create_index("ix_period_sets_academic_year_id", "period_sets", ["academic_year_id"])

    op.create_table(
        "periods",
        _id_column(),
        _school_column(),
        sa.Column("period_set_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("is_break", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("period_set_id", "order_index", name="uq_periods_set_order"),
    )
    op.create_index("ix_periods_school_id", "periods", ["school_id"])
    op.create_index("ix_periods_period_set_id", "periods", ["period_set_id"])

    op.create_table(
        "working_days",
        _id_column(),
        _school_column(),
        sa.Column("period_set_id", sa.String(length=36), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.UniqueConstraint("period_set_id", "day_of_week", name="uq_working_days_set_day"),
    )
    op.create_index("ix_working_days_school_id", "working_days", ["school_id"])
    op.create_index("ix_working_days_period_set_id", "working_days", ["period_set_id"])

    op.create_table(
        "time_slots",
        _id_column(),
        _school_column(),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("period_id", sa.String(length=36), nullable=False),
        _created_at_column(),
        sa.UniqueConstraint("school_id", "day_of_week", "period_id", name="uq_time_slots_school_day_period"),
    )
    op.create_index("ix_time_slots_school_id", "time_slots", ["school_id"])
    op.create_index("ix_time_slots_period_id", "time_slots", ["period_id"])

    op.create_table(
        "class_subject_requirements",
        _id_column(),
        _school_column(),
        sa.Column("academic_year_id", sa.String(length=36), nullable=False),
        sa.Column("class_section_id", sa.String(length=36), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("weekly_lessons_required", sa.Integer(), nullable=False),
        _created_at_column(),
        sa.UniqueConstraint(
            "school_id",
            "academic_year_id",
            "class_section_id",
            "subject_id",
            name="uq_class_subject_requirements_identity",
        ),
    )
    op.create_index("ix_class_subject_requirements_school_id", "class_subject_requirements", ["school_id"])
    op.create_index(
        "ix_class_subject_requirements_academic_year_id",
        "class_subject_requirements",
        ["academic_year_id"],
    )


def downgrade() -> None:
    for table_name in (
        "class_subject_requirements",
        "time_slots",
        "working_days",
        "periods",
        "period_sets",
        "room_subject_suitability",
        "rooms",
        "teacher_availability",
        "teacher_subjects",
        "teachers",
        "subjects",
        "class_sections",
        "terms",
        "academic_years",
    ):
        op.drop_table(table_name)
    teacher_status_enum.drop(op.get_bind(), checkfirst=True)
