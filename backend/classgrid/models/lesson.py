import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from classgrid.db.base import Base


class LessonStatus(str, Enum):
    scheduled = "scheduled"
    cancelled = "cancelled"


ACTIVE_LESSON_PREDICATE = "status <> 'cancelled'"


def _active_unique_index(name: str, resource_column: str) -> Index:
    return Index(
        name,
        "school_id",
        "term_id",
        resource_column,
        "time_slot_id",
        unique=True,
        postgresql_where=text(ACTIVE_LESSON_PREDICATE),
        sqlite_where=text(ACTIVE_LESSON_PREDICATE),
    )


class Lesson(Base):
    __tablename__ = "lessons"
    __table_args__ = (
        _active_unique_index("uq_lessons_active_teacher_slot", "teacher_id"),
        _active_unique_index("uq_lessons_active_class_slot", "class_section_id"),
        _active_unique_index("uq_lessons_active_room_slot", "room_id"),
        Index("ix_lessons_school_term", "school_id", "term_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(String(36), nullable=False)
    academic_year_id: Mapped[str] = mapped_column(String(36), nullable=False)
    term_id: Mapped[str] = mapped_column(String(36), nullable=False)
    class_section_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    room_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    time_slot_id: Mapped[str] = mapped_column(String(36), nullable=False)
    status: Mapped[LessonStatus] = mapped_column(
        SAEnum(LessonStatus, name="lesson_status"),
        nullable=False,
        default=LessonStatus.scheduled,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    @property
    def is_active(self) -> bool:
        return self.status != LessonStatus.cancelled
