from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from classgrid.core.exceptions import ViolationError, ViolationKind
from classgrid.models.lesson import Lesson, LessonStatus
from classgrid.models.period import TimeSlot
from classgrid.models.room import RoomSubjectSuitability
from classgrid.models.teacher import TeacherAvailability, TeacherSubject
from classgrid.services.constraint_index import ConstraintIndex


class ConflictValidator:
    """Checks a single lesson placement against stored lessons and policies.

    Checks run in a fixed order and the first failure wins: teacher, class
    and room double-booking among active lessons of the term, then teacher
    qualification, room suitability and teacher availability.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def validate(
        self,
        *,
        school_id: str,
        term_id: str,
        subject_id: str,
        teacher_id: str,
        class_section_id: str,
        room_id: str,
        time_slot_id: str,
        exclude_lesson_id: str | None = None,
    ) -> ViolationKind | None:
        booking_checks = (
            (Lesson.teacher_id, teacher_id, ViolationKind.teacher_conflict),
            (Lesson.class_section_id, class_section_id, ViolationKind.class_conflict),
            (Lesson.room_id, room_id, ViolationKind.room_conflict),
        )
        for column, value, kind in booking_checks:
            if self._has_active_lesson(
                column,
                value,
                school_id=school_id,
                term_id=term_id,
                time_slot_id=time_slot_id,
                exclude_lesson_id=exclude_lesson_id,
            ):
                return kind

        time_slot = self.db.get(TimeSlot, time_slot_id)
        if time_slot is not None and time_slot.school_id != school_id:
            time_slot = None
        index = self._build_index(school_id=school_id, teacher_id=teacher_id, room_id=room_id)

        if not index.is_qualified(teacher_id, subject_id):
            return ViolationKind.teacher_not_qualified
        if not index.is_room_suitable(room_id, subject_id):
            return ViolationKind.room_not_suitable
        if time_slot is not None and index.is_blocked(teacher_id, time_slot.day_of_week, time_slot.period_id):
            return ViolationKind.teacher_not_available
        return None

    def ensure_valid(self, **candidate) -> None:
        kind = self.validate(**candidate)
        if kind is not None:
            raise ViolationError.for_kind(
                kind,
                details={
                    "teacher_id": candidate.get("teacher_id"),
                    "class_section_id": candidate.get("class_section_id"),
                    "room_id": candidate.get("room_id"),
                    "time_slot_id": candidate.get("time_slot_id"),
                    "term_id": candidate.get("term_id"),
                },
            )

    def _has_active_lesson(
        self,
        column: InstrumentedAttribute,
        value: str,
        *,
        school_id: str,
        term_id: str,
        time_slot_id: str,
        exclude_lesson_id: str | None,
    ) -> bool:
        query = select(func.count(Lesson.id)).where(
            Lesson.school_id == school_id,
            Lesson.term_id == term_id,
            Lesson.time_slot_id == time_slot_id,
            Lesson.status != LessonStatus.cancelled,
            column == value,
        )
        if exclude_lesson_id is not None:
            query = query.where(Lesson.id != exclude_lesson_id)
        return (self.db.execute(query).scalar_one() or 0) > 0

    def _build_index(self, *, school_id: str, teacher_id: str, room_id: str) -> ConstraintIndex:
        qualifications = self.db.execute(
            select(TeacherSubject.teacher_id, TeacherSubject.subject_id).where(
                TeacherSubject.school_id == school_id,
                TeacherSubject.teacher_id == teacher_id,
            )
        ).all()
        unavailability = self.db.execute(
            select(TeacherAvailability.teacher_id, TeacherAvailability.day_of_week, TeacherAvailability.period_id).where(
                TeacherAvailability.school_id == school_id,
                TeacherAvailability.teacher_id == teacher_id,
                TeacherAvailability.is_available.is_(False),
            )
        ).all()
        suitability = self.db.execute(
            select(RoomSubjectSuitability.room_id, RoomSubjectSuitability.subject_id).where(
                RoomSubjectSuitability.school_id == school_id,
                RoomSubjectSuitability.room_id == room_id,
            )
        ).all()
        return ConstraintIndex.build(
            qualifications=[tuple(row) for row in qualifications],
            unavailability=[tuple(row) for row in unavailability],
            suitability=[tuple(row) for row in suitability],
        )
