from __future__ import annotations

from datetime import date
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from classgrid.core.exceptions import ResourceNotFoundError, SubstitutionError
from classgrid.models.lesson import Lesson, LessonStatus
from classgrid.models.substitution import Substitution
from classgrid.models.teacher import Teacher, TeacherStatus, TeacherSubject
from classgrid.schemas.substitution import SubstitutionCreate

logger = logging.getLogger(__name__)


class SubstitutionService:
    """Covers one occurrence of a scheduled lesson with another teacher."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, school_id: str, payload: SubstitutionCreate) -> Substitution:
        lesson = self.db.get(Lesson, payload.lesson_id)
        if lesson is None or lesson.school_id != school_id or lesson.status == LessonStatus.cancelled:
            raise ResourceNotFoundError("Lesson", payload.lesson_id)

        substitute = self.db.get(Teacher, payload.substitute_teacher_id)
        if substitute is None or substitute.school_id != school_id:
            raise ResourceNotFoundError("Teacher", payload.substitute_teacher_id)
        if substitute.status != TeacherStatus.active:
            raise SubstitutionError("Substitute teacher is not active", code="SUBSTITUTE_INACTIVE")

        if substitute.id == lesson.teacher_id:
            raise SubstitutionError(
                "Substitute must differ from the lesson's teacher",
                code="SUBSTITUTE_IS_ORIGINAL_TEACHER",
            )

        qualified = self.db.execute(
            select(func.count(TeacherSubject.id)).where(
                TeacherSubject.teacher_id == substitute.id,
                TeacherSubject.subject_id == lesson.subject_id,
            )
        ).scalar_one()
        if not qualified:
            raise SubstitutionError("Teacher is not qualified for this subject", code="TEACHER_NOT_QUALIFIED")

        own_lessons = self.db.execute(
            select(func.count(Lesson.id)).where(
                Lesson.school_id == school_id,
                Lesson.term_id == lesson.term_id,
                Lesson.time_slot_id == lesson.time_slot_id,
                Lesson.teacher_id == substitute.id,
                Lesson.status != LessonStatus.cancelled,
            )
        ).scalar_one()
        if own_lessons:
            raise SubstitutionError(
                "Substitute already teaches a lesson at this time",
                code="SUBSTITUTE_HAS_CONFLICT",
                status_code=409,
            )

        covering = self.db.execute(
            select(func.count(Substitution.id))
            .join(Lesson, Lesson.id == Substitution.lesson_id)
            .where(
                Substitution.school_id == school_id,
                Substitution.substitute_teacher_id == substitute.id,
                Substitution.lesson_date == payload.lesson_date,
                Lesson.time_slot_id == lesson.time_slot_id,
            )
        ).scalar_one()
        if covering:
            raise SubstitutionError(
                "Substitute is already covering another lesson at this time",
                code="SUBSTITUTE_ALREADY_ASSIGNED",
                status_code=409,
            )

        substitution = Substitution(
            school_id=school_id,
            lesson_id=lesson.id,
            original_teacher_id=lesson.teacher_id,
            substitute_teacher_id=substitute.id,
            lesson_date=payload.lesson_date,
            reason=payload.reason,
        )
        self.db.add(substitution)
        self.db.commit()
        self.db.refresh(substitution)
        logger.info(
            "SUBSTITUTION CREATED | school_id=%s | lesson_id=%s | substitute_teacher_id=%s | date=%s",
            school_id,
            lesson.id,
            substitute.id,
            payload.lesson_date.isoformat(),
        )
        return substitution

    def list_substitutions(
        self,
        school_id: str,
        *,
        on_date: date | None = None,
        teacher_id: str | None = None,
    ) -> list[Substitution]:
        query = select(Substitution).where(Substitution.school_id == school_id)
        if on_date is not None:
            query = query.where(Substitution.lesson_date == on_date)
        if teacher_id:
            query = query.where(
                (Substitution.substitute_teacher_id == teacher_id) | (Substitution.original_teacher_id == teacher_id)
            )
        return list(self.db.execute(query.order_by(Substitution.lesson_date, Substitution.created_at)).scalars())

    def delete_substitution(self, school_id: str, substitution_id: str) -> None:
        substitution = self.db.get(Substitution, substitution_id)
        if substitution is None or substitution.school_id != school_id:
            raise ResourceNotFoundError("Substitution", substitution_id)
        self.db.delete(substitution)
        self.db.commit()
        logger.info("SUBSTITUTION DELETED | school_id=%s | substitution_id=%s", school_id, substitution_id)
