from __future__ import annotations

import logging
from time import perf_counter

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classgrid.core.config import Settings, get_settings
from classgrid.core.exceptions import (
    AppError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
    ScheduleConflictError,
    ViolationKind,
)
from classgrid.models.academic import AcademicYear, ClassSection, Subject, Term
from classgrid.models.lesson import Lesson, LessonStatus
from classgrid.models.period import PeriodSet, TimeSlot
from classgrid.models.room import Room
from classgrid.models.teacher import Teacher, teacher_short_name
from classgrid.schemas.generator import GenerationOptions, GenerationReport, UnfulfilledRequirementOut
from classgrid.schemas.lesson import (
    BulkCreateReport,
    BulkItemCreated,
    BulkItemFailed,
    LessonCreate,
    LessonListQuery,
    LessonUpdate,
)
from classgrid.schemas.timetable import TimetableCellOut, TimetableView
from classgrid.services.conflict_validator import ConflictValidator
from classgrid.services.scheduler import GreedyScheduler, SchedulerOptions, ShuffledSlotOrdering, SlotOrdering
from classgrid.services.snapshots import load_scheduling_snapshot
from classgrid.services.term_lock import term_write_lock
from classgrid.services.timetable_projector import ProjectedLesson, build_grid

logger = logging.getLogger(__name__)

ACTIVE_FILTER = Lesson.status != LessonStatus.cancelled

# Column fragments reported by the database when an active-lesson unique index rejects a row.
_INTEGRITY_KINDS = (
    (("uq_lessons_active_teacher_slot", "teacher_id"), ViolationKind.teacher_conflict),
    (("uq_lessons_active_class_slot", "class_section_id"), ViolationKind.class_conflict),
    (("uq_lessons_active_room_slot", "room_id"), ViolationKind.room_conflict),
)


def conflict_from_integrity_error(exc: IntegrityError) -> ScheduleConflictError | None:
    message = str(exc.orig)
    for markers, kind in _INTEGRITY_KINDS:
        if any(marker in message for marker in markers):
            return ScheduleConflictError(kind, details={"source": "database"})
    return None


class LessonService:
    def __init__(self, db: Session, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.validator = ConflictValidator(db)

    # ---- reads ----

    def list_lessons(self, school_id: str, query: LessonListQuery) -> tuple[list[Lesson], int]:
        conditions = [Lesson.school_id == school_id, ACTIVE_FILTER]
        if query.term_id:
            conditions.append(Lesson.term_id == query.term_id)
        if query.class_section_id:
            conditions.append(Lesson.class_section_id == query.class_section_id)
        if query.teacher_id:
            conditions.append(Lesson.teacher_id == query.teacher_id)
        if query.day_of_week is not None:
            conditions.append(
                Lesson.time_slot_id.in_(select(TimeSlot.id).where(TimeSlot.day_of_week == query.day_of_week))
            )

        total = self.db.execute(select(func.count(Lesson.id)).where(*conditions)).scalar_one()
        ordering = Lesson.created_at.asc() if query.order == "asc" else Lesson.created_at.desc()
        items = list(
            self.db.execute(
                select(Lesson)
                .where(*conditions)
                .order_by(ordering, Lesson.id)
                .offset((query.page - 1) * query.limit)
                .limit(query.limit)
            ).scalars()
        )
        return items, total

    def get_lesson(self, school_id: str, lesson_id: str) -> Lesson:
        lesson = self.db.get(Lesson, lesson_id)
        if lesson is None or lesson.school_id != school_id:
            raise ResourceNotFoundError("Lesson", lesson_id)
        return lesson

    # ---- manual writes ----

    def create_lesson(self, school_id: str, payload: LessonCreate) -> Lesson:
        with term_write_lock(self.db, school_id, payload.term_id):
            try:
                lesson = self._insert_validated(school_id, payload)
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise self._conflict_or_reraise(exc) from exc
            except AppError:
                self.db.rollback()
                raise
        self.db.refresh(lesson)
        logger.info(
            "LESSON CREATED | school_id=%s | term_id=%s | lesson_id=%s | teacher_id=%s | time_slot_id=%s",
            school_id,
            lesson.term_id,
            lesson.id,
            lesson.teacher_id,
            lesson.time_slot_id,
        )
        return lesson

    def update_lesson(self, school_id: str, lesson_id: str, payload: LessonUpdate) -> Lesson:
        lesson = self.get_lesson(school_id, lesson_id)
        with term_write_lock(self.db, school_id, lesson.term_id):
            self.db.refresh(lesson)
            if lesson.status != LessonStatus.scheduled:
                raise InvalidStatusTransitionError(
                    "Only scheduled lessons can be updated",
                    details={"status": lesson.status.value},
                )
            teacher_id = payload.teacher_id or lesson.teacher_id
            room_id = payload.room_id or lesson.room_id
            time_slot_id = payload.time_slot_id or lesson.time_slot_id
            if payload.teacher_id:
                self._require(Teacher, payload.teacher_id, school_id, "Teacher")
            if payload.room_id:
                self._require(Room, payload.room_id, school_id, "Room")
            if payload.time_slot_id:
                self._require(TimeSlot, payload.time_slot_id, school_id, "Time slot")

            try:
                self.validator.ensure_valid(
                    school_id=school_id,
                    term_id=lesson.term_id,
                    subject_id=lesson.subject_id,
                    teacher_id=teacher_id,
                    class_section_id=lesson.class_section_id,
                    room_id=room_id,
                    time_slot_id=time_slot_id,
                    exclude_lesson_id=lesson.id,
                )
                lesson.teacher_id = teacher_id
                lesson.room_id = room_id
                lesson.time_slot_id = time_slot_id
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise self._conflict_or_reraise(exc) from exc
            except AppError:
                self.db.rollback()
                raise
        self.db.refresh(lesson)
        logger.info("LESSON UPDATED | school_id=%s | lesson_id=%s", school_id, lesson.id)
        return lesson

    def cancel_lesson(self, school_id: str, lesson_id: str) -> Lesson:
        lesson = self.get_lesson(school_id, lesson_id)
        with term_write_lock(self.db, school_id, lesson.term_id):
            self.db.refresh(lesson)
            if lesson.status == LessonStatus.cancelled:
                raise InvalidStatusTransitionError(
                    "Lesson is already cancelled", details={"status": lesson.status.value}
                )
            if lesson.status != LessonStatus.scheduled:
                raise InvalidStatusTransitionError(
                    f"Cannot cancel a lesson with status '{lesson.status.value}'",
                    details={"status": lesson.status.value},
                )
            lesson.status = LessonStatus.cancelled
            self.db.commit()
        self.db.refresh(lesson)
        logger.info("LESSON CANCELLED | school_id=%s | lesson_id=%s", school_id, lesson.id)
        return lesson

    def clear_by_term(self, school_id: str, term_id: str) -> int:
        with term_write_lock(self.db, school_id, term_id):
            result = self.db.execute(
                delete(Lesson).where(Lesson.school_id == school_id, Lesson.term_id == term_id)
            )
            self.db.commit()
        deleted = result.rowcount or 0
        logger.info("LESSONS CLEARED | school_id=%s | term_id=%s | deleted=%s", school_id, term_id, deleted)
        return deleted

    def bulk_create_lessons(self, school_id: str, items: list[LessonCreate]) -> BulkCreateReport:
        if len(items) > self.settings.bulk_create_max_items:
            raise AppError(
                f"At most {self.settings.bulk_create_max_items} lessons can be created at once",
                status_code=400,
                code="BULK_LIMIT_EXCEEDED",
            )
        results: list[BulkItemCreated | BulkItemFailed] = []
        for index, payload in enumerate(items):
            with term_write_lock(self.db, school_id, payload.term_id):
                try:
                    lesson = self._insert_validated(school_id, payload)
                    self.db.commit()
                except IntegrityError as exc:
                    self.db.rollback()
                    conflict = conflict_from_integrity_error(exc)
                    code = conflict.code if conflict else "INTEGRITY_ERROR"
                    message = conflict.message if conflict else "Lesson violates a database constraint"
                    results.append(BulkItemFailed(index=index, code=code, message=message))
                    continue
                except AppError as exc:
                    self.db.rollback()
                    results.append(BulkItemFailed(index=index, code=exc.code, message=exc.message))
                    continue
            results.append(BulkItemCreated(index=index, lesson_id=lesson.id))

        report = BulkCreateReport.from_results(results)
        logger.info(
            "LESSON BULK CREATE | school_id=%s | requested=%s | created=%s | failed=%s",
            school_id,
            len(items),
            report.created,
            report.failed,
        )
        return report

    # ---- generation ----

    def generate(
        self,
        school_id: str,
        *,
        term_id: str,
        period_set_id: str,
        options: GenerationOptions | None = None,
        ordering: SlotOrdering | None = None,
    ) -> GenerationReport:
        options = options or GenerationOptions()
        started = perf_counter()
        logger.info(
            "LESSON GENERATION START | school_id=%s | term_id=%s | period_set_id=%s",
            school_id,
            term_id,
            period_set_id,
        )
        term = self._require(Term, term_id, school_id, "Term")
        self._require(PeriodSet, period_set_id, school_id, "Period set")

        scheduler_options = SchedulerOptions(
            respect_teacher_availability=options.respect_teacher_availability,
            respect_room_suitability=options.respect_room_suitability,
            max_consecutive_lessons_per_teacher=(
                options.max_consecutive_lessons_per_teacher
                or self.settings.scheduler_default_max_consecutive_lessons
            ),
        )
        if ordering is None:
            seed = options.random_seed if options.random_seed is not None else self.settings.scheduler_random_seed
            ordering = ShuffledSlotOrdering(seed)

        try:
            with term_write_lock(self.db, school_id, term_id):
                snapshot = load_scheduling_snapshot(
                    self.db,
                    school_id=school_id,
                    academic_year_id=term.academic_year_id,
                    term_id=term_id,
                    period_set_id=period_set_id,
                )
                plan = GreedyScheduler(snapshot, options=scheduler_options, ordering=ordering).plan()
                if plan.placements:
                    self.db.add_all(
                        Lesson(
                            school_id=school_id,
                            academic_year_id=term.academic_year_id,
                            term_id=term_id,
                            class_section_id=placement.class_section_id,
                            subject_id=placement.subject_id,
                            teacher_id=placement.teacher_id,
                            room_id=placement.room_id,
                            time_slot_id=placement.time_slot_id,
                            status=LessonStatus.scheduled,
                        )
                        for placement in plan.placements
                    )
                self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.exception(
                "LESSON GENERATION FAILED | school_id=%s | term_id=%s | reason=integrity",
                school_id,
                term_id,
            )
            raise self._conflict_or_reraise(exc) from exc
        except Exception:
            self.db.rollback()
            logger.exception("LESSON GENERATION FAILED | school_id=%s | term_id=%s", school_id, term_id)
            raise

        report = GenerationReport(
            total_lessons_created=plan.total_lessons_created,
            total_requirements_fulfilled=plan.total_requirements_fulfilled,
            total_requirements=plan.total_requirements,
            unfulfilled=[
                UnfulfilledRequirementOut(
                    class_section_id=item.class_section_id,
                    class_section_name=item.class_section_name,
                    subject_id=item.subject_id,
                    subject_name=item.subject_name,
                    required_lessons=item.required_lessons,
                    scheduled_lessons=item.scheduled_lessons,
                    reason=item.reason,
                )
                for item in plan.unfulfilled
            ],
        )
        logger.info(
            "LESSON GENERATION COMPLETE | school_id=%s | term_id=%s | created=%s | fulfilled=%s/%s | wall_ms=%s",
            school_id,
            term_id,
            report.total_lessons_created,
            report.total_requirements_fulfilled,
            report.total_requirements,
            int((perf_counter() - started) * 1000),
        )
        return report

    # ---- timetable views ----

    def timetable_by_class(self, school_id: str, term_id: str, class_section_id: str) -> TimetableView:
        class_section = self._require(ClassSection, class_section_id, school_id, "Class section")
        lessons = self._active_term_lessons(school_id, term_id, Lesson.class_section_id == class_section_id)
        return self._view(
            term_id, "class_section", class_section_id, class_section.name, lessons, include_class_section=False
        )

    def timetable_by_teacher(self, school_id: str, term_id: str, teacher_id: str) -> TimetableView:
        teacher = self._require(Teacher, teacher_id, school_id, "Teacher")
        lessons = self._active_term_lessons(school_id, term_id, Lesson.teacher_id == teacher_id)
        return self._view(term_id, "teacher", teacher_id, teacher.full_name, lessons, include_class_section=True)

    def timetable_by_room(self, school_id: str, term_id: str, room_id: str) -> TimetableView:
        room = self._require(Room, room_id, school_id, "Room")
        lessons = self._active_term_lessons(school_id, term_id, Lesson.room_id == room_id)
        return self._view(term_id, "room", room_id, room.name, lessons, include_class_section=True)

    # ---- helpers ----

    def _insert_validated(self, school_id: str, payload: LessonCreate) -> Lesson:
        self._require_references(school_id, payload)
        self.validator.ensure_valid(
            school_id=school_id,
            term_id=payload.term_id,
            subject_id=payload.subject_id,
            teacher_id=payload.teacher_id,
            class_section_id=payload.class_section_id,
            room_id=payload.room_id,
            time_slot_id=payload.time_slot_id,
        )
        lesson = Lesson(school_id=school_id, status=LessonStatus.scheduled, **payload.model_dump())
        self.db.add(lesson)
        self.db.flush()
        return lesson

    def _require(self, model, resource_id: str, school_id: str, label: str):
        record = self.db.get(model, resource_id)
        if record is None or record.school_id != school_id:
            raise ResourceNotFoundError(label, resource_id)
        return record

    def _require_references(self, school_id: str, payload: LessonCreate) -> None:
        # Lesson has no foreign keys; every referenced row must exist in this school.
        self._require(TimeSlot, payload.time_slot_id, school_id, "Time slot")
        self._require(AcademicYear, payload.academic_year_id, school_id, "Academic year")
        self._require(Term, payload.term_id, school_id, "Term")
        self._require(ClassSection, payload.class_section_id, school_id, "Class section")
        self._require(Subject, payload.subject_id, school_id, "Subject")
        self._require(Teacher, payload.teacher_id, school_id, "Teacher")
        self._require(Room, payload.room_id, school_id, "Room")

    @staticmethod
    def _conflict_or_reraise(exc: IntegrityError) -> Exception:
        conflict = conflict_from_integrity_error(exc)
        return conflict if conflict is not None else exc

    def _active_term_lessons(self, school_id: str, term_id: str, scope_condition) -> list[Lesson]:
        return list(
            self.db.execute(
                select(Lesson).where(
                    Lesson.school_id == school_id,
                    Lesson.term_id == term_id,
                    ACTIVE_FILTER,
                    scope_condition,
                )
            ).scalars()
        )

    def _view(
        self,
        term_id: str,
        scope: str,
        scope_id: str,
        scope_name: str,
        lessons: list[Lesson],
        *,
        include_class_section: bool,
    ) -> TimetableView:
        grid = build_grid(self._project(lessons), include_class_section=include_class_section)
        return TimetableView(
            term_id=term_id,
            scope=scope,
            scope_id=scope_id,
            scope_name=scope_name,
            grid={
                day: None
                if periods is None
                else {
                    period_id: TimetableCellOut(
                        lesson_id=cell.lesson_id,
                        subject=cell.subject,
                        teacher=cell.teacher,
                        room=cell.room,
                        class_section=cell.class_section,
                    )
                    for period_id, cell in periods.items()
                }
                for day, periods in grid.items()
            },
        )

    def _project(self, lessons: list[Lesson]) -> list[ProjectedLesson]:
        if not lessons:
            return []
        subject_names = self._names(Subject, Subject.name, {item.subject_id for item in lessons})
        room_names = self._names(Room, Room.name, {item.room_id for item in lessons})
        class_names = self._names(ClassSection, ClassSection.name, {item.class_section_id for item in lessons})
        teacher_names = {
            row.id: teacher_short_name(row.first_name, row.last_name)
            for row in self.db.execute(
                select(Teacher.id, Teacher.first_name, Teacher.last_name).where(
                    Teacher.id.in_({item.teacher_id for item in lessons})
                )
            )
        }
        slots = {
            row.id: (row.day_of_week, row.period_id)
            for row in self.db.execute(
                select(TimeSlot.id, TimeSlot.day_of_week, TimeSlot.period_id).where(
                    TimeSlot.id.in_({item.time_slot_id for item in lessons})
                )
            )
        }

        projected = []
        for lesson in lessons:
            slot = slots.get(lesson.time_slot_id)
            if slot is None:
                logger.warning("TIMETABLE SKIP | lesson_id=%s | missing_time_slot=%s", lesson.id, lesson.time_slot_id)
                continue
            day_of_week, period_id = slot
            projected.append(
                ProjectedLesson(
                    lesson_id=lesson.id,
                    day_of_week=day_of_week,
                    period_id=period_id,
                    subject_name=subject_names.get(lesson.subject_id, ""),
                    teacher_name=teacher_names.get(lesson.teacher_id, ""),
                    room_name=room_names.get(lesson.room_id, ""),
                    class_section_name=class_names.get(lesson.class_section_id, ""),
                )
            )
        return projected

    def _names(self, model, name_column, ids: set[str]) -> dict[str, str]:
        return {row[0]: row[1] for row in self.db.execute(select(model.id, name_column).where(model.id.in_(ids)))}
