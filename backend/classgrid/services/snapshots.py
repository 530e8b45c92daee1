from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from classgrid.models.academic import ClassSection, Subject
from classgrid.models.lesson import Lesson, LessonStatus
from classgrid.models.period import Period, TimeSlot
from classgrid.models.requirement import ClassSubjectRequirement
from classgrid.models.room import Room, RoomSubjectSuitability
from classgrid.models.teacher import Teacher, TeacherAvailability, TeacherStatus, TeacherSubject


@dataclass(frozen=True)
class RequirementSnapshot:
    requirement_id: str
    class_section_id: str
    subject_id: str
    weekly_lessons_required: int
    class_section_name: str = ""
    subject_name: str = ""


@dataclass(frozen=True)
class TeacherSnapshot:
    teacher_id: str
    name: str = ""


@dataclass(frozen=True)
class RoomSnapshot:
    room_id: str
    name: str = ""


@dataclass(frozen=True)
class SlotSnapshot:
    time_slot_id: str
    day_of_week: int
    period_id: str
    order_index: int


@dataclass(frozen=True)
class PlacedLesson:
    class_section_id: str
    subject_id: str
    teacher_id: str
    room_id: str
    time_slot_id: str


@dataclass(frozen=True)
class SchedulingSnapshot:
    requirements: tuple[RequirementSnapshot, ...] = ()
    teachers: tuple[TeacherSnapshot, ...] = ()
    qualifications: tuple[tuple[str, str], ...] = ()
    unavailability: tuple[tuple[str, int, str], ...] = ()
    rooms: tuple[RoomSnapshot, ...] = ()
    suitability: tuple[tuple[str, str], ...] = ()
    slots: tuple[SlotSnapshot, ...] = ()
    existing_lessons: tuple[PlacedLesson, ...] = ()


def load_scheduling_snapshot(
    db: Session,
    *,
    school_id: str,
    academic_year_id: str,
    term_id: str,
    period_set_id: str,
) -> SchedulingSnapshot:
    """Read everything one scheduling run needs into immutable records."""
    requirement_rows = db.execute(
        select(ClassSubjectRequirement, ClassSection.name, Subject.name)
        .outerjoin(ClassSection, ClassSection.id == ClassSubjectRequirement.class_section_id)
        .outerjoin(Subject, Subject.id == ClassSubjectRequirement.subject_id)
        .where(
            ClassSubjectRequirement.school_id == school_id,
            ClassSubjectRequirement.academic_year_id == academic_year_id,
        )
        .order_by(ClassSubjectRequirement.created_at, ClassSubjectRequirement.id)
    ).all()
    requirements = tuple(
        RequirementSnapshot(
            requirement_id=requirement.id,
            class_section_id=requirement.class_section_id,
            subject_id=requirement.subject_id,
            weekly_lessons_required=requirement.weekly_lessons_required,
            class_section_name=class_section_name or "",
            subject_name=subject_name or "",
        )
        for requirement, class_section_name, subject_name in requirement_rows
    )

    teachers = tuple(
        TeacherSnapshot(teacher_id=teacher.id, name=teacher.full_name)
        for teacher in db.execute(
            select(Teacher)
            .where(Teacher.school_id == school_id, Teacher.status == TeacherStatus.active)
            .order_by(Teacher.last_name, Teacher.first_name, Teacher.id)
        ).scalars()
    )

    qualifications = tuple(
        (row.teacher_id, row.subject_id)
        for row in db.execute(
            select(TeacherSubject.teacher_id, TeacherSubject.subject_id).where(TeacherSubject.school_id == school_id)
        )
    )

    unavailability = tuple(
        (row.teacher_id, row.day_of_week, row.period_id)
        for row in db.execute(
            select(TeacherAvailability.teacher_id, TeacherAvailability.day_of_week, TeacherAvailability.period_id).where(
                TeacherAvailability.school_id == school_id,
                TeacherAvailability.is_available.is_(False),
            )
        )
    )

    rooms = tuple(
        RoomSnapshot(room_id=room.id, name=room.name)
        for room in db.execute(
            select(Room).where(Room.school_id == school_id).order_by(Room.name, Room.id)
        ).scalars()
    )

    suitability = tuple(
        (row.room_id, row.subject_id)
        for row in db.execute(
            select(RoomSubjectSuitability.room_id, RoomSubjectSuitability.subject_id).where(
                RoomSubjectSuitability.school_id == school_id
            )
        )
    )

    slots = tuple(
        SlotSnapshot(
            time_slot_id=row.id,
            day_of_week=row.day_of_week,
            period_id=row.period_id,
            order_index=row.order_index,
        )
        for row in db.execute(
            select(TimeSlot.id, TimeSlot.day_of_week, TimeSlot.period_id, Period.order_index)
            .join(Period, Period.id == TimeSlot.period_id)
            .where(
                TimeSlot.school_id == school_id,
                Period.period_set_id == period_set_id,
                Period.is_break.is_(False),
            )
            .order_by(TimeSlot.day_of_week, Period.order_index)
        )
    )

    existing_lessons = tuple(
        PlacedLesson(
            class_section_id=lesson.class_section_id,
            subject_id=lesson.subject_id,
            teacher_id=lesson.teacher_id,
            room_id=lesson.room_id,
            time_slot_id=lesson.time_slot_id,
        )
        for lesson in db.execute(
            select(Lesson).where(
                Lesson.school_id == school_id,
                Lesson.term_id == term_id,
                Lesson.status != LessonStatus.cancelled,
            )
        ).scalars()
    )

    return SchedulingSnapshot(
        requirements=requirements,
        teachers=teachers,
        qualifications=qualifications,
        unavailability=unavailability,
        rooms=rooms,
        suitability=suitability,
        slots=slots,
        existing_lessons=existing_lessons,
    )
