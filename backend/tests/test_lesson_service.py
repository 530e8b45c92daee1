from contextlib import contextmanager
import logging

import pytest
from sqlalchemy import select, update

from classgrid.core.exceptions import (
    InvalidStatusTransitionError,
    PolicyViolationError,
    ResourceNotFoundError,
    ScheduleConflictError,
    ViolationKind,
)
from classgrid.models.lesson import Lesson, LessonStatus
from classgrid.models.room import RoomSubjectSuitability
from classgrid.models.teacher import TeacherSubject
from classgrid.schemas.generator import GenerationOptions
from classgrid.schemas.lesson import LessonCreate, LessonListQuery, LessonUpdate
from classgrid.services import lesson_service
from classgrid.services.lesson_service import LessonService
from classgrid.services.scheduler import NO_COMBINATION_REASON, CatalogSlotOrdering

from conftest import SCHOOL_ID, SchoolBuilder

FRIDAY = 5


@pytest.fixture()
def world(school):
    year = school.academic_year()
    term = school.term(year)
    class_a = school.class_section(year, "7A")
    math = school.subject("MATH", "Mathematics")
    teacher = school.teacher("Ada", "Lovelace", subjects=[math])
    room = school.room("Room 101")
    period_set, periods = school.period_set(year)
    slots = school.time_slots(period_set)
    return {
        "year": year,
        "term": term,
        "class_a": class_a,
        "math": math,
        "teacher": teacher,
        "room": room,
        "period_set": period_set,
        "periods": periods,
        "slots": slots,
    }


def _active_lessons(db_session, term_id):
    db_session.expire_all()
    return list(
        db_session.execute(
            select(Lesson).where(Lesson.term_id == term_id, Lesson.status != LessonStatus.cancelled)
        ).scalars()
    )


def _payload(world, time_slot_id, **overrides):
    values = {
        "academic_year_id": world["year"].id,
        "term_id": world["term"].id,
        "class_section_id": world["class_a"].id,
        "subject_id": world["math"].id,
        "teacher_id": world["teacher"].id,
        "room_id": world["room"].id,
        "time_slot_id": time_slot_id,
    }
    values.update(overrides)
    return LessonCreate(**values)


def test_generate_fills_requirement_and_skips_unavailable_day(db_session, school, world):
    for period in world["periods"]:
        school.unavailable(world["teacher"], FRIDAY, period)
    school.requirement(world["year"], world["class_a"], world["math"], 5)
    service = LessonService(db_session)

    report = service.generate(
        SCHOOL_ID,
        term_id=world["term"].id,
        period_set_id=world["period_set"].id,
        ordering=CatalogSlotOrdering(),
    )

    assert report.total_lessons_created == 5
    assert report.total_requirements_fulfilled == 1
    assert report.total_requirements == 1
    assert report.unfulfilled == []
    friday_slots = {slot_id for (day, _), slot_id in world["slots"].items() if day == FRIDAY}
    lessons = _active_lessons(db_session, world["term"].id)
    assert len(lessons) == 5
    assert all(lesson.time_slot_id not in friday_slots for lesson in lessons)
    assert all(lesson.academic_year_id == world["year"].id for lesson in lessons)


def test_generate_twice_only_fills_gaps(db_session, school, world):
    school.requirement(world["year"], world["class_a"], world["math"], 4)
    service = LessonService(db_session)

    first = service.generate(SCHOOL_ID, term_id=world["term"].id, period_set_id=world["period_set"].id)
    second = service.generate(SCHOOL_ID, term_id=world["term"].id, period_set_id=world["period_set"].id)

    assert first.total_lessons_created == 4
    assert second.total_lessons_created == 0
    assert second.total_requirements_fulfilled >= first.total_requirements_fulfilled
    assert len(_active_lessons(db_session, world["term"].id)) == 4


def test_generate_reports_unfulfilled_when_slots_run_out(db_session, school, world):
    school.requirement(world["year"], world["class_a"], world["math"], 31)
    service = LessonService(db_session)

    report = service.generate(
        SCHOOL_ID,
        term_id=world["term"].id,
        period_set_id=world["period_set"].id,
        options=GenerationOptions(max_consecutive_lessons_per_teacher=6),
    )

    assert report.total_lessons_created == 30
    [missing] = report.unfulfilled
    assert missing.class_section_name == "7A"
    assert missing.subject_name == "Mathematics"
    assert missing.scheduled_lessons == 30
    assert missing.reason == NO_COMBINATION_REASON


def test_generate_requires_known_term_and_period_set(db_session, world):
    service = LessonService(db_session)

    with pytest.raises(ResourceNotFoundError) as term_error:
        service.generate(SCHOOL_ID, term_id="missing", period_set_id=world["period_set"].id)
    with pytest.raises(ResourceNotFoundError) as period_error:
        service.generate(SCHOOL_ID, term_id=world["term"].id, period_set_id="missing")

    assert term_error.value.code == "TERM_NOT_FOUND"
    assert period_error.value.code == "PERIOD_SET_NOT_FOUND"


def test_generate_logs_start_and_completion(db_session, school, world, caplog):
    school.requirement(world["year"], world["class_a"], world["math"], 1)
    caplog.set_level(logging.INFO, logger="classgrid.services.lesson_service")

    LessonService(db_session).generate(SCHOOL_ID, term_id=world["term"].id, period_set_id=world["period_set"].id)

    messages = [record.getMessage() for record in caplog.records]
    assert any(message.startswith("LESSON GENERATION START") for message in messages)
    assert any(message.startswith("LESSON GENERATION COMPLETE") for message in messages)


def test_create_lesson_rejects_teacher_double_booking(db_session, school, world):
    service = LessonService(db_session)
    slot_id = world["slots"][(1, 1)]
    service.create_lesson(SCHOOL_ID, _payload(world, slot_id))
    class_b = school.class_section(world["year"], "7B")
    other_room = school.room("Room 102")

    with pytest.raises(ScheduleConflictError) as error:
        service.create_lesson(
            SCHOOL_ID,
            _payload(world, slot_id, class_section_id=class_b.id, room_id=other_room.id),
        )

    assert error.value.kind is ViolationKind.teacher_conflict
    assert error.value.status_code == 409
    assert len(_active_lessons(db_session, world["term"].id)) == 1


def test_create_lesson_checks_policies_in_order(db_session, school, world):
    service = LessonService(db_session)
    art = school.subject("ART", "Art")
    lab = school.room("Lab", subjects=[art])

    with pytest.raises(PolicyViolationError) as unqualified:
        service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)], subject_id=art.id))
    with pytest.raises(PolicyViolationError) as unsuitable:
        service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)], room_id=lab.id))
    school.unavailable(world["teacher"], 2, world["periods"][0])
    with pytest.raises(PolicyViolationError) as unavailable:
        service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(2, 1)]))

    assert unqualified.value.code == "TEACHER_NOT_QUALIFIED"
    assert unsuitable.value.code == "ROOM_NOT_SUITABLE"
    assert unavailable.value.code == "TEACHER_NOT_AVAILABLE"
    assert _active_lessons(db_session, world["term"].id) == []


def test_policy_rows_of_another_school_are_ignored(db_session, school, world):
    art = school.subject("ART", "Art")
    db_session.add(TeacherSubject(school_id="school-2", teacher_id=world["teacher"].id, subject_id=art.id))
    db_session.add(RoomSubjectSuitability(school_id="school-2", room_id=world["room"].id, subject_id=art.id))
    db_session.commit()
    service = LessonService(db_session)

    with pytest.raises(PolicyViolationError) as unqualified:
        service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)], subject_id=art.id))
    lesson = service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)]))

    assert unqualified.value.code == "TEACHER_NOT_QUALIFIED"
    assert lesson.room_id == world["room"].id


def test_create_lesson_requires_existing_time_slot(db_session, world):
    with pytest.raises(ResourceNotFoundError) as error:
        LessonService(db_session).create_lesson(SCHOOL_ID, _payload(world, "no-such-slot"))

    assert error.value.code == "TIME_SLOT_NOT_FOUND"


@pytest.mark.parametrize(
    ("field", "code"),
    [
        ("academic_year_id", "ACADEMIC_YEAR_NOT_FOUND"),
        ("term_id", "TERM_NOT_FOUND"),
        ("class_section_id", "CLASS_SECTION_NOT_FOUND"),
        ("subject_id", "SUBJECT_NOT_FOUND"),
        ("teacher_id", "TEACHER_NOT_FOUND"),
        ("room_id", "ROOM_NOT_FOUND"),
    ],
)
def test_create_lesson_rejects_unknown_references(db_session, world, field, code):
    payload = _payload(world, world["slots"][(1, 1)], **{field: "ghost"})

    with pytest.raises(ResourceNotFoundError) as error:
        LessonService(db_session).create_lesson(SCHOOL_ID, payload)

    assert error.value.code == code
    assert error.value.details == {"id": "ghost"}
    assert _active_lessons(db_session, world["term"].id) == []


def test_create_lesson_rejects_room_of_another_school(db_session, world):
    foreign_room = SchoolBuilder(db_session, "school-2").room("Room 101")

    with pytest.raises(ResourceNotFoundError) as error:
        LessonService(db_session).create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)], room_id=foreign_room.id))

    assert error.value.code == "ROOM_NOT_FOUND"


def test_update_lesson_rejects_unknown_teacher_or_room(db_session, world):
    service = LessonService(db_session)
    lesson = service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)]))

    with pytest.raises(ResourceNotFoundError) as missing_room:
        service.update_lesson(SCHOOL_ID, lesson.id, LessonUpdate(room_id="ghost-room"))
    with pytest.raises(ResourceNotFoundError) as missing_teacher:
        service.update_lesson(SCHOOL_ID, lesson.id, LessonUpdate(teacher_id="ghost-teacher"))

    assert missing_room.value.code == "ROOM_NOT_FOUND"
    assert missing_teacher.value.code == "TEACHER_NOT_FOUND"
    db_session.expire_all()
    stored = db_session.get(Lesson, lesson.id)
    assert (stored.room_id, stored.teacher_id) == (world["room"].id, world["teacher"].id)


def test_update_lesson_moves_slot_and_ignores_itself(db_session, school, world):
    service = LessonService(db_session)
    lesson = service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)]))
    other_room = school.room("Room 102")

    same_slot = service.update_lesson(SCHOOL_ID, lesson.id, LessonUpdate(room_id=other_room.id))
    moved = service.update_lesson(SCHOOL_ID, lesson.id, LessonUpdate(time_slot_id=world["slots"][(3, 2)]))

    assert same_slot.room_id == other_room.id
    assert moved.time_slot_id == world["slots"][(3, 2)]
    assert moved.room_id == other_room.id


def test_update_lesson_into_occupied_slot_is_rejected(db_session, school, world):
    service = LessonService(db_session)
    class_b = school.class_section(world["year"], "7B")
    room_b = school.room("Room 102")
    service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)]))
    second = service.create_lesson(
        SCHOOL_ID,
        _payload(world, world["slots"][(1, 2)], class_section_id=class_b.id, room_id=room_b.id),
    )

    with pytest.raises(ScheduleConflictError) as error:
        service.update_lesson(SCHOOL_ID, second.id, LessonUpdate(time_slot_id=world["slots"][(1, 1)]))

    assert error.value.code == "SCHEDULE_CONFLICT_TEACHER"
    db_session.expire_all()
    assert db_session.get(Lesson, second.id).time_slot_id == world["slots"][(1, 2)]


def test_cancel_then_update_or_cancel_again_is_invalid(db_session, world):
    service = LessonService(db_session)
    lesson = service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)]))

    cancelled = service.cancel_lesson(SCHOOL_ID, lesson.id)
    assert cancelled.status == LessonStatus.cancelled

    with pytest.raises(InvalidStatusTransitionError):
        service.cancel_lesson(SCHOOL_ID, lesson.id)
    with pytest.raises(InvalidStatusTransitionError):
        service.update_lesson(SCHOOL_ID, lesson.id, LessonUpdate(room_id=world["room"].id))


def _cancel_before_lock_is_granted(monkeypatch, lesson_id):
    """Commit a cancel from "another writer" just before the term lock is acquired."""
    real_lock = lesson_service.term_write_lock
    acquired = []

    @contextmanager
    def lock_after_concurrent_cancel(db, school_id, term_id):
        db.execute(update(Lesson).where(Lesson.id == lesson_id).values(status=LessonStatus.cancelled))
        db.commit()
        with real_lock(db, school_id, term_id):
            acquired.append((school_id, term_id))
            yield

    monkeypatch.setattr(lesson_service, "term_write_lock", lock_after_concurrent_cancel)
    return acquired


def test_cancel_rechecks_status_under_term_lock(db_session, world, monkeypatch):
    service = LessonService(db_session)
    lesson = service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)]))
    acquired = _cancel_before_lock_is_granted(monkeypatch, lesson.id)

    with pytest.raises(InvalidStatusTransitionError):
        service.cancel_lesson(SCHOOL_ID, lesson.id)

    assert acquired == [(SCHOOL_ID, world["term"].id)]


def test_update_does_not_edit_lesson_cancelled_while_waiting(db_session, school, world, monkeypatch):
    service = LessonService(db_session)
    lesson = service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)]))
    other_room = school.room("Room 102")
    _cancel_before_lock_is_granted(monkeypatch, lesson.id)

    with pytest.raises(InvalidStatusTransitionError):
        service.update_lesson(SCHOOL_ID, lesson.id, LessonUpdate(room_id=other_room.id))

    db_session.expire_all()
    stored = db_session.get(Lesson, lesson.id)
    assert stored.status == LessonStatus.cancelled
    assert stored.room_id == world["room"].id


def test_cancelled_lesson_frees_its_slot(db_session, world):
    service = LessonService(db_session)
    lesson = service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)]))
    service.cancel_lesson(SCHOOL_ID, lesson.id)

    replacement = service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)]))

    assert replacement.id != lesson.id
    assert replacement.status == LessonStatus.scheduled


def test_get_lesson_is_scoped_to_school(db_session, world):
    service = LessonService(db_session)
    lesson = service.create_lesson(SCHOOL_ID, _payload(world, world["slots"][(1, 1)]))

    assert service.get_lesson(SCHOOL_ID, lesson.id).id == lesson.id
    with pytest.raises(ResourceNotFoundError) as error:
        service.get_lesson("school-2", lesson.id)
    assert error.value.code == "LESSON_NOT_FOUND"


def test_clear_by_term_deletes_only_matching_lessons(db_session, school, world):
    service = LessonService(db_session)
    spring = school.term(world["year"], "Spring")
    for day in (1, 2, 3):
        school.lesson(world["term"], world["class_a"], world["math"], world["teacher"], world["room"], world["slots"][(day, 1)])
    school.lesson(spring, world["class_a"], world["math"], world["teacher"], world["room"], world["slots"][(1, 1)])
    school.lesson(
        world["term"],
        world["class_a"],
        world["math"],
        world["teacher"],
        world["room"],
        world["slots"][(4, 1)],
        school_id="school-2",
    )

    deleted = service.clear_by_term(SCHOOL_ID, world["term"].id)

    assert deleted == 3
    db_session.expire_all()
    remaining = list(db_session.execute(select(Lesson)).scalars())
    assert {(lesson.school_id, lesson.term_id) for lesson in remaining} == {
        (SCHOOL_ID, spring.id),
        ("school-2", world["term"].id),
    }


def test_list_lessons_filters_and_paginates(db_session, school, world):
    service = LessonService(db_session)
    for day in (1, 2, 3):
        for order in (1, 2):
            school.lesson(
                world["term"], world["class_a"], world["math"], world["teacher"], world["room"], world["slots"][(day, order)]
            )
    cancelled = school.lesson(
        world["term"],
        world["class_a"],
        world["math"],
        world["teacher"],
        world["room"],
        world["slots"][(4, 1)],
        status=LessonStatus.cancelled,
    )

    items, total = service.list_lessons(SCHOOL_ID, LessonListQuery(term_id=world["term"].id, limit=4))
    page_two, _ = service.list_lessons(SCHOOL_ID, LessonListQuery(term_id=world["term"].id, limit=4, page=2))
    tuesday, tuesday_total = service.list_lessons(SCHOOL_ID, LessonListQuery(day_of_week=2))

    assert total == 6
    assert len(items) == 4
    assert len(page_two) == 2
    assert cancelled.id not in {item.id for item in items + page_two}
    assert tuesday_total == 2
    assert {item.time_slot_id for item in tuesday} == {world["slots"][(2, 1)], world["slots"][(2, 2)]}


def test_teacher_timetable_includes_class_names(db_session, school, world):
    service = LessonService(db_session)
    lesson = school.lesson(
        world["term"], world["class_a"], world["math"], world["teacher"], world["room"], world["slots"][(2, 3)]
    )
    period_id = world["periods"][2].id

    view = service.timetable_by_teacher(SCHOOL_ID, world["term"].id, world["teacher"].id)
    class_view = service.timetable_by_class(SCHOOL_ID, world["term"].id, world["class_a"].id)

    assert view.scope_name == "Ada Lovelace"
    cell = view.grid[2][period_id]
    assert cell.lesson_id == lesson.id
    assert cell.teacher == "Ada L."
    assert cell.subject == "Mathematics"
    assert cell.room == "Room 101"
    assert cell.class_section == "7A"
    assert class_view.grid[2][period_id].class_section is None
    assert class_view.grid[1] is None


def test_database_uniqueness_backs_up_the_validator(db_session, school, world, monkeypatch):
    service = LessonService(db_session)
    monkeypatch.setattr(service.validator, "ensure_valid", lambda **candidate: None)
    class_b = school.class_section(world["year"], "7B")
    room_b = school.room("Room 102")
    slot_id = world["slots"][(1, 1)]
    service.create_lesson(SCHOOL_ID, _payload(world, slot_id))

    with pytest.raises(ScheduleConflictError) as error:
        service.create_lesson(SCHOOL_ID, _payload(world, slot_id, class_section_id=class_b.id, room_id=room_b.id))

    assert error.value.code == "SCHEDULE_CONFLICT_TEACHER"
    assert error.value.details == {"source": "database"}
    assert len(_active_lessons(db_session, world["term"].id)) == 1
