import os

# The application module builds its engine at import time; keep it off PostgreSQL.
os.environ["DATABASE_URL"] = "sqlite+pysqlite://"
os.environ["AUTO_CREATE_SCHEMA"] = "false"

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from classgrid.api.deps import get_db  # noqa: E402
from classgrid.db.base import Base  # noqa: E402
from classgrid.main import app  # noqa: E402
from classgrid.models.academic import AcademicYear, ClassSection, Subject, Term  # noqa: E402
from classgrid.models.lesson import Lesson, LessonStatus  # noqa: E402
from classgrid.models.period import Period, PeriodSet, WorkingDay  # noqa: E402
from classgrid.models.requirement import ClassSubjectRequirement  # noqa: E402
from classgrid.models.room import Room, RoomSubjectSuitability  # noqa: E402
from classgrid.models.teacher import Teacher, TeacherAvailability, TeacherStatus, TeacherSubject  # noqa: E402
from classgrid.services.term_lock import clear_term_locks  # noqa: E402
from classgrid.services.time_slots import generate_time_slots  # noqa: E402

SCHOOL_ID = "school-1"
PERIOD_TIMES = [
    ("08:00", "08:45"),
    ("08:50", "09:35"),
    ("09:40", "10:25"),
    ("10:30", "11:15"),
    ("11:20", "12:05"),
    ("12:10", "12:55"),
    ("13:00", "13:45"),
    ("13:50", "14:35"),
]


@pytest.fixture()
def engine():
    clear_term_locks()
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    clear_term_locks()


@pytest.fixture()
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app, headers={"X-School-Id": SCHOOL_ID}) as test_client:
        yield test_client

    app.dependency_overrides.clear()


class SchoolBuilder:
    """Writes catalog rows for one school straight through a session."""

    def __init__(self, db, school_id: str = SCHOOL_ID) -> None:
        self.db = db
        self.school_id = school_id

    def _save(self, record):
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def academic_year(self, name: str = "2026/2027") -> AcademicYear:
        return self._save(
            AcademicYear(school_id=self.school_id, name=name, start_date=date(2026, 9, 1), end_date=date(2027, 6, 30))
        )

    def term(self, academic_year: AcademicYear, name: str = "Autumn") -> Term:
        return self._save(Term(school_id=self.school_id, academic_year_id=academic_year.id, name=name))

    def class_section(self, academic_year: AcademicYear, name: str) -> ClassSection:
        return self._save(ClassSection(school_id=self.school_id, academic_year_id=academic_year.id, name=name))

    def subject(self, code: str, name: str | None = None) -> Subject:
        return self._save(Subject(school_id=self.school_id, code=code, name=name or code.title()))

    def teacher(self, first_name: str, last_name: str, subjects=(), status=TeacherStatus.active) -> Teacher:
        teacher = self._save(
            Teacher(school_id=self.school_id, first_name=first_name, last_name=last_name, status=status)
        )
        for subject in subjects:
            self.db.add(TeacherSubject(school_id=self.school_id, teacher_id=teacher.id, subject_id=subject.id))
        self.db.commit()
        return teacher

    def room(self, name: str, subjects=()) -> Room:
        room = self._save(Room(school_id=self.school_id, name=name, capacity=30))
        for subject in subjects:
            self.db.add(RoomSubjectSuitability(school_id=self.school_id, room_id=room.id, subject_id=subject.id))
        self.db.commit()
        return room

    def period_set(
        self,
        academic_year: AcademicYear,
        *,
        periods: int = 6,
        days=(1, 2, 3, 4, 5),
        breaks=(),
        name: str = "Standard week",
    ) -> tuple[PeriodSet, list[Period]]:
        """``breaks`` lists 1-based order indexes that become break periods."""
        period_set = self._save(PeriodSet(school_id=self.school_id, academic_year_id=academic_year.id, name=name))
        created = []
        for order_index in range(1, periods + 1):
            start_time, end_time = PERIOD_TIMES[order_index - 1]
            period = Period(
                school_id=self.school_id,
                period_set_id=period_set.id,
                name="Break" if order_index in breaks else f"P{order_index}",
                start_time=start_time,
                end_time=end_time,
                order_index=order_index,
                is_break=order_index in breaks,
            )
            self.db.add(period)
            created.append(period)
        for day in days:
            self.db.add(WorkingDay(school_id=self.school_id, period_set_id=period_set.id, day_of_week=day))
        self.db.commit()
        for period in created:
            self.db.refresh(period)
        return period_set, created

    def time_slots(self, period_set: PeriodSet) -> dict[tuple[int, int], str]:
        """(day_of_week, order_index) -> time slot id."""
        return {
            (slot.day_of_week, period.order_index): slot.id
            for slot, period in generate_time_slots(self.db, self.school_id, period_set.id)
        }

    def unavailable(self, teacher: Teacher, day_of_week: int, period: Period) -> None:
        self._save(
            TeacherAvailability(
                school_id=self.school_id,
                teacher_id=teacher.id,
                day_of_week=day_of_week,
                period_id=period.id,
                is_available=False,
            )
        )

    def requirement(self, academic_year, class_section, subject, weekly_lessons: int) -> ClassSubjectRequirement:
        return self._save(
            ClassSubjectRequirement(
                school_id=self.school_id,
                academic_year_id=academic_year.id,
                class_section_id=class_section.id,
                subject_id=subject.id,
                weekly_lessons_required=weekly_lessons,
            )
        )

    def lesson(self, term: Term, class_section, subject, teacher, room, time_slot_id: str, **extra) -> Lesson:
        return self._save(
            Lesson(
                school_id=extra.pop("school_id", self.school_id),
                academic_year_id=term.academic_year_id,
                term_id=term.id,
                class_section_id=class_section.id,
                subject_id=subject.id,
                teacher_id=teacher.id,
                room_id=room.id,
                time_slot_id=time_slot_id,
                status=extra.pop("status", LessonStatus.scheduled),
            )
        )


@pytest.fixture()
def school(db_session):
    return SchoolBuilder(db_session)
