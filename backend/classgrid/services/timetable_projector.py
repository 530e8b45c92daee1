from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

DAYS_OF_WEEK = tuple(range(7))


@dataclass(frozen=True)
class ProjectedLesson:
    lesson_id: str
    day_of_week: int
    period_id: str
    subject_name: str
    teacher_name: str
    room_name: str
    class_section_name: str


@dataclass(frozen=True)
class TimetableCell:
    lesson_id: str
    subject: str
    teacher: str
    room: str
    class_section: str | None = None


TimetableGrid = dict[int, dict[str, TimetableCell] | None]


def build_grid(lessons: Iterable[ProjectedLesson], *, include_class_section: bool = False) -> TimetableGrid:
    """Lay lessons out as day -> period -> cell.

    Every day 0-6 is present; a day without lessons stays ``None`` and gets
    its period map when its first lesson arrives.
    """
    grid: TimetableGrid = {day: None for day in DAYS_OF_WEEK}
    for lesson in lessons:
        periods = grid.get(lesson.day_of_week)
        if periods is None:
            periods = {}
            grid[lesson.day_of_week] = periods
        periods[lesson.period_id] = TimetableCell(
            lesson_id=lesson.lesson_id,
            subject=lesson.subject_name,
            teacher=lesson.teacher_name,
            room=lesson.room_name,
            class_section=lesson.class_section_name if include_class_section else None,
        )
    return grid
