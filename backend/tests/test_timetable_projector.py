from classgrid.services.timetable_projector import DAYS_OF_WEEK, ProjectedLesson, TimetableCell, build_grid


def _lesson(lesson_id, day, period, class_section="7A"):
    return ProjectedLesson(
        lesson_id=lesson_id,
        day_of_week=day,
        period_id=period,
        subject_name="Mathematics",
        teacher_name="Ada L.",
        room_name="Room 101",
        class_section_name=class_section,
    )


def test_empty_days_are_none():
    grid = build_grid([])

    assert set(grid) == set(DAYS_OF_WEEK)
    assert all(value is None for value in grid.values())


def test_cells_are_grouped_by_day_and_period():
    grid = build_grid([_lesson("l1", 1, "p1"), _lesson("l2", 1, "p3"), _lesson("l3", 4, "p2")])

    assert set(grid[1]) == {"p1", "p3"}
    assert grid[4]["p2"] == TimetableCell(lesson_id="l3", subject="Mathematics", teacher="Ada L.", room="Room 101")
    assert grid[0] is None and grid[6] is None


def test_class_section_only_included_when_requested():
    lessons = [_lesson("l1", 2, "p1", class_section="8B")]

    assert build_grid(lessons)[2]["p1"].class_section is None
    assert build_grid(lessons, include_class_section=True)[2]["p1"].class_section == "8B"
