import pytest

from classgrid.core.exceptions import (
    AppError,
    PolicyViolationError,
    ResourceNotFoundError,
    ScheduleConflictError,
    ViolationError,
    ViolationKind,
)


@pytest.mark.parametrize(
    ("kind", "expected_class", "status_code"),
    [
        (ViolationKind.teacher_conflict, ScheduleConflictError, 409),
        (ViolationKind.class_conflict, ScheduleConflictError, 409),
        (ViolationKind.room_conflict, ScheduleConflictError, 409),
        (ViolationKind.teacher_not_qualified, PolicyViolationError, 422),
        (ViolationKind.room_not_suitable, PolicyViolationError, 422),
        (ViolationKind.teacher_not_available, PolicyViolationError, 422),
    ],
)
def test_violation_error_for_kind(kind, expected_class, status_code):
    error = ViolationError.for_kind(kind, details={"time_slot_id": "slot-1"})

    assert isinstance(error, expected_class)
    assert isinstance(error, AppError)
    assert error.status_code == status_code
    assert error.code == kind.value
    assert error.details == {"time_slot_id": "slot-1"}


def test_not_found_code_is_derived_from_resource_type():
    assert ResourceNotFoundError("Lesson", "l1").code == "LESSON_NOT_FOUND"
    assert ResourceNotFoundError("Period set", "p1").code == "PERIOD_SET_NOT_FOUND"
    assert ResourceNotFoundError("Time slot", "s1").details == {"id": "s1"}
