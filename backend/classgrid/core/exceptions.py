from enum import Enum


class ViolationKind(str, Enum):
    """Reasons a lesson placement is rejected, in the order they are checked."""

    teacher_conflict = "SCHEDULE_CONFLICT_TEACHER"
    class_conflict = "SCHEDULE_CONFLICT_CLASS"
    room_conflict = "SCHEDULE_CONFLICT_ROOM"
    teacher_not_qualified = "TEACHER_NOT_QUALIFIED"
    room_not_suitable = "ROOM_NOT_SUITABLE"
    teacher_not_available = "TEACHER_NOT_AVAILABLE"

    @property
    def is_conflict(self) -> bool:
        return self in CONFLICT_KINDS


CONFLICT_KINDS = frozenset(
    {ViolationKind.teacher_conflict, ViolationKind.class_conflict, ViolationKind.room_conflict}
)

VIOLATION_MESSAGES = {
    ViolationKind.teacher_conflict: "Teacher already has a lesson at this time",
    ViolationKind.class_conflict: "Class already has a lesson at this time",
    ViolationKind.room_conflict: "Room already occupied at this time",
    ViolationKind.teacher_not_qualified: "Teacher is not qualified for this subject",
    ViolationKind.room_not_suitable: "Room is not suitable for this subject",
    ViolationKind.teacher_not_available: "Teacher is not available at this time",
}


class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, code: str = "INTERNAL_ERROR", details: dict = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ViolationError(AppError):
    """Raised when a lesson placement breaks a scheduling rule."""
    def __init__(self, kind: ViolationKind, status_code: int, details: dict = None):
        self.kind = kind
        super().__init__(VIOLATION_MESSAGES[kind], status_code=status_code, code=kind.value, details=details)

    @classmethod
    def for_kind(cls, kind: ViolationKind, details: dict = None) -> "ViolationError":
        if kind.is_conflict:
            return ScheduleConflictError(kind, details=details)
        return PolicyViolationError(kind, details=details)


class ScheduleConflictError(ViolationError):
    """Teacher, class or room is already booked at the requested slot."""
    def __init__(self, kind: ViolationKind, details: dict = None):
        super().__init__(kind, status_code=409, details=details)


class PolicyViolationError(ViolationError):
    """Qualification, suitability or availability rule rejected the placement."""
    def __init__(self, kind: ViolationKind, details: dict = None):
        super().__init__(kind, status_code=422, details=details)


class InvalidStatusTransitionError(AppError):
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, code="INVALID_STATUS_TRANSITION", details=details)


class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        code = f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND"
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            code=code,
            details={"id": resource_id},
        )


class DuplicateResourceError(AppError):
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, code="DUPLICATE_RESOURCE", details=details)


class SubstitutionError(AppError):
    """Raised when a substitute teacher cannot cover a lesson."""
    def __init__(self, message: str, code: str, status_code: int = 422):
        super().__init__(message, status_code=status_code, code=code)
