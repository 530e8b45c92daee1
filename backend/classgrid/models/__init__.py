from classgrid.models.academic import AcademicYear, ClassSection, Subject, Term  # noqa: F401
from classgrid.models.lesson import Lesson, LessonStatus  # noqa: F401
from classgrid.models.period import Period, PeriodSet, TimeSlot, WorkingDay  # noqa: F401
from classgrid.models.requirement import ClassSubjectRequirement  # noqa: F401
from classgrid.models.room import Room, RoomSubjectSuitability  # noqa: F401
from classgrid.models.substitution import Substitution  # noqa: F401
from classgrid.models.teacher import (  # noqa: F401
    Teacher,
    TeacherAvailability,
    TeacherStatus,
    TeacherSubject,
)
