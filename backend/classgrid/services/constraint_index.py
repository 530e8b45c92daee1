from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol, TypeVar


class HasTeacherId(Protocol):
    teacher_id: str


TeacherT = TypeVar("TeacherT", bound=HasTeacherId)


@dataclass(frozen=True)
class ConstraintIndex:
    """Lookup tables for qualification, availability and room suitability.

    Built once per scheduler run or validator call from raw pairs; never
    mutated afterwards. A room absent from ``suitable_subjects_by_room`` (or
    mapped to an empty set) accepts every subject.
    """

    qualified_subjects_by_teacher: Mapping[str, frozenset[str]] = field(default_factory=dict)
    blocked_slots: frozenset[tuple[str, int, str]] = frozenset()
    suitable_subjects_by_room: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *,
        qualifications: Iterable[tuple[str, str]] = (),
        unavailability: Iterable[tuple[str, int, str]] = (),
        suitability: Iterable[tuple[str, str]] = (),
    ) -> "ConstraintIndex":
        subjects_by_teacher: dict[str, set[str]] = defaultdict(set)
        for teacher_id, subject_id in qualifications:
            subjects_by_teacher[teacher_id].add(subject_id)

        subjects_by_room: dict[str, set[str]] = defaultdict(set)
        for room_id, subject_id in suitability:
            subjects_by_room[room_id].add(subject_id)

        return cls(
            qualified_subjects_by_teacher={key: frozenset(value) for key, value in subjects_by_teacher.items()},
            blocked_slots=frozenset(
                (teacher_id, int(day_of_week), period_id) for teacher_id, day_of_week, period_id in unavailability
            ),
            suitable_subjects_by_room={key: frozenset(value) for key, value in subjects_by_room.items()},
        )

    def is_qualified(self, teacher_id: str, subject_id: str) -> bool:
        return subject_id in self.qualified_subjects_by_teacher.get(teacher_id, frozenset())

    def is_blocked(self, teacher_id: str, day_of_week: int, period_id: str) -> bool:
        return (teacher_id, day_of_week, period_id) in self.blocked_slots

    def is_room_suitable(self, room_id: str, subject_id: str) -> bool:
        allowed = self.suitable_subjects_by_room.get(room_id)
        if not allowed:
            return True
        return subject_id in allowed

    def qualified_teachers(self, subject_id: str, roster: Sequence[TeacherT]) -> list[TeacherT]:
        return [teacher for teacher in roster if self.is_qualified(teacher.teacher_id, subject_id)]
