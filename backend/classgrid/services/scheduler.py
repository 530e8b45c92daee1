from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
import logging
import random
from typing import Protocol

from classgrid.services.constraint_index import ConstraintIndex
from classgrid.services.snapshots import (
    RequirementSnapshot,
    RoomSnapshot,
    SchedulingSnapshot,
    SlotSnapshot,
    TeacherSnapshot,
)

logger = logging.getLogger(__name__)

NO_COMBINATION_REASON = "No available teacher/room/slot combination"
NO_QUALIFIED_TEACHER_REASON = "No qualified active teacher for subject"


class SlotOrdering(Protocol):
    def order(self, slots: Sequence[SlotSnapshot]) -> list[SlotSnapshot]: ...


class ShuffledSlotOrdering:
    """Spreads placements across the week; pass a seed to make a run repeatable."""

    def __init__(self, seed: int | None = None) -> None:
        self.random = random.Random(seed)

    def order(self, slots: Sequence[SlotSnapshot]) -> list[SlotSnapshot]:
        ordered = list(slots)
        self.random.shuffle(ordered)
        return ordered


class CatalogSlotOrdering:
    """Keeps the catalog order (day, then period)."""

    def order(self, slots: Sequence[SlotSnapshot]) -> list[SlotSnapshot]:
        return list(slots)


@dataclass(frozen=True)
class SchedulerOptions:
    respect_teacher_availability: bool = True
    respect_room_suitability: bool = True
    max_consecutive_lessons_per_teacher: int = 4

    def __post_init__(self) -> None:
        if self.max_consecutive_lessons_per_teacher < 1:
            raise ValueError("max_consecutive_lessons_per_teacher must be at least 1")


@dataclass(frozen=True)
class Placement:
    requirement_id: str
    class_section_id: str
    subject_id: str
    teacher_id: str
    room_id: str
    time_slot_id: str


@dataclass(frozen=True)
class UnfulfilledRequirement:
    requirement_id: str
    class_section_id: str
    class_section_name: str
    subject_id: str
    subject_name: str
    required_lessons: int
    scheduled_lessons: int
    reason: str


@dataclass
class SchedulePlan:
    placements: list[Placement] = field(default_factory=list)
    unfulfilled: list[UnfulfilledRequirement] = field(default_factory=list)
    total_requirements: int = 0

    @property
    def total_lessons_created(self) -> int:
        return len(self.placements)

    @property
    def total_requirements_fulfilled(self) -> int:
        return self.total_requirements - len(self.unfulfilled)


class _Occupancy:
    """Used-slot bookkeeping owned by a single planning pass."""

    def __init__(self, slots_by_id: dict[str, SlotSnapshot]) -> None:
        self.slots_by_id = slots_by_id
        self.teacher_slots: dict[str, set[str]] = defaultdict(set)
        self.class_slots: dict[str, set[str]] = defaultdict(set)
        self.room_slots: dict[str, set[str]] = defaultdict(set)
        # (teacher_id, day_of_week) -> order indexes taught that day
        self.teacher_day_orders: dict[tuple[str, int], set[int]] = defaultdict(set)

    def mark(self, *, teacher_id: str, class_section_id: str, room_id: str, time_slot_id: str) -> None:
        self.teacher_slots[teacher_id].add(time_slot_id)
        self.class_slots[class_section_id].add(time_slot_id)
        self.room_slots[room_id].add(time_slot_id)
        slot = self.slots_by_id.get(time_slot_id)
        if slot is not None:
            self.teacher_day_orders[(teacher_id, slot.day_of_week)].add(slot.order_index)

    def teacher_busy(self, teacher_id: str, time_slot_id: str) -> bool:
        return time_slot_id in self.teacher_slots.get(teacher_id, ())

    def class_busy(self, class_section_id: str, time_slot_id: str) -> bool:
        return time_slot_id in self.class_slots.get(class_section_id, ())

    def room_busy(self, room_id: str, time_slot_id: str) -> bool:
        return time_slot_id in self.room_slots.get(room_id, ())

    def run_length_with(self, teacher_id: str, slot: SlotSnapshot) -> int:
        """Length of the teacher's consecutive run on that day if ``slot`` were added."""
        taught = self.teacher_day_orders.get((teacher_id, slot.day_of_week), set())
        run = 1
        cursor = slot.order_index - 1
        while cursor in taught:
            run += 1
            cursor -= 1
        cursor = slot.order_index + 1
        while cursor in taught:
            run += 1
            cursor += 1
        return run


class GreedyScheduler:
    """Most-constrained-first, first-fit placement of weekly lesson requirements.

    Requirements are ordered by how few active teachers can teach their
    subject (stable for ties). Every lesson instance takes the first
    (slot, teacher, room) triple that passes all checks; there is no
    backtracking, so anything that does not fit is reported as unfulfilled.
    Lessons already active in the term occupy their resources and count
    towards their requirement, which makes re-runs fill only the gaps.
    """

    def __init__(
        self,
        snapshot: SchedulingSnapshot,
        *,
        options: SchedulerOptions | None = None,
        ordering: SlotOrdering | None = None,
    ) -> None:
        self.snapshot = snapshot
        self.options = options or SchedulerOptions()
        self.ordering = ordering or ShuffledSlotOrdering()
        self.index = ConstraintIndex.build(
            qualifications=snapshot.qualifications,
            unavailability=snapshot.unavailability,
            suitability=snapshot.suitability,
        )

    def plan(self) -> SchedulePlan:
        snapshot = self.snapshot
        occupancy = _Occupancy({slot.time_slot_id: slot for slot in snapshot.slots})
        for lesson in snapshot.existing_lessons:
            occupancy.mark(
                teacher_id=lesson.teacher_id,
                class_section_id=lesson.class_section_id,
                room_id=lesson.room_id,
                time_slot_id=lesson.time_slot_id,
            )
        already_scheduled = Counter(
            (lesson.class_section_id, lesson.subject_id) for lesson in snapshot.existing_lessons
        )

        eligible_by_subject: dict[str, list[TeacherSnapshot]] = {}
        for requirement in snapshot.requirements:
            if requirement.subject_id not in eligible_by_subject:
                eligible_by_subject[requirement.subject_id] = self.index.qualified_teachers(
                    requirement.subject_id, snapshot.teachers
                )
        ordered_requirements = sorted(
            snapshot.requirements,
            key=lambda item: len(eligible_by_subject[item.subject_id]),
        )
        slots = self.ordering.order(snapshot.slots)

        plan = SchedulePlan(total_requirements=len(snapshot.requirements))
        for requirement in ordered_requirements:
            eligible = eligible_by_subject[requirement.subject_id]
            scheduled = already_scheduled[(requirement.class_section_id, requirement.subject_id)]
            while scheduled < requirement.weekly_lessons_required:
                placement = self._place_instance(requirement, eligible, slots, occupancy)
                if placement is None:
                    break
                occupancy.mark(
                    teacher_id=placement.teacher_id,
                    class_section_id=placement.class_section_id,
                    room_id=placement.room_id,
                    time_slot_id=placement.time_slot_id,
                )
                plan.placements.append(placement)
                scheduled += 1

            if scheduled < requirement.weekly_lessons_required:
                plan.unfulfilled.append(
                    UnfulfilledRequirement(
                        requirement_id=requirement.requirement_id,
                        class_section_id=requirement.class_section_id,
                        class_section_name=requirement.class_section_name,
                        subject_id=requirement.subject_id,
                        subject_name=requirement.subject_name,
                        required_lessons=requirement.weekly_lessons_required,
                        scheduled_lessons=scheduled,
                        reason=NO_COMBINATION_REASON if eligible else NO_QUALIFIED_TEACHER_REASON,
                    )
                )

        logger.debug(
            "LESSON PLAN | requirements=%s | placements=%s | unfulfilled=%s | slots=%s",
            plan.total_requirements,
            plan.total_lessons_created,
            len(plan.unfulfilled),
            len(slots),
        )
        return plan

    def _place_instance(
        self,
        requirement: RequirementSnapshot,
        eligible: Sequence[TeacherSnapshot],
        slots: Sequence[SlotSnapshot],
        occupancy: _Occupancy,
    ) -> Placement | None:
        options = self.options
        for slot in slots:
            if occupancy.class_busy(requirement.class_section_id, slot.time_slot_id):
                continue
            for teacher in eligible:
                if occupancy.teacher_busy(teacher.teacher_id, slot.time_slot_id):
                    continue
                if options.respect_teacher_availability and self.index.is_blocked(
                    teacher.teacher_id, slot.day_of_week, slot.period_id
                ):
                    continue
                if occupancy.run_length_with(teacher.teacher_id, slot) > options.max_consecutive_lessons_per_teacher:
                    continue
                room = self._first_free_room(requirement.subject_id, slot, occupancy)
                if room is None:
                    continue
                return Placement(
                    requirement_id=requirement.requirement_id,
                    class_section_id=requirement.class_section_id,
                    subject_id=requirement.subject_id,
                    teacher_id=teacher.teacher_id,
                    room_id=room.room_id,
                    time_slot_id=slot.time_slot_id,
                )
        return None

    def _first_free_room(self, subject_id: str, slot: SlotSnapshot, occupancy: _Occupancy) -> RoomSnapshot | None:
        for room in self.snapshot.rooms:
            if occupancy.room_busy(room.room_id, slot.time_slot_id):
                continue
            if self.options.respect_room_suitability and not self.index.is_room_suitable(room.room_id, subject_id):
                continue
            return room
        return None
