from __future__ import annotations

from pydantic import Field

from classgrid.schemas.common import CamelModel


class GenerationOptions(CamelModel):
    respect_teacher_availability: bool = True
    respect_room_suitability: bool = True
    max_consecutive_lessons_per_teacher: int | None = Field(default=None, ge=1, le=24)
    random_seed: int | None = Field(default=None, ge=0, le=2_000_000_000)


class GenerateLessonsRequest(CamelModel):
    term_id: str = Field(min_length=1, max_length=36)
    period_set_id: str = Field(min_length=1, max_length=36)
    options: GenerationOptions = Field(default_factory=GenerationOptions)


class UnfulfilledRequirementOut(CamelModel):
    class_section_id: str
    class_section_name: str
    subject_id: str
    subject_name: str
    required_lessons: int
    scheduled_lessons: int
    reason: str


class GenerationReport(CamelModel):
    total_lessons_created: int
    total_requirements_fulfilled: int
    total_requirements: int
    unfulfilled: list[UnfulfilledRequirementOut] = Field(default_factory=list)
