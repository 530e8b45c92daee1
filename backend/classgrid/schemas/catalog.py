from __future__ import annotations

from datetime import date

from pydantic import Field, field_validator, model_validator

from classgrid.models.teacher import TeacherStatus
from classgrid.schemas.common import TIME_PATTERN, CamelModel, parse_time_to_minutes


class AcademicYearCreate(CamelModel):
    name: str = Field(min_length=1, max_length=50)
    start_date: date | None = None
    end_date: date | None = None


class AcademicYearOut(AcademicYearCreate):
    id: str


class TermCreate(CamelModel):
    academic_year_id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=100)
    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def validate_dates(self) -> "TermCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class TermOut(TermCreate):
    id: str


class ClassSectionCreate(CamelModel):
    academic_year_id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=50)


class ClassSectionOut(ClassSectionCreate):
    id: str


class SubjectCreate(CamelModel):
    code: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=200)


class SubjectOut(SubjectCreate):
    id: str


class TeacherCreate(CamelModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    status: TeacherStatus = TeacherStatus.active
    subject_ids: list[str] = Field(default_factory=list, max_length=100)


class TeacherOut(CamelModel):
    id: str
    first_name: str
    last_name: str
    email: str | None = None
    status: TeacherStatus
    subject_ids: list[str] = Field(default_factory=list)


class AvailabilityEntry(CamelModel):
    day_of_week: int = Field(ge=0, le=6)
    period_id: str = Field(min_length=1, max_length=36)
    is_available: bool = False


class AvailabilityReplace(CamelModel):
    entries: list[AvailabilityEntry] = Field(default_factory=list, max_length=500)

    @model_validator(mode="after")
    def reject_duplicates(self) -> "AvailabilityReplace":
        keys = [(entry.day_of_week, entry.period_id) for entry in self.entries]
        if len(set(keys)) != len(keys):
            raise ValueError("Duplicate (dayOfWeek, periodId) entries are not allowed")
        return self


class RoomCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    building: str | None = Field(default=None, max_length=200)
    capacity: int = Field(default=30, ge=1, le=1000)
    subject_ids: list[str] = Field(default_factory=list, max_length=100)


class RoomOut(CamelModel):
    id: str
    name: str
    building: str | None = None
    capacity: int
    subject_ids: list[str] = Field(default_factory=list)


class PeriodEntry(CamelModel):
    name: str = Field(min_length=1, max_length=50)
    start_time: str
    end_time: str
    order_index: int = Field(ge=1)
    is_break: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "PeriodEntry":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("endTime must be after startTime")
        return self


class PeriodSetCreate(CamelModel):
    academic_year_id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=100)
    periods: list[PeriodEntry] = Field(min_length=1, max_length=30)
    working_days: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5], max_length=7)

    @field_validator("working_days")
    @classmethod
    def validate_working_days(cls, value: list[int]) -> list[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("Working days must be between 0 (Sunday) and 6 (Saturday)")
        if len(set(value)) != len(value):
            raise ValueError("Duplicate dayOfWeek values are not allowed")
        return value

    @model_validator(mode="after")
    def validate_periods(self) -> "PeriodSetCreate":
        indexes = [period.order_index for period in self.periods]
        if len(set(indexes)) != len(indexes):
            raise ValueError("orderIndex values must be unique")
        if all(period.is_break for period in self.periods):
            raise ValueError("At least one non-break period is required")
        return self


class PeriodOut(CamelModel):
    id: str
    name: str
    start_time: str
    end_time: str
    order_index: int
    is_break: bool


class PeriodSetOut(CamelModel):
    id: str
    academic_year_id: str
    name: str
    periods: list[PeriodOut]
    working_days: list[int]


class TimeSlotOut(CamelModel):
    id: str
    day_of_week: int
    period_id: str
    period_name: str
    order_index: int
    start_time: str
    end_time: str


class TimeSlotGenerationReport(CamelModel):
    total_slots_generated: int
    details: list[TimeSlotOut]


class RequirementCreate(CamelModel):
    academic_year_id: str = Field(min_length=1, max_length=36)
    class_section_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)
    weekly_lessons_required: int = Field(ge=1, le=60)


class RequirementOut(RequirementCreate):
    id: str
