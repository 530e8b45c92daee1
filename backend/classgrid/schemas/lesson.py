from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import Field, model_validator

from classgrid.models.lesson import LessonStatus
from classgrid.schemas.common import CamelModel

IdField = Annotated[str, Field(min_length=1, max_length=36)]


class LessonCreate(CamelModel):
    academic_year_id: IdField
    term_id: IdField
    class_section_id: IdField
    subject_id: IdField
    teacher_id: IdField
    room_id: IdField
    time_slot_id: IdField


class LessonUpdate(CamelModel):
    teacher_id: IdField | None = None
    room_id: IdField | None = None
    time_slot_id: IdField | None = None

    @model_validator(mode="after")
    def require_change(self) -> "LessonUpdate":
        if self.teacher_id is None and self.room_id is None and self.time_slot_id is None:
            raise ValueError("At least one of teacherId, roomId or timeSlotId is required")
        return self


class LessonOut(CamelModel):
    id: str
    school_id: str
    academic_year_id: str
    term_id: str
    class_section_id: str
    subject_id: str
    teacher_id: str
    room_id: str
    time_slot_id: str
    status: LessonStatus
    created_at: datetime | None = None


class LessonListQuery(CamelModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    term_id: str | None = None
    class_section_id: str | None = None
    teacher_id: str | None = None
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    order: Literal["asc", "desc"] = "desc"


class LessonPage(CamelModel):
    items: list[LessonOut]
    total: int
    page: int
    limit: int


class BulkCreateLessonsRequest(CamelModel):
    lessons: list[LessonCreate] = Field(min_length=1)


class BulkItemCreated(CamelModel):
    status: Literal["created"] = "created"
    index: int
    lesson_id: str


class BulkItemFailed(CamelModel):
    status: Literal["failed"] = "failed"
    index: int
    code: str
    message: str


BulkItemResult = Annotated[Union[BulkItemCreated, BulkItemFailed], Field(discriminator="status")]


class BulkCreateReport(CamelModel):
    created: int
    failed: int
    errors: list[BulkItemFailed]
    results: list[BulkItemResult]

    @classmethod
    def from_results(cls, results: list[BulkItemCreated | BulkItemFailed]) -> "BulkCreateReport":
        errors = [item for item in results if isinstance(item, BulkItemFailed)]
        return cls(
            created=len(results) - len(errors),
            failed=len(errors),
            errors=errors,
            results=results,
        )


class ClearLessonsResult(CamelModel):
    deleted_count: int
