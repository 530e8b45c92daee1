from __future__ import annotations

from datetime import date, datetime

from pydantic import Field

from classgrid.schemas.common import CamelModel


class SubstitutionCreate(CamelModel):
    lesson_id: str = Field(min_length=1, max_length=36)
    substitute_teacher_id: str = Field(min_length=1, max_length=36)
    lesson_date: date = Field(alias="date")
    reason: str | None = Field(default=None, max_length=500)


class SubstitutionOut(CamelModel):
    id: str
    lesson_id: str
    original_teacher_id: str
    substitute_teacher_id: str
    lesson_date: date = Field(alias="date")
    reason: str | None = None
    created_at: datetime | None = None
