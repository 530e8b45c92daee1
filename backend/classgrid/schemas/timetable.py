from __future__ import annotations

from typing import Literal

from classgrid.schemas.common import CamelModel


class TimetableCellOut(CamelModel):
    lesson_id: str
    subject: str
    teacher: str
    room: str
    class_section: str | None = None


class TimetableView(CamelModel):
    term_id: str
    scope: Literal["class_section", "teacher", "room"]
    scope_id: str
    scope_name: str
    grid: dict[int, dict[str, TimetableCellOut] | None]
