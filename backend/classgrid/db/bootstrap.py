from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from classgrid.core.config import get_settings
from classgrid.db.base import Base
from classgrid.db.session import engine
import classgrid.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_TABLES = {
    "lessons",
    "class_subject_requirements",
    "teachers",
    "teacher_subjects",
    "teacher_availability",
    "rooms",
    "room_subject_suitability",
    "time_slots",
}

# Partial unique indexes backing the active-lesson double-booking invariant.
REQUIRED_LESSON_INDEXES = {
    "uq_lessons_active_teacher_slot",
    "uq_lessons_active_class_slot",
    "uq_lessons_active_room_slot",
}


def missing_schema_objects(bind: Engine) -> tuple[list[str], list[str]]:
    with bind.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = sorted(REQUIRED_TABLES - table_names)
        if "lessons" not in table_names:
            return missing_tables, sorted(REQUIRED_LESSON_INDEXES)
        index_names = {item["name"] for item in inspector.get_indexes("lessons")}
        return missing_tables, sorted(REQUIRED_LESSON_INDEXES - index_names)


def ensure_runtime_schema(bind: Engine | None = None) -> None:
    bind = bind or engine
    settings = get_settings()
    try:
        if settings.auto_create_schema:
            Base.metadata.create_all(bind=bind)
        missing_tables, missing_indexes = missing_schema_objects(bind)
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema bootstrap failed")
        raise RuntimeError("Runtime schema bootstrap failed") from exc

    if missing_tables:
        logger.warning(
            "SCHEMA INCOMPLETE | missing_tables=%s | hint=run `alembic upgrade head`",
            ",".join(missing_tables),
        )
    if missing_indexes:
        logger.warning(
            "SCHEMA INCOMPLETE | missing_lesson_indexes=%s | double-booking is only checked in-process",
            ",".join(missing_indexes),
        )
