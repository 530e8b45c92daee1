from collections.abc import Generator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from classgrid.core.config import get_settings
from classgrid.db.session import SessionLocal
from classgrid.services.lesson_service import LessonService
from classgrid.services.substitution_service import SubstitutionService


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_school_id(x_school_id: str = Header(min_length=1, max_length=36)) -> str:
    return x_school_id


def get_lesson_service(db: Session = Depends(get_db)) -> LessonService:
    return LessonService(db, get_settings())


def get_substitution_service(db: Session = Depends(get_db)) -> SubstitutionService:
    return SubstitutionService(db)
