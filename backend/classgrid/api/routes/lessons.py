from fastapi import APIRouter, Depends, Query, status

from classgrid.api.deps import get_lesson_service, get_school_id
from classgrid.schemas.generator import GenerateLessonsRequest, GenerationReport
from classgrid.schemas.lesson import (
    BulkCreateLessonsRequest,
    BulkCreateReport,
    ClearLessonsResult,
    LessonCreate,
    LessonListQuery,
    LessonOut,
    LessonPage,
    LessonUpdate,
)
from classgrid.services.lesson_service import LessonService

router = APIRouter()


@router.post("/auto-generate", response_model=GenerationReport)
def auto_generate_lessons(
    payload: GenerateLessonsRequest,
    school_id: str = Depends(get_school_id),
    service: LessonService = Depends(get_lesson_service),
) -> GenerationReport:
    return service.generate(
        school_id,
        term_id=payload.term_id,
        period_set_id=payload.period_set_id,
        options=payload.options,
    )


@router.get("", response_model=LessonPage)
def list_lessons(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    term_id: str | None = Query(default=None),
    class_section_id: str | None = Query(default=None),
    teacher_id: str | None = Query(default=None),
    day_of_week: int | None = Query(default=None, ge=0, le=6),
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
    school_id: str = Depends(get_school_id),
    service: LessonService = Depends(get_lesson_service),
) -> LessonPage:
    query = LessonListQuery(
        page=page,
        limit=limit,
        term_id=term_id,
        class_section_id=class_section_id,
        teacher_id=teacher_id,
        day_of_week=day_of_week,
        order=order,
    )
    items, total = service.list_lessons(school_id, query)
    return LessonPage(
        items=[LessonOut.model_validate(item) for item in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("", response_model=LessonOut, status_code=status.HTTP_201_CREATED)
def create_lesson(
    payload: LessonCreate,
    school_id: str = Depends(get_school_id),
    service: LessonService = Depends(get_lesson_service),
) -> LessonOut:
    return service.create_lesson(school_id, payload)


@router.post("/bulk-create", response_model=BulkCreateReport)
def bulk_create_lessons(
    payload: BulkCreateLessonsRequest,
    school_id: str = Depends(get_school_id),
    service: LessonService = Depends(get_lesson_service),
) -> BulkCreateReport:
    return service.bulk_create_lessons(school_id, payload.lessons)


@router.delete("/clear", response_model=ClearLessonsResult)
def clear_lessons(
    term_id: str = Query(min_length=1, max_length=36),
    school_id: str = Depends(get_school_id),
    service: LessonService = Depends(get_lesson_service),
) -> ClearLessonsResult:
    return ClearLessonsResult(deleted_count=service.clear_by_term(school_id, term_id))


@router.get("/{lesson_id}", response_model=LessonOut)
def get_lesson(
    lesson_id: str,
    school_id: str = Depends(get_school_id),
    service: LessonService = Depends(get_lesson_service),
) -> LessonOut:
    return service.get_lesson(school_id, lesson_id)


@router.patch("/{lesson_id}", response_model=LessonOut)
def update_lesson(
    lesson_id: str,
    payload: LessonUpdate,
    school_id: str = Depends(get_school_id),
    service: LessonService = Depends(get_lesson_service),
) -> LessonOut:
    return service.update_lesson(school_id, lesson_id, payload)


@router.post("/{lesson_id}/cancel", response_model=LessonOut)
def cancel_lesson(
    lesson_id: str,
    school_id: str = Depends(get_school_id),
    service: LessonService = Depends(get_lesson_service),
) -> LessonOut:
    return service.cancel_lesson(school_id, lesson_id)
