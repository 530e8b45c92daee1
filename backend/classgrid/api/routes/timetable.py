from fastapi import APIRouter, Depends, Query

from classgrid.api.deps import get_lesson_service, get_school_id
from classgrid.schemas.timetable import TimetableView
from classgrid.services.lesson_service import LessonService

router = APIRouter()


@router.get("/class/{class_section_id}", response_model=TimetableView)
def class_timetable(
    class_section_id: str,
    term_id: str = Query(min_length=1, max_length=36),
    school_id: str = Depends(get_school_id),
    service: LessonService = Depends(get_lesson_service),
) -> TimetableView:
    return service.timetable_by_class(school_id, term_id, class_section_id)


@router.get("/teacher/{teacher_id}", response_model=TimetableView)
def teacher_timetable(
    teacher_id: str,
    term_id: str = Query(min_length=1, max_length=36),
    school_id: str = Depends(get_school_id),
    service: LessonService = Depends(get_lesson_service),
) -> TimetableView:
    return service.timetable_by_teacher(school_id, term_id, teacher_id)


@router.get("/room/{room_id}", response_model=TimetableView)
def room_timetable(
    room_id: str,
    term_id: str = Query(min_length=1, max_length=36),
    school_id: str = Depends(get_school_id),
    service: LessonService = Depends(get_lesson_service),
) -> TimetableView:
    return service.timetable_by_room(school_id, term_id, room_id)
