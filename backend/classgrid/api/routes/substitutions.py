from datetime import date

from fastapi import APIRouter, Depends, Query, status

from classgrid.api.deps import get_school_id, get_substitution_service
from classgrid.schemas.substitution import SubstitutionCreate, SubstitutionOut
from classgrid.services.substitution_service import SubstitutionService

router = APIRouter()


@router.get("", response_model=list[SubstitutionOut])
def list_substitutions(
    on_date: date | None = Query(default=None, alias="date"),
    teacher_id: str | None = Query(default=None),
    school_id: str = Depends(get_school_id),
    service: SubstitutionService = Depends(get_substitution_service),
) -> list[SubstitutionOut]:
    return service.list_substitutions(school_id, on_date=on_date, teacher_id=teacher_id)


@router.post("", response_model=SubstitutionOut, status_code=status.HTTP_201_CREATED)
def create_substitution(
    payload: SubstitutionCreate,
    school_id: str = Depends(get_school_id),
    service: SubstitutionService = Depends(get_substitution_service),
) -> SubstitutionOut:
    return service.create(school_id, payload)


@router.delete("/{substitution_id}")
def delete_substitution(
    substitution_id: str,
    school_id: str = Depends(get_school_id),
    service: SubstitutionService = Depends(get_substitution_service),
) -> dict:
    service.delete_substitution(school_id, substitution_id)
    return {"success": True}
