from collections import defaultdict

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from classgrid.api.deps import get_db, get_school_id
from classgrid.core.exceptions import DuplicateResourceError, ResourceNotFoundError
from classgrid.models.academic import AcademicYear, ClassSection, Subject, Term
from classgrid.models.period import Period, PeriodSet, TimeSlot, WorkingDay
from classgrid.models.requirement import ClassSubjectRequirement
from classgrid.models.room import Room, RoomSubjectSuitability
from classgrid.models.teacher import Teacher, TeacherAvailability, TeacherSubject
from classgrid.schemas.catalog import (
    AcademicYearCreate,
    AcademicYearOut,
    AvailabilityEntry,
    AvailabilityReplace,
    ClassSectionCreate,
    ClassSectionOut,
    PeriodOut,
    PeriodSetCreate,
    PeriodSetOut,
    RequirementCreate,
    RequirementOut,
    RoomCreate,
    RoomOut,
    SubjectCreate,
    SubjectOut,
    TeacherCreate,
    TeacherOut,
    TermCreate,
    TermOut,
    TimeSlotGenerationReport,
    TimeSlotOut,
)
from classgrid.services.time_slots import generate_time_slots

router = APIRouter()


def _get_owned(db: Session, model, record_id: str, school_id: str, label: str):
    record = db.get(model, record_id)
    if record is None or record.school_id != school_id:
        raise ResourceNotFoundError(label, record_id)
    return record


def _ensure_subjects(db: Session, school_id: str, subject_ids: list[str]) -> list[str]:
    unique_ids = list(dict.fromkeys(subject_ids))
    if not unique_ids:
        return []
    found = set(
        db.execute(select(Subject.id).where(Subject.school_id == school_id, Subject.id.in_(unique_ids))).scalars()
    )
    for subject_id in unique_ids:
        if subject_id not in found:
            raise ResourceNotFoundError("Subject", subject_id)
    return unique_ids


# ---- academic years and terms ----


@router.get("/academic-years", response_model=list[AcademicYearOut])
def list_academic_years(school_id: str = Depends(get_school_id), db: Session = Depends(get_db)) -> list[AcademicYearOut]:
    return list(
        db.execute(select(AcademicYear).where(AcademicYear.school_id == school_id).order_by(AcademicYear.name)).scalars()
    )


@router.post("/academic-years", response_model=AcademicYearOut, status_code=status.HTTP_201_CREATED)
def create_academic_year(
    payload: AcademicYearCreate,
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> AcademicYearOut:
    existing = db.execute(
        select(AcademicYear).where(AcademicYear.school_id == school_id, AcademicYear.name == payload.name)
    ).scalar_one_or_none()
    if existing:
        raise DuplicateResourceError("Academic year name already exists", details={"name": payload.name})
    academic_year = AcademicYear(school_id=school_id, **payload.model_dump())
    db.add(academic_year)
    db.commit()
    db.refresh(academic_year)
    return academic_year


@router.get("/terms", response_model=list[TermOut])
def list_terms(
    academic_year_id: str | None = Query(default=None),
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> list[TermOut]:
    query = select(Term).where(Term.school_id == school_id)
    if academic_year_id:
        query = query.where(Term.academic_year_id == academic_year_id)
    return list(db.execute(query.order_by(Term.start_date, Term.name)).scalars())


@router.post("/terms", response_model=TermOut, status_code=status.HTTP_201_CREATED)
def create_term(payload: TermCreate, school_id: str = Depends(get_school_id), db: Session = Depends(get_db)) -> TermOut:
    _get_owned(db, AcademicYear, payload.academic_year_id, school_id, "Academic year")
    existing = db.execute(
        select(Term).where(Term.academic_year_id == payload.academic_year_id, Term.name == payload.name)
    ).scalar_one_or_none()
    if existing:
        raise DuplicateResourceError("Term name already exists for this academic year", details={"name": payload.name})
    term = Term(school_id=school_id, **payload.model_dump())
    db.add(term)
    db.commit()
    db.refresh(term)
    return term


# ---- class sections and subjects ----


@router.get("/class-sections", response_model=list[ClassSectionOut])
def list_class_sections(
    academic_year_id: str | None = Query(default=None),
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> list[ClassSectionOut]:
    query = select(ClassSection).where(ClassSection.school_id == school_id)
    if academic_year_id:
        query = query.where(ClassSection.academic_year_id == academic_year_id)
    return list(db.execute(query.order_by(ClassSection.name)).scalars())


@router.post("/class-sections", response_model=ClassSectionOut, status_code=status.HTTP_201_CREATED)
def create_class_section(
    payload: ClassSectionCreate,
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> ClassSectionOut:
    _get_owned(db, AcademicYear, payload.academic_year_id, school_id, "Academic year")
    existing = db.execute(
        select(ClassSection).where(
            ClassSection.school_id == school_id,
            ClassSection.academic_year_id == payload.academic_year_id,
            ClassSection.name == payload.name,
        )
    ).scalar_one_or_none()
    if existing:
        raise DuplicateResourceError("Class section name already exists", details={"name": payload.name})
    class_section = ClassSection(school_id=school_id, **payload.model_dump())
    db.add(class_section)
    db.commit()
    db.refresh(class_section)
    return class_section


@router.get("/subjects", response_model=list[SubjectOut])
def list_subjects(school_id: str = Depends(get_school_id), db: Session = Depends(get_db)) -> list[SubjectOut]:
    return list(db.execute(select(Subject).where(Subject.school_id == school_id).order_by(Subject.code)).scalars())


@router.post("/subjects", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: SubjectCreate,
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> SubjectOut:
    code = payload.code.strip().upper()
    existing = db.execute(
        select(Subject).where(Subject.school_id == school_id, Subject.code == code)
    ).scalar_one_or_none()
    if existing:
        raise DuplicateResourceError("Subject code already exists", details={"code": code})
    subject = Subject(school_id=school_id, code=code, name=payload.name)
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


# ---- teachers ----


def _teacher_out(teacher: Teacher, subject_ids: list[str]) -> TeacherOut:
    return TeacherOut(
        id=teacher.id,
        first_name=teacher.first_name,
        last_name=teacher.last_name,
        email=teacher.email,
        status=teacher.status,
        subject_ids=subject_ids,
    )


@router.get("/teachers", response_model=list[TeacherOut])
def list_teachers(school_id: str = Depends(get_school_id), db: Session = Depends(get_db)) -> list[TeacherOut]:
    teachers = list(
        db.execute(
            select(Teacher).where(Teacher.school_id == school_id).order_by(Teacher.last_name, Teacher.first_name)
        ).scalars()
    )
    subjects_by_teacher: dict[str, list[str]] = defaultdict(list)
    for row in db.execute(
        select(TeacherSubject.teacher_id, TeacherSubject.subject_id).where(TeacherSubject.school_id == school_id)
    ):
        subjects_by_teacher[row.teacher_id].append(row.subject_id)
    return [_teacher_out(teacher, subjects_by_teacher.get(teacher.id, [])) for teacher in teachers]


@router.post("/teachers", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(
    payload: TeacherCreate,
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> TeacherOut:
    subject_ids = _ensure_subjects(db, school_id, payload.subject_ids)
    teacher = Teacher(school_id=school_id, **payload.model_dump(exclude={"subject_ids"}))
    db.add(teacher)
    db.flush()
    db.add_all(
        TeacherSubject(school_id=school_id, teacher_id=teacher.id, subject_id=subject_id) for subject_id in subject_ids
    )
    db.commit()
    db.refresh(teacher)
    return _teacher_out(teacher, subject_ids)


@router.get("/teachers/{teacher_id}/availability", response_model=list[AvailabilityEntry])
def get_teacher_availability(
    teacher_id: str,
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> list[AvailabilityEntry]:
    _get_owned(db, Teacher, teacher_id, school_id, "Teacher")
    return list(
        db.execute(
            select(TeacherAvailability)
            .where(TeacherAvailability.teacher_id == teacher_id)
            .order_by(TeacherAvailability.day_of_week, TeacherAvailability.period_id)
        ).scalars()
    )


@router.put("/teachers/{teacher_id}/availability", response_model=list[AvailabilityEntry])
def replace_teacher_availability(
    teacher_id: str,
    payload: AvailabilityReplace,
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> list[AvailabilityEntry]:
    _get_owned(db, Teacher, teacher_id, school_id, "Teacher")
    period_ids = {entry.period_id for entry in payload.entries}
    if period_ids:
        found = set(
            db.execute(select(Period.id).where(Period.school_id == school_id, Period.id.in_(period_ids))).scalars()
        )
        missing = sorted(period_ids - found)
        if missing:
            raise ResourceNotFoundError("Period", missing[0])

    db.execute(delete(TeacherAvailability).where(TeacherAvailability.teacher_id == teacher_id))
    db.add_all(
        TeacherAvailability(
            school_id=school_id,
            teacher_id=teacher_id,
            day_of_week=entry.day_of_week,
            period_id=entry.period_id,
            is_available=entry.is_available,
        )
        for entry in payload.entries
    )
    db.commit()
    return payload.entries


# ---- rooms ----


@router.get("/rooms", response_model=list[RoomOut])
def list_rooms(school_id: str = Depends(get_school_id), db: Session = Depends(get_db)) -> list[RoomOut]:
    rooms = list(db.execute(select(Room).where(Room.school_id == school_id).order_by(Room.name)).scalars())
    subjects_by_room: dict[str, list[str]] = defaultdict(list)
    for row in db.execute(
        select(RoomSubjectSuitability.room_id, RoomSubjectSuitability.subject_id).where(
            RoomSubjectSuitability.school_id == school_id
        )
    ):
        subjects_by_room[row.room_id].append(row.subject_id)
    return [
        RoomOut(
            id=room.id,
            name=room.name,
            building=room.building,
            capacity=room.capacity,
            subject_ids=subjects_by_room.get(room.id, []),
        )
        for room in rooms
    ]


@router.post("/rooms", response_model=RoomOut, status_code=status.HTTP_201_CREATED)
def create_room(payload: RoomCreate, school_id: str = Depends(get_school_id), db: Session = Depends(get_db)) -> RoomOut:
    existing = db.execute(
        select(Room).where(Room.school_id == school_id, Room.name == payload.name)
    ).scalar_one_or_none()
    if existing:
        raise DuplicateResourceError("Room name already exists", details={"name": payload.name})
    subject_ids = _ensure_subjects(db, school_id, payload.subject_ids)
    room = Room(school_id=school_id, **payload.model_dump(exclude={"subject_ids"}))
    db.add(room)
    db.flush()
    db.add_all(
        RoomSubjectSuitability(school_id=school_id, room_id=room.id, subject_id=subject_id)
        for subject_id in subject_ids
    )
    db.commit()
    db.refresh(room)
    return RoomOut(
        id=room.id,
        name=room.name,
        building=room.building,
        capacity=room.capacity,
        subject_ids=subject_ids,
    )


# ---- period sets and time slots ----


def _period_set_out(db: Session, period_set: PeriodSet) -> PeriodSetOut:
    periods = db.execute(
        select(Period).where(Period.period_set_id == period_set.id).order_by(Period.order_index)
    ).scalars()
    working_days = db.execute(
        select(WorkingDay.day_of_week)
        .where(WorkingDay.period_set_id == period_set.id, WorkingDay.is_active.is_(True))
        .order_by(WorkingDay.day_of_week)
    ).scalars()
    return PeriodSetOut(
        id=period_set.id,
        academic_year_id=period_set.academic_year_id,
        name=period_set.name,
        periods=[PeriodOut.model_validate(period) for period in periods],
        working_days=list(working_days),
    )


@router.get("/period-sets", response_model=list[PeriodSetOut])
def list_period_sets(school_id: str = Depends(get_school_id), db: Session = Depends(get_db)) -> list[PeriodSetOut]:
    period_sets = db.execute(
        select(PeriodSet).where(PeriodSet.school_id == school_id).order_by(PeriodSet.name)
    ).scalars()
    return [_period_set_out(db, period_set) for period_set in period_sets]


@router.post("/period-sets", response_model=PeriodSetOut, status_code=status.HTTP_201_CREATED)
def create_period_set(
    payload: PeriodSetCreate,
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> PeriodSetOut:
    _get_owned(db, AcademicYear, payload.academic_year_id, school_id, "Academic year")
    existing = db.execute(
        select(PeriodSet).where(
            PeriodSet.school_id == school_id,
            PeriodSet.academic_year_id == payload.academic_year_id,
            PeriodSet.name == payload.name,
        )
    ).scalar_one_or_none()
    if existing:
        raise DuplicateResourceError("Period set name already exists", details={"name": payload.name})

    period_set = PeriodSet(school_id=school_id, academic_year_id=payload.academic_year_id, name=payload.name)
    db.add(period_set)
    db.flush()
    db.add_all(
        Period(school_id=school_id, period_set_id=period_set.id, **period.model_dump())
        for period in payload.periods
    )
    db.add_all(
        WorkingDay(school_id=school_id, period_set_id=period_set.id, day_of_week=day, is_active=True)
        for day in payload.working_days
    )
    db.commit()
    db.refresh(period_set)
    return _period_set_out(db, period_set)


@router.get("/period-sets/{period_set_id}", response_model=PeriodSetOut)
def get_period_set(
    period_set_id: str,
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> PeriodSetOut:
    return _period_set_out(db, _get_owned(db, PeriodSet, period_set_id, school_id, "Period set"))


def _time_slot_out(slot: TimeSlot, period: Period) -> TimeSlotOut:
    return TimeSlotOut(
        id=slot.id,
        day_of_week=slot.day_of_week,
        period_id=period.id,
        period_name=period.name,
        order_index=period.order_index,
        start_time=period.start_time,
        end_time=period.end_time,
    )


@router.post("/period-sets/{period_set_id}/time-slots/generate", response_model=TimeSlotGenerationReport)
def generate_period_set_time_slots(
    period_set_id: str,
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> TimeSlotGenerationReport:
    catalog = generate_time_slots(db, school_id, period_set_id)
    return TimeSlotGenerationReport(
        total_slots_generated=len(catalog),
        details=[_time_slot_out(slot, period) for slot, period in catalog],
    )


@router.get("/period-sets/{period_set_id}/time-slots", response_model=list[TimeSlotOut])
def list_period_set_time_slots(
    period_set_id: str,
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> list[TimeSlotOut]:
    _get_owned(db, PeriodSet, period_set_id, school_id, "Period set")
    rows = db.execute(
        select(TimeSlot, Period)
        .join(Period, Period.id == TimeSlot.period_id)
        .where(TimeSlot.school_id == school_id, Period.period_set_id == period_set_id)
        .order_by(TimeSlot.day_of_week, Period.order_index)
    ).all()
    return [_time_slot_out(slot, period) for slot, period in rows]


# ---- requirements ----


@router.get("/requirements", response_model=list[RequirementOut])
def list_requirements(
    academic_year_id: str | None = Query(default=None),
    class_section_id: str | None = Query(default=None),
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> list[RequirementOut]:
    query = select(ClassSubjectRequirement).where(ClassSubjectRequirement.school_id == school_id)
    if academic_year_id:
        query = query.where(ClassSubjectRequirement.academic_year_id == academic_year_id)
    if class_section_id:
        query = query.where(ClassSubjectRequirement.class_section_id == class_section_id)
    return list(db.execute(query.order_by(ClassSubjectRequirement.created_at)).scalars())


@router.post("/requirements", response_model=RequirementOut, status_code=status.HTTP_201_CREATED)
def create_requirement(
    payload: RequirementCreate,
    school_id: str = Depends(get_school_id),
    db: Session = Depends(get_db),
) -> RequirementOut:
    _get_owned(db, AcademicYear, payload.academic_year_id, school_id, "Academic year")
    _get_owned(db, ClassSection, payload.class_section_id, school_id, "Class section")
    _get_owned(db, Subject, payload.subject_id, school_id, "Subject")
    existing = db.execute(
        select(ClassSubjectRequirement).where(
            ClassSubjectRequirement.school_id == school_id,
            ClassSubjectRequirement.academic_year_id == payload.academic_year_id,
            ClassSubjectRequirement.class_section_id == payload.class_section_id,
            ClassSubjectRequirement.subject_id == payload.subject_id,
        )
    ).scalar_one_or_none()
    if existing:
        raise DuplicateResourceError(
            "Requirement already exists for this class section and subject",
            details={"class_section_id": payload.class_section_id, "subject_id": payload.subject_id},
        )
    requirement = ClassSubjectRequirement(school_id=school_id, **payload.model_dump())
    db.add(requirement)
    db.commit()
    db.refresh(requirement)
    return requirement
