from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from classgrid.core.exceptions import ResourceNotFoundError
from classgrid.models.period import Period, PeriodSet, TimeSlot, WorkingDay

logger = logging.getLogger(__name__)


def generate_time_slots(db: Session, school_id: str, period_set_id: str) -> list[tuple[TimeSlot, Period]]:
    """Upsert one time slot per active working day and non-break period.

    Re-running is safe: existing (day, period) slots are reused, so the
    result always lists the full catalog for the period set.
    """
    period_set = db.get(PeriodSet, period_set_id)
    if period_set is None or period_set.school_id != school_id:
        raise ResourceNotFoundError("Period set", period_set_id)

    periods = list(
        db.execute(
            select(Period)
            .where(Period.period_set_id == period_set_id, Period.is_break.is_(False))
            .order_by(Period.order_index)
        ).scalars()
    )
    days = list(
        db.execute(
            select(WorkingDay.day_of_week)
            .where(WorkingDay.period_set_id == period_set_id, WorkingDay.is_active.is_(True))
            .order_by(WorkingDay.day_of_week)
        ).scalars()
    )

    existing = {
        (slot.day_of_week, slot.period_id): slot
        for slot in db.execute(
            select(TimeSlot).where(
                TimeSlot.school_id == school_id,
                TimeSlot.period_id.in_([period.id for period in periods]),
            )
        ).scalars()
    }

    created = 0
    catalog: list[tuple[TimeSlot, Period]] = []
    for day in days:
        for period in periods:
            slot = existing.get((day, period.id))
            if slot is None:
                slot = TimeSlot(school_id=school_id, day_of_week=day, period_id=period.id)
                db.add(slot)
                created += 1
            catalog.append((slot, period))
    db.commit()
    for slot, _ in catalog:
        db.refresh(slot)

    logger.info(
        "TIME SLOTS GENERATED | school_id=%s | period_set_id=%s | created=%s | total=%s",
        school_id,
        period_set_id,
        created,
        len(catalog),
    )
    return catalog
