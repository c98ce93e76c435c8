from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from attendo.api.deps import get_current_user, get_db
from attendo.core.exceptions import ResourceNotFoundError
from attendo.models.lesson_period import LessonPeriod
from attendo.models.term import Term
from attendo.models.timetable import TimetableSlot
from attendo.models.user import User
from attendo.schemas.timetable import TimetableSlotOut

router = APIRouter()


@router.get("", response_model=list[TimetableSlotOut])
def list_timetable_slots(
    term_id: str = Query(min_length=1, max_length=36),
    class_id: str | None = Query(default=None, max_length=36),
    trainer_id: str | None = Query(default=None, max_length=36),
    day_of_week: int | None = Query(default=None, ge=0, le=6),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimetableSlot]:
    if db.get(Term, term_id) is None:
        raise ResourceNotFoundError("Term", term_id)

    query = (
        select(TimetableSlot)
        .join(LessonPeriod, LessonPeriod.id == TimetableSlot.lesson_period_id)
        .where(TimetableSlot.term_id == term_id)
    )
    if class_id is not None:
        query = query.where(TimetableSlot.class_id == class_id)
    if trainer_id is not None:
        query = query.where(TimetableSlot.trainer_id == trainer_id)
    if day_of_week is not None:
        query = query.where(TimetableSlot.day_of_week == day_of_week)
    query = query.order_by(TimetableSlot.day_of_week, LessonPeriod.start_time, TimetableSlot.class_id)
    return list(db.execute(query).scalars())
