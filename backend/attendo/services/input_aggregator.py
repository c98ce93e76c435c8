from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from attendo.core.exceptions import ResourceNotFoundError
from attendo.models.lesson_period import LessonPeriod
from attendo.models.room import Room
from attendo.models.school_class import SchoolClass
from attendo.models.subject import ClassSubject, Subject, TrainerSubjectAssignment
from attendo.models.term import DEFAULT_WORKING_DAYS, Term, TermClass
from attendo.models.timetable import TimetableSlot
from attendo.models.user import User

logger = logging.getLogger(__name__)

DAY_NAMES = {
    0: "Sunday",
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
}


@dataclass(frozen=True)
class TeachingAssignment:
    id: str
    class_subject_id: str
    class_id: str
    class_code: str
    class_name: str
    class_department: str | None
    subject_id: str
    subject_code: str
    subject_name: str
    trainer_id: str
    trainer_name: str
    trainer_department: str | None = None
    credit_hours: int | None = None


@dataclass(frozen=True)
class UnresolvedSubject:
    class_subject_id: str
    class_id: str
    class_code: str
    class_name: str
    department: str | None
    subject_id: str
    subject_code: str
    subject_name: str
    credit_hours: int | None = None


@dataclass(frozen=True)
class RoomOption:
    id: str
    name: str
    department: str | None = None
    capacity: int = 0
    room_type: str = "classroom"


@dataclass
class TermInputs:
    term: Term
    working_days: list[int]
    working_days_defaulted: bool
    classes: list[SchoolClass]
    class_subject_count: int
    assignments: list[TeachingAssignment]
    unresolved_subjects: list[UnresolvedSubject]
    rooms: list[RoomOption]
    lesson_periods: list[LessonPeriod]
    existing_slot_count: int
    trainer_names: dict[str, str] = field(default_factory=dict)

    @property
    def lesson_period_ids(self) -> list[str]:
        return [period.id for period in self.lesson_periods]


def parse_working_days(raw: object) -> tuple[list[int], bool]:
    """Return (days, defaulted). Accepts a list or a JSON-encoded list of 0-6 ints."""
    value = raw
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return list(DEFAULT_WORKING_DAYS), True
    if not isinstance(value, list):
        return list(DEFAULT_WORKING_DAYS), True

    days: set[int] = set()
    for item in value:
        try:
            day = int(item)
        except (TypeError, ValueError):
            continue
        if day in DAY_NAMES:
            days.add(day)
    if not days:
        return list(DEFAULT_WORKING_DAYS), True
    return sorted(days), False


def load_term_inputs(db: Session, term_id: str) -> TermInputs:
    term = db.get(Term, term_id)
    if term is None:
        raise ResourceNotFoundError("Term", term_id)

    working_days, defaulted = parse_working_days(term.working_days)
    if defaulted:
        logger.warning("TERM WORKING DAYS DEFAULTED | term_id=%s | raw=%r", term_id, term.working_days)

    classes = list(
        db.execute(
            select(SchoolClass)
            .join(TermClass, TermClass.class_id == SchoolClass.id)
            .where(TermClass.term_id == term_id, SchoolClass.is_active.is_(True))
            .order_by(SchoolClass.code)
        ).scalars()
    )
    class_ids = [item.id for item in classes]
    classes_by_id = {item.id: item for item in classes}

    class_subject_rows = []
    if class_ids:
        class_subject_rows = list(
            db.execute(
                select(ClassSubject, Subject)
                .join(Subject, Subject.id == ClassSubject.subject_id)
                .where(ClassSubject.term_id == term_id, ClassSubject.class_id.in_(class_ids))
            ).all()
        )

    trainer_rows = []
    if class_subject_rows:
        trainer_rows = list(
            db.execute(
                select(TrainerSubjectAssignment, User)
                .join(User, User.id == TrainerSubjectAssignment.trainer_id)
                .where(
                    TrainerSubjectAssignment.term_id == term_id,
                    TrainerSubjectAssignment.is_active.is_(True),
                    TrainerSubjectAssignment.class_subject_id.in_([row[0].id for row in class_subject_rows]),
                )
            ).all()
        )

    subject_by_class_subject = {class_subject.id: (class_subject, subject) for class_subject, subject in class_subject_rows}
    assignments: list[TeachingAssignment] = []
    trainer_names: dict[str, str] = {}
    resolved_class_subject_ids: set[str] = set()
    for trainer_assignment, trainer in trainer_rows:
        class_subject, subject = subject_by_class_subject[trainer_assignment.class_subject_id]
        school_class = classes_by_id[class_subject.class_id]
        resolved_class_subject_ids.add(class_subject.id)
        trainer_names[trainer.id] = trainer.name
        assignments.append(
            TeachingAssignment(
                id=trainer_assignment.id,
                class_subject_id=class_subject.id,
                class_id=school_class.id,
                class_code=school_class.code,
                class_name=school_class.name,
                class_department=school_class.department,
                subject_id=subject.id,
                subject_code=subject.code,
                subject_name=subject.name,
                trainer_id=trainer.id,
                trainer_name=trainer.name,
                trainer_department=trainer.department,
                credit_hours=subject.credit_hours,
            )
        )
    assignments.sort(key=lambda item: (item.class_code, item.subject_code, item.trainer_name, item.id))

    unresolved: list[UnresolvedSubject] = []
    for class_subject, subject in class_subject_rows:
        if class_subject.id in resolved_class_subject_ids:
            continue
        school_class = classes_by_id[class_subject.class_id]
        unresolved.append(
            UnresolvedSubject(
                class_subject_id=class_subject.id,
                class_id=school_class.id,
                class_code=school_class.code,
                class_name=school_class.name,
                department=school_class.department,
                subject_id=subject.id,
                subject_code=subject.code,
                subject_name=subject.name,
                credit_hours=subject.credit_hours,
            )
        )
    unresolved.sort(key=lambda item: (item.class_code, item.subject_code))

    rooms = [
        RoomOption(
            id=room.id,
            name=room.name,
            department=room.department,
            capacity=room.capacity,
            room_type=room.room_type,
        )
        for room in db.execute(
            select(Room).where(Room.is_active.is_(True)).order_by(Room.name)
        ).scalars()
    ]

    lesson_periods = list(
        db.execute(
            select(LessonPeriod)
            .where(LessonPeriod.is_active.is_(True))
            .order_by(LessonPeriod.start_time, LessonPeriod.name)
        ).scalars()
    )

    existing_slot_count = count_term_slots(db, term_id)

    logger.info(
        "TERM INPUTS LOADED | term_id=%s | classes=%s | class_subjects=%s | assignments=%s | unresolved=%s | rooms=%s | periods=%s | existing_slots=%s",
        term_id,
        len(classes),
        len(class_subject_rows),
        len(assignments),
        len(unresolved),
        len(rooms),
        len(lesson_periods),
        existing_slot_count,
    )

    return TermInputs(
        term=term,
        working_days=working_days,
        working_days_defaulted=defaulted,
        classes=classes,
        class_subject_count=len(class_subject_rows),
        assignments=assignments,
        unresolved_subjects=unresolved,
        rooms=rooms,
        lesson_periods=lesson_periods,
        existing_slot_count=existing_slot_count,
        trainer_names=trainer_names,
    )


def count_term_slots(db: Session, term_id: str) -> int:
    return int(
        db.execute(
            select(func.count()).select_from(TimetableSlot).where(TimetableSlot.term_id == term_id)
        ).scalar_one()
    )
