from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy import delete
from sqlalchemy.orm import Session

from attendo.core.exceptions import PersistenceError
from attendo.models.generation_run import TimetableGenerationRun
from attendo.models.timetable import TimetableSlot
from attendo.services.slot_allocator import AllocationResult, PlacedSlot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimetableWriteStats:
    slots_created: int
    slots_deleted: int
    assignments_fully_scheduled: int
    assignments_with_shortfalls: int


def _delete_term_slots(db: Session, term_id: str) -> int:
    result = db.execute(delete(TimetableSlot).where(TimetableSlot.term_id == term_id))
    return int(result.rowcount or 0)


def _insert_slots(db: Session, term_id: str, slots: list[PlacedSlot]) -> int:
    db.add_all(
        [
            TimetableSlot(
                term_id=term_id,
                day_of_week=slot.day_of_week,
                lesson_period_id=slot.lesson_period_id,
                room_id=slot.room_id,
                trainer_id=slot.trainer_id,
                class_id=slot.class_id,
                subject_id=slot.subject_id,
                status="scheduled",
                is_online_session=False,
            )
            for slot in slots
        ]
    )
    # Flush so unique-constraint violations surface before commit.
    db.flush()
    return len(slots)


def write_timetable(
    db: Session,
    *,
    term_id: str,
    allocation: AllocationResult,
    regenerate: bool,
    audit: TimetableGenerationRun | None = None,
) -> TimetableWriteStats:
    """Replace (or create) the term's timetable in one transaction.

    Either the delete, the insert and the audit row all become visible, or
    the session is rolled back and the previous timetable stays untouched.
    """
    slots = allocation.slots
    try:
        deleted = _delete_term_slots(db, term_id) if regenerate else 0
        created = _insert_slots(db, term_id, slots)
        if audit is not None:
            audit.slots_created = created
            audit.slots_deleted = deleted
            db.add(audit)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception(
            "TIMETABLE WRITE FAILED | term_id=%s | regenerate=%s | slots=%s",
            term_id,
            regenerate,
            len(slots),
        )
        raise PersistenceError(
            "Failed to save the generated timetable; no changes were made",
            details={"term_id": term_id, "error": str(exc)},
        ) from exc

    stats = TimetableWriteStats(
        slots_created=created,
        slots_deleted=deleted,
        assignments_fully_scheduled=allocation.fully_scheduled,
        assignments_with_shortfalls=len(allocation.shortfalls),
    )
    logger.info(
        "TIMETABLE WRITE COMPLETE | term_id=%s | created=%s | deleted=%s | fully_scheduled=%s | shortfalls=%s",
        term_id,
        stats.slots_created,
        stats.slots_deleted,
        stats.assignments_fully_scheduled,
        stats.assignments_with_shortfalls,
    )
    return stats
