from __future__ import annotations

from datetime import date, datetime, timezone
import logging
from time import perf_counter

from sqlalchemy.orm import Session

from attendo.core.config import get_settings
from attendo.core.exceptions import (
    GenerationLockedError,
    PreflightFailedError,
    RegenerationWindowError,
    TimetableExistsError,
)
from attendo.models.generation_run import TimetableGenerationRun
from attendo.models.user import User
from attendo.schemas.generator import (
    GenerateTimetableRequest,
    GenerateTimetableResponse,
    GenerationStats,
    RebalanceMoveOut,
    ShortfallOut,
    TrainerDailyLoad,
    UnderloadedTrainerDayOut,
)
from attendo.services.generation_lock import GenerationLockRegistry
from attendo.services.input_aggregator import TermInputs, load_term_inputs
from attendo.services.preflight import build_preflight_report
from attendo.services.regeneration_guard import (
    RegenerationState,
    evaluate_generation_deadline,
    evaluate_regeneration,
)
from attendo.services.slot_allocator import AllocationResult, SlotAllocator
from attendo.services.timetable_settings import load_timetable_settings
from attendo.services.timetable_writer import TimetableWriteStats, write_timetable

logger = logging.getLogger(__name__)


def _build_response(
    *,
    inputs: TermInputs,
    allocation: AllocationResult,
    stats: TimetableWriteStats,
    sessions_per_week: int,
    min_classes_per_day: int,
    regenerated: bool,
) -> GenerateTimetableResponse:
    slots = allocation.slots
    trainer_names = inputs.trainer_names
    shortfalls = [
        ShortfallOut(
            trainer_assignment_id=item.assignment.id,
            class_id=item.assignment.class_id,
            class_code=item.assignment.class_code,
            subject_id=item.assignment.subject_id,
            subject_code=item.assignment.subject_code,
            subject_name=item.assignment.subject_name,
            trainer_id=item.assignment.trainer_id,
            trainer_name=item.assignment.trainer_name,
            scheduled=item.scheduled,
            requested=item.requested,
            shortfall=item.missing,
            reason=item.reason,
        )
        for item in allocation.shortfalls
    ]

    if shortfalls:
        message = (
            f"Generated timetable for {inputs.term.name} with {len(shortfalls)} partially scheduled "
            "assignment(s). Review the shortfall list before publishing."
        )
    else:
        message = (
            f"Successfully generated timetable for {inputs.term.name}. All slots created as physical "
            "classes; admins can toggle specific slots to online as needed."
        )

    return GenerateTimetableResponse(
        success=True,
        message=message,
        term_id=inputs.term.id,
        sessions_per_week=sessions_per_week,
        min_classes_per_day=min_classes_per_day,
        regenerated=regenerated,
        stats=GenerationStats(
            slots_created=stats.slots_created,
            slots_deleted=stats.slots_deleted,
            trainer_assignments_processed=len(inputs.assignments),
            assignments_fully_scheduled=stats.assignments_fully_scheduled,
            assignments_partially_scheduled=stats.assignments_with_shortfalls,
            trainers_assigned=len({slot.trainer_id for slot in slots}),
            rooms_used=len({slot.room_id for slot in slots}),
            subjects_scheduled=len({slot.subject_id for slot in slots}),
        ),
        shortfalls=shortfalls,
        trainer_daily_loads=[
            TrainerDailyLoad(
                trainer_id=trainer_id,
                trainer_name=trainer_names.get(trainer_id, trainer_id),
                sessions_by_day=counts,
                total_sessions=sum(counts.values()),
            )
            for trainer_id, counts in allocation.trainer_daily_counts.items()
        ],
        rebalanced_moves=[
            RebalanceMoveOut(
                trainer_assignment_id=move.assignment_id,
                trainer_id=move.trainer_id,
                from_day=move.from_day,
                from_lesson_period_id=move.from_lesson_period_id,
                from_room_id=move.from_room_id,
                to_day=move.to_day,
                to_lesson_period_id=move.to_lesson_period_id,
                to_room_id=move.to_room_id,
            )
            for move in allocation.moves
        ],
        underloaded_trainer_days=[
            UnderloadedTrainerDayOut(
                trainer_id=item.trainer_id,
                trainer_name=trainer_names.get(item.trainer_id, item.trainer_id),
                day_of_week=item.day_of_week,
                sessions=item.sessions,
                target=item.target,
            )
            for item in allocation.underloaded_trainer_days
        ],
        runtime_ms=allocation.runtime_ms,
    )


def generate_timetable(
    db: Session,
    payload: GenerateTimetableRequest,
    *,
    locks: GenerationLockRegistry,
    user: User | None = None,
    today: date | None = None,
    now: datetime | None = None,
) -> GenerateTimetableResponse:
    app_settings = get_settings()
    timetable_settings = load_timetable_settings(db)
    sessions_per_week = payload.sessions_per_week or timetable_settings.default_sessions_per_week
    min_classes_per_day = payload.min_classes_per_day or timetable_settings.default_min_classes_per_day
    sessions_per_week = min(sessions_per_week, app_settings.max_sessions_per_week)

    deadline = evaluate_generation_deadline(timetable_settings, now or datetime.now(timezone.utc))
    if deadline.blocked:
        raise GenerationLockedError(
            deadline.message,
            details={"deadline": deadline.deadline.isoformat() if deadline.deadline else None},
        )

    started = perf_counter()
    logger.info(
        "TIMETABLE GENERATION START | user_id=%s | term_id=%s | sessions_per_week=%s | min_classes_per_day=%s | regenerate=%s",
        user.id if user is not None else None,
        payload.term_id,
        sessions_per_week,
        min_classes_per_day,
        payload.regenerate,
    )
    with locks.hold(payload.term_id):
        inputs = load_term_inputs(db, payload.term_id)
        regeneration = evaluate_regeneration(
            inputs.term.start_date,
            today or date.today(),
            inputs.existing_slot_count,
            window_days=app_settings.regeneration_window_days,
        )
        if regeneration.has_existing_timetable and not payload.regenerate:
            raise TimetableExistsError(
                (
                    "Timetable exists. Use regenerate option if within "
                    f"{regeneration.window_days} days of term start."
                ),
                details={"slots_count": regeneration.existing_slot_count},
            )
        if regeneration.state == RegenerationState.window_expired:
            raise RegenerationWindowError(
                regeneration.message,
                details={
                    "days_since_term_start": regeneration.days_since_start,
                    "regeneration_window_days": regeneration.window_days,
                },
            )

        report = build_preflight_report(
            inputs,
            regeneration=regeneration,
            deadline=deadline,
            min_lesson_periods=app_settings.preflight_min_lesson_periods,
        )
        blocking = [item for item in report.errors if item.category == "schedulability"]
        if blocking:
            raise PreflightFailedError(
                "Pre-flight checks failed; resolve the listed issues before generating",
                details={"errors": [item.model_dump() for item in blocking]},
            )

        allocation = SlotAllocator(
            assignments=inputs.assignments,
            rooms=inputs.rooms,
            lesson_period_ids=inputs.lesson_period_ids,
            working_days=inputs.working_days,
            sessions_per_week=sessions_per_week,
            min_classes_per_day=min_classes_per_day,
            enforce_room_affinity=timetable_settings.enforce_room_department_affinity,
        ).allocate()

        regenerating = regeneration.has_existing_timetable
        audit = TimetableGenerationRun(
            term_id=payload.term_id,
            user_id=user.id if user is not None else None,
            sessions_per_week=sessions_per_week,
            min_classes_per_day=min_classes_per_day,
            regenerated=regenerating,
            shortfall_count=len(allocation.shortfalls),
            details={
                "shortfall_assignment_ids": [item.assignment.id for item in allocation.shortfalls],
                "rebalanced_moves": len(allocation.moves),
            },
        )
        stats = write_timetable(
            db,
            term_id=payload.term_id,
            allocation=allocation,
            regenerate=regenerating,
            audit=audit,
        )

    response = _build_response(
        inputs=inputs,
        allocation=allocation,
        stats=stats,
        sessions_per_week=sessions_per_week,
        min_classes_per_day=min_classes_per_day,
        regenerated=regenerating,
    )
    logger.info(
        "TIMETABLE GENERATION COMPLETE | user_id=%s | term_id=%s | slots_created=%s | slots_deleted=%s | shortfalls=%s | wall_ms=%s",
        user.id if user is not None else None,
        payload.term_id,
        stats.slots_created,
        stats.slots_deleted,
        len(allocation.shortfalls),
        int((perf_counter() - started) * 1000),
    )
    return response
