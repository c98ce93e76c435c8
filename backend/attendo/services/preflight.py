from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timezone
import logging

from sqlalchemy.orm import Session

from attendo.core.config import get_settings
from attendo.schemas.generator import (
    AssignedSubject,
    ClassesSummary,
    ClassSummaryItem,
    ExistingTimetableState,
    GenerationDeadlineState,
    LessonPeriodsSummary,
    LessonPeriodSummaryItem,
    PreflightIssue,
    PreflightReport,
    RoomsSummary,
    RoomSummaryItem,
    SubjectsSummary,
    TermInfo,
    TrainerRef,
    TrainersSummary,
    TrainerSubject,
    TrainerSummaryItem,
    UnassignedSubject,
)
from attendo.services.input_aggregator import TermInputs, load_term_inputs
from attendo.services.regeneration_guard import (
    DeadlineGate,
    RegenerationDecision,
    evaluate_generation_deadline,
    evaluate_regeneration,
)
from attendo.services.timetable_settings import load_timetable_settings

logger = logging.getLogger(__name__)


def _trainer_summaries(inputs: TermInputs) -> list[TrainerSummaryItem]:
    grouped: dict[str, list] = defaultdict(list)
    for assignment in inputs.assignments:
        grouped[assignment.trainer_id].append(assignment)

    summaries: list[TrainerSummaryItem] = []
    for trainer_id, items in grouped.items():
        first = items[0]
        summaries.append(
            TrainerSummaryItem(
                id=trainer_id,
                name=first.trainer_name,
                department=first.trainer_department,
                subjects_count=len(items),
                subjects=[
                    TrainerSubject(code=item.subject_code, name=item.subject_name, class_code=item.class_code)
                    for item in items
                ],
            )
        )
    summaries.sort(key=lambda item: (item.name, item.id))
    return summaries


def _schedulability_errors(inputs: TermInputs, trainer_count: int) -> list[PreflightIssue]:
    errors: list[PreflightIssue] = []
    if not inputs.classes:
        errors.append(
            PreflightIssue(
                code="no_active_classes",
                category="schedulability",
                message="No active classes assigned to this term",
            )
        )
    if inputs.class_subject_count == 0:
        errors.append(
            PreflightIssue(
                code="no_class_subjects",
                category="schedulability",
                message="No subjects assigned to classes for this term. Admin must attach subjects to classes first.",
            )
        )
    if inputs.unresolved_subjects:
        errors.append(
            PreflightIssue(
                code="subjects_without_trainer",
                category="schedulability",
                message=(
                    f"{len(inputs.unresolved_subjects)} subject(s) have no trainer assigned. "
                    "Trainers must select their subjects before generating."
                ),
                details={
                    "subjects": [
                        {
                            "class_subject_id": item.class_subject_id,
                            "class_id": item.class_id,
                            "class_code": item.class_code,
                            "subject_id": item.subject_id,
                            "subject_code": item.subject_code,
                            "subject_name": item.subject_name,
                        }
                        for item in inputs.unresolved_subjects
                    ]
                },
            )
        )
    if not inputs.rooms:
        errors.append(
            PreflightIssue(
                code="no_active_rooms",
                category="schedulability",
                message="No active rooms available. Add rooms before generating.",
            )
        )
    if not inputs.lesson_periods:
        errors.append(
            PreflightIssue(
                code="no_active_lesson_periods",
                category="schedulability",
                message="No lesson periods configured. Add lesson periods before generating.",
            )
        )
    if trainer_count == 0 and inputs.class_subject_count > 0:
        errors.append(
            PreflightIssue(
                code="no_trainers",
                category="schedulability",
                message="No trainers have selected subjects for this term.",
            )
        )
    return errors


def _quality_warnings(
    inputs: TermInputs,
    trainers: list[TrainerSummaryItem],
    *,
    min_lesson_periods: int,
) -> list[PreflightIssue]:
    warnings: list[PreflightIssue] = []
    room_count = len(inputs.rooms)
    period_count = len(inputs.lesson_periods)

    if room_count < len(trainers):
        warnings.append(
            PreflightIssue(
                code="rooms_below_trainers",
                category="quality",
                message=f"Only {room_count} room(s) for {len(trainers)} trainer(s). Some sessions may conflict.",
                details={"rooms": room_count, "trainers": len(trainers)},
            )
        )
    if period_count < min_lesson_periods:
        warnings.append(
            PreflightIssue(
                code="few_lesson_periods",
                category="quality",
                message=f"Only {period_count} lesson period(s). Consider adding more for flexible scheduling.",
                details={"lesson_periods": period_count, "recommended_minimum": min_lesson_periods},
            )
        )

    slots_per_week = len(inputs.working_days) * period_count
    for trainer in trainers:
        if trainer.subjects_count > slots_per_week:
            warnings.append(
                PreflightIssue(
                    code="trainer_overloaded",
                    category="quality",
                    message=(
                        f"{trainer.name} has {trainer.subjects_count} subjects "
                        f"but only {slots_per_week} slots/week available."
                    ),
                    details={
                        "trainer_id": trainer.id,
                        "subjects_count": trainer.subjects_count,
                        "slots_per_week": slots_per_week,
                    },
                )
            )

    if inputs.working_days_defaulted:
        warnings.append(
            PreflightIssue(
                code="working_days_defaulted",
                category="quality",
                message="Term working days are missing or invalid; Monday to Friday is assumed.",
                details={"working_days": inputs.working_days},
            )
        )
    return warnings


def build_preflight_report(
    inputs: TermInputs,
    *,
    regeneration: RegenerationDecision,
    deadline: DeadlineGate,
    min_lesson_periods: int = 4,
) -> PreflightReport:
    """Assemble the report from already-loaded inputs. No I/O."""
    trainers = _trainer_summaries(inputs)

    errors = _schedulability_errors(inputs, len(trainers))
    if regeneration.has_existing_timetable and not regeneration.can_regenerate:
        errors.append(
            PreflightIssue(
                code="regeneration_window_expired",
                category="policy",
                message=regeneration.message or "Regeneration window has expired.",
                details={
                    "days_since_term_start": regeneration.days_since_start,
                    "regeneration_window_days": regeneration.window_days,
                },
            )
        )
    if deadline.blocked:
        errors.append(
            PreflightIssue(
                code="generation_deadline_active",
                category="policy",
                message=deadline.message or "Timetable generation is blocked.",
                details={"deadline": deadline.deadline.isoformat() if deadline.deadline else None},
            )
        )
    warnings = _quality_warnings(inputs, trainers, min_lesson_periods=min_lesson_periods)

    term = inputs.term
    return PreflightReport(
        passed=not errors,
        term_info=TermInfo(
            id=term.id,
            name=term.name,
            start_date=term.start_date,
            end_date=term.end_date,
            working_days=inputs.working_days,
            days_count=len(inputs.working_days),
        ),
        classes=ClassesSummary(
            total=len(inputs.classes),
            list=[
                ClassSummaryItem(id=item.id, name=item.name, code=item.code, department=item.department)
                for item in inputs.classes
            ],
        ),
        subjects=SubjectsSummary(
            total=inputs.class_subject_count,
            with_trainer=len(inputs.assignments),
            without_trainer=len(inputs.unresolved_subjects),
            details_with_trainer=[
                AssignedSubject(
                    id=item.class_subject_id,
                    trainer_assignment_id=item.id,
                    subject_id=item.subject_id,
                    subject_name=item.subject_name,
                    subject_code=item.subject_code,
                    class_id=item.class_id,
                    class_name=item.class_name,
                    class_code=item.class_code,
                    department=item.class_department,
                    credit_hours=item.credit_hours,
                    trainer=TrainerRef(id=item.trainer_id, name=item.trainer_name, department=item.trainer_department),
                )
                for item in inputs.assignments
            ],
            details_without_trainer=[
                UnassignedSubject(
                    id=item.class_subject_id,
                    subject_id=item.subject_id,
                    subject_name=item.subject_name,
                    subject_code=item.subject_code,
                    class_id=item.class_id,
                    class_name=item.class_name,
                    class_code=item.class_code,
                    department=item.department,
                    credit_hours=item.credit_hours,
                )
                for item in inputs.unresolved_subjects
            ],
        ),
        trainers=TrainersSummary(total=len(trainers), list=trainers),
        rooms=RoomsSummary(
            total=len(inputs.rooms),
            active=len(inputs.rooms),
            list=[
                RoomSummaryItem(
                    id=room.id,
                    name=room.name,
                    capacity=room.capacity,
                    room_type=room.room_type,
                    department=room.department,
                )
                for room in inputs.rooms
            ],
        ),
        lesson_periods=LessonPeriodsSummary(
            total=len(inputs.lesson_periods),
            active=len(inputs.lesson_periods),
            list=[
                LessonPeriodSummaryItem(
                    id=period.id,
                    name=period.name,
                    start_time=period.start_time.strftime("%H:%M"),
                    end_time=period.end_time.strftime("%H:%M"),
                    duration=period.duration,
                )
                for period in inputs.lesson_periods
            ],
        ),
        existing_timetable=ExistingTimetableState(
            exists=regeneration.has_existing_timetable,
            slots_count=regeneration.existing_slot_count,
            can_regenerate=regeneration.can_regenerate,
            days_since_term_start=regeneration.days_since_start,
            regeneration_window_days=regeneration.window_days,
            state=regeneration.state.value,
        ),
        generation_deadline=GenerationDeadlineState(
            enabled=deadline.enabled,
            deadline=deadline.deadline,
            blocked=deadline.blocked,
            message=deadline.message,
        ),
        errors=errors,
        warnings=warnings,
    )


def run_preflight(
    db: Session,
    term_id: str,
    *,
    today: date | None = None,
    now: datetime | None = None,
) -> PreflightReport:
    settings = get_settings()
    inputs = load_term_inputs(db, term_id)
    regeneration = evaluate_regeneration(
        inputs.term.start_date,
        today or date.today(),
        inputs.existing_slot_count,
        window_days=settings.regeneration_window_days,
    )
    deadline = evaluate_generation_deadline(load_timetable_settings(db), now or datetime.now(timezone.utc))
    report = build_preflight_report(
        inputs,
        regeneration=regeneration,
        deadline=deadline,
        min_lesson_periods=settings.preflight_min_lesson_periods,
    )
    logger.info(
        "TIMETABLE PREFLIGHT | term_id=%s | passed=%s | classes=%s | subjects=%s | without_trainer=%s | trainers=%s | errors=%s | warnings=%s",
        term_id,
        report.passed,
        report.classes.total,
        report.subjects.total,
        report.subjects.without_trainer,
        report.trainers.total,
        [item.code for item in report.errors],
        [item.code for item in report.warnings],
    )
    return report
