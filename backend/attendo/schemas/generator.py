from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Literal

from pydantic import BaseModel, Field

IssueCategory = Literal["schedulability", "policy", "quality"]


class PreflightIssue(BaseModel):
    code: str
    category: IssueCategory
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class TermInfo(BaseModel):
    id: str
    name: str
    start_date: date
    end_date: date
    working_days: list[int]
    days_count: int


class ClassSummaryItem(BaseModel):
    id: str
    name: str
    code: str
    department: str | None = None


class ClassesSummary(BaseModel):
    total: int
    list: List[ClassSummaryItem]


class TrainerRef(BaseModel):
    id: str
    name: str
    department: str | None = None


class AssignedSubject(BaseModel):
    id: str
    trainer_assignment_id: str
    subject_id: str
    subject_name: str
    subject_code: str
    class_id: str
    class_name: str
    class_code: str
    department: str | None = None
    credit_hours: int | None = None
    trainer: TrainerRef


class UnassignedSubject(BaseModel):
    id: str
    subject_id: str
    subject_name: str
    subject_code: str
    class_id: str
    class_name: str
    class_code: str
    department: str | None = None
    credit_hours: int | None = None


class SubjectsSummary(BaseModel):
    total: int
    with_trainer: int
    without_trainer: int
    details_with_trainer: list[AssignedSubject]
    details_without_trainer: list[UnassignedSubject]


class TrainerSubject(BaseModel):
    code: str
    name: str
    class_code: str


class TrainerSummaryItem(BaseModel):
    id: str
    name: str
    department: str | None = None
    subjects_count: int
    subjects: list[TrainerSubject]


class TrainersSummary(BaseModel):
    total: int
    list: List[TrainerSummaryItem]


class RoomSummaryItem(BaseModel):
    id: str
    name: str
    capacity: int
    room_type: str
    department: str | None = None


class RoomsSummary(BaseModel):
    total: int
    active: int
    list: List[RoomSummaryItem]


class LessonPeriodSummaryItem(BaseModel):
    id: str
    name: str
    start_time: str
    end_time: str
    duration: int


class LessonPeriodsSummary(BaseModel):
    total: int
    active: int
    list: List[LessonPeriodSummaryItem]


class ExistingTimetableState(BaseModel):
    exists: bool
    slots_count: int
    can_regenerate: bool
    days_since_term_start: int
    regeneration_window_days: int
    state: str


class GenerationDeadlineState(BaseModel):
    enabled: bool
    deadline: datetime | None = None
    blocked: bool
    message: str | None = None


class PreflightReport(BaseModel):
    passed: bool
    term_info: TermInfo
    classes: ClassesSummary
    subjects: SubjectsSummary
    trainers: TrainersSummary
    rooms: RoomsSummary
    lesson_periods: LessonPeriodsSummary
    existing_timetable: ExistingTimetableState
    generation_deadline: GenerationDeadlineState
    errors: list[PreflightIssue]
    warnings: list[PreflightIssue]


class GenerateTimetableRequest(BaseModel):
    term_id: str = Field(min_length=1, max_length=36)
    sessions_per_week: int | None = Field(default=None, ge=1, le=5)
    min_classes_per_day: int | None = Field(default=None, ge=1, le=20)
    regenerate: bool = False


class GenerationStats(BaseModel):
    slots_created: int
    slots_deleted: int
    trainer_assignments_processed: int
    assignments_fully_scheduled: int
    assignments_partially_scheduled: int
    trainers_assigned: int
    rooms_used: int
    subjects_scheduled: int


class ShortfallOut(BaseModel):
    trainer_assignment_id: str
    class_id: str
    class_code: str
    subject_id: str
    subject_code: str
    subject_name: str
    trainer_id: str
    trainer_name: str
    scheduled: int
    requested: int
    shortfall: int
    reason: str


class RebalanceMoveOut(BaseModel):
    trainer_assignment_id: str
    trainer_id: str
    from_day: int
    from_lesson_period_id: str
    from_room_id: str
    to_day: int
    to_lesson_period_id: str
    to_room_id: str


class TrainerDailyLoad(BaseModel):
    trainer_id: str
    trainer_name: str
    sessions_by_day: dict[int, int]
    total_sessions: int


class UnderloadedTrainerDayOut(BaseModel):
    trainer_id: str
    trainer_name: str
    day_of_week: int
    sessions: int
    target: int


class GenerateTimetableResponse(BaseModel):
    success: bool
    message: str
    term_id: str
    sessions_per_week: int
    min_classes_per_day: int
    regenerated: bool
    stats: GenerationStats
    shortfalls: list[ShortfallOut] = Field(default_factory=list)
    trainer_daily_loads: list[TrainerDailyLoad] = Field(default_factory=list)
    rebalanced_moves: list[RebalanceMoveOut] = Field(default_factory=list)
    underloaded_trainer_days: list[UnderloadedTrainerDayOut] = Field(default_factory=list)
    runtime_ms: int = 0
