from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum

from attendo.schemas.settings import TimetableSettingsBase

DEFAULT_REGENERATION_WINDOW_DAYS = 14


class RegenerationState(str, Enum):
    no_existing_timetable = "no_existing_timetable"
    within_window = "within_window"
    window_expired = "window_expired"


@dataclass(frozen=True)
class RegenerationDecision:
    state: RegenerationState
    days_since_start: int
    window_days: int
    existing_slot_count: int

    @property
    def has_existing_timetable(self) -> bool:
        return self.existing_slot_count > 0

    @property
    def can_generate(self) -> bool:
        return self.state != RegenerationState.window_expired

    @property
    def can_regenerate(self) -> bool:
        """Whether the calendar still allows destroying a timetable, existing or not."""
        return self.days_since_start <= self.window_days

    @property
    def message(self) -> str | None:
        if self.state != RegenerationState.window_expired:
            return None
        return (
            f"Cannot regenerate: Term started {self.days_since_start} days ago "
            f"(limit is {self.window_days} days)."
        )


def evaluate_regeneration(
    term_start: date,
    today: date,
    existing_slot_count: int,
    *,
    window_days: int = DEFAULT_REGENERATION_WINDOW_DAYS,
) -> RegenerationDecision:
    days_since_start = (today - term_start).days
    if existing_slot_count <= 0:
        state = RegenerationState.no_existing_timetable
    elif days_since_start <= window_days:
        state = RegenerationState.within_window
    else:
        state = RegenerationState.window_expired
    return RegenerationDecision(
        state=state,
        days_since_start=days_since_start,
        window_days=window_days,
        existing_slot_count=max(0, existing_slot_count),
    )


@dataclass(frozen=True)
class DeadlineGate:
    enabled: bool
    deadline: datetime | None
    blocked: bool
    message: str | None


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def evaluate_generation_deadline(settings: TimetableSettingsBase | None, now: datetime) -> DeadlineGate:
    if settings is None or not settings.generation_deadline_enabled or settings.timetable_generation_deadline is None:
        return DeadlineGate(
            enabled=bool(settings and settings.generation_deadline_enabled),
            deadline=settings.timetable_generation_deadline if settings is not None else None,
            blocked=False,
            message=None,
        )

    deadline = _as_utc(settings.timetable_generation_deadline)
    if _as_utc(now) >= deadline:
        return DeadlineGate(enabled=True, deadline=deadline, blocked=False, message=None)

    return DeadlineGate(
        enabled=True,
        deadline=deadline,
        blocked=True,
        message=(
            f"Timetable generation is blocked until {deadline:%B} {deadline.day}, {deadline.year}. "
            "This allows trainers to complete their class and subject selections."
        ),
    )
