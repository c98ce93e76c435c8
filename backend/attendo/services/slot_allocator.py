from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
import logging
from time import perf_counter
from typing import Iterable

from attendo.core.exceptions import SchedulerError
from attendo.services.conflict_index import ConflictIndex
from attendo.services.input_aggregator import DAY_NAMES, RoomOption, TeachingAssignment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacedSlot:
    assignment_id: str
    day_of_week: int
    lesson_period_id: str
    room_id: str
    trainer_id: str
    class_id: str
    subject_id: str


@dataclass(frozen=True)
class Shortfall:
    assignment: TeachingAssignment
    scheduled: int
    requested: int

    @property
    def missing(self) -> int:
        return self.requested - self.scheduled

    @property
    def reason(self) -> str:
        return f"Only {self.scheduled}/{self.requested} sessions scheduled (no available slots)"


@dataclass(frozen=True)
class RebalanceMove:
    assignment_id: str
    trainer_id: str
    from_day: int
    from_lesson_period_id: str
    from_room_id: str
    to_day: int
    to_lesson_period_id: str
    to_room_id: str


@dataclass(frozen=True)
class UnderloadedTrainerDay:
    trainer_id: str
    day_of_week: int
    sessions: int
    target: int


@dataclass
class AllocationResult:
    placements: dict[str, list[PlacedSlot]]
    shortfalls: list[Shortfall]
    trainer_daily_counts: dict[str, dict[int, int]]
    moves: list[RebalanceMove] = field(default_factory=list)
    underloaded_trainer_days: list[UnderloadedTrainerDay] = field(default_factory=list)
    runtime_ms: int = 0

    @property
    def slots(self) -> list[PlacedSlot]:
        return [slot for placed in self.placements.values() for slot in placed]

    @property
    def fully_scheduled(self) -> int:
        short_ids = {item.assignment.id for item in self.shortfalls}
        return sum(1 for assignment_id in self.placements if assignment_id not in short_ids)


class SlotAllocator:
    """Greedy placement of weekly sessions with a single load-balancing pass.

    Assignments are taken most-constrained first. Each session goes to the
    first free (day, period, room) cell in a deterministic scan, preferring
    days the assignment has not used yet. Infeasibility never raises; it is
    reported through ``AllocationResult.shortfalls``.
    """

    def __init__(
        self,
        *,
        assignments: Iterable[TeachingAssignment],
        rooms: Iterable[RoomOption],
        lesson_period_ids: Iterable[str],
        working_days: Iterable[int],
        sessions_per_week: int,
        min_classes_per_day: int,
        enforce_room_affinity: bool = False,
    ) -> None:
        self.assignments = list(assignments)
        self.rooms = list(rooms)
        self.period_ids = list(dict.fromkeys(lesson_period_ids))
        self.working_days = sorted(set(working_days))
        self.sessions_per_week = sessions_per_week
        self.min_classes_per_day = min_classes_per_day
        self.enforce_room_affinity = enforce_room_affinity
        self._validate()

        self.index = ConflictIndex()
        self._assignments_by_id = {item.id: item for item in self.assignments}
        self._position = {item.id: index for index, item in enumerate(self.assignments)}
        self._day_position = {day: index for index, day in enumerate(self.working_days)}
        self._period_position = {period_id: index for index, period_id in enumerate(self.period_ids)}
        self._cells_per_week = len(self.working_days) * len(self.period_ids)
        self._room_candidates_cache: dict[str | None, list[RoomOption]] = {}

        self._placements: dict[str, list[PlacedSlot]] = {item.id: [] for item in self.assignments}
        self._trainer_day_counts: dict[str, Counter[int]] = defaultdict(Counter)
        self._class_day_counts: dict[str, Counter[int]] = defaultdict(Counter)
        self._trainer_committed: Counter[str] = Counter()
        self._class_committed: Counter[str] = Counter()

    def _validate(self) -> None:
        if not self.period_ids:
            raise SchedulerError(message="No active lesson periods supplied to the allocator")
        if not self.rooms:
            raise SchedulerError(message="No active rooms supplied to the allocator")
        if not self.working_days:
            raise SchedulerError(message="No working days supplied to the allocator")
        invalid_days = [day for day in self.working_days if day not in DAY_NAMES]
        if invalid_days:
            raise SchedulerError(
                message="Working days must be between 0 (Sunday) and 6 (Saturday)",
                details={"invalid_days": invalid_days},
            )
        if self.sessions_per_week < 1:
            raise SchedulerError(message="sessions_per_week must be at least 1")
        if self.min_classes_per_day < 1:
            raise SchedulerError(message="min_classes_per_day must be at least 1")
        seen: set[str] = set()
        duplicates = []
        for item in self.assignments:
            if item.id in seen:
                duplicates.append(item.id)
            seen.add(item.id)
        if duplicates:
            raise SchedulerError(
                message="Teaching assignments must be unique",
                details={"duplicate_assignment_ids": sorted(set(duplicates))},
            )

    def allocate(self) -> AllocationResult:
        started = perf_counter()
        pending = list(self.assignments)
        trainer_pending: Counter[str] = Counter()
        class_pending: Counter[str] = Counter()
        for item in pending:
            trainer_pending[item.trainer_id] += self.sessions_per_week
            class_pending[item.class_id] += self.sessions_per_week

        shortfalls: list[Shortfall] = []
        while pending:
            assignment = min(
                pending,
                key=lambda item: self._scarcity_key(item, trainer_pending, class_pending),
            )
            pending.remove(assignment)
            trainer_pending[assignment.trainer_id] -= self.sessions_per_week
            class_pending[assignment.class_id] -= self.sessions_per_week

            placed = self._place_assignment(assignment)
            if placed < self.sessions_per_week:
                shortfalls.append(
                    Shortfall(assignment=assignment, scheduled=placed, requested=self.sessions_per_week)
                )
                logger.warning(
                    "SLOT ALLOCATION SHORTFALL | assignment_id=%s | class=%s | subject=%s | trainer_id=%s | scheduled=%s | requested=%s",
                    assignment.id,
                    assignment.class_code,
                    assignment.subject_code,
                    assignment.trainer_id,
                    placed,
                    self.sessions_per_week,
                )

        moves = self._rebalance_trainer_days()
        shortfalls.sort(key=lambda item: self._position[item.assignment.id])
        result = AllocationResult(
            placements={
                assignment_id: sorted(slots, key=self._slot_sort_key)
                for assignment_id, slots in self._placements.items()
            },
            shortfalls=shortfalls,
            trainer_daily_counts=self._trainer_daily_counts(),
            moves=moves,
            underloaded_trainer_days=self._underloaded_trainer_days(),
            runtime_ms=int((perf_counter() - started) * 1000),
        )
        logger.info(
            "SLOT ALLOCATION COMPLETE | assignments=%s | slots=%s | shortfalls=%s | moves=%s | runtime_ms=%s",
            len(self.assignments),
            len(self.index),
            len(shortfalls),
            len(moves),
            result.runtime_ms,
        )
        return result

    def _scarcity_key(
        self,
        assignment: TeachingAssignment,
        trainer_pending: Counter[str],
        class_pending: Counter[str],
    ) -> tuple[int, int, int]:
        trainer_load = self._trainer_committed[assignment.trainer_id] + trainer_pending[assignment.trainer_id]
        class_free = self._cells_per_week - self._class_committed[assignment.class_id]
        class_slack = class_free - class_pending[assignment.class_id]
        return (-trainer_load, class_slack, self._position[assignment.id])

    def _slot_sort_key(self, slot: PlacedSlot) -> tuple[int, int]:
        return (self._day_position[slot.day_of_week], self._period_position[slot.lesson_period_id])

    def _place_assignment(self, assignment: TeachingAssignment) -> int:
        used_days: set[int] = set()
        placed = 0
        for _ in range(self.sessions_per_week):
            cell = self._find_cell(assignment, excluded_days=used_days)
            if cell is None and used_days:
                # Same-day repeat only once no unused day has a free cell left.
                cell = self._find_cell(assignment, excluded_days=set())
            if cell is None:
                break
            day, period_id, room_id = cell
            self._commit(assignment, day, period_id, room_id)
            used_days.add(day)
            placed += 1
        return placed

    def _day_order(self, assignment: TeachingAssignment, excluded_days: set[int]) -> list[int]:
        trainer_counts = self._trainer_day_counts[assignment.trainer_id]
        class_counts = self._class_day_counts[assignment.class_id]
        return sorted(
            (day for day in self.working_days if day not in excluded_days),
            key=lambda day: (trainer_counts[day], class_counts[day], self._day_position[day]),
        )

    def _find_cell(
        self,
        assignment: TeachingAssignment,
        *,
        excluded_days: set[int],
    ) -> tuple[int, str, str] | None:
        for day in self._day_order(assignment, excluded_days):
            cell = self._find_cell_on_day(assignment, day)
            if cell is not None:
                return day, cell[0], cell[1]
        return None

    def _find_cell_on_day(self, assignment: TeachingAssignment, day: int) -> tuple[str, str] | None:
        rooms = self._room_candidates(assignment)
        for period_id in self.period_ids:
            if not self.index.trainer_is_free(day, period_id, assignment.trainer_id):
                continue
            if not self.index.class_is_free(day, period_id, assignment.class_id):
                continue
            for room in rooms:
                if self.index.is_free(
                    day,
                    period_id,
                    trainer_id=assignment.trainer_id,
                    class_id=assignment.class_id,
                    room_id=room.id,
                ):
                    return period_id, room.id
        return None

    def _room_candidates(self, assignment: TeachingAssignment) -> list[RoomOption]:
        department = (assignment.class_department or "").strip().casefold() or None
        cached = self._room_candidates_cache.get(department)
        if cached is not None:
            return cached

        matching: list[RoomOption] = []
        shared: list[RoomOption] = []
        other: list[RoomOption] = []
        for room in self.rooms:
            room_department = (room.department or "").strip().casefold() or None
            if room_department is None:
                shared.append(room)
            elif department is not None and room_department == department:
                matching.append(room)
            else:
                other.append(room)
        candidates = matching + shared
        if not self.enforce_room_affinity:
            candidates += other
        self._room_candidates_cache[department] = candidates
        return candidates

    def _commit(self, assignment: TeachingAssignment, day: int, period_id: str, room_id: str) -> PlacedSlot:
        slot = PlacedSlot(
            assignment_id=assignment.id,
            day_of_week=day,
            lesson_period_id=period_id,
            room_id=room_id,
            trainer_id=assignment.trainer_id,
            class_id=assignment.class_id,
            subject_id=assignment.subject_id,
        )
        self._commit_slot(slot)
        return slot

    def _commit_slot(self, slot: PlacedSlot) -> None:
        self.index.commit(
            slot.day_of_week,
            slot.lesson_period_id,
            trainer_id=slot.trainer_id,
            class_id=slot.class_id,
            room_id=slot.room_id,
        )
        self._placements[slot.assignment_id].append(slot)
        self._trainer_day_counts[slot.trainer_id][slot.day_of_week] += 1
        self._class_day_counts[slot.class_id][slot.day_of_week] += 1
        self._trainer_committed[slot.trainer_id] += 1
        self._class_committed[slot.class_id] += 1

    def _release_slot(self, slot: PlacedSlot) -> None:
        self.index.release(
            slot.day_of_week,
            slot.lesson_period_id,
            trainer_id=slot.trainer_id,
            class_id=slot.class_id,
            room_id=slot.room_id,
        )
        self._placements[slot.assignment_id].remove(slot)
        self._trainer_day_counts[slot.trainer_id][slot.day_of_week] -= 1
        self._class_day_counts[slot.class_id][slot.day_of_week] -= 1
        self._trainer_committed[slot.trainer_id] -= 1
        self._class_committed[slot.class_id] -= 1

    def _trainer_ids(self) -> list[str]:
        return sorted({item.trainer_id for item in self.assignments})

    def _trainer_slots_on(self, trainer_id: str, day: int) -> list[PlacedSlot]:
        slots = [
            slot
            for assignment in self.assignments
            if assignment.trainer_id == trainer_id
            for slot in self._placements[assignment.id]
            if slot.day_of_week == day
        ]
        slots.sort(key=lambda slot: (self._period_position[slot.lesson_period_id], self._position[slot.assignment_id]))
        return slots

    def _rebalance_trainer_days(self) -> list[RebalanceMove]:
        """Move at most one session into each under-loaded trainer day. Single pass."""
        moves: list[RebalanceMove] = []
        for trainer_id in self._trainer_ids():
            counts = self._trainer_day_counts[trainer_id]
            for day in self.working_days:
                if counts[day] >= self.min_classes_per_day:
                    continue
                move = self._move_session_to_day(trainer_id, day)
                if move is not None:
                    moves.append(move)
        return moves

    def _move_session_to_day(self, trainer_id: str, target_day: int) -> RebalanceMove | None:
        counts = self._trainer_day_counts[trainer_id]
        donor_days = sorted(
            (day for day in self.working_days if day != target_day and counts[day] > self.min_classes_per_day),
            key=lambda day: (-counts[day], self._day_position[day]),
        )
        for donor_day in donor_days:
            for slot in self._trainer_slots_on(trainer_id, donor_day):
                assignment = self._assignments_by_id[slot.assignment_id]
                if any(item.day_of_week == target_day for item in self._placements[assignment.id]):
                    continue
                self._release_slot(slot)
                cell = self._find_cell_on_day(assignment, target_day)
                if cell is None:
                    self._commit_slot(slot)
                    continue
                period_id, room_id = cell
                self._commit(assignment, target_day, period_id, room_id)
                logger.debug(
                    "SLOT REBALANCED | assignment_id=%s | trainer_id=%s | from_day=%s | to_day=%s",
                    assignment.id,
                    trainer_id,
                    donor_day,
                    target_day,
                )
                return RebalanceMove(
                    assignment_id=assignment.id,
                    trainer_id=trainer_id,
                    from_day=donor_day,
                    from_lesson_period_id=slot.lesson_period_id,
                    from_room_id=slot.room_id,
                    to_day=target_day,
                    to_lesson_period_id=period_id,
                    to_room_id=room_id,
                )
        return None

    def _trainer_daily_counts(self) -> dict[str, dict[int, int]]:
        return {
            trainer_id: {day: self._trainer_day_counts[trainer_id][day] for day in self.working_days}
            for trainer_id in self._trainer_ids()
        }

    def _underloaded_trainer_days(self) -> list[UnderloadedTrainerDay]:
        underloaded: list[UnderloadedTrainerDay] = []
        for trainer_id in self._trainer_ids():
            counts = self._trainer_day_counts[trainer_id]
            for day in self.working_days:
                if counts[day] < self.min_classes_per_day:
                    underloaded.append(
                        UnderloadedTrainerDay(
                            trainer_id=trainer_id,
                            day_of_week=day,
                            sessions=counts[day],
                            target=self.min_classes_per_day,
                        )
                    )
        return underloaded
