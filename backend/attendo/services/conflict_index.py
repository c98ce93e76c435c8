from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from attendo.core.exceptions import SchedulerError

CellKey = tuple[int, str]


@dataclass
class CellOccupancy:
    trainers: set[str] = field(default_factory=set)
    classes: set[str] = field(default_factory=set)
    rooms: set[str] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not (self.trainers or self.classes or self.rooms)


class ConflictIndex:
    """Occupancy of trainers, classes and rooms per (day_of_week, lesson_period) cell.

    One index belongs to one generation run. Every operation touches a single
    cell's three sets, so lookups and updates are O(1) amortized.
    """

    def __init__(self) -> None:
        self._cells: dict[CellKey, CellOccupancy] = defaultdict(CellOccupancy)
        self._committed = 0

    def __len__(self) -> int:
        return self._committed

    def is_free(self, day: int, period_id: str, *, trainer_id: str, class_id: str, room_id: str) -> bool:
        cell = self._cells.get((day, period_id))
        if cell is None:
            return True
        return (
            trainer_id not in cell.trainers
            and class_id not in cell.classes
            and room_id not in cell.rooms
        )

    def trainer_is_free(self, day: int, period_id: str, trainer_id: str) -> bool:
        cell = self._cells.get((day, period_id))
        return cell is None or trainer_id not in cell.trainers

    def class_is_free(self, day: int, period_id: str, class_id: str) -> bool:
        cell = self._cells.get((day, period_id))
        return cell is None or class_id not in cell.classes

    def commit(self, day: int, period_id: str, *, trainer_id: str, class_id: str, room_id: str) -> None:
        if not self.is_free(day, period_id, trainer_id=trainer_id, class_id=class_id, room_id=room_id):
            raise SchedulerError(
                message="Cell is already occupied",
                details={
                    "day_of_week": day,
                    "lesson_period_id": period_id,
                    "trainer_id": trainer_id,
                    "class_id": class_id,
                    "room_id": room_id,
                },
            )
        cell = self._cells[(day, period_id)]
        cell.trainers.add(trainer_id)
        cell.classes.add(class_id)
        cell.rooms.add(room_id)
        self._committed += 1

    def release(self, day: int, period_id: str, *, trainer_id: str, class_id: str, room_id: str) -> None:
        cell = self._cells.get((day, period_id))
        if (
            cell is None
            or trainer_id not in cell.trainers
            or class_id not in cell.classes
            or room_id not in cell.rooms
        ):
            raise SchedulerError(
                message="Cannot release a session that was never committed",
                details={
                    "day_of_week": day,
                    "lesson_period_id": period_id,
                    "trainer_id": trainer_id,
                    "class_id": class_id,
                    "room_id": room_id,
                },
            )
        cell.trainers.discard(trainer_id)
        cell.classes.discard(class_id)
        cell.rooms.discard(room_id)
        if cell.is_empty():
            del self._cells[(day, period_id)]
        self._committed -= 1

    def occupied_cells(self) -> list[CellKey]:
        return sorted(key for key, cell in self._cells.items() if not cell.is_empty())
