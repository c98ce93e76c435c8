from collections import Counter

import pytest

from attendo.core.exceptions import SchedulerError
from attendo.services.input_aggregator import RoomOption, TeachingAssignment
from attendo.services.slot_allocator import SlotAllocator


def _assignment(assignment_id, class_id, subject_id, trainer_id, department="Science"):
    return TeachingAssignment(
        id=assignment_id,
        class_subject_id=f"cs-{assignment_id}",
        class_id=class_id,
        class_code=class_id.upper(),
        class_name=f"Class {class_id}",
        class_department=department,
        subject_id=subject_id,
        subject_code=subject_id.upper(),
        subject_name=f"Subject {subject_id}",
        trainer_id=trainer_id,
        trainer_name=f"Trainer {trainer_id}",
    )


def _two_classes_three_subjects():
    return [
        _assignment(f"{class_id}-{subject_id}", class_id, subject_id, f"t{index}")
        for class_id in ("c1", "c2")
        for index, subject_id in enumerate(("s1", "s2", "s3"), start=1)
    ]


def _allocator(assignments, *, rooms=2, periods=5, days=(1, 2, 3, 4, 5), sessions=2, min_per_day=1, **kwargs):
    return SlotAllocator(
        assignments=assignments,
        rooms=[RoomOption(id=f"r{index}", name=f"Room {index}") for index in range(1, rooms + 1)]
        if isinstance(rooms, int)
        else rooms,
        lesson_period_ids=[f"p{index}" for index in range(1, periods + 1)],
        working_days=days,
        sessions_per_week=sessions,
        min_classes_per_day=min_per_day,
        **kwargs,
    )


def test_full_week_places_every_session_without_conflicts():
    result = _allocator(_two_classes_three_subjects()).allocate()

    slots = result.slots
    assert len(slots) == 12
    assert result.shortfalls == []
    assert result.fully_scheduled == 6

    for resource in ("room_id", "trainer_id", "class_id"):
        keys = Counter((slot.day_of_week, slot.lesson_period_id, getattr(slot, resource)) for slot in slots)
        assert max(keys.values()) == 1, resource


def test_sessions_of_one_assignment_land_on_distinct_days():
    result = _allocator(_two_classes_three_subjects()).allocate()

    for placed in result.placements.values():
        assert len(placed) == 2
        assert len({slot.day_of_week for slot in placed}) == 2


def test_allocation_is_deterministic():
    first = _allocator(_two_classes_three_subjects()).allocate()
    second = _allocator(_two_classes_three_subjects()).allocate()
    assert first.slots == second.slots


def test_single_room_reports_shortfalls_instead_of_raising():
    result = _allocator(_two_classes_three_subjects(), rooms=1, periods=2).allocate()

    assert len(result.slots) == 10
    assert sum(item.missing for item in result.shortfalls) == 2
    assert result.shortfalls
    for item in result.shortfalls:
        assert item.reason == f"Only {item.scheduled}/{item.requested} sessions scheduled (no available slots)"
        assert item.assignment.id in result.placements


def test_same_day_fallback_when_no_other_day_is_free():
    result = _allocator([_assignment("a1", "c1", "s1", "t1")], rooms=1, periods=2, days=(1,)).allocate()

    assert result.shortfalls == []
    assert [(slot.day_of_week, slot.lesson_period_id) for slot in result.slots] == [(1, "p1"), (1, "p2")]


def test_trainer_daily_counts_cover_every_working_day():
    result = _allocator(_two_classes_three_subjects()).allocate()

    assert set(result.trainer_daily_counts) == {"t1", "t2", "t3"}
    for counts in result.trainer_daily_counts.values():
        assert set(counts) == {1, 2, 3, 4, 5}
        assert sum(counts.values()) == 4

    # Four sessions over five days leave one empty day per trainer.
    assert len(result.underloaded_trainer_days) == 3
    assert all(item.sessions == 0 and item.target == 1 for item in result.underloaded_trainer_days)


def test_rebalance_moves_one_session_into_an_empty_trainer_day():
    first = _assignment("a1", "c1", "s1", "t1")
    second = _assignment("a2", "c2", "s2", "t1")
    allocator = _allocator([first, second], rooms=1, periods=2, days=(1, 2), sessions=1)
    allocator._commit(first, 1, "p1", "r1")
    allocator._commit(second, 1, "p2", "r1")

    moves = allocator._rebalance_trainer_days()

    assert len(moves) == 1
    move = moves[0]
    assert (move.assignment_id, move.from_day, move.to_day) == ("a1", 1, 2)
    assert (move.to_lesson_period_id, move.to_room_id) == ("p1", "r1")
    assert allocator._trainer_daily_counts() == {"t1": {1: 1, 2: 1}}
    assert len(allocator.index) == 2


def test_rebalance_never_stacks_an_assignment_on_a_day_it_already_uses():
    only = _assignment("a1", "c1", "s1", "t1")
    allocator = _allocator([only], rooms=1, periods=2, days=(1, 2, 3), sessions=3)
    allocator._commit(only, 1, "p1", "r1")
    allocator._commit(only, 1, "p2", "r1")
    allocator._commit(only, 2, "p1", "r1")

    moves = allocator._rebalance_trainer_days()

    assert len(moves) == 1
    assert moves[0].to_day == 3
    days = sorted(slot.day_of_week for slot in allocator._placements["a1"])
    assert days == [1, 2, 3]


def test_rooms_of_the_class_department_are_preferred():
    rooms = [
        RoomOption(id="arts", name="Arts Room", department="Arts"),
        RoomOption(id="shared", name="Hall"),
        RoomOption(id="science", name="Lab", department="Science"),
    ]
    result = _allocator([_assignment("a1", "c1", "s1", "t1")], rooms=rooms).allocate()

    assert {slot.room_id for slot in result.slots} == {"science"}


def test_enforced_affinity_excludes_other_department_rooms():
    rooms = [RoomOption(id="arts", name="Arts Room", department="Arts")]
    result = _allocator([_assignment("a1", "c1", "s1", "t1")], rooms=rooms, enforce_room_affinity=True).allocate()

    assert result.slots == []
    assert result.shortfalls[0].scheduled == 0

    relaxed = _allocator([_assignment("a1", "c1", "s1", "t1")], rooms=rooms).allocate()
    assert len(relaxed.slots) == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"rooms": []},
        {"periods": 0},
        {"days": ()},
        {"days": (1, 7)},
        {"sessions": 0},
        {"min_per_day": 0},
    ],
)
def test_malformed_inputs_raise_scheduler_error(kwargs):
    with pytest.raises(SchedulerError):
        _allocator(_two_classes_three_subjects(), **kwargs)


def test_duplicate_assignments_raise_scheduler_error():
    duplicate = _assignment("a1", "c1", "s1", "t1")
    with pytest.raises(SchedulerError) as exc_info:
        _allocator([duplicate, duplicate])
    assert exc_info.value.details["duplicate_assignment_ids"] == ["a1"]


def test_heaviest_trainer_is_placed_first():
    # In input order, a2 would find both periods taken for its trainer or class.
    assignments = [
        _assignment("b", "c1", "s2", "t2"),
        _assignment("c", "c2", "s3", "t3"),
        _assignment("a1", "c1", "s1", "t1"),
        _assignment("a2", "c2", "s1", "t1"),
    ]

    result = _allocator(assignments, periods=2, days=(1,), sessions=1).allocate()

    assert result.shortfalls == []
    assert len(result.slots) == 4
    assert result.placements["a1"][0].lesson_period_id == "p1"
    assert result.placements["a2"][0].lesson_period_id == "p2"


def test_allocate_rebalances_a_trainer_stacked_by_room_pressure():
    rooms = [
        RoomOption(id="arts", name="Studio", department="Arts"),
        RoomOption(id="sci-1", name="Lab 1", department="Science"),
        RoomOption(id="sci-2", name="Lab 2", department="Science"),
    ]
    assignments = [
        _assignment("rb", "cb", "s1", "tr"),
        _assignment("b", "cb", "s2", "t1"),
        _assignment("pa", "ca2", "s3", "tp", department="Arts"),
        _assignment("qa", "ca3", "s4", "tq", department="Arts"),
        _assignment("px", "cx1", "s5", "tp"),
        _assignment("qx", "cx2", "s6", "tq"),
        _assignment("rx", "cx3", "s7", "tr"),
        _assignment("e", "ca1", "s8", "t1", department="Arts"),
    ]

    result = _allocator(
        assignments,
        rooms=rooms,
        periods=2,
        days=(1, 2),
        sessions=1,
        enforce_room_affinity=True,
    ).allocate()

    assert result.shortfalls == []
    assert len(result.moves) == 1
    move = result.moves[0]
    assert (move.assignment_id, move.from_day, move.to_day) == ("b", 2, 1)
    assert (move.to_lesson_period_id, move.to_room_id) == ("p2", "sci-1")
    assert result.trainer_daily_counts["t1"] == {1: 1, 2: 1}
    assert result.underloaded_trainer_days == []

    for resource in ("room_id", "trainer_id", "class_id"):
        keys = Counter((slot.day_of_week, slot.lesson_period_id, getattr(slot, resource)) for slot in result.slots)
        assert max(keys.values()) == 1, resource
