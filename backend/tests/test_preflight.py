from datetime import datetime, timedelta, timezone

import pytest

from attendo.core.exceptions import ResourceNotFoundError
from attendo.models.room import Room
from attendo.models.term import Term
from attendo.models.timetable_settings import TimetableSettings
from attendo.services.input_aggregator import load_term_inputs, parse_working_days
from attendo.services.preflight import run_preflight


def _codes(issues):
    return [item.code for item in issues]


def test_ready_term_passes_with_full_counts(db_session, seed_school):
    seeded = seed_school()

    report = run_preflight(db_session, seeded.term_id)

    assert report.passed
    assert report.errors == []
    assert report.classes.total == 2
    assert report.subjects.total == 6
    assert report.subjects.with_trainer == 6
    assert report.subjects.without_trainer == 0
    assert report.trainers.total == 3
    assert report.rooms.active == 2
    assert report.lesson_periods.active == 5
    assert report.term_info.working_days == [1, 2, 3, 4, 5]
    assert report.existing_timetable.exists is False
    assert "rooms_below_trainers" in _codes(report.warnings)


def test_subjects_without_trainer_are_listed_individually(db_session, seed_school):
    seeded = seed_school(unassigned_subjects=1)

    report = run_preflight(db_session, seeded.term_id)

    assert not report.passed
    assert report.subjects.without_trainer == 2
    issue = next(item for item in report.errors if item.code == "subjects_without_trainer")
    assert issue.category == "schedulability"
    assert {item["class_code"] for item in issue.details["subjects"]} == {"G1", "G2"}
    assert {item["subject_code"] for item in issue.details["subjects"]} == {"SUB4"}
    assert len(report.subjects.details_without_trainer) == 2


def test_missing_rooms_and_periods_block(db_session, seed_school):
    seeded = seed_school(room_count=0, period_count=0)

    report = run_preflight(db_session, seeded.term_id)

    assert not report.passed
    assert {"no_active_rooms", "no_active_lesson_periods"} <= set(_codes(report.errors))


def test_empty_term_blocks(db_session, seed_school):
    seeded = seed_school(class_count=0)

    report = run_preflight(db_session, seeded.term_id)

    assert {"no_active_classes", "no_class_subjects"} <= set(_codes(report.errors))


def test_inactive_rooms_are_ignored(db_session, seed_school):
    seeded = seed_school(room_count=1)
    room = db_session.get(Room, seeded.room_ids[0])
    room.is_active = False
    db_session.commit()

    report = run_preflight(db_session, seeded.term_id)

    assert "no_active_rooms" in _codes(report.errors)


def test_quality_warnings_do_not_block(db_session, seed_school):
    seeded = seed_school(period_count=1, working_days=[1])

    report = run_preflight(db_session, seeded.term_id)

    assert report.passed
    codes = _codes(report.warnings)
    assert "few_lesson_periods" in codes
    assert "trainer_overloaded" in codes


def test_invalid_working_days_fall_back_to_weekdays(db_session, seed_school):
    seeded = seed_school(working_days=[])

    report = run_preflight(db_session, seeded.term_id)

    assert report.term_info.working_days == [1, 2, 3, 4, 5]
    assert "working_days_defaulted" in _codes(report.warnings)


def test_active_deadline_is_reported_as_policy_error(db_session, seed_school):
    seeded = seed_school()
    db_session.add(
        TimetableSettings(
            id=1,
            generation_deadline_enabled=True,
            timetable_generation_deadline=datetime.now(timezone.utc) + timedelta(days=7),
        )
    )
    db_session.commit()

    report = run_preflight(db_session, seeded.term_id)

    issue = next(item for item in report.errors if item.code == "generation_deadline_active")
    assert issue.category == "policy"
    assert report.generation_deadline.blocked


def test_preflight_is_read_only_and_repeatable(db_session, seed_school):
    seeded = seed_school(unassigned_subjects=1)

    first = run_preflight(db_session, seeded.term_id)
    second = run_preflight(db_session, seeded.term_id)

    assert first.model_dump() == second.model_dump()
    assert db_session.get(Term, seeded.term_id) is not None


def test_unknown_term_raises_not_found(db_session):
    with pytest.raises(ResourceNotFoundError):
        run_preflight(db_session, "missing-term")


def test_input_aggregator_returns_sorted_assignments(db_session, seed_school):
    seeded = seed_school()

    inputs = load_term_inputs(db_session, seeded.term_id)

    assert [(item.class_code, item.subject_code) for item in inputs.assignments] == [
        ("G1", "SUB1"),
        ("G1", "SUB2"),
        ("G1", "SUB3"),
        ("G2", "SUB1"),
        ("G2", "SUB2"),
        ("G2", "SUB3"),
    ]
    assert inputs.existing_slot_count == 0
    assert len(inputs.lesson_period_ids) == 5


@pytest.mark.parametrize(
    "raw, expected, defaulted",
    [
        ([5, 1, 1, 3], [1, 3, 5], False),
        ("[0, 6]", [0, 6], False),
        ("not json", [1, 2, 3, 4, 5], True),
        (None, [1, 2, 3, 4, 5], True),
        ([9, "x"], [1, 2, 3, 4, 5], True),
    ],
)
def test_parse_working_days(raw, expected, defaulted):
    assert parse_working_days(raw) == (expected, defaulted)
