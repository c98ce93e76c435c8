import pytest

from attendo.core.exceptions import GenerationInProgressError
from attendo.services.generation_lock import GenerationLockRegistry


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_second_holder_is_rejected_until_release():
    locks = GenerationLockRegistry(ttl_seconds=60)
    token = locks.acquire("term-1")
    assert token
    assert locks.acquire("term-1") is None
    assert locks.acquire("term-2")

    assert locks.release("term-1", token)
    assert locks.acquire("term-1")


def test_release_with_foreign_token_is_ignored():
    locks = GenerationLockRegistry(ttl_seconds=60)
    locks.acquire("term-1")

    assert not locks.release("term-1", "not-the-holder")
    assert locks.is_held("term-1")


def test_hold_releases_on_error():
    locks = GenerationLockRegistry(ttl_seconds=60)
    with pytest.raises(RuntimeError):
        with locks.hold("term-1"):
            assert locks.is_held("term-1")
            raise RuntimeError("boom")
    assert not locks.is_held("term-1")


def test_hold_on_busy_term_raises_conflict():
    locks = GenerationLockRegistry(ttl_seconds=60)
    locks.acquire("term-1")
    with pytest.raises(GenerationInProgressError) as exc_info:
        with locks.hold("term-1"):
            pass
    assert exc_info.value.status_code == 409
    assert exc_info.value.details == {"term_id": "term-1"}


def test_abandoned_holder_expires_after_ttl():
    clock = FakeClock()
    locks = GenerationLockRegistry(ttl_seconds=60, clock=clock)
    locks.acquire("term-1")
    assert len(locks) == 1

    clock.now += 61
    assert not locks.is_held("term-1")
    assert locks.acquire("term-1")


def test_expired_run_finishing_late_keeps_the_new_holder():
    clock = FakeClock()
    locks = GenerationLockRegistry(ttl_seconds=10, clock=clock)

    with locks.hold("term-1"):
        clock.now += 11
        newer = locks.acquire("term-1")
        assert newer is not None

    assert locks.is_held("term-1")
    assert locks.acquire("term-1") is None
    assert locks.release("term-1", newer)
    assert not locks.is_held("term-1")


def test_clear_drops_every_holder():
    locks = GenerationLockRegistry(ttl_seconds=60)
    locks.acquire("term-1")
    locks.acquire("term-2")

    locks.clear()

    assert len(locks) == 0
