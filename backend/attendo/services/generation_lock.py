from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock
import logging
import time
import uuid

from attendo.core.config import get_settings
from attendo.core.exceptions import GenerationInProgressError

logger = logging.getLogger(__name__)


class GenerationLockRegistry:
    """Per-term mutual exclusion for generation runs within this process.

    A holder older than ``ttl_seconds`` is treated as abandoned and evicted,
    so a crashed run cannot block its term forever. Each acquisition gets its
    own token and only that token can release the entry.
    """

    def __init__(self, ttl_seconds: int, clock=time.monotonic) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._holders: dict[str, tuple[str, float]] = {}
        self._lock = Lock()

    def _evict_expired(self, now: float) -> None:
        expired = [
            term_id for term_id, (_, acquired) in self._holders.items() if now - acquired > self._ttl_seconds
        ]
        for term_id in expired:
            logger.warning("GENERATION LOCK EXPIRED | term_id=%s", term_id)
            del self._holders[term_id]

    def acquire(self, term_id: str) -> str | None:
        """Return the holder token, or None when the term is already held."""
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            if term_id in self._holders:
                return None
            token = uuid.uuid4().hex
            self._holders[term_id] = (token, now)
        return token

    def release(self, term_id: str, token: str) -> bool:
        with self._lock:
            holder = self._holders.get(term_id)
            if holder is None or holder[0] != token:
                logger.warning("GENERATION LOCK RELEASE IGNORED | term_id=%s | reason=not_owner", term_id)
                return False
            del self._holders[term_id]
        return True

    def is_held(self, term_id: str) -> bool:
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            return term_id in self._holders

    @contextmanager
    def hold(self, term_id: str) -> Iterator[str]:
        token = self.acquire(term_id)
        if token is None:
            raise GenerationInProgressError(term_id)
        try:
            yield token
        finally:
            self.release(term_id, token)

    def clear(self) -> None:
        with self._lock:
            self._holders.clear()

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            return len(self._holders)


_registry = GenerationLockRegistry(ttl_seconds=get_settings().generation_lock_ttl_seconds)


def get_generation_locks() -> GenerationLockRegistry:
    return _registry
