from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Protocol

from .datetime_utils import Clock, SystemClock


class IdempotencyStore(Protocol):
    def add(self, key: str, *, ttl_seconds: int) -> bool:
        """Set ``key`` if absent (or expired).

        Returns True when this call set the key, False when it was already set.
        """

        raise NotImplementedError

    def has(self, key: str) -> bool:
        raise NotImplementedError


class InMemoryIdempotencyStore(IdempotencyStore):
    """Process-wide key store with expiry.

    ``add`` is atomic within the process; separate worker processes each keep
    their own keys.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._expires: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def _purge(self, now: datetime) -> None:
        for key in [k for k, exp in self._expires.items() if exp <= now]:
            del self._expires[key]

    def add(self, key: str, *, ttl_seconds: int) -> bool:
        now = self._clock.now()
        with self._lock:
            self._purge(now)
            if key in self._expires:
                return False
            self._expires[key] = now + timedelta(seconds=int(ttl_seconds))
            return True

    def has(self, key: str) -> bool:
        now = self._clock.now()
        with self._lock:
            self._purge(now)
            return key in self._expires
