"""
Process-wide request counter with an immutable start time
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RequestCounter:
    """
    Thread-safe request counter.

    Every mutation happens under a single lock, so concurrent increments never
    lose an update and reset() swaps the value to zero in one step.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utc_now
        self._lock = threading.Lock()
        self._count = 0
        self._start_time = self._clock()

    @property
    def start_time(self) -> datetime:
        return self._start_time

    def increment(self) -> int:
        """Add one handled request and return the new total"""
        with self._lock:
            self._count += 1
            return self._count

    def get(self) -> int:
        with self._lock:
            return self._count

    def reset(self) -> int:
        """Set the count to zero and return the value it held immediately before"""
        with self._lock:
            previous = self._count
            self._count = 0
            return previous

    def now(self) -> datetime:
        return self._clock()

    def uptime(self) -> timedelta:
        return self.now() - self._start_time
