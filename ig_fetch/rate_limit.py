from __future__ import annotations

import time
from threading import Lock
from typing import Callable

ClockFn = Callable[[], float]


class TokenBucket:
    """
    Process-wide token bucket refilled on a fixed window.

    The bucket is not continuously replenished: once a full window has elapsed since
    the window started, it is reset to capacity and a new window begins.
    """

    def __init__(
        self,
        capacity: int = 100,
        *,
        window_seconds: float = 3600.0,
        clock: ClockFn | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self._capacity = int(capacity)
        self._window_seconds = float(window_seconds)
        self._clock = clock or time.monotonic
        self._lock = Lock()

        self._tokens = self._capacity
        self._window_start = self._clock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def tokens_remaining(self) -> int:
        with self._lock:
            self._refill_locked()
            return self._tokens

    def refill(self) -> None:
        with self._lock:
            self._refill_locked()

    def try_consume(self, n: int = 1) -> bool:
        if n <= 0:
            raise ValueError("n must be positive")

        with self._lock:
            self._refill_locked()
            if self._tokens < n:
                return False
            self._tokens -= n
            return True

    def _refill_locked(self) -> None:
        now = self._clock()
        if now - self._window_start >= self._window_seconds:
            self._tokens = self._capacity
            self._window_start = now
