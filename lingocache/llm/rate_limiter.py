"""Process-wide rate limiting for upstream provider calls.

Responsibilities:
- Enforce one global minimum interval between upstream dispatches.
- Record the dispatch slot before the request is sent, not after it returns.
- Never hold the shared lock while sleeping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import threading
from time import monotonic, sleep
from typing import Callable


@dataclass(slots=True)
class RateLimiter:
    """Global minimum-interval limiter shared by every caller in the process.

    Concurrent callers reserve consecutive dispatch slots under `lock`, then
    sleep outside of it until their slot arrives.
    """

    min_interval_seconds: float = 4.5
    clock: Callable[[], float] = monotonic
    sleeper: Callable[[float], None] = sleep
    lock: threading.Lock = field(default_factory=threading.Lock)
    _last_call_at: float | None = field(default=None, init=False)

    @property
    def last_call_time(self) -> float | None:
        """Return the clock value of the most recently reserved dispatch slot."""

        with self.lock:
            return self._last_call_at

    def reserve(self) -> float:
        """Reserve the next dispatch slot and return how long the caller must wait."""

        with self.lock:
            now = self.clock()
            if self._last_call_at is None or self.min_interval_seconds <= 0.0:
                slot = now
            else:
                slot = max(now, self._last_call_at + self.min_interval_seconds)
            self._last_call_at = slot
        return slot - now

    def acquire(self) -> float:
        """Block until the caller's reserved slot arrives and return the waited seconds."""

        wait_seconds = self.reserve()
        if wait_seconds > 0.0:
            self.sleeper(wait_seconds)
        return wait_seconds
