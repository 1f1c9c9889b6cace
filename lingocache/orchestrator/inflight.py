"""In-flight request coalescing for concurrent translation callers.

The first caller for a key becomes the leader and computes the result; every
caller that arrives while the leader is still running joins its shared
`Future`. The entry is removed as soon as the leader finishes, success or not.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
import threading
from typing import Callable

from ..cache.keys import CacheKey
from ..models.datatypes import TranslationResult


@dataclass(slots=True)
class InFlightRequest:
    """One dispatched-but-unresolved translation shared by all callers of a key."""

    future: Future = field(default_factory=Future)
    waiters: int = 0


class InFlightRegistry:
    """Process-wide table of in-flight translations guarded by one lock."""

    def __init__(self, lock: threading.Lock | None = None) -> None:
        """Initialize the table; pass a shared lock to guard it with other global state."""

        self._lock = lock if lock is not None else threading.Lock()
        self._requests: dict[CacheKey, InFlightRequest] = {}

    def join_or_start(self, key: CacheKey) -> tuple[InFlightRequest, bool]:
        """Return the request for a key and whether the caller must lead it."""

        with self._lock:
            existing = self._requests.get(key)
            if existing is not None:
                existing.waiters += 1
                return existing, False
            request = InFlightRequest()
            self._requests[key] = request
            return request, True

    def release(self, key: CacheKey, request: InFlightRequest) -> None:
        """Remove the request for a key if it is still the registered one."""

        with self._lock:
            if self._requests.get(key) is request:
                del self._requests[key]

    def run(
        self,
        key: CacheKey,
        compute: Callable[[], TranslationResult],
    ) -> tuple[TranslationResult, bool]:
        """Run `compute` once per concurrent key and return `(result, joined)`."""

        request, is_leader = self.join_or_start(key)
        if not is_leader:
            return request.future.result(), True

        try:
            result = compute()
        except BaseException as exc:
            request.future.set_exception(exc)
            raise
        else:
            request.future.set_result(result)
            return result, False
        finally:
            self.release(key, request)

    def waiters(self, key: CacheKey) -> int:
        """Return how many callers joined the in-flight request for a key."""

        with self._lock:
            request = self._requests.get(key)
            return 0 if request is None else request.waiters

    def pending_count(self) -> int:
        """Return the number of keys currently in flight."""

        with self._lock:
            return len(self._requests)
