"""Volatile (process-local) cache tier for session-scoped content."""

from __future__ import annotations

from collections import OrderedDict
import copy
import threading
from typing import Any

from ..parsing import normalize_language
from .keys import CacheKey

DEFAULT_VOLATILE_MAX_ENTRIES = 512


class VolatileTier:
    """Thread-safe in-memory LRU cache.

    Entries do not survive a restart and are never shared between processes.
    Once `max_entries` is reached, the least recently used entry is evicted.
    """

    def __init__(self, max_entries: int = DEFAULT_VOLATILE_MAX_ENTRIES) -> None:
        """Initialize empty storage with an entry cap."""

        if max_entries <= 0:
            raise ValueError("`max_entries` must be a positive integer.")
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: OrderedDict[CacheKey, dict[str, Any]] = OrderedDict()

    def get(self, key: CacheKey) -> dict[str, Any] | None:
        """Return a copy of the cached wire mapping and mark it recently used."""

        with self._lock:
            payload = self._entries.get(key)
            if payload is None:
                return None
            self._entries.move_to_end(key)
            return copy.deepcopy(payload)

    def put(self, key: CacheKey, payload: dict[str, Any]) -> None:
        """Store a copy of the wire mapping, evicting the oldest entry when full."""

        with self._lock:
            self._entries[key] = copy.deepcopy(payload)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def delete(self, key: CacheKey) -> bool:
        """Delete one entry and return whether it existed."""

        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear_language(self, language: str) -> int:
        """Delete every entry for a language and return the removed count."""

        normalized = normalize_language(language)
        with self._lock:
            doomed = [key for key in self._entries if key.language == normalized]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def size(self) -> int:
        """Return the number of stored entries."""

        with self._lock:
            return len(self._entries)
