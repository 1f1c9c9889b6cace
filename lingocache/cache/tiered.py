"""Two-tier translation cache.

Responsibilities:
- Route puzzle and scenario entries to the durable tier, feedback to the volatile tier.
- Swallow durable-tier failures: a failed read is a miss, a failed write is a no-op.
- Provide explicit invalidation and observability counts.
"""

from __future__ import annotations

from typing import Any

from ..errors import CacheUnavailable
from ..models.datatypes import CacheStats, ContentKind
from ..telemetry.logger import TranslationLogger
from .durable import DurableTier
from .keys import CacheKey
from .volatile import VolatileTier

_VOLATILE_KINDS = frozenset({ContentKind.FEEDBACK})


class TranslationCache:
    """Facade over the durable and volatile cache tiers."""

    def __init__(
        self,
        durable: DurableTier,
        volatile: VolatileTier | None = None,
        logger: TranslationLogger | None = None,
    ) -> None:
        """Initialize the cache with a durable tier and an optional volatile tier."""

        self.durable = durable
        self.volatile = volatile if volatile is not None else VolatileTier()
        self._logger = logger if logger is not None else TranslationLogger("cache")

    @staticmethod
    def is_durable(kind: ContentKind) -> bool:
        """Return whether entries of a content kind live in the durable tier."""

        return kind not in _VOLATILE_KINDS

    def get(self, key: CacheKey) -> dict[str, Any] | None:
        """Return the cached wire mapping for a key, treating store failures as misses."""

        if not self.is_durable(key.kind):
            return self.volatile.get(key)
        try:
            return self.durable.get(key)
        except CacheUnavailable as exc:
            self._logger.log_warning(
                "cache_unavailable",
                operation="read",
                key=key.as_token(),
                error_type=type(exc).__name__,
            )
            return None

    def put(self, key: CacheKey, payload: dict[str, Any]) -> bool:
        """Store a wire mapping and return whether the write reached its tier."""

        if not self.is_durable(key.kind):
            self.volatile.put(key, payload)
            return True
        try:
            self.durable.put(key, payload)
        except CacheUnavailable as exc:
            self._logger.log_warning(
                "cache_unavailable",
                operation="write",
                key=key.as_token(),
                error_type=type(exc).__name__,
            )
            return False
        return True

    def invalidate(self, key: CacheKey) -> bool:
        """Delete one entry from its tier and return whether it existed."""

        if not self.is_durable(key.kind):
            return self.volatile.delete(key)
        try:
            return self.durable.delete(key)
        except CacheUnavailable as exc:
            self._logger.log_warning(
                "cache_unavailable",
                operation="delete",
                key=key.as_token(),
                error_type=type(exc).__name__,
            )
            return False

    def clear_language(self, language: str) -> int:
        """Delete every entry for a language across both tiers."""

        removed = self.volatile.clear_language(language)
        try:
            removed += self.durable.clear_language(language)
        except CacheUnavailable as exc:
            self._logger.log_warning(
                "cache_unavailable",
                operation="clear_language",
                error_type=type(exc).__name__,
            )
        return removed

    def stats(self) -> CacheStats:
        """Return durable counts by language and the volatile tier size."""

        try:
            counts = self.durable.counts_by_language()
        except CacheUnavailable as exc:
            self._logger.log_warning(
                "cache_unavailable",
                operation="stats",
                error_type=type(exc).__name__,
            )
            counts = {}
        return CacheStats(counts_by_language=counts, volatile_tier_size=self.volatile.size())
