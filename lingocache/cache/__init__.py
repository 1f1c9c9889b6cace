"""Cache key and tier implementations for translated content."""

from .durable import DurableTier, InMemoryDurableTier, SqliteDurableTier
from .keys import CacheKey
from .tiered import TranslationCache
from .volatile import VolatileTier

__all__ = [
    "CacheKey",
    "DurableTier",
    "InMemoryDurableTier",
    "SqliteDurableTier",
    "TranslationCache",
    "VolatileTier",
]
