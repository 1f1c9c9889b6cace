"""Typed content and result models used by cache and orchestration layers."""

from .datatypes import (
    CacheStats,
    ContentKind,
    ContentUnit,
    FreeTextFeedback,
    PuzzleFields,
    TrainingScenario,
    TranslationResult,
)

__all__ = [
    "CacheStats",
    "ContentKind",
    "ContentUnit",
    "FreeTextFeedback",
    "PuzzleFields",
    "TrainingScenario",
    "TranslationResult",
]
