"""Top-level package for lingocache.

This package translates original-language learning content (puzzles, grader
feedback, training scenarios) through a rate-limited upstream language model,
backed by a two-tier cache. The main entry point is `TranslationOrchestrator`,
usually assembled with `lingocache.runtime.build_orchestrator`.
"""

from .orchestrator import TranslationOrchestrator

__all__ = ["TranslationOrchestrator", "__version__"]

__version__ = "0.1.0"
