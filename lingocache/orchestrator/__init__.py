"""Translation orchestration and in-flight request coalescing."""

from .inflight import InFlightRegistry, InFlightRequest
from .orchestrator import TranslationOrchestrator

__all__ = ["InFlightRegistry", "InFlightRequest", "TranslationOrchestrator"]
