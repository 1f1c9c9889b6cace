"""Upstream text-generation provider interface.

The orchestrator and the rate-limited client only depend on this protocol, so
concrete backends differ solely in endpoint, request shape, and response
extraction.
"""

from __future__ import annotations

from typing import Protocol


class UpstreamTextProvider(Protocol):
    """Protocol for one external text-generation backend."""

    provider_id: str
    model: str

    def generate(self, prompt: str, *, timeout_seconds: float | None = None) -> str:
        """Return generated text for one prompt or raise `UpstreamError`."""
