"""Shared pytest fixtures for the lingocache test suite."""

from __future__ import annotations

import threading
from typing import Callable

import pytest

from lingocache.cache.durable import DurableTier, InMemoryDurableTier
from lingocache.cache.tiered import TranslationCache
from lingocache.llm.rate_limiter import RateLimiter
from lingocache.llm.retrying_client import RateLimitedRetryingClient
from lingocache.orchestrator.inflight import InFlightRegistry
from lingocache.orchestrator.orchestrator import TranslationOrchestrator
from tests.fakes import FakeClock, FakeProvider


OrchestratorFactory = Callable[..., TranslationOrchestrator]


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a deterministic clock/sleeper pair."""

    return FakeClock()


@pytest.fixture
def orchestrator_factory(fake_clock: FakeClock) -> OrchestratorFactory:
    """Build orchestrators wired exactly like the runtime factory, with a fake clock."""

    def _build(
        provider: FakeProvider,
        *,
        durable: DurableTier | None = None,
        min_interval_seconds: float = 4.5,
        cooldown_seconds: float = 10.0,
        original_language: str = "English",
    ) -> TranslationOrchestrator:
        shared_lock = threading.Lock()
        limiter = RateLimiter(
            min_interval_seconds=min_interval_seconds,
            clock=fake_clock,
            sleeper=fake_clock.sleep,
            lock=shared_lock,
        )
        client = RateLimitedRetryingClient(provider, limiter, cooldown_seconds=cooldown_seconds)
        cache = TranslationCache(durable if durable is not None else InMemoryDurableTier())
        return TranslationOrchestrator(
            client,
            cache,
            original_language=original_language,
            inflight=InFlightRegistry(shared_lock),
        )

    return _build
