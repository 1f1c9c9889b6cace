"""Runtime assembly for one lingocache process.

Responsibilities:
- Validate configuration and resolve provider settings with precedence rules.
- Build the single shared rate limiter, in-flight registry, cache, and client.
- Return a ready `TranslationOrchestrator`.
"""

from __future__ import annotations

import os
import threading
from time import monotonic, sleep
from typing import Callable

from .cache.durable import DurableTier, InMemoryDurableTier, SqliteDurableTier
from .cache.tiered import TranslationCache
from .config import LingoCacheConfig, ProviderRuntimeConfig, RuntimeConfigSources
from .llm.provider import UpstreamTextProvider
from .llm.rate_limiter import RateLimiter
from .llm.retrying_client import RateLimitedRetryingClient
from .orchestrator.inflight import InFlightRegistry
from .orchestrator.orchestrator import TranslationOrchestrator
from .provider_factory import ProviderFactory
from .telemetry.logger import TranslationLogger


def resolve_runtime_config(config: LingoCacheConfig) -> ProviderRuntimeConfig:
    """Resolve provider settings, falling back to the process environment."""

    env_source = config.runtime_sources.env or os.environ
    runtime_sources = RuntimeConfigSources(
        cli=config.runtime_sources.cli,
        secure=config.runtime_sources.secure,
        env=env_source,
    )
    return config.resolved_provider_runtime(runtime_sources)


def build_durable_tier(config: LingoCacheConfig) -> DurableTier:
    """Create the durable tier configured for this process."""

    if config.cache_db_path is None:
        return InMemoryDurableTier()
    return SqliteDurableTier(config.cache_db_path)


def build_cache(config: LingoCacheConfig, logger: TranslationLogger | None = None) -> TranslationCache:
    """Create the two-tier cache without touching upstream configuration."""

    base_logger = logger if logger is not None else TranslationLogger("runtime")
    return TranslationCache(build_durable_tier(config), logger=base_logger.child("cache"))


def build_orchestrator(
    config: LingoCacheConfig,
    *,
    provider: UpstreamTextProvider | None = None,
    cache: TranslationCache | None = None,
    clock: Callable[[], float] = monotonic,
    sleeper: Callable[[float], None] = sleep,
    logger: TranslationLogger | None = None,
) -> TranslationOrchestrator:
    """Assemble the orchestrator and its shared process-wide state.

    Raises:
        ConfigurationError: If the configuration is invalid or no provider
            credential is available.
    """

    config.validate()
    base_logger = logger if logger is not None else TranslationLogger("runtime")
    if provider is None:
        runtime = resolve_runtime_config(config)
        provider = ProviderFactory.create_from_runtime(
            runtime,
            timeout_seconds=config.request_timeout_seconds,
        )
    base_logger.log_event(
        "provider_selected",
        provider=provider.provider_id,
        model=provider.model,
    )

    shared_lock = threading.Lock()
    rate_limiter = RateLimiter(
        min_interval_seconds=config.min_interval_seconds,
        clock=clock,
        sleeper=sleeper,
        lock=shared_lock,
    )
    client = RateLimitedRetryingClient(
        provider,
        rate_limiter,
        cooldown_seconds=config.rate_limit_cooldown_seconds,
        logger=base_logger.child("upstream"),
    )
    return TranslationOrchestrator(
        client,
        cache if cache is not None else build_cache(config, base_logger),
        original_language=config.original_language,
        inflight=InFlightRegistry(shared_lock),
        logger=base_logger.child("orchestrator"),
    )
