"""Rate-limited upstream client with one bounded retry on rate-limit rejection.

Responsibilities:
- Pass every upstream dispatch through the shared `RateLimiter`.
- Retry exactly once after a fixed cooldown when the provider signals rate limiting.
- Surface every other upstream failure immediately.
"""

from __future__ import annotations

import threading
from typing import Callable

from ..errors import UpstreamError, UpstreamRateLimited
from ..telemetry.logger import TranslationLogger
from .provider import UpstreamTextProvider
from .rate_limiter import RateLimiter


class RateLimitedRetryingClient:
    """Provider wrapper enforcing the global throttle and rate-limit retry policy."""

    def __init__(
        self,
        provider: UpstreamTextProvider,
        rate_limiter: RateLimiter | None = None,
        *,
        cooldown_seconds: float = 10.0,
        sleeper: Callable[[float], None] | None = None,
        logger: TranslationLogger | None = None,
    ) -> None:
        """Initialize the client around one provider and one shared limiter."""

        self.provider = provider
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
        if cooldown_seconds <= self.rate_limiter.min_interval_seconds:
            raise ValueError(
                "`cooldown_seconds` must be longer than the limiter minimum interval."
            )
        self.cooldown_seconds = cooldown_seconds
        self._sleeper = sleeper if sleeper is not None else self.rate_limiter.sleeper
        self._logger = logger if logger is not None else TranslationLogger("upstream")
        self._counter_lock = threading.Lock()
        self.attempt_count = 0
        self.retry_attempt_count = 0

    def generate(self, prompt: str, *, timeout_seconds: float | None = None) -> str:
        """Return provider text for a prompt, honoring throttle and retry policy."""

        try:
            return self._dispatch(prompt, timeout_seconds)
        except UpstreamRateLimited as exc:
            self._logger.log_warning(
                "rate_limit_retry",
                provider=self.provider.provider_id,
                cooldown_seconds=self.cooldown_seconds,
                status=exc.status_code,
            )
        except UpstreamError as exc:
            self._log_upstream_failure(exc, attempt="initial")
            raise

        self._sleeper(self.cooldown_seconds)
        with self._counter_lock:
            self.retry_attempt_count += 1
        try:
            return self._dispatch(prompt, timeout_seconds)
        except UpstreamError as exc:
            self._log_upstream_failure(exc, attempt="retry")
            raise

    def _log_upstream_failure(self, exc: UpstreamError, *, attempt: str) -> None:
        """Log one failed upstream dispatch without response details."""

        self._logger.log_failure(
            "upstream_failure",
            error_type=type(exc).__name__,
            provider=self.provider.provider_id,
            failure_kind=exc.failure_kind,
            status=exc.status_code,
            attempt=attempt,
        )

    def _dispatch(self, prompt: str, timeout_seconds: float | None) -> str:
        """Wait for a global dispatch slot and send one provider request."""

        waited = self.rate_limiter.acquire()
        if waited > 0.0:
            self._logger.log_event(
                "rate_limit_wait",
                provider=self.provider.provider_id,
                wait_seconds=f"{waited:.3f}",
            )
        with self._counter_lock:
            self.attempt_count += 1
        return self.provider.generate(prompt, timeout_seconds=timeout_seconds)
