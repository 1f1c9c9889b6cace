"""Translation orchestration core.

Responsibilities:
- Pass original-language requests through without cache or upstream access.
- Serve usable cache hits merged over the original unit.
- Treat durable entries identical to the original text as misses (self-healing).
- Coalesce concurrent misses for one key into a single upstream call.
- Write through genuine translations only; failures degrade to fallback results.
- Report batch progress and pre-cache batches on a background executor.
"""

from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
import threading
from typing import Any, Callable, Mapping, Sequence

from ..cache.keys import CacheKey
from ..cache.tiered import TranslationCache
from ..errors import ParseError, UpstreamError, UpstreamRateLimited
from ..llm.payload import extract_fenced_payload, parse_json_value
from ..llm.prompts import PromptLibrary
from ..llm.retrying_client import RateLimitedRetryingClient
from ..models.datatypes import (
    CacheStats,
    ContentUnit,
    FreeTextFeedback,
    PuzzleFields,
    TrainingScenario,
    TranslationResult,
)
from ..parsing import normalize_language, normalize_optional_string
from ..telemetry.logger import TranslationLogger
from .inflight import InFlightRegistry


def _failure_reason(exc: Exception) -> str:
    """Map a translation failure onto a short fallback reason."""

    if isinstance(exc, UpstreamRateLimited):
        return "rate_limited"
    if isinstance(exc, UpstreamError):
        return exc.failure_kind
    if isinstance(exc, ParseError):
        return "parse_error"
    return "unexpected_error"


class TranslationOrchestrator:
    """Coordinate cache lookups, request coalescing, and upstream translation."""

    def __init__(
        self,
        client: RateLimitedRetryingClient,
        cache: TranslationCache,
        *,
        original_language: str = "English",
        prompts: PromptLibrary | None = None,
        inflight: InFlightRegistry | None = None,
        logger: TranslationLogger | None = None,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the orchestrator around one shared client and cache.

        `executor` runs `precache` batches; when omitted, a single-worker pool
        is created on first use and shut down by `close()`.
        """

        normalized_original = normalize_optional_string(original_language)
        if normalized_original is None:
            raise ValueError("`original_language` must be a non-empty string.")
        self.client = client
        self.cache = cache
        self.original_language = normalized_original
        self.prompts = prompts if prompts is not None else PromptLibrary(normalized_original)
        self.inflight = inflight if inflight is not None else InFlightRegistry()
        self._logger = logger if logger is not None else TranslationLogger("orchestrator")
        self._executor = executor
        self._owns_executor = executor is None
        self._executor_lock = threading.Lock()

    def is_pass_through(self, language: str | None) -> bool:
        """Return whether a target language needs no translation."""

        normalized = normalize_language(language)
        return normalized is None or normalized == normalize_language(self.original_language)

    def translate(
        self,
        unit: ContentUnit,
        language: str | None,
        *,
        timeout_seconds: float | None = None,
    ) -> TranslationResult:
        """Translate one content unit, never raising for upstream or parse failures."""

        if self.is_pass_through(language):
            return TranslationResult.translated(unit)

        target_language = normalize_optional_string(language) or ""
        key = CacheKey.for_unit(unit, target_language)
        cached = self._usable_cache_entry(unit, key)
        if cached is not None:
            return TranslationResult.translated(unit.merged_with(cached))
        return self._translate_miss(unit, key, target_language, timeout_seconds)

    def translate_puzzle(
        self,
        puzzle: PuzzleFields,
        language: str | None,
        *,
        timeout_seconds: float | None = None,
    ) -> TranslationResult:
        """Translate puzzle fields through the durable tier."""

        if not isinstance(puzzle, PuzzleFields):
            raise TypeError("translate_puzzle expects `PuzzleFields`.")
        return self.translate(puzzle, language, timeout_seconds=timeout_seconds)

    def translate_scenario(
        self,
        scenario: TrainingScenario,
        language: str | None,
        *,
        timeout_seconds: float | None = None,
    ) -> TranslationResult:
        """Translate a training scenario, merged over the original scenario."""

        if not isinstance(scenario, TrainingScenario):
            raise TypeError("translate_scenario expects `TrainingScenario`.")
        return self.translate(scenario, language, timeout_seconds=timeout_seconds)

    def translate_feedback(
        self,
        feedback: str | Mapping[str, Any] | FreeTextFeedback,
        language: str | None,
        *,
        timeout_seconds: float | None = None,
    ) -> TranslationResult:
        """Translate grader feedback through the volatile tier only."""

        unit = feedback if isinstance(feedback, FreeTextFeedback) else FreeTextFeedback(feedback)
        return self.translate(unit, language, timeout_seconds=timeout_seconds)

    def translate_batch(
        self,
        units: Sequence[ContentUnit],
        language: str | None,
        *,
        timeout_seconds: float | None = None,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> list[TranslationResult]:
        """Translate units in input order, one upstream call per uncached unit.

        `on_progress(done, total)` is called after each uncached unit resolves;
        `done` includes units served from cache.
        """

        if self.is_pass_through(language):
            return [TranslationResult.translated(unit) for unit in units]

        target_language = normalize_optional_string(language) or ""
        results: list[TranslationResult | None] = [None] * len(units)
        pending: list[tuple[int, CacheKey]] = []
        for index, unit in enumerate(units):
            key = CacheKey.for_unit(unit, target_language)
            cached = self._usable_cache_entry(unit, key)
            if cached is not None:
                results[index] = TranslationResult.translated(unit.merged_with(cached))
            else:
                pending.append((index, key))

        self._logger.log_event(
            "batch_partitioned",
            language=_language_label(target_language),
            cached=len(units) - len(pending),
            uncached=len(pending),
        )
        done = len(units) - len(pending)
        for index, key in pending:
            results[index] = self._translate_miss(
                units[index], key, target_language, timeout_seconds
            )
            done += 1
            if on_progress is not None:
                on_progress(done, len(units))
        return [result for result in results if result is not None]

    def precache(
        self,
        units: Sequence[ContentUnit],
        language: str | None,
        *,
        timeout_seconds: float | None = None,
    ) -> Future[list[TranslationResult]]:
        """Schedule a batch translation in the background and return its future."""

        batch = list(units)
        self._logger.log_event(
            "precache_scheduled",
            language=_language_label(language or ""),
            units=len(batch),
        )
        future = self._background_executor().submit(
            self.translate_batch, batch, language, timeout_seconds=timeout_seconds
        )
        future.add_done_callback(self._log_precache_outcome)
        return future

    def close(self) -> None:
        """Wait for pending pre-cache work and release an owned executor."""

        if not self._owns_executor:
            return
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def _background_executor(self) -> Executor:
        """Return the pre-cache executor, creating the owned pool on first use."""

        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="lingocache-precache"
                )
            return self._executor

    def _log_precache_outcome(self, future: Future[list[TranslationResult]]) -> None:
        """Log the outcome of a background pre-cache batch."""

        if future.cancelled():
            self._logger.log_warning("precache_cancelled")
            return
        exc = future.exception()
        if exc is not None:
            self._logger.log_failure("precache_failed", error_type=type(exc).__name__)
            return
        results = future.result()
        self._logger.log_event(
            "precache_finished",
            fallbacks=sum(1 for result in results if result.is_fallback),
            units=len(results),
        )

    def get_cache_stats(self) -> CacheStats:
        """Return cache observability counts."""

        return self.cache.stats()

    def clear_language_cache(self, language: str) -> int:
        """Explicitly invalidate every cached entry for a language."""

        removed = self.cache.clear_language(language)
        self._logger.log_event(
            "cache_cleared",
            language=_language_label(language),
            removed=removed,
        )
        return removed

    def _usable_cache_entry(
        self,
        unit: ContentUnit,
        key: CacheKey,
        *,
        log_misses: bool = True,
    ) -> dict[str, Any] | None:
        """Return a cached wire mapping unless it is missing or looks untranslated."""

        entry = self.cache.get(key)
        if entry is None:
            if log_misses:
                self._logger.log_event("cache_miss", key=key.as_token())
            return None
        if self.cache.is_durable(key.kind) and self._looks_untranslated(unit, entry):
            if log_misses:
                self._logger.log_warning("stale_entry", key=key.as_token())
            return None
        self._logger.log_event("cache_hit", key=key.as_token())
        return entry

    @staticmethod
    def _looks_untranslated(unit: ContentUnit, entry: Mapping[str, Any]) -> bool:
        """Return whether a cached primary text equals the original-language text."""

        original = unit.primary_text
        cached = unit.primary_text_of(entry)
        if original is None or cached is None:
            return False
        return cached.strip() == original.strip()

    def _translate_miss(
        self,
        unit: ContentUnit,
        key: CacheKey,
        target_language: str,
        timeout_seconds: float | None,
    ) -> TranslationResult:
        """Join or lead the in-flight translation for a key."""

        def _compute() -> TranslationResult:
            # A leader that starts just after another leader finished must see its write.
            cached = self._usable_cache_entry(unit, key, log_misses=False)
            if cached is not None:
                return TranslationResult.translated(unit.merged_with(cached))
            return self._translate_upstream(unit, key, target_language, timeout_seconds)

        result, joined = self.inflight.run(key, _compute)
        if joined:
            self._logger.log_event("coalesced", key=key.as_token())
        return result

    def _translate_upstream(
        self,
        unit: ContentUnit,
        key: CacheKey,
        target_language: str,
        timeout_seconds: float | None,
    ) -> TranslationResult:
        """Call upstream, parse the payload, and write through on success."""

        prompt = self.prompts.render(unit, target_language)
        try:
            raw_response = self.client.generate(prompt, timeout_seconds=timeout_seconds)
            payload_text = extract_fenced_payload(raw_response)
            decoded = payload_text if unit.expects_plain_text else parse_json_value(payload_text)
            translated = unit.validate_translation(decoded)
        except Exception as exc:
            reason = _failure_reason(exc)
            self._logger.log_failure(
                "fallback",
                error_type=type(exc).__name__,
                key=key.as_token(),
                reason=reason,
            )
            return TranslationResult.fallback(unit, reason)

        if self.cache.put(key, translated):
            self._logger.log_event("cache_write", key=key.as_token())
        return TranslationResult.translated(unit.merged_with(translated))


def _language_label(language: str) -> str:
    """Return the normalized language label used in log context."""

    return normalize_language(language) or "none"
