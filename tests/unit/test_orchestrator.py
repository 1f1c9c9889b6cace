"""Unit tests for translation orchestration semantics."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import io
import json
import threading
import time
from types import MappingProxyType

from lingocache.cache.durable import InMemoryDurableTier
from lingocache.cache.keys import CacheKey
from lingocache.cache.tiered import TranslationCache
from lingocache.errors import UpstreamError, UpstreamRateLimited
from lingocache.llm.rate_limiter import RateLimiter
from lingocache.llm.retrying_client import RateLimitedRetryingClient
from lingocache.models.datatypes import FreeTextFeedback, PuzzleFields, TrainingScenario
from lingocache.orchestrator.orchestrator import TranslationOrchestrator
from lingocache.telemetry.logger import configure_logging
from tests.fakes import FakeClock, FakeProvider

_TRANSLATED_PUZZLE = {
    "title": "Pálka a míček",
    "question": "Pálka a míček stojí dohromady 1,10 $. Kolik stojí míček?",
    "idealAnswer": "Pět centů.",
    "keyPrinciples": ["Ověřte intuitivní odpovědi", "Napište rovnici"],
}


def _fenced(payload: object) -> str:
    """Wrap a JSON payload in a Markdown code fence like upstream models do."""

    return f"```json\n{json.dumps(payload, ensure_ascii=False)}\n```"


def _puzzle() -> PuzzleFields:
    """Return the original-language puzzle used across tests."""

    return PuzzleFields(
        puzzle_id="42",
        title="The Bat and the Ball",
        question="A bat and a ball cost $1.10 in total. How much is the ball?",
        ideal_answer="Five cents.",
        key_principles=("Check intuitive answers", "Write the equation"),
    )


def _scenario() -> TrainingScenario:
    """Return the original-language scenario used across tests."""

    return TrainingScenario.from_mapping(
        {
            "type": "causal",
            "title": "Ice Cream and Drowning",
            "briefing": "Ice cream sales and drowning incidents rise together every summer.",
            "correctInsight": "Hot weather drives both variables.",
            "evidence": ["Sales peak in July"],
            "difficulty": 2,
        }
    )


def test_pass_through_languages_skip_cache_and_upstream(orchestrator_factory) -> None:
    """Missing or original-language targets should return the input untouched."""

    provider = FakeProvider([_fenced(_TRANSLATED_PUZZLE)])
    durable = InMemoryDurableTier()
    orchestrator = orchestrator_factory(provider, durable=durable)

    for language in (None, "", "English", "  english "):
        result = orchestrator.translate_puzzle(_puzzle(), language)
        assert result.fields == _puzzle()
        assert result.is_fallback is False

    assert provider.call_count == 0
    assert durable.counts_by_language() == {}


def test_cold_read_translates_writes_through_and_hits_afterwards(orchestrator_factory) -> None:
    """First request calls upstream once; the second is served from the durable tier."""

    provider = FakeProvider([_fenced(_TRANSLATED_PUZZLE)])
    durable = InMemoryDurableTier()
    orchestrator = orchestrator_factory(provider, durable=durable)

    first = orchestrator.translate_puzzle(_puzzle(), "Czech")
    second = orchestrator.translate_puzzle(_puzzle(), "czech")

    assert first.is_fallback is False
    assert first.fields.question == _TRANSLATED_PUZZLE["question"]
    assert first.fields.key_principles == tuple(_TRANSLATED_PUZZLE["keyPrinciples"])
    assert second.fields == first.fields
    assert provider.call_count == 1
    assert durable.get(CacheKey.for_unit(_puzzle(), "czech")) == _TRANSLATED_PUZZLE
    assert "to Czech" in provider.prompts[0]


def test_partial_translation_is_merged_over_original(orchestrator_factory) -> None:
    """Fields upstream omitted should keep their original-language values."""

    provider = FakeProvider([_fenced({"question": "Kolik stojí míček?"})])
    orchestrator = orchestrator_factory(provider)

    result = orchestrator.translate_puzzle(_puzzle(), "Czech")

    assert result.is_fallback is False
    assert result.fields.question == "Kolik stojí míček?"
    assert result.fields.title == "The Bat and the Ball"
    assert result.fields.key_principles == _puzzle().key_principles


def test_rate_limited_twice_falls_back_without_caching(
    orchestrator_factory, fake_clock: FakeClock
) -> None:
    """Two rate-limit rejections should yield a fallback and leave the cache empty."""

    provider = FakeProvider([UpstreamRateLimited("quota")])
    durable = InMemoryDurableTier()
    orchestrator = orchestrator_factory(provider, durable=durable)

    result = orchestrator.translate_puzzle(_puzzle(), "Czech")

    assert result.is_fallback is True
    assert result.reason == "rate_limited"
    assert result.fields == _puzzle()
    assert provider.call_count == 2
    assert fake_clock.sleeps == [10.0]
    assert durable.counts_by_language() == {}


def test_fallback_is_not_cached_and_next_request_retries(orchestrator_factory) -> None:
    """A failed request should not poison the cache for later requests."""

    provider = FakeProvider(
        [UpstreamError("boom", status_code=500), _fenced(_TRANSLATED_PUZZLE)]
    )
    durable = InMemoryDurableTier()
    orchestrator = orchestrator_factory(provider, durable=durable)

    failed = orchestrator.translate_puzzle(_puzzle(), "Czech")
    assert failed.is_fallback is True
    assert failed.reason == "http_error"
    assert durable.counts_by_language() == {}

    recovered = orchestrator.translate_puzzle(_puzzle(), "Czech")
    assert recovered.is_fallback is False
    assert provider.call_count == 2
    assert durable.counts_by_language() == {"czech": 1}


def test_unparseable_response_falls_back(orchestrator_factory) -> None:
    """Responses that are not valid JSON for a structured unit should fall back."""

    provider = FakeProvider(["Sorry, I cannot help with that."])
    durable = InMemoryDurableTier()
    orchestrator = orchestrator_factory(provider, durable=durable)

    result = orchestrator.translate_puzzle(_puzzle(), "Czech")

    assert result.is_fallback is True
    assert result.reason == "parse_error"
    assert durable.counts_by_language() == {}


def test_untranslated_durable_entry_is_treated_as_miss(orchestrator_factory) -> None:
    """A cached entry equal to the original text should be replaced on the next read."""

    durable = InMemoryDurableTier()
    key = CacheKey.for_unit(_puzzle(), "czech")
    durable.put(key, _puzzle().to_payload())
    provider = FakeProvider([_fenced(_TRANSLATED_PUZZLE)])
    orchestrator = orchestrator_factory(provider, durable=durable)

    healed = orchestrator.translate_puzzle(_puzzle(), "Czech")
    again = orchestrator.translate_puzzle(_puzzle(), "Czech")

    assert healed.fields.question == _TRANSLATED_PUZZLE["question"]
    assert again.fields == healed.fields
    assert provider.call_count == 1
    assert durable.get(key) == _TRANSLATED_PUZZLE


def test_untranslated_check_ignores_surrounding_whitespace(orchestrator_factory) -> None:
    """Whitespace-only differences from the original should still count as stale."""

    durable = InMemoryDurableTier()
    key = CacheKey.for_unit(_puzzle(), "czech")
    durable.put(key, {"question": f"  {_puzzle().question}\n"})
    provider = FakeProvider([_fenced(_TRANSLATED_PUZZLE)])
    orchestrator = orchestrator_factory(provider, durable=durable)

    orchestrator.translate_puzzle(_puzzle(), "Czech")

    assert provider.call_count == 1


def test_concurrent_misses_share_one_upstream_call(orchestrator_factory) -> None:
    """Callers arriving while a translation is in flight should join it."""

    gate = threading.Event()
    provider = FakeProvider([_fenced(_TRANSLATED_PUZZLE)], gate=gate)
    orchestrator = orchestrator_factory(provider)
    key = CacheKey.for_unit(_puzzle(), "czech")
    results = []
    results_lock = threading.Lock()

    def _translate() -> None:
        result = orchestrator.translate_puzzle(_puzzle(), "Czech")
        with results_lock:
            results.append(result)

    leader = threading.Thread(target=_translate)
    leader.start()
    deadline = time.monotonic() + 5.0
    while provider.call_count == 0 and time.monotonic() < deadline:
        time.sleep(0.01)

    joiners = [threading.Thread(target=_translate) for _ in range(3)]
    for joiner in joiners:
        joiner.start()
    while orchestrator.inflight.waiters(key) < 3 and time.monotonic() < deadline:
        time.sleep(0.01)
    gate.set()

    for thread in [leader, *joiners]:
        thread.join(timeout=5.0)

    assert provider.call_count == 1
    assert len(results) == 4
    assert all(result.fields == results[0].fields for result in results)
    assert all(result.is_fallback is False for result in results)
    assert orchestrator.inflight.pending_count() == 0


def test_joiners_receive_the_leaders_fallback(orchestrator_factory) -> None:
    """A failing in-flight translation should resolve every joined caller with a fallback."""

    gate = threading.Event()
    provider = FakeProvider([UpstreamError("boom", status_code=500)], gate=gate)
    orchestrator = orchestrator_factory(provider)
    key = CacheKey.for_unit(_puzzle(), "czech")
    results = []

    leader = threading.Thread(
        target=lambda: results.append(orchestrator.translate_puzzle(_puzzle(), "Czech"))
    )
    joiner = threading.Thread(
        target=lambda: results.append(orchestrator.translate_puzzle(_puzzle(), "Czech"))
    )
    leader.start()
    deadline = time.monotonic() + 5.0
    while provider.call_count == 0 and time.monotonic() < deadline:
        time.sleep(0.01)
    joiner.start()
    while orchestrator.inflight.waiters(key) < 1 and time.monotonic() < deadline:
        time.sleep(0.01)
    gate.set()
    leader.join(timeout=5.0)
    joiner.join(timeout=5.0)

    assert provider.call_count == 1
    assert [result.is_fallback for result in results] == [True, True]


def test_distinct_languages_are_not_coalesced(orchestrator_factory) -> None:
    """Each (content, language) pair should get its own upstream call and row."""

    provider = FakeProvider([_fenced(_TRANSLATED_PUZZLE)])
    durable = InMemoryDurableTier()
    orchestrator = orchestrator_factory(provider, durable=durable)

    orchestrator.translate_puzzle(_puzzle(), "Czech")
    orchestrator.translate_puzzle(_puzzle(), "German")

    assert provider.call_count == 2
    assert durable.counts_by_language() == {"czech": 1, "german": 1}


def test_feedback_uses_volatile_tier_only(orchestrator_factory) -> None:
    """Feedback translations should be cached in-process, never in the durable tier."""

    provider = FakeProvider(["Dobrá práce, zkontrolujte jednotky."])
    durable = InMemoryDurableTier()
    orchestrator = orchestrator_factory(provider, durable=durable)

    first = orchestrator.translate_feedback("Good work, check your units.", "Czech")
    second = orchestrator.translate_feedback(
        FreeTextFeedback("Good work, check your units."), "Czech"
    )

    assert first.fields.body == "Dobrá práce, zkontrolujte jednotky."
    assert second.fields == first.fields
    assert provider.call_count == 1
    assert durable.counts_by_language() == {}
    assert orchestrator.get_cache_stats().volatile_tier_size == 1


def test_structured_feedback_round_trip(orchestrator_factory) -> None:
    """Structured feedback should be parsed as JSON and merged key by key."""

    provider = FakeProvider([_fenced({"summary": "Dobře", "score": 9})])
    orchestrator = orchestrator_factory(provider)

    result = orchestrator.translate_feedback({"summary": "Good", "score": 9}, "Czech")

    assert result.is_fallback is False
    assert result.fields.body == {"summary": "Dobře", "score": 9}


def test_scenario_translation_keeps_untranslated_data(orchestrator_factory) -> None:
    """Scenario translations should merge over the original scenario record."""

    provider = FakeProvider(
        [
            _fenced(
                {
                    "title": "Zmrzlina a utonutí",
                    "briefing": "Prodej zmrzliny a utonutí rostou každé léto společně.",
                }
            )
        ]
    )
    durable = InMemoryDurableTier()
    orchestrator = orchestrator_factory(provider, durable=durable)

    result = orchestrator.translate_scenario(_scenario(), "Czech")
    payload = result.as_payload()

    assert payload["title"] == "Zmrzlina a utonutí"
    assert payload["difficulty"] == 2
    assert payload["evidence"] == ["Sales peak in July"]
    assert payload["fallback"] is False
    assert durable.counts_by_language() == {"czech": 1}


def test_batch_preserves_order_and_skips_cached_units(orchestrator_factory) -> None:
    """Batch translation should only call upstream for uncached units, in input order."""

    other = PuzzleFields(puzzle_id="43", title="Lily Pads", question="How long to half cover?")
    provider = FakeProvider(
        [
            _fenced({"question": "Za jak dlouho bude pokryta polovina?"}),
        ]
    )
    durable = InMemoryDurableTier()
    durable.put(CacheKey.for_unit(_puzzle(), "czech"), _TRANSLATED_PUZZLE)
    orchestrator = orchestrator_factory(provider, durable=durable)

    results = orchestrator.translate_batch([other, _puzzle()], "Czech")

    assert [result.fields.puzzle_id for result in results] == ["43", "42"]
    assert results[0].fields.question == "Za jak dlouho bude pokryta polovina?"
    assert results[1].fields.question == _TRANSLATED_PUZZLE["question"]
    assert provider.call_count == 1


def test_clear_language_cache_forces_retranslation(orchestrator_factory) -> None:
    """Explicit invalidation should be the only way to drop a cached translation."""

    provider = FakeProvider([_fenced(_TRANSLATED_PUZZLE)])
    orchestrator = orchestrator_factory(provider)

    orchestrator.translate_puzzle(_puzzle(), "Czech")
    assert orchestrator.clear_language_cache("Czech") == 1
    orchestrator.translate_puzzle(_puzzle(), "Czech")

    assert provider.call_count == 2


def test_read_only_mapping_feedback_is_translated(orchestrator_factory) -> None:
    """Any mapping type should be accepted as structured feedback."""

    provider = FakeProvider([_fenced({"summary": "Bien hecho"})])
    orchestrator = orchestrator_factory(provider)

    result = orchestrator.translate_feedback(MappingProxyType({"summary": "Good"}), "Spanish")

    assert result.is_fallback is False
    assert result.fields.body == {"summary": "Bien hecho"}
    assert isinstance(FreeTextFeedback(MappingProxyType({"summary": "Good"})).body, dict)


def test_timeout_falls_back_releases_handle_and_counts_against_throttle(
    orchestrator_factory, fake_clock: FakeClock
) -> None:
    """A timed-out call should fall back, leave nothing in flight, and still use its slot."""

    other = PuzzleFields(puzzle_id="43", title="Lily Pads", question="How long to half cover?")
    provider = FakeProvider(
        [
            UpstreamError("timed out", failure_kind="timeout"),
            _fenced({"question": "Za jak dlouho bude pokryta polovina?"}),
        ]
    )
    durable = InMemoryDurableTier()
    orchestrator = orchestrator_factory(provider, durable=durable)

    result = orchestrator.translate_puzzle(_puzzle(), "Czech", timeout_seconds=2.0)

    assert result.is_fallback is True
    assert result.reason == "timeout"
    assert result.fields == _puzzle()
    assert orchestrator.inflight.pending_count() == 0
    assert durable.counts_by_language() == {}
    assert provider.timeouts == [2.0]

    follow_up = orchestrator.translate_puzzle(other, "Czech")

    assert follow_up.is_fallback is False
    assert fake_clock.sleeps == [4.5]


def test_batch_reports_progress_after_each_uncached_unit(orchestrator_factory) -> None:
    """Progress should count cached units and tick once per upstream translation."""

    lily = PuzzleFields(puzzle_id="43", title="Lily Pads", question="How long to half cover?")
    widgets = PuzzleFields(puzzle_id="44", title="Widgets", question="How long for 100 machines?")
    provider = FakeProvider([_fenced({"question": "Přeloženo"})])
    durable = InMemoryDurableTier()
    durable.put(CacheKey.for_unit(_puzzle(), "czech"), _TRANSLATED_PUZZLE)
    orchestrator = orchestrator_factory(provider, durable=durable)
    progress: list[tuple[int, int]] = []

    results = orchestrator.translate_batch(
        [lily, _puzzle(), widgets],
        "Czech",
        on_progress=lambda done, total: progress.append((done, total)),
    )

    assert [result.fields.puzzle_id for result in results] == ["43", "42", "44"]
    assert progress == [(2, 3), (3, 3)]
    assert provider.call_count == 2


def test_precache_warms_cache_in_background(orchestrator_factory) -> None:
    """Pre-caching should return a future and leave later reads as cache hits."""

    lily = PuzzleFields(puzzle_id="43", title="Lily Pads", question="How long to half cover?")
    provider = FakeProvider([_fenced({"question": "Přeloženo"})])
    durable = InMemoryDurableTier()
    orchestrator = orchestrator_factory(provider, durable=durable)

    try:
        future = orchestrator.precache([_puzzle(), lily], "Czech")
        warmed = future.result(timeout=5.0)
    finally:
        orchestrator.close()

    assert [result.is_fallback for result in warmed] == [False, False]
    assert durable.counts_by_language() == {"czech": 2}

    result = orchestrator.translate_puzzle(lily, "Czech")

    assert result.fields.question == "Přeloženo"
    assert provider.call_count == 2


def test_precache_uses_injected_executor_without_closing_it(fake_clock: FakeClock) -> None:
    """A caller-supplied executor should run pre-cache work and outlive `close()`."""

    provider = FakeProvider([_fenced(_TRANSLATED_PUZZLE)])
    limiter = RateLimiter(min_interval_seconds=4.5, clock=fake_clock, sleeper=fake_clock.sleep)
    client = RateLimitedRetryingClient(provider, limiter)
    with ThreadPoolExecutor(max_workers=1) as executor:
        orchestrator = TranslationOrchestrator(
            client,
            TranslationCache(InMemoryDurableTier()),
            executor=executor,
        )
        warmed = orchestrator.precache([_puzzle()], "Czech").result(timeout=5.0)
        orchestrator.close()

        assert warmed[0].fields.question == _TRANSLATED_PUZZLE["question"]
        assert executor.submit(lambda: "still open").result(timeout=5.0) == "still open"


def test_each_miss_logs_a_single_cache_miss_event(orchestrator_factory) -> None:
    """The leader's cache re-check should not log a second miss."""

    lily = PuzzleFields(puzzle_id="43", title="Lily Pads", question="How long to half cover?")
    provider = FakeProvider([_fenced({"question": "Přeloženo"})])
    orchestrator = orchestrator_factory(provider)
    sink = io.StringIO()
    configure_logging(sink, level="DEBUG")
    try:
        orchestrator.translate_puzzle(_puzzle(), "Czech")
        orchestrator.translate_batch([lily], "Czech")
    finally:
        configure_logging(level="WARNING")

    lines = sink.getvalue().splitlines()
    assert sum("event=cache_miss" in line for line in lines) == 2
    assert sum("event=cache_write" in line for line in lines) == 2
