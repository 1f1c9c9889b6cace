"""Integration-test fixtures for deterministic CLI runs without network or keyring access."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from lingocache.telemetry.logger import configure_logging
from tests.fakes import InMemoryCredentialStore, ScriptedUpstream


@pytest.fixture(autouse=True)
def _fast_isolated_runtime(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Point the cache at a temp database and shrink rate-limit intervals."""

    for key in (
        "GEMINI_API_KEY",
        "OPENAI_API_KEY",
        "LINGOCACHE_PROVIDER",
        "LINGOCACHE_MODEL_GEMINI",
        "LINGOCACHE_MODEL_OPENAI",
        "LINGOCACHE_BATCH_LIMIT",
        "LINGOCACHE_ORIGINAL_LANGUAGE",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LINGOCACHE_MIN_INTERVAL_SECONDS", "0.01")
    monkeypatch.setenv("LINGOCACHE_RATE_LIMIT_COOLDOWN_SECONDS", "0.02")
    monkeypatch.setenv("LINGOCACHE_CACHE_DB_PATH", str(tmp_path / "lingocache.sqlite3"))
    yield
    configure_logging(level="WARNING")


@pytest.fixture
def credential_store(monkeypatch: pytest.MonkeyPatch) -> InMemoryCredentialStore:
    """Replace the keyring-backed store used by the CLI with an in-memory one."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr("lingocache.cli.create_credential_store", lambda: store)
    return store


@pytest.fixture
def upstream(monkeypatch: pytest.MonkeyPatch) -> ScriptedUpstream:
    """Replace provider HTTP calls with scripted replies."""

    scripted = ScriptedUpstream()
    monkeypatch.setattr("lingocache.llm.http_client.requests.post", scripted)
    return scripted
