"""Deterministic test doubles shared by lingocache unit and integration tests."""

from __future__ import annotations

import json
import threading
from typing import Any

import requests

from lingocache.credentials import CredentialStore


class FakeClock:
    """Deterministic monotonic clock whose sleeps advance time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        """Initialize the clock at a fixed start time."""

        self.now = start
        self.sleeps: list[float] = []
        self._lock = threading.Lock()

    def __call__(self) -> float:
        """Return the current fake time."""

        with self._lock:
            return self.now

    def sleep(self, seconds: float) -> None:
        """Record a sleep and advance the clock."""

        with self._lock:
            self.sleeps.append(seconds)
            self.now += seconds


class FakeProvider:
    """Scripted upstream provider recording every prompt it receives.

    Each scripted item is either response text or an exception instance to raise.
    When the script runs out, the last item is reused.
    """

    provider_id = "fake"
    model = "fake-model"

    def __init__(
        self,
        responses: list[str | Exception],
        *,
        gate: threading.Event | None = None,
    ) -> None:
        """Initialize the provider script and an optional blocking gate."""

        self._responses = list(responses)
        self._gate = gate
        self._lock = threading.Lock()
        self.prompts: list[str] = []
        self.timeouts: list[float | None] = []

    @property
    def call_count(self) -> int:
        """Return the number of upstream calls received."""

        with self._lock:
            return len(self.prompts)

    def generate(self, prompt: str, *, timeout_seconds: float | None = None) -> str:
        """Return or raise the next scripted item."""

        with self._lock:
            self.prompts.append(prompt)
            self.timeouts.append(timeout_seconds)
            index = min(len(self.prompts) - 1, len(self._responses) - 1)
            item = self._responses[index]
        if self._gate is not None:
            self._gate.wait(timeout=5.0)
        if isinstance(item, Exception):
            raise item
        return item


class MockRequestsResponse:
    """Minimal `requests` response double for provider HTTP tests."""

    def __init__(self, *, payload: Any = None, status_code: int = 200, raw: bytes | None = None):
        """Initialize the response with a JSON payload (or raw bytes) and status code."""

        self.content = raw if raw is not None else json.dumps(payload).encode("utf-8")
        self.status_code = status_code

    def raise_for_status(self) -> None:
        """Raise an HTTP error when the status code indicates failure."""

        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)


def openai_envelope(text: str) -> dict[str, Any]:
    """Return a chat-completions envelope carrying one assistant message."""

    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


def gemini_envelope(text: str) -> dict[str, Any]:
    """Return a generateContent envelope carrying one candidate text part."""

    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class InMemoryCredentialStore(CredentialStore):
    """Simple in-memory credential store used for CLI tests."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        """Initialize the store with optional provider keys."""

        self.keys: dict[str, str] = dict(initial or {})

    def is_available(self) -> bool:
        """Return availability flag expected by the CLI status command."""

        return True

    def get_api_key(self, provider_id: str) -> str | None:
        """Return the stored key for a provider."""

        return self.keys.get(provider_id)

    def set_api_key(self, provider_id: str, api_key: str) -> None:
        """Persist a normalized API key value."""

        self.keys[provider_id] = api_key.strip()

    def clear_api_key(self, provider_id: str) -> bool:
        """Clear a provider key and return whether one existed."""

        return self.keys.pop(provider_id, None) is not None


class ScriptedUpstream:
    """Replacement for `requests.post` returning scripted provider replies."""

    def __init__(self) -> None:
        """Initialize with no scripted replies."""

        self.replies: list[str | MockRequestsResponse] = []
        self.calls: list[dict[str, Any]] = []

    def __call__(self, url: str, **kwargs: Any) -> MockRequestsResponse:
        """Record the request and return the next scripted reply."""

        self.calls.append({"url": url, **kwargs})
        index = min(len(self.calls) - 1, len(self.replies) - 1)
        reply = self.replies[index]
        if isinstance(reply, MockRequestsResponse):
            return reply
        if "generativelanguage" in url:
            return MockRequestsResponse(payload=gemini_envelope(reply))
        return MockRequestsResponse(payload=openai_envelope(reply))
