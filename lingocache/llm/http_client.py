"""Shared HTTP plumbing for upstream text-generation providers.

Responsibilities:
- Send JSON POST requests with `requests` and decode JSON envelopes.
- Map HTTP and transport failures onto `UpstreamError` / `UpstreamRateLimited`.
- Redact credential-like tokens from provider error bodies.
"""

from __future__ import annotations

import json
import re
from typing import Any

import requests

from ..errors import ConfigurationError, UpstreamError, UpstreamRateLimited

_API_KEY_PATTERN = re.compile(r"\b(?:sk-[A-Za-z0-9_-]{8,}|AIza[0-9A-Za-z_-]{20,})\b")


class ProviderHTTPClient:
    """Base class holding provider credentials, endpoint, and error mapping."""

    provider_id = "unknown"
    provider_label = "Upstream provider"
    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        base_url: str,
        timeout_seconds: float = 60.0,
        temperature: float = 0.3,
        max_output_tokens: int = 4096,
    ) -> None:
        """Initialize provider HTTP settings; a missing API key is a startup error."""

        normalized_key = api_key.strip() if isinstance(api_key, str) else ""
        if not normalized_key:
            raise ConfigurationError(f"{self.provider_label} API key is not configured.")
        if not model.strip():
            raise ConfigurationError(f"{self.provider_label} model must be a non-empty string.")
        self.api_key = normalized_key
        self.model = model.strip()
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def _post_json(
        self,
        *,
        endpoint_path: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        timeout_seconds: float | None,
    ) -> Any:
        """POST a JSON payload and return the decoded JSON response envelope."""

        endpoint = f"{self.base_url}{endpoint_path}"
        effective_timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds
        try:
            response = requests.post(
                endpoint,
                headers={"Content-Type": "application/json", **headers},
                json=payload,
                timeout=effective_timeout,
            )
            response.raise_for_status()
            raw_body = bytes(response.content).decode("utf-8", errors="replace")
        except requests.HTTPError as exc:
            raise self._http_error_to_upstream_error(exc) from exc
        except (requests.Timeout, TimeoutError) as exc:
            raise UpstreamError(
                f"{self.provider_label} request timed out.",
                failure_kind="timeout",
            ) from exc
        except requests.RequestException as exc:
            raise UpstreamError(
                f"{self.provider_label} request transport error: {type(exc).__name__}.",
                failure_kind="transport",
            ) from exc

        try:
            return json.loads(raw_body)
        except json.JSONDecodeError as exc:
            raise UpstreamError(
                f"{self.provider_label} returned invalid JSON payload.",
                failure_kind="malformed_response",
            ) from exc

    def _malformed(self, detail: str) -> UpstreamError:
        """Build a malformed-response error for envelope extraction failures."""

        return UpstreamError(
            f"{self.provider_label} response {detail}",
            failure_kind="malformed_response",
        )

    @classmethod
    def _provider_message(cls, exc: requests.HTTPError) -> tuple[str, str | None]:
        """Return a redacted, length-capped provider message and optional error code."""

        response = exc.response
        body = "" if response is None else bytes(response.content).decode("utf-8", errors="replace")
        message = body.strip()
        provider_code: str | None = None
        try:
            payload = json.loads(message) if message else None
        except json.JSONDecodeError:
            payload = None
        error_payload = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error_payload, dict):
            codes = [error_payload.get("code"), error_payload.get("status")]
            provider_code = next(
                (code.strip() for code in codes if isinstance(code, str) and code.strip()),
                None,
            )
            message_value = error_payload.get("message")
            if isinstance(message_value, str) and message_value.strip():
                message = message_value

        redacted = _API_KEY_PATTERN.sub("[redacted-key]", " ".join(message.split()))
        if len(redacted) > cls._MAX_PROVIDER_MESSAGE_CHARS:
            redacted = f"{redacted[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."
        return redacted, provider_code

    @staticmethod
    def _classify_http_failure(
        status_code: int,
        provider_message: str,
        provider_code: str | None,
    ) -> str:
        """Classify non-rate-limit HTTP errors into deterministic diagnostic kinds."""

        message_lower = provider_message.lower()
        if status_code in {401, 403} or "api key" in message_lower:
            return "invalid_api_key"
        model_missing = "not found" in message_lower or "does not exist" in message_lower
        if provider_code == "model_not_found" or ("model" in message_lower and model_missing):
            return "invalid_model"
        if status_code in {408, 504}:
            return "timeout"
        return "http_error"

    def _http_error_to_upstream_error(self, exc: requests.HTTPError) -> UpstreamError:
        """Convert HTTP errors into normalized upstream exceptions with metadata."""

        status_code = exc.response.status_code if exc.response is not None else 0
        provider_message, provider_code = self._provider_message(exc)

        if status_code == 429:
            detail = f"{self.provider_label} rate limit or quota exceeded (HTTP 429)"
            if provider_message:
                detail = f"{detail}: {provider_message}"
            return UpstreamRateLimited(detail, status_code=status_code, body=provider_message)

        failure_kind = self._classify_http_failure(status_code, provider_message, provider_code)
        headline = {
            "invalid_api_key": f"{self.provider_label} authentication failed",
            "invalid_model": f"{self.provider_label} rejected the selected model",
            "timeout": f"{self.provider_label} request timed out",
        }.get(failure_kind, f"{self.provider_label} request failed")

        if provider_message:
            detail = f"{headline} (HTTP {status_code}): {provider_message}"
        else:
            detail = f"{headline} (HTTP {status_code})."

        return UpstreamError(
            detail,
            status_code=status_code,
            body=provider_message,
            failure_kind=failure_kind,
        )
