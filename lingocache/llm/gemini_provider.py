"""Google Gemini `generateContent` text provider."""

from __future__ import annotations

from typing import Any

from .http_client import ProviderHTTPClient

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-lite"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider(ProviderHTTPClient):
    """Minimal requests-based Gemini provider."""

    provider_id = "gemini"
    provider_label = "Gemini"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = DEFAULT_GEMINI_MODEL,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        timeout_seconds: float = 60.0,
        temperature: float = 0.3,
        max_output_tokens: int = 4096,
    ) -> None:
        """Initialize Gemini provider settings."""

        super().__init__(
            api_key=api_key,
            model=model,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

    def generate(self, prompt: str, *, timeout_seconds: float | None = None) -> str:
        """Return concatenated candidate text for a single prompt."""

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }
        envelope = self._post_json(
            endpoint_path=f"/models/{self.model}:generateContent",
            payload=payload,
            headers={"x-goog-api-key": self.api_key},
            timeout_seconds=timeout_seconds,
        )
        return self._extract_candidate_text(envelope)

    def _extract_candidate_text(self, envelope: Any) -> str:
        """Extract text parts of the first candidate from a Gemini envelope."""

        if not isinstance(envelope, dict):
            raise self._malformed("is not a JSON object.")
        candidates = envelope.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise self._malformed("missing non-empty `candidates` list.")

        first_candidate = candidates[0]
        content = first_candidate.get("content") if isinstance(first_candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            raise self._malformed("missing `candidates[0].content.parts` list.")

        text = "".join(
            part["text"]
            for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ).strip()
        if not text:
            raise self._malformed("candidate text is empty.")
        return text
