"""OpenAI chat-completions text provider."""

from __future__ import annotations

from typing import Any

from .http_client import ProviderHTTPClient

DEFAULT_OPENAI_MODEL = "gpt-3.5-turbo"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


class OpenAIProvider(ProviderHTTPClient):
    """Minimal requests-based OpenAI chat-completions provider."""

    provider_id = "openai"
    provider_label = "OpenAI"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str = DEFAULT_OPENAI_BASE_URL,
        timeout_seconds: float = 60.0,
        temperature: float = 0.3,
        max_output_tokens: int = 4096,
    ) -> None:
        """Initialize OpenAI provider settings."""

        super().__init__(
            api_key=api_key,
            model=model,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

    def generate(self, prompt: str, *, timeout_seconds: float | None = None) -> str:
        """Return the first assistant text response for a single user prompt."""

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_output_tokens,
        }
        envelope = self._post_json(
            endpoint_path="/chat/completions",
            payload=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout_seconds=timeout_seconds,
        )
        return self._extract_message_text(envelope)

    def _extract_message_text(self, envelope: Any) -> str:
        """Extract first assistant message text from a chat-completions envelope."""

        if not isinstance(envelope, dict):
            raise self._malformed("is not a JSON object.")
        choices = envelope.get("choices")
        if not isinstance(choices, list) or not choices:
            raise self._malformed("missing non-empty `choices` list.")

        first_choice = choices[0]
        if not isinstance(first_choice, dict):
            raise self._malformed("`choices[0]` is malformed.")

        message = first_choice.get("message")
        if not isinstance(message, dict):
            raise self._malformed("missing `choices[0].message` object.")

        text = self._message_content_to_text(message.get("content")).strip()
        if not text:
            raise self._malformed("message content is empty.")
        return text

    @staticmethod
    def _message_content_to_text(content: Any) -> str:
        """Convert OpenAI message content variants into a plain text string."""

        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts: list[str] = []
            for item in content:
                if not isinstance(item, dict):
                    continue
                if item.get("type") == "text" and isinstance(item.get("text"), str):
                    parts.append(item["text"])
            return "".join(parts)
        return ""
