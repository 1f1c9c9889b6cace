"""Provider factory helpers for upstream text generation.

Responsibilities:
- Resolve the upstream provider once at startup in fixed priority order.
- Keep orchestration independent from concrete provider class construction.
"""

from __future__ import annotations

from .config import SUPPORTED_PROVIDER_IDS, ProviderRuntimeConfig
from .errors import ConfigurationError
from .llm.gemini_provider import GeminiProvider
from .llm.openai_provider import OpenAIProvider
from .llm.provider import UpstreamTextProvider


class ProviderFactory:
    """Factory for the single upstream provider used by one process."""

    @staticmethod
    def select_provider_id(runtime: ProviderRuntimeConfig) -> str:
        """Return the explicit provider, or the first provider with a credential.

        Raises:
            ConfigurationError: If no provider has a usable credential.
        """

        if runtime.preferred_provider is not None:
            if runtime.api_key_for(runtime.preferred_provider) is None:
                raise ConfigurationError(
                    f"Provider `{runtime.preferred_provider}` was requested but no API key "
                    "is configured for it."
                )
            return runtime.preferred_provider

        for provider_id in SUPPORTED_PROVIDER_IDS:
            if runtime.api_key_for(provider_id) is not None:
                return provider_id
        raise ConfigurationError(
            "No upstream provider is configured; set GEMINI_API_KEY or OPENAI_API_KEY."
        )

    @staticmethod
    def create_provider(
        provider_id: str,
        model: str,
        api_key: str | None,
        *,
        timeout_seconds: float = 60.0,
    ) -> UpstreamTextProvider:
        """Create a provider client for a configured provider identifier."""

        if provider_id == "gemini":
            return GeminiProvider(api_key=api_key, model=model, timeout_seconds=timeout_seconds)
        if provider_id == "openai":
            return OpenAIProvider(api_key=api_key, model=model, timeout_seconds=timeout_seconds)
        raise ConfigurationError(f"Unsupported upstream provider `{provider_id}`.")

    @classmethod
    def create_from_runtime(
        cls,
        runtime: ProviderRuntimeConfig,
        *,
        timeout_seconds: float = 60.0,
    ) -> UpstreamTextProvider:
        """Select and construct the upstream provider for resolved runtime settings."""

        provider_id = cls.select_provider_id(runtime)
        return cls.create_provider(
            provider_id,
            runtime.model_for(provider_id),
            runtime.api_key_for(provider_id),
            timeout_seconds=timeout_seconds,
        )
