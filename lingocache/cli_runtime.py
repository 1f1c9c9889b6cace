"""CLI provider runtime resolution helpers.

This module isolates runtime source assembly and secure API-key persistence
from the command wiring layer.
"""

from __future__ import annotations

from typing import Callable, Protocol

import typer

from .config import SUPPORTED_PROVIDER_IDS
from .credentials import account_name_for, create_credential_store
from .errors import CommandStageError
from .parsing import normalize_optional_string


class CredentialStoreProtocol(Protocol):
    """Protocol for secure credential store operations used by CLI runtime resolution."""

    def stored_values(self) -> dict[str, str]:
        """Return stored API keys keyed by runtime config key."""

    def set_api_key(self, provider_id: str, api_key: str) -> None:
        """Persist a provider API key in secure storage."""


def normalize_provider_option(provider: str | None) -> str | None:
    """Normalize a `--provider` option value and reject unknown identifiers."""

    normalized = normalize_optional_string(provider)
    if normalized is None:
        return None
    normalized = normalized.lower()
    if normalized not in SUPPORTED_PROVIDER_IDS:
        supported = ", ".join(SUPPORTED_PROVIDER_IDS)
        raise CommandStageError(
            stage="config",
            detail=f"Unsupported provider `{normalized}`.",
            hint=f"Use one of: {supported}.",
        )
    return normalized


def resolve_provider_runtime_sources(
    provider: str | None,
    model: str | None,
    api_key: str | None,
    store_api_key: bool,
    credential_store_factory: Callable[[], CredentialStoreProtocol] = create_credential_store,
) -> tuple[dict[str, str], dict[str, str]]:
    """Resolve CLI and secure runtime source mappings for provider configuration."""

    runtime_cli_values: dict[str, str] = {}
    normalized_provider = normalize_provider_option(provider)
    normalized_model = normalize_optional_string(model)
    normalized_api_key = normalize_optional_string(api_key)

    if normalized_provider is None and (
        normalized_model is not None or normalized_api_key is not None
    ):
        raise CommandStageError(
            stage="config",
            detail="`--model` and `--api-key` apply to one provider.",
            hint="Pass `--provider gemini` or `--provider openai` alongside them.",
        )

    if normalized_provider is not None:
        runtime_cli_values["provider"] = normalized_provider
        if normalized_model is not None:
            runtime_cli_values[f"model_{normalized_provider}"] = normalized_model
        if normalized_api_key is not None:
            runtime_cli_values[account_name_for(normalized_provider)] = normalized_api_key

    credential_store = credential_store_factory()
    runtime_secure_values = dict(credential_store.stored_values())

    if normalized_provider is not None and normalized_api_key is not None and store_api_key:
        try:
            credential_store.set_api_key(normalized_provider, normalized_api_key)
            typer.echo("Stored API key in secure credential storage.", err=True)
        except Exception as exc:
            raise CommandStageError(
                stage="credentials",
                detail=f"Failed to store API key securely: {exc}",
                hint=(
                    "Install and configure a keyring backend, or rerun without "
                    "`--store-api-key` for one-off usage."
                ),
            ) from exc

    return runtime_cli_values, runtime_secure_values
