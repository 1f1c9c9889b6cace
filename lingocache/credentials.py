"""Secure credential storage helpers for the lingocache CLI.

Responsibilities:
- Persist provider API keys in an OS-backed secure credential store.
- Provide deterministic read/write/delete operations per provider account.
- Avoid logging or exposing secret values in diagnostics.

Key types:
- `CredentialStore`: interface for provider credential persistence.
- `KeyringCredentialStore`: keyring-backed secure credential storage.
"""

from __future__ import annotations

from dataclasses import dataclass

import keyring
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordDeleteError

_DEFAULT_SERVICE_NAME = "lingocache"
_ACCOUNT_NAMES = {"gemini": "gemini_api_key", "openai": "openai_api_key"}


def account_name_for(provider_id: str) -> str:
    """Return the keyring account name holding a provider's API key."""

    try:
        return _ACCOUNT_NAMES[provider_id]
    except KeyError as exc:
        supported = ", ".join(sorted(_ACCOUNT_NAMES))
        raise ValueError(
            f"Unsupported provider `{provider_id}`; supported: {supported}."
        ) from exc


class CredentialStore:
    """Interface for secure provider credential operations."""

    def is_available(self) -> bool:
        """Return whether secure credential operations are available."""

        raise NotImplementedError

    def get_api_key(self, provider_id: str) -> str | None:
        """Load a provider API key from secure storage, when available."""

        raise NotImplementedError

    def set_api_key(self, provider_id: str, api_key: str) -> None:
        """Persist a provider API key in secure storage."""

        raise NotImplementedError

    def clear_api_key(self, provider_id: str) -> bool:
        """Delete a stored provider API key and return whether one existed."""

        raise NotImplementedError

    def stored_values(self) -> dict[str, str]:
        """Return stored API keys keyed by runtime config key (`gemini_api_key`, ...)."""

        values: dict[str, str] = {}
        for provider_id, account_name in _ACCOUNT_NAMES.items():
            api_key = self.get_api_key(provider_id)
            if api_key is not None:
                values[account_name] = api_key
        return values


@dataclass(slots=True)
class KeyringCredentialStore(CredentialStore):
    """Secure credential store backed by the `keyring` package.

    A missing or failing keyring backend degrades to "no stored key" on reads.
    """

    service_name: str = _DEFAULT_SERVICE_NAME

    def is_available(self) -> bool:
        """Return `True` when a usable keyring backend is configured."""

        return not isinstance(keyring.get_keyring(), fail.Keyring)

    def get_api_key(self, provider_id: str) -> str | None:
        """Get a normalized API key from keyring, returning `None` when missing."""

        account_name = account_name_for(provider_id)
        try:
            value = keyring.get_password(self.service_name, account_name)
        except KeyringError:
            return None
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            return None
        return normalized

    def set_api_key(self, provider_id: str, api_key: str) -> None:
        """Persist a normalized API key in keyring or raise when unavailable."""

        account_name = account_name_for(provider_id)
        normalized = api_key.strip()
        if not normalized:
            raise ValueError("API key must be a non-empty string.")
        if not self.is_available():
            raise RuntimeError(
                "Secure credential storage is unavailable because no keyring backend "
                "is configured."
            )
        keyring.set_password(self.service_name, account_name, normalized)

    def clear_api_key(self, provider_id: str) -> bool:
        """Remove a stored API key from keyring and report if one was present."""

        account_name = account_name_for(provider_id)
        if self.get_api_key(provider_id) is None:
            return False
        try:
            keyring.delete_password(self.service_name, account_name)
        except PasswordDeleteError:
            return False
        return True


def create_credential_store() -> CredentialStore:
    """Create the default secure credential store implementation."""

    return KeyringCredentialStore()
