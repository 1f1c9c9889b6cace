"""Unit tests for secure credential store helpers."""

from __future__ import annotations

import pytest
from keyring.errors import KeyringError

from lingocache.credentials import KeyringCredentialStore, account_name_for


class FakeKeyringModule:
    """In-memory keyring stub for deterministic credential store tests."""

    def __init__(self) -> None:
        """Initialize fake storage dictionary."""

        self._storage: dict[tuple[str, str], str] = {}

    def get_keyring(self) -> object:
        """Return a placeholder backend that is not the fail backend."""

        return object()

    def get_password(self, service_name: str, account_name: str) -> str | None:
        """Return previously stored password if present."""

        return self._storage.get((service_name, account_name))

    def set_password(self, service_name: str, account_name: str, value: str) -> None:
        """Store password value for the service/account key."""

        self._storage[(service_name, account_name)] = value

    def delete_password(self, service_name: str, account_name: str) -> None:
        """Delete password value for the service/account key."""

        self._storage.pop((service_name, account_name), None)


class BrokenKeyringModule(FakeKeyringModule):
    """Keyring stub whose reads fail like a locked or missing backend."""

    def get_password(self, service_name: str, account_name: str) -> str | None:
        """Raise the backend failure raised by real keyring implementations."""

        raise KeyringError("backend locked")


def test_keyring_store_roundtrip_set_get_clear(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keyring store should set/get/clear provider keys under separate accounts."""

    fake_keyring = FakeKeyringModule()
    monkeypatch.setattr("lingocache.credentials.keyring", fake_keyring)
    store = KeyringCredentialStore()

    assert store.is_available() is True
    assert store.get_api_key("gemini") is None

    store.set_api_key("gemini", "  AIza-secret  ")
    assert store.get_api_key("gemini") == "AIza-secret"
    assert store.get_api_key("openai") is None
    assert fake_keyring.get_password("lingocache", "gemini_api_key") == "AIza-secret"
    assert store.stored_values() == {"gemini_api_key": "AIza-secret"}

    assert store.clear_api_key("gemini") is True
    assert store.get_api_key("gemini") is None
    assert store.clear_api_key("gemini") is False


def test_keyring_store_rejects_blank_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    """Blank API keys should never be persisted."""

    monkeypatch.setattr("lingocache.credentials.keyring", FakeKeyringModule())

    with pytest.raises(ValueError):
        KeyringCredentialStore().set_api_key("openai", "   ")


def test_keyring_store_degrades_when_backend_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    """Backend read failures should look like missing keys rather than crash."""

    monkeypatch.setattr("lingocache.credentials.keyring", BrokenKeyringModule())
    store = KeyringCredentialStore()

    assert store.get_api_key("openai") is None
    assert store.stored_values() == {}
    assert store.clear_api_key("openai") is False


def test_account_name_for_rejects_unknown_provider() -> None:
    """Only supported providers should map to keyring accounts."""

    assert account_name_for("openai") == "openai_api_key"
    with pytest.raises(ValueError):
        account_name_for("anthropic")
