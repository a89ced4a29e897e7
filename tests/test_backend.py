"""Tests for the secret backends."""
import json

import pytest
from keyring.backend import KeyringBackend as BaseKeyring
from keyring.errors import KeyringError, PasswordDeleteError

from envguard.errors import KeychainError
from envguard.secrets.domains.backend import (
    INDEX_IDENTIFIER,
    KeyringBackend,
    MemoryBackend,
    get_default_backend,
)


class FakeKeyring(BaseKeyring):
    """In-memory keyring implementing the keyring backend API."""

    priority = 1

    def __init__(self):
        super().__init__()
        self.entries = {}

    def get_password(self, service, username):
        return self.entries.get((service, username))

    def set_password(self, service, username, password):
        self.entries[(service, username)] = password

    def delete_password(self, service, username):
        try:
            del self.entries[(service, username)]
        except KeyError:
            raise PasswordDeleteError("Password not found")


class LockedKeyring(FakeKeyring):
    """Keyring that refuses every access."""

    def get_password(self, service, username):
        raise KeyringError("keychain locked")

    def set_password(self, service, username, password):
        raise KeyringError("keychain locked")


@pytest.fixture
def fake_keyring():
    return FakeKeyring()


@pytest.fixture
def backend(fake_keyring):
    return KeyringBackend(fake_keyring)


class TestKeyringBackend:
    """Test suite for KeyringBackend over the keyring API."""

    def test_store_and_retrieve(self, backend, fake_keyring):
        backend.store("com.company.app", "development:API_KEY", "sk-123")

        assert backend.retrieve("com.company.app", "development:API_KEY") == "sk-123"
        assert fake_keyring.entries[("com.company.app", "development:API_KEY")] == "sk-123"

    def test_retrieve_missing_returns_none(self, backend):
        assert backend.retrieve("com.company.app", "development:MISSING") is None

    def test_enumerate_uses_index(self, backend, fake_keyring):
        backend.store("app", "production:B", "2")
        backend.store("app", "development:A", "1")
        backend.store("app", "development:A", "1b")

        assert backend.enumerate("app") == ["development:A", "production:B"]
        assert json.loads(fake_keyring.entries[("app", INDEX_IDENTIFIER)]) == ["development:A", "production:B"]

    def test_enumerate_empty_namespace(self, backend):
        assert backend.enumerate("nothing-here") == []

    def test_erase_is_idempotent(self, backend):
        backend.store("app", "development:A", "1")
        backend.erase("app", "development:A")
        backend.erase("app", "development:A")

        assert backend.retrieve("app", "development:A") is None
        assert backend.enumerate("app") == []

    def test_erase_last_entry_removes_index(self, backend, fake_keyring):
        backend.store("app", "development:A", "1")
        backend.erase("app", "development:A")
        assert ("app", INDEX_IDENTIFIER) not in fake_keyring.entries

    def test_erase_all(self, backend, fake_keyring):
        backend.store("app", "development:A", "1")
        backend.store("app", "production:A", "2")
        backend.store("other", "development:A", "3")

        backend.erase_all("app")

        assert backend.enumerate("app") == []
        assert backend.retrieve("other", "development:A") == "3"
        assert not any(service == "app" for service, _ in fake_keyring.entries)

    def test_corrupt_index_is_ignored(self, backend, fake_keyring):
        fake_keyring.entries[("app", INDEX_IDENTIFIER)] = "{broken"
        assert backend.enumerate("app") == []

    def test_keyring_errors_are_wrapped(self):
        backend = KeyringBackend(LockedKeyring())

        with pytest.raises(KeychainError) as exc_info:
            backend.store("app", "development:A", "1")
        assert isinstance(exc_info.value.__cause__, KeyringError)

        with pytest.raises(KeychainError):
            backend.retrieve("app", "development:A")

    def test_default_backend_is_keyring(self):
        assert isinstance(get_default_backend(), KeyringBackend)


class TestMemoryBackend:
    """Test suite for MemoryBackend."""

    def test_initial_entries(self):
        backend = MemoryBackend({"app": {"development:A": "1"}})
        assert backend.retrieve("app", "development:A") == "1"
        assert backend.enumerate("app") == ["development:A"]

    def test_erase_missing_namespace(self):
        MemoryBackend().erase("ghost", "development:A")

    def test_snapshot_is_a_copy(self):
        backend = MemoryBackend()
        backend.store("app", "development:A", "1")
        snapshot = backend.snapshot()
        snapshot["app"]["development:A"] = "changed"
        assert backend.retrieve("app", "development:A") == "1"
