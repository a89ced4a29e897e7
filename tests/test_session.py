"""Tests for SecretSession injection and reset."""
import pytest

from envguard.secrets.domains.backend import MemoryBackend
from envguard.secrets.domains.manifest_manager import ManifestManager
from envguard.secrets.workflows.secret_operations import SecretStore
from envguard.secrets.workflows.session import SecretSession


@pytest.fixture
def store(tmp_path):
    store = SecretStore("com.company.app", MemoryBackend(), manifest=ManifestManager(tmp_path))
    store.set("API_KEY", "sk-123", required=True)
    store.set("DB_URL", "postgres://localhost/db", required=True)
    store.set("DEBUG", "1", required=False)
    return store


class TestSecretSession:
    """Test suite for SecretSession."""

    def test_load_injects_manifest_keys(self, store):
        target = {}
        result = SecretSession(store, target).load()

        assert target == {"API_KEY": "sk-123", "DB_URL": "postgres://localhost/db", "DEBUG": "1"}
        assert sorted(result.injected) == ["API_KEY", "DB_URL", "DEBUG"]
        assert result.skipped == []

    def test_existing_values_are_skipped(self, store):
        target = {"API_KEY": "from-shell"}
        result = SecretSession(store, target).load()

        assert target["API_KEY"] == "from-shell"
        assert result.skipped == ["API_KEY"]

    def test_override_replaces_existing_values(self, store):
        target = {"API_KEY": "from-shell"}
        result = SecretSession(store, target).load(override=True)

        assert target["API_KEY"] == "sk-123"
        assert result.overridden == ["API_KEY"]

    def test_missing_secrets_are_reported(self, store):
        store.backend.erase(store.package_name, "development:API_KEY")
        store.backend.erase(store.package_name, "development:DEBUG")

        result = SecretSession(store, {}).load()

        assert result.missing_required == ["API_KEY"]
        assert result.missing_optional == ["DEBUG"]

    def test_explicit_keys_and_environment(self, store):
        store.set("API_KEY", "sk-prod", environment="production")
        target = {}
        SecretSession(store, target, environment="production").load(["API_KEY"])
        assert target == {"API_KEY": "sk-prod"}

    def test_reset_removes_only_injected_keys(self, store):
        target = {"API_KEY": "from-shell", "PATH": "/usr/bin"}
        session = SecretSession(store, target)
        session.load()

        removed = session.reset()

        assert sorted(removed) == ["DB_URL", "DEBUG"]
        assert target == {"API_KEY": "from-shell", "PATH": "/usr/bin"}
        assert session.loaded_keys == []

    def test_sessions_are_independent(self, store):
        first_target, second_target = {}, {}
        first = SecretSession(store, first_target)
        second = SecretSession(store, second_target)

        first.load(["API_KEY"])
        assert first.loaded_keys == ["API_KEY"]
        assert second.loaded_keys == []

        second.reset()
        assert first_target == {"API_KEY": "sk-123"}

    def test_defaults_to_os_environ(self, store, monkeypatch):
        monkeypatch.delenv("API_KEY", raising=False)
        session = SecretSession(store)
        try:
            session.load(["API_KEY"])
            import os
            assert os.environ["API_KEY"] == "sk-123"
        finally:
            session.reset()
