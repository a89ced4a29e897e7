"""Tests for the manifest model and manager."""
import json

import pytest

from envguard.errors import ManifestError
from envguard.secrets.domains.manifest_manager import ManifestManager
from envguard.secrets.domains.models import KeyMetadata, Manifest, PackageEntry, utc_timestamp


@pytest.fixture
def manager(tmp_path):
    """Manifest manager rooted in a temporary project."""
    return ManifestManager(tmp_path)


@pytest.fixture
def manifest_file(tmp_path):
    return tmp_path / ".envguard" / "manifest.json"


class TestManifestModel:
    """Test suite for the Manifest data model."""

    def test_from_dict_round_trip(self):
        data = {
            "packages": {
                "my-app": {
                    "keys": [{"name": "API_KEY", "required": True}, {"name": "DEBUG", "required": False}],
                    "lastUpdated": "2025-10-19T10:30:00.000Z",
                }
            }
        }
        manifest = Manifest.from_dict(data)
        assert manifest.get_keys("my-app") == ["API_KEY", "DEBUG"]
        assert manifest.to_dict() == data

    def test_from_dict_accepts_legacy_string_keys(self):
        manifest = Manifest.from_dict({
            "packages": {"my-app": {"keys": ["API_KEY"], "lastUpdated": "2025-01-01T00:00:00.000Z"}}
        })
        assert manifest.is_key_required("my-app", "API_KEY") is True

    def test_from_dict_drops_duplicate_keys(self):
        manifest = Manifest.from_dict({
            "packages": {"my-app": {
                "keys": [{"name": "K", "required": True}, {"name": "K", "required": False}],
                "lastUpdated": "2025-01-01T00:00:00.000Z",
            }}
        })
        assert manifest.get_keys("my-app") == ["K"]
        assert manifest.is_key_required("my-app", "K") is True

    @pytest.mark.parametrize("data", [
        [],
        {"packages": []},
        {"packages": {"my-app": "nope"}},
        {"packages": {"my-app": {"keys": "nope", "lastUpdated": "x"}}},
        {"packages": {"my-app": {"keys": [{"required": True}], "lastUpdated": "x"}}},
        {"packages": {"my-app": {"keys": [{"name": "K", "required": "yes"}], "lastUpdated": "x"}}},
        {"packages": {"my-app": {"keys": []}}},
    ])
    def test_from_dict_rejects_invalid_structure(self, data):
        with pytest.raises(ValueError):
            Manifest.from_dict(data)

    def test_required_and_optional_keys(self):
        manifest = Manifest(packages={"app": PackageEntry(keys=[
            KeyMetadata("A", True), KeyMetadata("B", False), KeyMetadata("C", True),
        ])})
        assert manifest.get_required_keys("app") == ["A", "C"]
        assert manifest.get_optional_keys("app") == ["B"]
        assert manifest.is_key_required("app", "B") is False
        assert manifest.is_key_required("app", "UNKNOWN") is False
        assert manifest.is_key_required("other", "A") is False

    def test_counts(self):
        manifest = Manifest(packages={
            "a": PackageEntry(keys=[KeyMetadata("K1"), KeyMetadata("K2")]),
            "b": PackageEntry(keys=[KeyMetadata("K3")]),
        })
        assert manifest.package_count() == 2
        assert manifest.total_key_count() == 3

    def test_copy_is_deep(self):
        manifest = Manifest(packages={"a": PackageEntry(keys=[KeyMetadata("K1")])})
        clone = manifest.copy()
        clone.packages["a"].keys.append(KeyMetadata("K2"))
        assert manifest.get_keys("a") == ["K1"]

    def test_merge(self):
        first = Manifest(packages={
            "a": PackageEntry(keys=[KeyMetadata("K1", True)], last_updated="2025-01-01T00:00:00.000Z"),
        })
        second = Manifest(packages={
            "a": PackageEntry(keys=[KeyMetadata("K1", False), KeyMetadata("K2", False)],
                              last_updated="2025-02-01T00:00:00.000Z"),
            "b": PackageEntry(keys=[KeyMetadata("K3")]),
        })
        merged = first.merge(second)

        assert merged.get_keys("a") == ["K1", "K2"]
        # Existing metadata wins
        assert merged.is_key_required("a", "K1") is True
        assert merged.get_package("a").last_updated == "2025-02-01T00:00:00.000Z"
        assert merged.has_package("b")
        # Inputs untouched
        assert first.get_keys("a") == ["K1"]

    def test_utc_timestamp_format(self):
        ts = utc_timestamp()
        assert ts.endswith("Z")
        assert len(ts) == len("2025-10-19T10:30:00.000Z")


class TestManifestManager:
    """Test suite for ManifestManager load/save and mutations."""

    def test_load_missing_file_returns_empty_manifest(self, manager):
        manifest = manager.load()
        assert manifest.packages == {}
        assert manager.exists() is False

    def test_save_creates_parent_directories(self, manager, manifest_file):
        manager.save(Manifest())
        assert manifest_file.exists()
        assert json.loads(manifest_file.read_text()) == {"packages": {}}

    def test_load_corrupt_file_raises_manifest_error(self, manager, manifest_file):
        manifest_file.parent.mkdir(parents=True)
        manifest_file.write_text("{not json")
        with pytest.raises(ManifestError) as exc_info:
            manager.load()
        assert "Invalid JSON" in str(exc_info.value)

    def test_load_non_utf8_file_raises_manifest_error(self, manager, manifest_file):
        manifest_file.parent.mkdir(parents=True)
        manifest_file.write_bytes(b'{"packages": {"\xff\xfe": {}}}')
        with pytest.raises(ManifestError) as exc_info:
            manager.load()
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_load_invalid_structure_raises_manifest_error(self, manager, manifest_file):
        manifest_file.parent.mkdir(parents=True)
        manifest_file.write_text(json.dumps({"packages": {"app": {"keys": 5}}}))
        with pytest.raises(ManifestError):
            manager.load()

    def test_add_key_creates_package_entry(self, manager, manifest_file):
        manager.add_key("my-app", "API_KEY", True)

        data = json.loads(manifest_file.read_text())
        entry = data["packages"]["my-app"]
        assert entry["keys"] == [{"name": "API_KEY", "required": True}]
        assert entry["lastUpdated"].endswith("Z")

    def test_add_key_is_unique_per_package(self, manager):
        manager.add_key("my-app", "API_KEY")
        manager.add_key("my-app", "API_KEY")
        assert manager.list_keys("my-app") == ["API_KEY"]

    def test_add_key_updates_required_flag(self, manager):
        manager.add_key("my-app", "API_KEY", True)
        manager.add_key("my-app", "API_KEY", False)
        assert manager.is_key_required("my-app", "API_KEY") is False
        assert manager.get_optional_keys("my-app") == ["API_KEY"]
        assert manager.get_required_keys("my-app") == []

    def test_add_key_unchanged_skips_write(self, manager, monkeypatch):
        manager.add_key("my-app", "API_KEY", True)

        def fail_save(manifest):
            raise AssertionError("save should not be called")

        monkeypatch.setattr(manager, "save", fail_save)
        manager.add_key("my-app", "API_KEY", True)

    def test_remove_key_prunes_empty_package(self, manager):
        manager.add_key("my-app", "API_KEY")
        manager.add_key("my-app", "DB_URL")

        manager.remove_key("my-app", "API_KEY")
        assert manager.list_keys("my-app") == ["DB_URL"]

        manager.remove_key("my-app", "DB_URL")
        assert manager.has_package("my-app") is False
        assert manager.list_packages() == []

    def test_remove_key_unknown_package_is_noop(self, manager):
        manager.remove_key("ghost", "API_KEY")
        assert manager.exists() is False

    def test_remove_unknown_key_skips_write(self, manager, monkeypatch):
        manager.add_key("my-app", "API_KEY")
        last_updated = manager.get_package_entry("my-app").last_updated

        def fail_save(manifest):
            raise AssertionError("save should not be called")

        monkeypatch.setattr(manager, "save", fail_save)
        manager.remove_key("my-app", "NEVER_ADDED")

        assert manager.get_package_entry("my-app").last_updated == last_updated
        assert manager.list_keys("my-app") == ["API_KEY"]

    def test_remove_package(self, manager):
        manager.add_key("a", "K1")
        manager.add_key("b", "K2")
        manager.remove_package("a")
        assert manager.list_packages() == ["b"]

    def test_packages_are_independent(self, manager):
        manager.add_key("a", "K1")
        manager.add_key("b", "K1", False)
        assert manager.is_key_required("a", "K1") is True
        assert manager.is_key_required("b", "K1") is False
        assert manager.package_count() == 2
        assert manager.total_key_count() == 2

    def test_custom_manifest_path(self, tmp_path):
        manager = ManifestManager(tmp_path, "config/secrets-manifest.json")
        manager.add_key("app", "K")
        assert (tmp_path / "config" / "secrets-manifest.json").exists()
