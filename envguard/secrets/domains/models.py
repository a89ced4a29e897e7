"""Domain models for the secret manifest."""
import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds, e.g. 2025-10-19T10:30:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class KeyMetadata:
    """A key known for a package."""
    name: str
    required: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "required": self.required}


@dataclass
class PackageEntry:
    """Keys recorded for one package."""
    keys: List[KeyMetadata] = field(default_factory=list)
    last_updated: str = field(default_factory=utc_timestamp)

    def find(self, key: str) -> Optional[KeyMetadata]:
        """Return the metadata for key, or None if it isn't recorded."""
        for metadata in self.keys:
            if metadata.name == key:
                return metadata
        return None

    def touch(self) -> None:
        """Set last_updated to now."""
        self.last_updated = utc_timestamp()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keys": [k.to_dict() for k in self.keys],
            "lastUpdated": self.last_updated,
        }


@dataclass
class Manifest:
    """
    Inventory of secret keys per package.

    Serialized as:
        {"packages": {"<pkg>": {"keys": [{"name": ..., "required": ...}],
                                "lastUpdated": "<ISO-8601>"}}}

    The manifest only records which keys exist and whether they are
    required; values live in the secret backend.
    """
    packages: Dict[str, PackageEntry] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "Manifest":
        """
        Build a manifest from parsed JSON.

        Raises:
            ValueError: If data does not have the manifest structure
        """
        if not isinstance(data, dict):
            raise ValueError("Manifest must be a JSON object")

        raw_packages = data.get("packages", {})
        if not isinstance(raw_packages, dict):
            raise ValueError("'packages' must be an object")

        packages: Dict[str, PackageEntry] = {}
        for name, raw_entry in raw_packages.items():
            if not isinstance(raw_entry, dict):
                raise ValueError(f"Package entry '{name}' must be an object")

            raw_keys = raw_entry.get("keys", [])
            if not isinstance(raw_keys, list):
                raise ValueError(f"'packages.{name}.keys' must be a list")

            keys: List[KeyMetadata] = []
            seen = set()
            for raw_key in raw_keys:
                # Legacy manifests stored bare key names
                if isinstance(raw_key, str):
                    raw_key = {"name": raw_key, "required": True}
                if not isinstance(raw_key, dict) or not isinstance(raw_key.get("name"), str):
                    raise ValueError(f"Invalid key entry in package '{name}': {raw_key!r}")
                required = raw_key.get("required", True)
                if not isinstance(required, bool):
                    raise ValueError(f"'required' must be a boolean for key '{raw_key['name']}'")
                if raw_key["name"] in seen:
                    continue
                seen.add(raw_key["name"])
                keys.append(KeyMetadata(name=raw_key["name"], required=required))

            last_updated = raw_entry.get("lastUpdated")
            if not isinstance(last_updated, str):
                raise ValueError(f"'packages.{name}.lastUpdated' must be a string")

            packages[name] = PackageEntry(keys=keys, last_updated=last_updated)

        return cls(packages=packages)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the on-disk JSON shape."""
        return {"packages": {name: entry.to_dict() for name, entry in self.packages.items()}}

    def get_package(self, pkg: str) -> Optional[PackageEntry]:
        """
        Get the entry for a package.

        Args:
            pkg: Package name

        Returns:
            PackageEntry, or None if the package is unknown
        """
        return self.packages.get(pkg)

    def has_package(self, pkg: str) -> bool:
        """Check whether the package has an entry."""
        return pkg in self.packages

    def package_names(self) -> List[str]:
        """Package names in insertion order."""
        return list(self.packages)

    def get_key_metadata(self, pkg: str) -> List[KeyMetadata]:
        """
        Get the key metadata of a package.

        Args:
            pkg: Package name

        Returns:
            Copy of the key list, empty if the package is unknown
        """
        entry = self.get_package(pkg)
        return list(entry.keys) if entry else []

    def get_keys(self, pkg: str) -> List[str]:
        """Key names of a package."""
        return [k.name for k in self.get_key_metadata(pkg)]

    def get_required_keys(self, pkg: str) -> List[str]:
        """Names of the required keys of a package."""
        return [k.name for k in self.get_key_metadata(pkg) if k.required]

    def get_optional_keys(self, pkg: str) -> List[str]:
        """Names of the optional keys of a package."""
        return [k.name for k in self.get_key_metadata(pkg) if not k.required]

    def has_key(self, pkg: str, key: str) -> bool:
        """Check whether a key is recorded for a package."""
        return key in self.get_keys(pkg)

    def is_key_required(self, pkg: str, key: str) -> bool:
        """False for optional keys and for keys the manifest does not know."""
        entry = self.get_package(pkg)
        metadata = entry.find(key) if entry else None
        return metadata.required if metadata else False

    def package_count(self) -> int:
        """Number of packages."""
        return len(self.packages)

    def total_key_count(self) -> int:
        """Number of keys across all packages."""
        return sum(len(entry.keys) for entry in self.packages.values())

    def copy(self) -> "Manifest":
        """Deep copy."""
        return copy.deepcopy(self)

    def merge(self, other: "Manifest") -> "Manifest":
        """
        Merge another manifest into a copy of this one.

        Keys are unioned per package; existing key metadata wins, while the
        other manifest's lastUpdated wins for packages present in both.

        Returns:
            New merged manifest
        """
        merged = self.copy()
        for name, entry in other.packages.items():
            existing = merged.get_package(name)
            if existing is None:
                merged.packages[name] = copy.deepcopy(entry)
                continue
            known = {k.name for k in existing.keys}
            existing.keys.extend(copy.deepcopy(k) for k in entry.keys if k.name not in known)
            existing.last_updated = entry.last_updated
        return merged
