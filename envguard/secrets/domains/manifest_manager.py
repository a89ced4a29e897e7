"""Manifest manager for EnvGuard.

Owns every read-modify-write cycle against the project manifest stored at
<project_root>/.envguard/manifest.json. There is no file locking: two
processes mutating the manifest at once can lose an update.
"""
import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from envguard.errors import ManifestError
from .models import KeyMetadata, Manifest, PackageEntry

logger = logging.getLogger(__name__)

ENVGUARD_DIR = ".envguard"
MANIFEST_FILE = "manifest.json"


class ManifestManager:
    """Load, mutate and save the project manifest."""

    def __init__(self, project_root: Union[str, Path] = ".", manifest_path: Optional[Union[str, Path]] = None):
        self.project_root = Path(project_root)
        if manifest_path is None:
            self.manifest_path = self.project_root / ENVGUARD_DIR / MANIFEST_FILE
        else:
            manifest_path = Path(manifest_path)
            self.manifest_path = manifest_path if manifest_path.is_absolute() else self.project_root / manifest_path

    def load(self) -> Manifest:
        """
        Load manifest from disk.

        Returns:
            Manifest, or an empty manifest if the file doesn't exist

        Raises:
            ManifestError: If the file can't be read or isn't a valid manifest
        """
        if not self.manifest_path.exists():
            return Manifest()

        try:
            with open(self.manifest_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestError(f"Invalid JSON in manifest {self.manifest_path}: {e}", cause=e) from e
        except OSError as e:
            raise ManifestError(f"Failed to read manifest {self.manifest_path}: {e}", cause=e) from e

        try:
            return Manifest.from_dict(data)
        except ValueError as e:
            raise ManifestError(f"Manifest validation failed for {self.manifest_path}: {e}", cause=e) from e

    def save(self, manifest: Manifest) -> None:
        """
        Write manifest to disk, creating the parent directory if needed.

        Raises:
            ManifestError: If the file can't be written
        """
        try:
            self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.manifest_path, 'w', encoding='utf-8') as f:
                json.dump(manifest.to_dict(), f, indent=2)
        except OSError as e:
            raise ManifestError(f"Failed to write manifest {self.manifest_path}: {e}", cause=e) from e

    def add_key(self, pkg: str, key: str, required: bool = True) -> None:
        """
        Record a key for a package, creating the package entry if needed.

        If the key is already recorded with the same required flag the file
        is left untouched.
        """
        manifest = self.load()
        entry = manifest.get_package(pkg)
        if entry is None:
            entry = PackageEntry()
            manifest.packages[pkg] = entry

        existing = entry.find(key)
        if existing is None:
            entry.keys.append(KeyMetadata(name=key, required=required))
        elif existing.required != required:
            existing.required = required
        else:
            logger.debug(f"Manifest already has {pkg}/{key} (required={required})")
            return

        entry.touch()
        self.save(manifest)
        logger.debug(f"Manifest updated: {pkg}/{key} (required={required})")

    def remove_key(self, pkg: str, key: str) -> None:
        """Forget a key. The package entry is dropped once it has no keys."""
        manifest = self.load()
        entry = manifest.get_package(pkg)
        if entry is None:
            logger.debug(f"Package '{pkg}' not in manifest, nothing to remove")
            return
        if entry.find(key) is None:
            logger.debug(f"Key '{key}' not recorded for '{pkg}', nothing to remove")
            return

        entry.keys = [k for k in entry.keys if k.name != key]
        entry.touch()
        if not entry.keys:
            del manifest.packages[pkg]
            logger.debug(f"Package '{pkg}' has no keys left, removed from manifest")

        self.save(manifest)

    def remove_package(self, pkg: str) -> None:
        """
        Drop a package and all of its keys from the manifest.

        Args:
            pkg: Package name
        """
        manifest = self.load()
        manifest.packages.pop(pkg, None)
        self.save(manifest)

    def list_keys(self, pkg: str) -> List[str]:
        """
        List key names recorded for a package.

        Args:
            pkg: Package name

        Returns:
            Key names in insertion order, empty if the package is unknown
        """
        return self.load().get_keys(pkg)

    def list_packages(self) -> List[str]:
        """
        List package names in the manifest.

        Returns:
            Package names
        """
        return self.load().package_names()

    def has_key(self, pkg: str, key: str) -> bool:
        """Check whether a key is recorded for a package."""
        return self.load().has_key(pkg, key)

    def has_package(self, pkg: str) -> bool:
        """Check whether a package has an entry in the manifest."""
        return self.load().has_package(pkg)

    def get_package_entry(self, pkg: str) -> Optional[PackageEntry]:
        """
        Get the manifest entry for a package.

        Args:
            pkg: Package name

        Returns:
            PackageEntry, or None if the package is unknown
        """
        return self.load().get_package(pkg)

    def get_key_metadata(self, pkg: str) -> List[KeyMetadata]:
        """
        Get name and required flag of every key of a package.

        Args:
            pkg: Package name

        Returns:
            KeyMetadata list, empty if the package is unknown
        """
        return self.load().get_key_metadata(pkg)

    def is_key_required(self, pkg: str, key: str) -> bool:
        """Required flag of a key. False when the key isn't recorded."""
        return self.load().is_key_required(pkg, key)

    def get_required_keys(self, pkg: str) -> List[str]:
        """
        List the required keys of a package.

        Returns:
            Key names whose required flag is set
        """
        return self.load().get_required_keys(pkg)

    def get_optional_keys(self, pkg: str) -> List[str]:
        """
        List the optional keys of a package.

        Returns:
            Key names whose required flag is cleared
        """
        return self.load().get_optional_keys(pkg)

    def exists(self) -> bool:
        """Check whether the manifest file exists on disk."""
        return self.manifest_path.exists()

    def total_key_count(self) -> int:
        """Number of keys recorded across all packages."""
        return self.load().total_key_count()

    def package_count(self) -> int:
        """Number of packages in the manifest."""
        return self.load().package_count()
