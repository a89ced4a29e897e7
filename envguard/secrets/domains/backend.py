"""Secret backend capability and its implementations.

A backend stores opaque string values under (namespace, identifier) pairs.
EnvGuard uses the package name as namespace and "{environment}:{key}" as
identifier; backends know nothing about either convention.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from envguard.errors import KeychainError

logger = logging.getLogger(__name__)

# Reserved identifier holding the list of identifiers stored in a namespace
INDEX_IDENTIFIER = "__envguard_index__"


class SecretBackend(ABC):
    """Opaque secret storage scoped by namespace."""

    @abstractmethod
    def store(self, namespace: str, identifier: str, value: str) -> None:
        """Create or overwrite an entry."""

    @abstractmethod
    def retrieve(self, namespace: str, identifier: str) -> Optional[str]:
        """Return the stored value, or None if there is no entry."""

    @abstractmethod
    def erase(self, namespace: str, identifier: str) -> None:
        """Remove an entry. Removing a missing entry is not an error."""

    @abstractmethod
    def enumerate(self, namespace: str) -> List[str]:
        """List identifiers stored in a namespace."""

    def erase_all(self, namespace: str) -> None:
        """Remove every entry in a namespace."""
        for identifier in self.enumerate(namespace):
            self.erase(namespace, identifier)


class KeyringBackend(SecretBackend):
    """Backend over the OS credential store via the keyring library.

    keyring resolves the platform store on first use (macOS Keychain,
    Windows Credential Manager, Secret Service on Linux). It cannot list
    entries, so each namespace carries an index entry under
    INDEX_IDENTIFIER that records the identifiers written through this
    backend.
    """

    def __init__(self, keyring_backend=None):
        self._keyring = keyring_backend

    @property
    def keyring(self):
        """Lazy-resolve the active keyring backend."""
        if self._keyring is None:
            self._keyring = keyring.get_keyring()
            logger.debug(f"Using keyring backend: {type(self._keyring).__name__}")
        return self._keyring

    def _read_index(self, namespace: str) -> List[str]:
        raw = self.keyring.get_password(namespace, INDEX_IDENTIFIER)
        if not raw:
            return []
        try:
            identifiers = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring corrupt keyring index for {namespace}")
            return []
        if not isinstance(identifiers, list):
            return []
        return [i for i in identifiers if isinstance(i, str)]

    def _write_index(self, namespace: str, identifiers: List[str]) -> None:
        if identifiers:
            self.keyring.set_password(namespace, INDEX_IDENTIFIER, json.dumps(sorted(identifiers)))
        else:
            try:
                self.keyring.delete_password(namespace, INDEX_IDENTIFIER)
            except PasswordDeleteError:
                pass

    def store(self, namespace: str, identifier: str, value: str) -> None:
        try:
            self.keyring.set_password(namespace, identifier, value)
            identifiers = self._read_index(namespace)
            if identifier not in identifiers:
                identifiers.append(identifier)
                self._write_index(namespace, identifiers)
        except KeyringError as e:
            raise KeychainError(f"Failed to store {identifier} in {namespace}: {e}", cause=e) from e
        logger.debug(f"Stored {identifier} in {namespace}")

    def retrieve(self, namespace: str, identifier: str) -> Optional[str]:
        try:
            return self.keyring.get_password(namespace, identifier)
        except KeyringError as e:
            raise KeychainError(f"Failed to read {identifier} from {namespace}: {e}", cause=e) from e

    def erase(self, namespace: str, identifier: str) -> None:
        try:
            try:
                self.keyring.delete_password(namespace, identifier)
                logger.debug(f"Deleted {identifier} from {namespace}")
            except PasswordDeleteError:
                logger.debug(f"{identifier} not found in {namespace}, nothing to delete")
            identifiers = self._read_index(namespace)
            if identifier in identifiers:
                identifiers.remove(identifier)
                self._write_index(namespace, identifiers)
        except KeyringError as e:
            raise KeychainError(f"Failed to delete {identifier} from {namespace}: {e}", cause=e) from e

    def enumerate(self, namespace: str) -> List[str]:
        try:
            return self._read_index(namespace)
        except KeyringError as e:
            raise KeychainError(f"Failed to list entries in {namespace}: {e}", cause=e) from e


class MemoryBackend(SecretBackend):
    """In-process backend. Nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, str]]] = None):
        self._namespaces: Dict[str, Dict[str, str]] = {
            namespace: dict(entries) for namespace, entries in (initial or {}).items()
        }

    def store(self, namespace: str, identifier: str, value: str) -> None:
        self._namespaces.setdefault(namespace, {})[identifier] = value

    def retrieve(self, namespace: str, identifier: str) -> Optional[str]:
        return self._namespaces.get(namespace, {}).get(identifier)

    def erase(self, namespace: str, identifier: str) -> None:
        entries = self._namespaces.get(namespace)
        if entries is None:
            return
        entries.pop(identifier, None)
        if not entries:
            del self._namespaces[namespace]

    def enumerate(self, namespace: str) -> List[str]:
        return sorted(self._namespaces.get(namespace, {}))

    def erase_all(self, namespace: str) -> None:
        self._namespaces.pop(namespace, None)

    def snapshot(self) -> Dict[str, Dict[str, str]]:
        """Return a copy of every stored entry."""
        return {namespace: dict(entries) for namespace, entries in self._namespaces.items()}


def get_default_backend() -> SecretBackend:
    """Return the backend for the host OS credential store."""
    return KeyringBackend()
