"""Secret store: namespaced secret operations with manifest bookkeeping."""
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from envguard.errors import EnvGuardError, KeychainError, ValidationError
from ..domains.backend import SecretBackend
from ..domains.manifest_manager import ManifestManager
from ..domains.validators import (
    DEFAULT_VALUE_SCHEMA,
    StringSchema,
    key_error,
    package_name_error,
    value_error,
)

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "development"


def make_identifier(key: str, environment: str) -> str:
    """Backend identifier for a key within a package namespace."""
    return f"{environment}:{key}"


def split_identifier(identifier: str) -> Tuple[str, str]:
    """Inverse of make_identifier. Returns (environment, key)."""
    environment, _, key = identifier.partition(":")
    return environment, key


class SecretStore:
    """
    Secrets of one package, stored in a backend and tracked in the manifest.

    Each secret lives in the backend namespace named after the package,
    under the identifier "{environment}:{key}". Mutating calls write the
    backend first and then the manifest; the pair is not atomic.

    Errors:
        ValidationError: Bad key, value or package name. Nothing is touched.
        KeychainError: The backend failed. The manifest is not touched.
        ManifestError: The backend write succeeded but bookkeeping failed.
    """

    def __init__(
        self,
        package_name: str,
        backend: SecretBackend,
        manifest: Optional[ManifestManager] = None,
        default_environment: str = DEFAULT_ENVIRONMENT,
        project_root: Union[str, Path] = ".",
        value_schema: StringSchema = DEFAULT_VALUE_SCHEMA,
    ):
        error = package_name_error(package_name)
        if error:
            raise ValidationError(f"Invalid package name: {error}",
                                  errors=[{"key": str(package_name), "message": error}])
        self.package_name = package_name
        self.backend = backend
        self.manifest = manifest or ManifestManager(project_root)
        self.default_environment = default_environment
        self.value_schema = value_schema

    def _environment(self, environment: Optional[str]) -> str:
        return environment or self.default_environment

    def _check_key(self, key: str) -> None:
        error = key_error(key)
        if error:
            logger.warning(f"Rejected key {key!r} for {self.package_name}: {error}")
            raise ValidationError(f"Invalid key: {error}", errors=[{"key": str(key), "message": error}])

    def _check_value(self, key: str, value: str) -> None:
        error = value_error(value, self.value_schema)
        if error:
            logger.warning(f"Rejected value for {key} in {self.package_name}: {error}")
            raise ValidationError(f"Invalid value: {error}", errors=[{"key": key, "message": error}])

    def _backend_call(self, action: str, func, *args):
        try:
            return func(*args)
        except EnvGuardError:
            raise
        except Exception as e:
            raise KeychainError(f"Failed to {action}: {e}", cause=e) from e

    def get(self, key: str, environment: Optional[str] = None) -> Optional[str]:
        """
        Fetch a secret value.

        Args:
            key: Secret key
            environment: Environment name (defaults to the store's environment)

        Returns:
            Secret value, or None if not stored
        """
        self._check_key(key)
        identifier = make_identifier(key, self._environment(environment))
        return self._backend_call(f"read {identifier}", self.backend.retrieve, self.package_name, identifier)

    def has(self, key: str, environment: Optional[str] = None) -> bool:
        return self.get(key, environment) is not None

    def set(self, key: str, value: str, required: bool = True, environment: Optional[str] = None) -> None:
        """
        Store a secret and record it in the manifest.

        Args:
            key: Secret key
            value: Secret value
            required: Whether the key is required (bookkeeping only)
            environment: Environment name (defaults to the store's environment)
        """
        self._check_key(key)
        self._check_value(key, value)

        env = self._environment(environment)
        identifier = make_identifier(key, env)
        self._backend_call(f"store {identifier}", self.backend.store, self.package_name, identifier, value)
        logger.info(f"Stored {key} for {self.package_name} ({env})")

        self.manifest.add_key(self.package_name, key, required)

    def delete(self, key: str, environment: Optional[str] = None) -> None:
        """
        Delete a secret and forget it in the manifest.

        Deleting a secret that isn't stored is not an error.
        """
        self._check_key(key)

        env = self._environment(environment)
        identifier = make_identifier(key, env)
        self._backend_call(f"delete {identifier}", self.backend.erase, self.package_name, identifier)
        logger.info(f"Deleted {key} for {self.package_name} ({env})")

        self.manifest.remove_key(self.package_name, key)

    def rename(self, old_key: str, new_key: str, environment: Optional[str] = None) -> None:
        """
        Move a secret to a new key within one environment.

        Implemented as set(new) then delete(old). If the process dies in
        between, both keys remain stored.

        Raises:
            ValidationError: If new_key equals old_key or already has a value
            KeyError: If old_key has no stored value
        """
        self._check_key(old_key)
        self._check_key(new_key)
        if new_key == old_key:
            raise ValidationError("New key name must be different",
                                  errors=[{"key": new_key, "message": "New key name must be different"}])

        value = self.get(old_key, environment)
        if value is None:
            raise KeyError(old_key)
        if self.get(new_key, environment) is not None:
            message = f"Key {new_key} already exists"
            raise ValidationError(message, errors=[{"key": new_key, "message": message}])

        entry = self.manifest.get_package_entry(self.package_name)
        metadata = entry.find(old_key) if entry else None
        required = metadata.required if metadata else True
        self.set(new_key, value, required, environment)
        self.delete(old_key, environment)

    def list(self) -> List[str]:
        """
        List backend identifiers for this package.

        Returns:
            Identifiers in "{environment}:{key}" form. Diagnostic only; not
            guaranteed to match the manifest.
        """
        return self._backend_call(f"list {self.package_name}", self.backend.enumerate, self.package_name)

    def list_keys(self, environment: Optional[str] = None) -> List[str]:
        """Key names stored in the backend for one environment."""
        env = self._environment(environment)
        keys = []
        for identifier in self.list():
            id_env, key = split_identifier(identifier)
            if id_env == env and key:
                keys.append(key)
        return sorted(keys)

    def clear(self) -> None:
        """Remove every backend entry for this package and drop it from the manifest."""
        self._backend_call(f"clear {self.package_name}", self.backend.erase_all, self.package_name)
        logger.info(f"Cleared all secrets for {self.package_name}")

        self.manifest.remove_package(self.package_name)
