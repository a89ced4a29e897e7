"""EnvGuard: per-package, per-environment secrets in the OS keychain."""
from envguard.errors import (
    BackendError,
    ConfigurationError,
    EnvGuardError,
    KeychainError,
    ManifestError,
    NotInitializedError,
    ValidationError,
)
from envguard.secrets.domains.backend import KeyringBackend, MemoryBackend, SecretBackend, get_default_backend
from envguard.secrets.domains.manifest_manager import ManifestManager
from envguard.secrets.workflows.secret_operations import SecretStore
from envguard.secrets.workflows.session import InjectionResult, SecretSession
from envguard.config.manager import ConfigManager
from envguard.config.migrator import ConfigMigrator, MigrationResult
from envguard.config.models import EnvGuardConfig, EnvGuardConfigV2

__version__ = "0.3.0"

__all__ = [
    "BackendError",
    "ConfigManager",
    "ConfigMigrator",
    "ConfigurationError",
    "EnvGuardConfig",
    "EnvGuardConfigV2",
    "EnvGuardError",
    "InjectionResult",
    "KeychainError",
    "KeyringBackend",
    "ManifestError",
    "ManifestManager",
    "MemoryBackend",
    "MigrationResult",
    "NotInitializedError",
    "SecretBackend",
    "SecretSession",
    "SecretStore",
    "ValidationError",
    "get_default_backend",
]
