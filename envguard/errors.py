"""Exception types raised by EnvGuard."""
from typing import Dict, List, Optional


class EnvGuardError(Exception):
    """Base class for all EnvGuard errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ValidationError(EnvGuardError):
    """A key, value or package name failed format validation.

    Raised before any backend or manifest state is touched.
    """

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []


class NotInitializedError(EnvGuardError):
    """No project configuration was found."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message or 'EnvGuard not initialized. Run "envguard init" in your project root.'
        )


class ConfigurationError(EnvGuardError):
    """Project configuration is invalid or could not be written."""


class KeychainError(EnvGuardError):
    """The OS credential store refused or failed an operation."""


BackendError = KeychainError


class ManifestError(EnvGuardError):
    """The manifest file could not be read, parsed or written."""
