"""Format rules for secret keys, values and package names.

All predicates here are pure: they return a bool and log the reason on
failure. Converting a failed check into an error is up to the caller.
"""
import re
import logging
from dataclasses import dataclass
from typing import Optional, Pattern

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255

PACKAGE_TYPE_REVERSE_DOMAIN = "reverse-domain"
PACKAGE_TYPE_NPM = "npm"
PACKAGE_TYPE_MANUAL = "manual"

_REVERSE_DOMAIN_PATTERN = re.compile(r'^[a-z]+\.[a-z0-9-]+(\.[a-z0-9-]+)*$', re.IGNORECASE)


@dataclass(frozen=True)
class StringSchema:
    """A set of constraints on a string.

    Attributes:
        label: Human readable name used in failure messages
        min_length: Minimum length in UTF-8 bytes
        max_length: Maximum length in UTF-8 bytes (None for unbounded)
        pattern: Regex the whole string must match
        allow_blank: If False, a non-empty string made only of whitespace is rejected
        pattern_message: Failure message used when pattern does not match
    """
    label: str
    min_length: int = 0
    max_length: Optional[int] = None
    pattern: Optional[Pattern[str]] = None
    allow_blank: bool = True
    pattern_message: str = "contains invalid characters"

    def check(self, value) -> Optional[str]:
        """Return a failure message, or None if value satisfies the schema."""
        if not isinstance(value, str):
            return f"{self.label} must be a string"

        size = len(value.encode("utf-8"))
        if size < self.min_length:
            return f"{self.label} cannot be empty" if self.min_length == 1 else f"{self.label} is too short"
        if self.max_length is not None and size > self.max_length:
            return f"{self.label} is too long ({size} > {self.max_length} bytes)"
        if self.pattern is not None and not self.pattern.fullmatch(value):
            return f"{self.label} {self.pattern_message}"
        if not self.allow_blank and value != "" and value.strip() == "":
            return f"{self.label} cannot be whitespace only"
        return None


KEY_SCHEMA = StringSchema(
    label="Key",
    min_length=1,
    max_length=MAX_NAME_LENGTH,
    pattern=re.compile(r'[a-zA-Z0-9_-]+'),
)

DEFAULT_VALUE_SCHEMA = StringSchema(
    label="Value",
    pattern=re.compile(r'[^\x00-\x1f]*'),
    allow_blank=False,
    pattern_message="contains invalid control characters",
)

PACKAGE_NAME_SCHEMA = StringSchema(
    label="Package name",
    min_length=1,
    max_length=MAX_NAME_LENGTH,
    pattern=re.compile(r'[a-zA-Z0-9._@/-]+'),
)


def key_error(key: str) -> Optional[str]:
    """Return why key is invalid, or None."""
    return KEY_SCHEMA.check(key)


def value_error(value: str, schema: StringSchema = DEFAULT_VALUE_SCHEMA) -> Optional[str]:
    """Return why value is invalid, or None."""
    return schema.check(value)


def package_name_error(name: str) -> Optional[str]:
    """Return why name is invalid, or None."""
    return PACKAGE_NAME_SCHEMA.check(name)


def is_valid_key(key: str) -> bool:
    """
    Check a secret key name.

    Keys are 1-255 bytes of [a-zA-Z0-9_-].

    Args:
        key: Key name to check

    Returns:
        True if the key is valid
    """
    error = key_error(key)
    if error:
        logger.warning(f"Invalid key {key!r}: {error}")
        return False
    return True


def is_valid_value(value: str, schema: StringSchema = DEFAULT_VALUE_SCHEMA) -> bool:
    """
    Check a secret value.

    The default schema rejects ASCII control characters (0x00-0x1F) and
    values made only of whitespace. The empty string is allowed.

    Args:
        value: Value to check
        schema: Alternative schema for stricter checks

    Returns:
        True if the value is valid
    """
    error = value_error(value, schema)
    if error:
        # Never log the value itself
        logger.warning(f"Invalid value: {error}")
        return False
    return True


def is_valid_package_name(name: str) -> bool:
    """
    Check a package name.

    Package names are 1-255 bytes of [a-zA-Z0-9._@/-].

    Args:
        name: Package name to check

    Returns:
        True if the package name is valid
    """
    error = package_name_error(name)
    if error:
        logger.warning(f"Invalid package name {name!r}: {error}")
        return False
    return True


def is_reverse_domain(name: str) -> bool:
    """Check for reverse domain notation such as com.company.app."""
    return bool(_REVERSE_DOMAIN_PATTERN.match(name or ""))


def classify_package_name(name: str) -> str:
    """
    Classify a package name by naming convention.

    Returns:
        "reverse-domain", "npm" (scoped or slash-separated) or "manual"
    """
    if is_reverse_domain(name):
        return PACKAGE_TYPE_REVERSE_DOMAIN
    if name.startswith("@") or "/" in name:
        return PACKAGE_TYPE_NPM
    return PACKAGE_TYPE_MANUAL
