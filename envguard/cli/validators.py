"""Input validation for CLI arguments."""
import sys

from envguard.secrets.domains.validators import key_error, package_name_error


def validate_key_argument(key: str) -> None:
    """
    Validate a secret key given on the command line.

    Keys allow only: [a-zA-Z0-9_-], up to 255 characters

    Args:
        key: Key to validate

    Raises:
        SystemExit with code 2 if validation fails
    """
    error = key_error(key)
    if not error:
        return

    print(f"Error: Invalid key '{key}': {error}", file=sys.stderr)
    print("\nAllowed characters: letters, numbers, underscores (_), hyphens (-)", file=sys.stderr)
    print("\nExamples of valid keys:", file=sys.stderr)
    print("  ✓ API_KEY", file=sys.stderr)
    print("  ✓ database-url", file=sys.stderr)
    print("\nExamples of invalid keys:", file=sys.stderr)
    print("  ✗ api.key (contains dot)", file=sys.stderr)
    print("  ✗ MY KEY (contains space)", file=sys.stderr)
    print("  ✗ db/password (contains slash)", file=sys.stderr)
    sys.exit(2)


def validate_package_argument(name: str) -> None:
    """
    Validate a package name given on the command line.

    Raises:
        SystemExit with code 2 if validation fails
    """
    error = package_name_error(name)
    if not error:
        return

    print(f"Error: Invalid package name '{name}': {error}", file=sys.stderr)
    print("\nAllowed characters: letters, numbers, dots (.), underscores (_), hyphens (-), @ and /", file=sys.stderr)
    print("Recommended: reverse domain notation, e.g. com.company.app", file=sys.stderr)
    sys.exit(2)
