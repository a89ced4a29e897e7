"""CLI entrypoint for envguard."""
import os
import sys
import argparse
import logging
from pathlib import Path

from envguard.errors import NotInitializedError, ValidationError
from envguard.config.manager import ConfigManager
from envguard.config.migrator import ConfigMigrator
from envguard.config.models import EnvGuardConfigV2
from envguard.config import package_name_resolver
from envguard.secrets.domains.backend import get_default_backend
from .validators import validate_key_argument, validate_package_argument

VERSION = "0.3.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.DEBUG if os.getenv("ENVGUARD_DEBUG") else logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _manager(args) -> ConfigManager:
    return ConfigManager(Path(args.project_root).resolve())


def _store(args):
    """Build a secret store for the project, migrating a v1 config first."""
    manager = _manager(args)
    if manager.load_or_migrate(VERSION) is None:
        raise NotInitializedError()
    return manager.create_store(get_default_backend(), getattr(args, "env", None))


def cmd_version(args):
    """Show version information."""
    print(f"envguard {VERSION}")


def cmd_init(args):
    """Create .envguard/config.json for the project."""
    manager = _manager(args)
    if manager.is_initialized():
        print(f"Already initialized: {manager.config_path}")
        return

    package = args.package or package_name_resolver.resolve(project_root=manager.project_root)
    validate_package_argument(package)
    _valid, advice = package_name_resolver.validate(package)
    if advice:
        print(f"Note: {advice}", file=sys.stderr)

    if args.legacy:
        manager.create(package)
    else:
        manager.create_v2(package, VERSION)
    print(f"Initialized envguard for '{package}' at {manager.config_path}")


def cmd_get(args):
    """Print a secret value."""
    validate_key_argument(args.key)
    store = _store(args)
    value = store.get(args.key)

    if value is None:
        print(f"Error: Secret '{args.key}' not found ({store.default_environment})", file=sys.stderr)
        sys.exit(1)

    if args.quiet:
        # Quiet mode: output only value, no formatting
        print(value)
    else:
        print(f"{args.key} ({store.default_environment}): {value}")


def cmd_set(args):
    """Store a secret."""
    validate_key_argument(args.key)
    store = _store(args)
    store.set(args.key, args.value, required=not args.optional)
    kind = "optional" if args.optional else "required"
    print(f"Stored {kind} secret '{args.key}' ({store.default_environment})")


def cmd_del(args):
    """Delete a secret."""
    validate_key_argument(args.key)
    store = _store(args)
    store.delete(args.key)
    print(f"Deleted secret '{args.key}' ({store.default_environment})")


def cmd_list(args):
    """List manifest keys with their required flag."""
    store = _store(args)
    metadata = store.manifest.get_key_metadata(store.package_name)
    if not metadata:
        print(f"No secrets recorded for {store.package_name}")
        return
    for key in metadata:
        flag = "required" if key.required else "optional"
        print(f"{key.name}\t{flag}")


def cmd_migrate(args):
    """Migrate a v1 config to v2."""
    manager = _manager(args)
    version = ConfigMigrator.detect_version(manager.config_path)
    if version is None:
        raise NotInitializedError()
    if version == "v2":
        print("Config is already v2, nothing to migrate")
        return

    config = manager.load()
    result = ConfigMigrator.perform_migration(manager.config_path, config, VERSION)
    if not result.success:
        print(f"Error: Migration failed: {result.error}", file=sys.stderr)
        sys.exit(1)
    print("Migrated config to v2")
    print(f"Backup: {result.backup_path}")


def cmd_status(args):
    """Show project configuration."""
    manager = _manager(args)
    config = manager.require()
    version = "v2" if isinstance(config, EnvGuardConfigV2) else "v1"

    print(f"Config: {manager.config_path} ({version})")
    print(f"Package: {config.get_package_name()}")
    print(f"Template: {config.get_template_file()}")
    print(f"Default environment: {config.get_default_environment()}")
    if isinstance(config, EnvGuardConfigV2):
        print(f"Allowed environments: {', '.join(config.get_allowed_environments())}")
    else:
        print("Run 'envguard migrate' to upgrade to the v2 config format")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="envguard",
        description="EnvGuard - keep secrets in the OS keychain instead of .env files",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (not initialized, keychain failure, secret not found, etc.)
  2 - Usage error (invalid arguments, invalid key format, etc.)

Environment variables:
  ENVGUARD_ENV   - Environment to use when --env is not given
  ENVGUARD_DEBUG - Enable debug logging
        """
    )
    parser.add_argument(
        "--project-root",
        default=".",
        help="Project root containing .envguard/ (default: current directory)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("version", help="Show version information")

    init_parser = subparsers.add_parser(
        "init",
        help="Initialize envguard in a project",
        description="Create .envguard/config.json. The package name is detected from package.json, "
                    "the git remote or the directory name unless --package is given."
    )
    init_parser.add_argument("--package", help="Package name (reverse domain notation recommended)")
    init_parser.add_argument("--legacy", action="store_true", help="Write a v1 config")

    get_parser = subparsers.add_parser("get", help="Get a secret value")
    get_parser.add_argument("key", help="Secret key (format: [a-zA-Z0-9_-]+)")
    get_parser.add_argument("-e", "--env", help="Environment (default: ENVGUARD_ENV or config default)")
    get_parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Output only the secret value (useful for scripts)"
    )

    set_parser = subparsers.add_parser("set", help="Store a secret value")
    set_parser.add_argument("key", help="Secret key (format: [a-zA-Z0-9_-]+)")
    set_parser.add_argument("value", help="Secret value")
    set_parser.add_argument("-e", "--env", help="Environment (default: ENVGUARD_ENV or config default)")
    set_parser.add_argument("--optional", action="store_true", help="Record the key as optional")

    del_parser = subparsers.add_parser("del", help="Delete a secret")
    del_parser.add_argument("key", help="Secret key")
    del_parser.add_argument("-e", "--env", help="Environment (default: ENVGUARD_ENV or config default)")

    subparsers.add_parser("list", help="List recorded keys")
    subparsers.add_parser("migrate", help="Migrate a v1 config to v2 (a backup is written first)")
    subparsers.add_parser("status", help="Show project configuration")

    return parser


COMMANDS = {
    "version": cmd_version,
    "init": cmd_init,
    "get": cmd_get,
    "set": cmd_set,
    "del": cmd_del,
    "list": cmd_list,
    "migrate": cmd_migrate,
    "status": cmd_status,
}


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (not initialized, keychain failure, secret not found, etc.)
        2 - Usage errors (invalid arguments, invalid key format, etc.)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        COMMANDS[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
