"""Config version detection and v1 -> v2 migration."""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from envguard.secrets.domains.models import utc_timestamp
from .models import (
    CONFIG_V2_VERSION,
    DEFAULT_CLI_VERSION,
    EnvGuardConfig,
    EnvGuardConfigV2,
    ProjectConfig,
)

logger = logging.getLogger(__name__)

CONFIG_V1 = "v1"
CONFIG_V2 = "v2"


@dataclass
class MigrationResult:
    """Outcome of ConfigMigrator.perform_migration."""
    success: bool
    version: Optional[str]
    backup_path: Optional[str] = None
    error: Optional[str] = None


def _read_json(path: Union[str, Path]) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _version_of(raw: Any) -> Optional[str]:
    if not isinstance(raw, dict):
        return None
    if raw.get("version") == CONFIG_V2_VERSION:
        return CONFIG_V2
    if isinstance(raw.get("package"), str) and raw["package"]:
        return CONFIG_V1
    return None


class ConfigMigrator:
    """Single point of truth for the current config shape.

    detect_version returns None both for a missing file and for a file
    that can't be parsed; callers can't tell those apart here.
    """

    @staticmethod
    def detect_version(config_path: Union[str, Path]) -> Optional[str]:
        """
        Detect the schema version of a config file.

        Returns:
            "v2" if version is "2.0.0", "v1" if package is a string, otherwise None
        """
        try:
            raw = _read_json(config_path)
        except (OSError, ValueError) as e:
            logger.debug(f"Could not read config {config_path}: {e}")
            return None
        return _version_of(raw)

    @staticmethod
    def migrate_v1_to_v2(v1_config: EnvGuardConfig, cli_version: str = DEFAULT_CLI_VERSION) -> EnvGuardConfigV2:
        """
        Convert a v1 config to v2.

        Starts from the v2 defaults for the same package name, then carries
        over the default environment, template path and manifest version.
        Only _metadata differs between two migrations of the same input.
        """
        v2_config = EnvGuardConfigV2.create_default(v1_config.get_package_name(), cli_version)
        v2_config.environments.default = v1_config.get_default_environment()
        v2_config.paths.template = v1_config.get_template_file()

        manifest_version = v1_config.get_manifest_version()
        if manifest_version:
            v2_config.manifest.version = manifest_version

        # Keep the v1 default environment selectable
        default_env = v2_config.environments.default
        if default_env and default_env not in v2_config.environments.allowed:
            v2_config.environments.allowed.append(default_env)

        return v2_config

    @staticmethod
    def backup_v1_config(v1_config: EnvGuardConfig, project_root: Union[str, Path] = ".") -> str:
        """
        Write a verbatim copy of the v1 config next to the live one.

        The file name embeds the current timestamp and is created
        exclusively, so an existing backup is never overwritten.

        Returns:
            Path to the backup file
        """
        timestamp = utc_timestamp().replace(":", "-").replace(".", "-")
        backup_dir = Path(project_root) / ".envguard"
        backup_dir.mkdir(parents=True, exist_ok=True)
        backup_path = backup_dir / f"config.v1.backup.{timestamp}.json"

        with open(backup_path, 'x', encoding='utf-8') as f:
            json.dump(v1_config.to_dict(), f, indent=2)

        logger.info(f"Backed up v1 config to {backup_path}")
        return str(backup_path)

    @classmethod
    def perform_migration(
        cls,
        config_path: Union[str, Path],
        v1_config: EnvGuardConfig,
        cli_version: str = DEFAULT_CLI_VERSION,
    ) -> MigrationResult:
        """
        Back up, migrate and overwrite the live config file.

        The backup is written before the live file is touched. A failure
        after that point is not rolled back; the backup file is the
        recovery path.

        Returns:
            MigrationResult; on failure success is False and version is "v1"
        """
        config_path = Path(config_path)
        project_root = config_path.parent.parent
        try:
            backup_path = cls.backup_v1_config(v1_config, project_root)
            v2_config = cls.migrate_v1_to_v2(v1_config, cli_version)
            with open(config_path, 'w', encoding='utf-8') as f:
                json.dump(v2_config.to_dict(), f, indent=2)
        except Exception as e:
            logger.error(f"Migration of {config_path} failed: {e}")
            return MigrationResult(success=False, version=CONFIG_V1, error=str(e) or type(e).__name__)

        logger.info(f"Migrated {config_path} to v2")
        return MigrationResult(success=True, version=CONFIG_V2, backup_path=backup_path)

    @classmethod
    def needs_migration(cls, config_path: Union[str, Path]) -> bool:
        return cls.detect_version(config_path) == CONFIG_V1

    @staticmethod
    def load_config(config_path: Union[str, Path]) -> Optional[ProjectConfig]:
        """
        Load a config file as the model matching its version.

        Returns:
            EnvGuardConfig, EnvGuardConfigV2, or None if the file is missing,
            unparsable or of unknown shape

        Raises:
            ConfigurationError: If a v2 file has malformed sections
        """
        try:
            raw = _read_json(config_path)
        except (OSError, ValueError) as e:
            logger.debug(f"Could not read config {config_path}: {e}")
            return None

        version = _version_of(raw)
        if version == CONFIG_V2:
            return EnvGuardConfigV2.from_dict(raw)
        if version == CONFIG_V1:
            return EnvGuardConfig.from_dict(raw)
        return None
