"""Project configuration manager for EnvGuard."""
import os
import json
import logging
from pathlib import Path
from typing import Optional, Union

from envguard.errors import ConfigurationError, NotInitializedError
from envguard.secrets.domains.backend import SecretBackend
from envguard.secrets.domains.manifest_manager import ManifestManager
from envguard.secrets.workflows.secret_operations import SecretStore
from .migrator import ConfigMigrator
from .models import (
    DEFAULT_CLI_VERSION,
    DEFAULT_TEMPLATE_FILE,
    EnvGuardConfig,
    EnvGuardConfigV2,
    ProjectConfig,
)

logger = logging.getLogger(__name__)

ENVIRONMENT_ENV_VAR = "ENVGUARD_ENV"


class ConfigManager:
    """
    Reads, writes and resolves the configuration of one project.

    The config lives at <project_root>/.envguard/config.json and may be in
    either the v1 or the v2 shape; see ConfigMigrator.
    """

    def __init__(self, project_root: Union[str, Path] = "."):
        self.project_root = Path(project_root)
        self.config_path = self.project_root / ".envguard" / "config.json"

    def load(self) -> Optional[ProjectConfig]:
        """
        Load config from disk.

        Returns:
            v1 or v2 config, or None if not initialized
        """
        return ConfigMigrator.load_config(self.config_path)

    def require(self) -> ProjectConfig:
        """
        Load config, failing if the project isn't initialized.

        Raises:
            NotInitializedError: If there is no readable config
            ConfigurationError: If a v2 config breaks its invariants
        """
        config = self.load()
        if config is None:
            raise NotInitializedError()
        if isinstance(config, EnvGuardConfigV2):
            errors = config.validation_errors()
            if errors:
                raise ConfigurationError(
                    f"Invalid configuration at {self.config_path}:\n  " + "\n  ".join(errors)
                )
        return config

    def load_or_migrate(self, cli_version: str = DEFAULT_CLI_VERSION) -> Optional[EnvGuardConfigV2]:
        """
        Load config, migrating a v1 file to v2 first.

        Returns:
            v2 config, or None if not initialized

        Raises:
            ConfigurationError: If the migration failed
        """
        config = self.load()
        if config is None:
            return None
        if isinstance(config, EnvGuardConfigV2):
            return config

        logger.info(f"Migrating {self.config_path} from v1 to v2")
        result = ConfigMigrator.perform_migration(self.config_path, config, cli_version)
        if not result.success:
            raise ConfigurationError(f"Migration failed: {result.error}")

        migrated = self.load()
        if not isinstance(migrated, EnvGuardConfigV2):
            raise ConfigurationError(f"Migration failed: {self.config_path} is not a v2 config after migration")
        return migrated

    def save(self, config: ProjectConfig) -> None:
        """
        Write config to disk, creating .envguard if needed.

        Raises:
            ConfigurationError: If the file can't be written
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(config.to_dict(), f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Failed to write config {self.config_path}: {e}", cause=e) from e
        logger.debug(f"Saved config to {self.config_path}")

    def create(self, package_name: str, template_file: str = DEFAULT_TEMPLATE_FILE) -> EnvGuardConfig:
        """Create a legacy v1 config. Prefer create_v2."""
        config = EnvGuardConfig(package=package_name, template_file=template_file)
        self.save(config)
        return config

    def create_v2(self, package_name: str, cli_version: str = DEFAULT_CLI_VERSION) -> EnvGuardConfigV2:
        config = EnvGuardConfigV2.create_default(package_name, cli_version)
        self.save(config)
        return config

    def update(
        self,
        package: Optional[str] = None,
        template_file: Optional[str] = None,
        manifest_version: Optional[str] = None,
        default_environment: Optional[str] = None,
        modified_by: Optional[str] = None,
    ) -> ProjectConfig:
        """
        Update selected fields of the existing config, keeping its version.

        Returns:
            The updated config

        Raises:
            NotInitializedError: If there is no config
        """
        config = self.load()
        if config is None:
            raise NotInitializedError()

        if isinstance(config, EnvGuardConfigV2):
            if package is not None:
                config.package.name = package
            if template_file is not None:
                config.paths.template = template_file
            if manifest_version is not None:
                config.manifest.version = manifest_version
            if default_environment is not None:
                config.environments.default = default_environment
            if modified_by is not None:
                config.update_metadata(modified_by)
        else:
            if package is not None:
                config.package = package
            if template_file is not None:
                config.template_file = template_file
            if manifest_version is not None:
                config.manifest_version = manifest_version
            if default_environment is not None:
                config.default_environment = default_environment

        self.save(config)
        return config

    def is_initialized(self) -> bool:
        return self.config_path.exists()

    def get_package_name(self) -> str:
        return self.require().get_package_name()

    def get_template_file_path(self) -> Path:
        return self.project_root / self.require().get_template_file()

    def get_template_file_relative_path(self) -> str:
        return self.require().get_template_file()

    def get_manifest_version(self) -> str:
        return self.require().get_manifest_version()

    def get_default_environment(self) -> str:
        return self.require().get_default_environment()

    def get_manifest_path(self) -> Path:
        return self.project_root / self.require().get_manifest_file()

    def resolve_environment(self, explicit: Optional[str] = None) -> str:
        """
        Pick the environment to operate on.

        Priority order:
        1. explicit argument
        2. ENVGUARD_ENV environment variable
        3. config default environment

        Raises:
            ConfigurationError: If a v2 config with strict naming doesn't allow the environment
        """
        config = self.require()
        environment = explicit or os.getenv(ENVIRONMENT_ENV_VAR) or config.get_default_environment()

        if isinstance(config, EnvGuardConfigV2) and config.environments.naming == "strict" \
                and not config.is_environment_allowed(environment):
            raise ConfigurationError(
                f"Environment '{environment}' is not allowed. "
                f"Allowed environments: {', '.join(config.get_allowed_environments())}"
            )
        return environment

    def create_store(self, backend: SecretBackend, environment: Optional[str] = None) -> SecretStore:
        """Build a SecretStore for the configured package."""
        config = self.require()
        manifest = ManifestManager(self.project_root, config.get_manifest_file())
        return SecretStore(
            config.get_package_name(),
            backend,
            manifest=manifest,
            default_environment=self.resolve_environment(environment),
            project_root=self.project_root,
        )
