"""Project configuration models (.envguard/config.json).

Two on-disk shapes exist:

v1 (legacy):
    {"package": "my-app", "templateFile": ".env.template",
     "manifestVersion": "1.0", "defaultEnvironment": "development"}

v2:
    {"$schema": ..., "version": "2.0.0", "package": {...},
     "environments": {...}, "paths": {...}, "validation": {...},
     "security": {...}, "manifest": {...}, "_warnings": {...}, "_metadata": {...}}
"""
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from envguard.errors import ConfigurationError
from envguard.secrets.domains.models import utc_timestamp
from envguard.secrets.domains.validators import classify_package_name

CONFIG_SCHEMA_URL = "https://envguard.dev/schemas/config/v2.json"
CONFIG_V2_VERSION = "2.0.0"
DEFAULT_CLI_VERSION = "0.3.0"
DEFAULT_TEMPLATE_FILE = ".env.template"
DEFAULT_MANIFEST_PATH = ".envguard/manifest.json"
DEFAULT_ENVIRONMENTS = ["development", "staging", "production"]
MANUAL_EDIT_WARNING = "Editing this file manually may break EnvGuard. Use 'envg config' commands instead."


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or value.strip() == ""


@dataclass
class EnvGuardConfig:
    """Legacy (v1) project configuration."""
    package: str
    template_file: str = DEFAULT_TEMPLATE_FILE
    manifest_version: str = "1.0"
    default_environment: str = "development"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnvGuardConfig":
        return cls(
            package=data.get("package", ""),
            template_file=data.get("templateFile", ""),
            manifest_version=data.get("manifestVersion", ""),
            default_environment=data.get("defaultEnvironment", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package": self.package,
            "templateFile": self.template_file,
            "manifestVersion": self.manifest_version,
            "defaultEnvironment": self.default_environment,
        }

    def get_package_name(self) -> str:
        return self.package

    def get_template_file(self) -> str:
        return self.template_file

    def get_manifest_version(self) -> str:
        return self.manifest_version

    def get_default_environment(self) -> str:
        return self.default_environment

    def get_manifest_file(self) -> str:
        return DEFAULT_MANIFEST_PATH

    def is_valid(self) -> bool:
        """All four fields present and non-blank."""
        return not any(_is_blank(v) for v in (
            self.package, self.template_file, self.manifest_version, self.default_environment
        ))


@dataclass
class PackageConfig:
    name: str
    type: str = "manual"
    display_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name}
        if self.display_name is not None:
            data["displayName"] = self.display_name
        data["type"] = self.type
        return data


@dataclass
class EnvironmentConfig:
    allowed: List[str] = field(default_factory=lambda: list(DEFAULT_ENVIRONMENTS))
    default: str = "development"
    naming: str = "strict"

    def to_dict(self) -> Dict[str, Any]:
        return {"allowed": list(self.allowed), "default": self.default, "naming": self.naming}


@dataclass
class PathsConfig:
    template: str = DEFAULT_TEMPLATE_FILE
    manifest: str = DEFAULT_MANIFEST_PATH

    def to_dict(self) -> Dict[str, Any]:
        return {"template": self.template, "manifest": self.manifest}


@dataclass
class ValidationConfig:
    enabled: bool = True
    strict_mode: bool = False
    enforce_rotation: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "strictMode": self.strict_mode, "enforceRotation": self.enforce_rotation}


@dataclass
class SecurityConfig:
    audit_log: bool = False
    require_confirmation: List[str] = field(default_factory=lambda: ["delete", "export"])
    allowed_commands: Union[List[str], str] = "all"

    def to_dict(self) -> Dict[str, Any]:
        allowed = self.allowed_commands if isinstance(self.allowed_commands, str) else list(self.allowed_commands)
        return {
            "auditLog": self.audit_log,
            "requireConfirmation": list(self.require_confirmation),
            "allowedCommands": allowed,
        }


@dataclass
class ManifestConfig:
    version: str = CONFIG_V2_VERSION
    auto_sync: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version, "autoSync": self.auto_sync}


@dataclass
class ConfigMetadata:
    created: str
    last_modified: str
    modified_by: str

    def to_dict(self) -> Dict[str, Any]:
        return {"created": self.created, "lastModified": self.last_modified, "modifiedBy": self.modified_by}


def _section(data: Dict[str, Any], name: str, required: bool = False) -> Dict[str, Any]:
    section = data.get(name)
    if section is None:
        if required:
            raise ConfigurationError(f"Missing '{name}' section in v2 config")
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{name}' must be an object in v2 config")
    return section


def _field(section: Dict[str, Any], path: str, key: str, expected: Union[type, tuple], default: Any = None,
           required: bool = False) -> Any:
    if key not in section:
        if required:
            raise ConfigurationError(f"Missing '{path}.{key}' in v2 config")
        return copy.deepcopy(default)
    value = section[key]
    if not isinstance(value, expected):
        raise ConfigurationError(f"'{path}.{key}' has the wrong type in v2 config")
    return value


@dataclass
class EnvGuardConfigV2:
    """Project configuration, schema version 2.0.0."""
    package: PackageConfig
    environments: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    manifest: ManifestConfig = field(default_factory=ManifestConfig)
    warnings: Optional[Dict[str, str]] = None
    metadata: Optional[ConfigMetadata] = None
    schema: str = CONFIG_SCHEMA_URL
    version: str = CONFIG_V2_VERSION

    @classmethod
    def create_default(cls, package_name: str, cli_version: str = DEFAULT_CLI_VERSION) -> "EnvGuardConfigV2":
        """
        Build a v2 config with default settings for a package.

        Args:
            package_name: Package name (its type is detected from the naming convention)
            cli_version: CLI version recorded in _metadata.modifiedBy

        Returns:
            New config
        """
        now = utc_timestamp()
        return cls(
            package=PackageConfig(name=package_name, type=classify_package_name(package_name)),
            warnings={"manualEdit": MANUAL_EDIT_WARNING},
            metadata=ConfigMetadata(created=now, last_modified=now, modified_by=f"envg-cli@{cli_version}"),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnvGuardConfigV2":
        """
        Build a config from parsed v2 JSON.

        package, environments and paths are required; the policy sections
        fall back to defaults when absent.

        Raises:
            ConfigurationError: If a section or field has the wrong structure
        """
        if not isinstance(data, dict):
            raise ConfigurationError("v2 config must be a JSON object")

        pkg = _section(data, "package", required=True)
        envs = _section(data, "environments", required=True)
        paths = _section(data, "paths", required=True)
        validation = _section(data, "validation")
        security = _section(data, "security")
        manifest = _section(data, "manifest")

        allowed = _field(envs, "environments", "allowed", list, required=True)
        if not all(isinstance(env, str) for env in allowed):
            raise ConfigurationError("'environments.allowed' must be a list of strings")

        metadata = None
        raw_metadata = data.get("_metadata")
        if isinstance(raw_metadata, dict):
            metadata = ConfigMetadata(
                created=raw_metadata.get("created", ""),
                last_modified=raw_metadata.get("lastModified", ""),
                modified_by=raw_metadata.get("modifiedBy", ""),
            )
        warnings = data.get("_warnings")

        name = _field(pkg, "package", "name", str, required=True)
        return cls(
            package=PackageConfig(
                name=name,
                type=_field(pkg, "package", "type", str, default=classify_package_name(name)),
                display_name=_field(pkg, "package", "displayName", str),
            ),
            environments=EnvironmentConfig(
                allowed=list(allowed),
                default=_field(envs, "environments", "default", str, required=True),
                naming=_field(envs, "environments", "naming", str, default="strict"),
            ),
            paths=PathsConfig(
                template=_field(paths, "paths", "template", str, required=True),
                manifest=_field(paths, "paths", "manifest", str, default=DEFAULT_MANIFEST_PATH),
            ),
            validation=ValidationConfig(
                enabled=_field(validation, "validation", "enabled", bool, default=True),
                strict_mode=_field(validation, "validation", "strictMode", bool, default=False),
                enforce_rotation=_field(validation, "validation", "enforceRotation", bool, default=False),
            ),
            security=SecurityConfig(
                audit_log=_field(security, "security", "auditLog", bool, default=False),
                require_confirmation=_field(security, "security", "requireConfirmation", list,
                                            default=["delete", "export"]),
                allowed_commands=_field(security, "security", "allowedCommands", (list, str), default="all"),
            ),
            manifest=ManifestConfig(
                version=_field(manifest, "manifest", "version", str, default=CONFIG_V2_VERSION),
                auto_sync=_field(manifest, "manifest", "autoSync", bool, default=True),
            ),
            warnings=dict(warnings) if isinstance(warnings, dict) else None,
            metadata=metadata,
            schema=data.get("$schema", CONFIG_SCHEMA_URL),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "$schema": self.schema,
            "version": self.version,
            "package": self.package.to_dict(),
            "environments": self.environments.to_dict(),
            "paths": self.paths.to_dict(),
            "validation": self.validation.to_dict(),
            "security": self.security.to_dict(),
            "manifest": self.manifest.to_dict(),
        }
        if self.warnings is not None:
            data["_warnings"] = dict(self.warnings)
        if self.metadata is not None:
            data["_metadata"] = self.metadata.to_dict()
        return data

    def get_package_name(self) -> str:
        return self.package.name

    def get_package_display_name(self) -> str:
        return self.package.display_name or self.package.name

    def get_template_file(self) -> str:
        return self.paths.template

    def get_manifest_file(self) -> str:
        return self.paths.manifest

    def get_default_environment(self) -> str:
        return self.environments.default

    def get_allowed_environments(self) -> List[str]:
        return list(self.environments.allowed)

    def is_environment_allowed(self, environment: str) -> bool:
        return environment in self.environments.allowed

    def get_manifest_version(self) -> str:
        return self.manifest.version

    def update_metadata(self, modified_by: str) -> None:
        now = utc_timestamp()
        if self.metadata is None:
            self.metadata = ConfigMetadata(created=now, last_modified=now, modified_by=modified_by)
        else:
            self.metadata.last_modified = now
            self.metadata.modified_by = modified_by

    def validation_errors(self) -> List[str]:
        """List every broken invariant. Empty when the config is valid."""
        errors = []
        if _is_blank(self.package.name):
            errors.append("package.name cannot be empty")
        if not self.environments.allowed:
            errors.append("environments.allowed cannot be empty")
        if _is_blank(self.environments.default):
            errors.append("environments.default cannot be empty")
        elif self.environments.default not in self.environments.allowed:
            errors.append(
                f"environments.default '{self.environments.default}' is not in environments.allowed "
                f"({', '.join(self.environments.allowed)})"
            )
        if _is_blank(self.paths.template):
            errors.append("paths.template cannot be empty")
        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()


ProjectConfig = Union[EnvGuardConfig, EnvGuardConfigV2]
