"""Package name resolution from project context."""
import re
import json
import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple, Union

from envguard.secrets.domains.validators import is_reverse_domain

logger = logging.getLogger(__name__)

STRATEGY_AUTO = "auto"
STRATEGY_REVERSE_DOMAIN = "reverse-domain"
STRATEGY_NPM = "npm"
STRATEGY_MANUAL = "manual"

_SSH_REMOTE = re.compile(r'git@([^:]+):([^/]+)/([^.]+)\.git')
_HTTPS_REMOTE = re.compile(r'https?://([^/]+)/([^/]+)/([^.]+)\.git')
_NAME_CHARS = re.compile(r'^[@a-zA-Z0-9._/-]+$')


def validate(name: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a package name.

    Returns:
        (valid, message). message explains a failure, or carries advice for
        valid names that aren't in reverse domain notation.
    """
    if not name or not name.strip():
        return False, "Package name cannot be empty"
    if re.search(r'\s', name):
        return False, "Package name cannot contain spaces"
    if not _NAME_CHARS.match(name):
        return False, "Package name can only contain letters, numbers, dots, hyphens, underscores, and slashes"
    if is_reverse_domain(name):
        return True, None
    return True, "Consider using reverse domain notation (e.g., com.company.app) for global uniqueness"


def npm_to_reverse_domain(npm_name: str) -> str:
    """@envguard/node -> dev.envguard.node, my-app -> local.my-app."""
    if not npm_name:
        return "local.my-app"
    if npm_name.startswith("@"):
        return "dev." + ".".join(npm_name[1:].split("/"))
    return f"local.{npm_name}"


def git_to_reverse_domain(remote_url: str) -> str:
    """git@github.com:company/repo.git -> com.github.company.repo."""
    match = _SSH_REMOTE.search(remote_url) or _HTTPS_REMOTE.search(remote_url)
    if not match:
        return "local.git-project"
    host, org, repo = match.groups()
    domain = ".".join(reversed(host.split(".")))
    return f"{domain}.{org}.{repo}"


def detect_npm_name(project_root: Union[str, Path]) -> Optional[str]:
    """Read the name field of package.json, if any."""
    package_json = Path(project_root) / "package.json"
    if not package_json.exists():
        return None
    try:
        with open(package_json, 'r', encoding='utf-8') as f:
            name = json.load(f).get("name")
    except (OSError, ValueError, AttributeError) as e:
        logger.debug(f"Could not read {package_json}: {e}")
        return None
    return name if isinstance(name, str) and name else None


def detect_git_remote(project_root: Union[str, Path]) -> Optional[str]:
    """Return the origin remote URL of the repository at project_root."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True, text=True, check=True, cwd=str(project_root)
        )
    except (OSError, subprocess.CalledProcessError) as e:
        logger.debug(f"No git remote for {project_root}: {e}")
        return None
    return result.stdout.strip() or None


def detect_directory_name(project_root: Union[str, Path]) -> str:
    """Directory name lowercased with anything outside [a-z0-9-] replaced by '-'."""
    name = Path(project_root).resolve().name
    return re.sub(r'[^a-z0-9-]', '-', name.lower())


def suggest(project_root: Union[str, Path] = ".") -> List[str]:
    """
    Suggest package names for a project, best first.

    Order: npm name as reverse domain, the raw npm name, the git remote as
    reverse domain, then local.<directory>.
    """
    suggestions: List[str] = []

    npm_name = detect_npm_name(project_root)
    if npm_name:
        suggestions.append(npm_to_reverse_domain(npm_name))
        if npm_name not in suggestions:
            suggestions.append(npm_name)

    remote = detect_git_remote(project_root)
    if remote:
        git_name = git_to_reverse_domain(remote)
        if git_name not in suggestions:
            suggestions.append(git_name)

    dir_name = detect_directory_name(project_root)
    if dir_name:
        local_name = f"local.{dir_name}"
        if local_name not in suggestions:
            suggestions.append(local_name)

    return suggestions


def resolve(strategy: str = STRATEGY_AUTO, project_root: Union[str, Path] = ".",
            fallback: Optional[str] = None) -> str:
    """
    Resolve a package name for a project.

    Args:
        strategy: auto, reverse-domain, npm or manual
        project_root: Project root directory
        fallback: Name used when detection finds nothing (required for manual)

    Returns:
        Package name

    Raises:
        ValueError: Unknown strategy, or an invalid manual name
    """
    if strategy == STRATEGY_MANUAL:
        name = fallback or "my-app"
        valid, message = validate(name)
        if not valid:
            raise ValueError(message or "Invalid package name")
        return name

    if strategy == STRATEGY_NPM:
        return detect_npm_name(project_root) or fallback or "my-app"

    if strategy not in (STRATEGY_AUTO, STRATEGY_REVERSE_DOMAIN):
        raise ValueError(f"Unknown strategy: {strategy}")

    npm_name = detect_npm_name(project_root)
    if npm_name:
        return npm_to_reverse_domain(npm_name)

    remote = detect_git_remote(project_root)
    if remote:
        return git_to_reverse_domain(remote)

    if strategy == STRATEGY_AUTO:
        dir_name = detect_directory_name(project_root)
        if dir_name:
            return f"local.{dir_name}"

    return fallback or "local.my-app"
