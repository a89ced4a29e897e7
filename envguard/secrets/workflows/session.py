"""Inject stored secrets into an environment mapping and undo the injection."""
import os
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, MutableMapping, Optional

from .secret_operations import SecretStore

logger = logging.getLogger(__name__)


@dataclass
class InjectionResult:
    """Outcome of SecretSession.load."""
    injected: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    overridden: List[str] = field(default_factory=list)
    missing_required: List[str] = field(default_factory=list)
    missing_optional: List[str] = field(default_factory=list)


class SecretSession:
    """
    Tracks which secrets one caller loaded into an environment mapping.

    The set of loaded keys belongs to the session, so independent sessions
    (and tests) never see each other's state. reset() removes exactly the
    keys this session wrote.
    """

    def __init__(self, store: SecretStore, target: Optional[MutableMapping[str, str]] = None,
                 environment: Optional[str] = None):
        self.store = store
        self.target = os.environ if target is None else target
        self.environment = environment
        self._loaded: List[str] = []

    @property
    def loaded_keys(self) -> List[str]:
        return list(self._loaded)

    def load(self, keys: Optional[Iterable[str]] = None, override: bool = False) -> InjectionResult:
        """
        Resolve secrets from the store and write them into the target mapping.

        Args:
            keys: Keys to load (defaults to the manifest keys of the store's package)
            override: Replace values already present in the target

        Returns:
            InjectionResult describing what happened to each key
        """
        package = self.store.package_name
        if keys is None:
            keys = self.store.manifest.list_keys(package)
        keys = list(keys)
        required = set(self.store.manifest.get_required_keys(package))

        result = InjectionResult()
        for key in keys:
            value = self.store.get(key, self.environment)
            if value is None:
                if key in required:
                    result.missing_required.append(key)
                else:
                    result.missing_optional.append(key)
                logger.debug(f"Secret not found: {key}")
                continue

            exists = self.target.get(key) is not None
            if exists and not override:
                logger.debug(f"Skipping existing env var: {key}")
                result.skipped.append(key)
                continue

            if exists:
                logger.debug(f"Overriding env var: {key}")
                result.overridden.append(key)
            else:
                logger.debug(f"Injecting env var: {key}")
                result.injected.append(key)
            self.target[key] = value
            if key not in self._loaded:
                self._loaded.append(key)

        if result.missing_required:
            logger.warning(f"Missing required secrets for {package}: {', '.join(result.missing_required)}")

        logger.debug(
            f"Injection complete: {len(result.injected)} injected, "
            f"{len(result.skipped)} skipped, {len(result.overridden)} overridden"
        )
        return result

    def reset(self) -> List[str]:
        """
        Remove every key this session injected from the target mapping.

        Returns:
            The keys that were removed
        """
        removed = []
        for key in self._loaded:
            if key in self.target:
                del self.target[key]
                removed.append(key)
        self._loaded = []
        logger.debug(f"Removed {len(removed)} secrets from environment")
        return removed
