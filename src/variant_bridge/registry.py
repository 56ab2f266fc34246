"""Process-wide registry of settings backend implementations.

Backends are discovered once per process: the built-in property channel
backend plus every entry point in the "variant_bridge.backends" group.
After loading, the set of backends does not change.

Usage:
    from variant_bridge.registry import get_backend
    backend = get_backend("property-channel")
"""

import logging
import threading
from collections.abc import Callable
from importlib.metadata import entry_points
from typing import Any

from .backend import ChannelSettingsBackend
from .backend import SettingsBackend
from .exceptions import BackendError
from .exceptions import BackendNotFoundError
from .models import DEFAULT_BACKEND
from .models import BridgeConfig

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "variant_bridge.backends"

BackendFactory = Callable[..., SettingsBackend]


class BackendRegistry:
    """Name to backend factory mapping, loaded on first use."""

    def __init__(self, group: str = ENTRY_POINT_GROUP):
        self.group = group
        self._backends: dict[str, BackendFactory] = {}
        self._loaded = False
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._loaded

    def ensure_loaded(self) -> None:
        """Discover backends unless already done. Safe to call from any thread.

        If entry point discovery itself fails, the registry stays unloaded
        and the next call tries again.
        """
        with self._lock:
            if self._loaded:
                return

            self._register(DEFAULT_BACKEND, ChannelSettingsBackend)
            try:
                discovered = list(entry_points(group=self.group))
            except Exception as e:
                logger.error(f"Failed to discover settings backends in group '{self.group}': {e}")
                raise

            for entry_point in discovered:
                try:
                    factory = entry_point.load()
                except Exception as e:  # noqa: BLE001
                    logger.warning(f"Failed to load backend '{entry_point.name}' from {entry_point.value}: {e}")
                    continue
                self._register(entry_point.name, factory)

            self._loaded = True
            logger.debug(f"Loaded settings backends: {', '.join(sorted(self._backends))}")

    def names(self) -> list[str]:
        """List registered backend names."""
        self.ensure_loaded()
        return sorted(self._backends)

    def get_backend(self, name: str = DEFAULT_BACKEND, **kwargs: Any) -> SettingsBackend:
        """Create a backend by name.

        Args:
            name: Registered backend name
            **kwargs: Passed to the backend's constructor

        Returns:
            New backend instance

        Raises:
            BackendNotFoundError: If no backend has that name
            BackendError: If the registered object does not create a SettingsBackend
            ChannelError: If the backend cannot open its channel
        """
        self.ensure_loaded()

        factory = self._backends.get(name)
        if factory is None:
            raise BackendNotFoundError(f"Settings backend '{name}' not found")
        if not callable(factory):
            raise BackendError(f"Backend '{name}' is not callable: {factory!r}")

        backend = factory(**kwargs)
        if not isinstance(backend, SettingsBackend):
            raise BackendError(
                f"Backend '{name}' created {type(backend).__name__}, expected a {SettingsBackend.__name__}"
            )
        return backend

    def _register(self, name: str, factory: BackendFactory) -> None:
        # First registration wins
        if name in self._backends:
            logger.debug(f"Ignoring duplicate settings backend '{name}'")
            return
        self._backends[name] = factory


_registry = BackendRegistry()


def get_registry() -> BackendRegistry:
    return _registry


def ensure_loaded() -> None:
    _registry.ensure_loaded()


def get_backend(name: str = DEFAULT_BACKEND, **kwargs: Any) -> SettingsBackend:
    """Create a backend from the process-wide registry."""
    return _registry.get_backend(name, **kwargs)


def reset_registry() -> None:
    """Replace the process-wide registry with an unloaded one (for tests)."""
    global _registry
    _registry = BackendRegistry()


def backend_from_config(config: BridgeConfig) -> SettingsBackend:
    """Create the backend named in config, passing config to it."""
    return get_backend(config.backend, config=config)
