"""Plugin registry for the compiled-in import plugins.

The registry holds every adapter keyed by plugin id together with the
plugin's runtime state: whether it is enabled and which category was
provisioned for it. State is guarded per plugin, so calls to different
plugins never wait on each other.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from attic_import.plugins.base import ImportPlugin

logger = logging.getLogger(__name__)


@dataclass
class PluginState:
    """Runtime state of one registered plugin.

    Attributes:
        enabled: Whether the plugin accepts search and import calls
        category_id: Provisioned category, if any
        loaded: Whether the state has been read from persistent storage
    """
    enabled: bool = True
    category_id: UUID | None = None
    loaded: bool = False


class PluginRegistry:
    """Central registry for import plugins.

    Example:
        >>> registry = PluginRegistry()
        >>> registry.register(GoogleBooksPlugin(settings))
        >>> plugin = registry.get("google_books")
    """

    def __init__(self) -> None:
        self._plugins: dict[str, ImportPlugin] = {}
        self._states: dict[str, PluginState] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._attribute_owners: dict[str, str] = {}

    def register(self, plugin: ImportPlugin) -> None:
        """Register a plugin with the registry.

        Args:
            plugin: Plugin instance to register

        Raises:
            ValueError: If the id is taken, an attribute key is not prefixed
                with the plugin namespace, or a key is declared by another plugin
        """
        metadata = plugin.metadata
        plugin_id = metadata.id

        if plugin_id in self._plugins:
            raise ValueError(f"Plugin '{plugin_id}' is already registered")

        prefix = f"{metadata.namespace}."
        keys = [attr.key for attr in plugin.attributes]
        for key in keys:
            if not key.startswith(prefix) or key == prefix:
                raise ValueError(
                    f"Attribute '{key}' of plugin '{plugin_id}' is not in namespace '{metadata.namespace}'"
                )
            owner = self._attribute_owners.get(key)
            if owner is not None:
                raise ValueError(f"Attribute '{key}' is already declared by plugin '{owner}'")
        if len(set(keys)) != len(keys):
            raise ValueError(f"Plugin '{plugin_id}' declares the same attribute key twice")

        self._plugins[plugin_id] = plugin
        self._states[plugin_id] = PluginState()
        self._locks[plugin_id] = asyncio.Lock()
        for key in keys:
            self._attribute_owners[key] = plugin_id

        logger.info(f"Registered import plugin: {plugin_id}")

    def get(self, plugin_id: str) -> ImportPlugin | None:
        """Get a plugin by ID.

        Args:
            plugin_id: Plugin identifier

        Returns:
            Plugin instance or None if not found
        """
        return self._plugins.get(plugin_id)

    def list_plugins(self) -> list[ImportPlugin]:
        """List all registered plugins ordered by id."""
        return [self._plugins[plugin_id] for plugin_id in sorted(self._plugins)]

    def __contains__(self, plugin_id: object) -> bool:
        return plugin_id in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    def lock(self, plugin_id: str) -> asyncio.Lock:
        """Lock serializing state changes of one plugin.

        Raises:
            KeyError: If the plugin is not registered
        """
        return self._locks[plugin_id]

    def is_enabled(self, plugin_id: str) -> bool:
        state = self._states.get(plugin_id)
        return state is not None and state.enabled

    def is_loaded(self, plugin_id: str) -> bool:
        state = self._states.get(plugin_id)
        return state is not None and state.loaded

    def category_id(self, plugin_id: str) -> UUID | None:
        state = self._states.get(plugin_id)
        return state.category_id if state else None

    def load_state(self, plugin_id: str, enabled: bool, category_id: UUID | None) -> None:
        """Seed a plugin's state from persistent storage."""
        self._states[plugin_id] = PluginState(enabled=enabled, category_id=category_id, loaded=True)

    def mark_enabled(self, plugin_id: str, category_id: UUID) -> None:
        self._states[plugin_id] = PluginState(enabled=True, category_id=category_id, loaded=True)
        logger.info(f"Plugin enabled: {plugin_id}")

    def mark_disabled(self, plugin_id: str, category_id: UUID | None) -> None:
        self._states[plugin_id] = PluginState(enabled=False, category_id=category_id, loaded=True)
        logger.info(f"Plugin disabled: {plugin_id}")

    async def initialize_all(
        self,
        configs: dict[str, dict[str, Any]] | None = None,
    ) -> dict[str, Exception]:
        """Initialize all registered plugins.

        Args:
            configs: Dictionary mapping plugin IDs to their configurations

        Returns:
            Dictionary of plugin IDs to exceptions for failed initializations
        """
        configs = configs or {}
        failures: dict[str, Exception] = {}

        for plugin_id, plugin in self._plugins.items():
            try:
                await plugin.initialize(configs.get(plugin_id, {}))
            except Exception as e:
                logger.error(f"Failed to initialize plugin '{plugin_id}': {e}")
                failures[plugin_id] = e

        return failures

    async def shutdown_all(self) -> None:
        """Shutdown all plugins and close their HTTP clients."""
        for plugin_id, plugin in self._plugins.items():
            try:
                await plugin.shutdown()
            except Exception as e:
                logger.error(f"Error during shutdown of '{plugin_id}': {e}")


# Global registry instance
_global_registry: PluginRegistry | None = None


def get_registry() -> PluginRegistry:
    """Get the global plugin registry instance."""
    global _global_registry
    if _global_registry is None:
        _global_registry = PluginRegistry()
    return _global_registry


def reset_registry() -> None:
    """Reset the global registry (useful for testing)."""
    global _global_registry
    _global_registry = None
