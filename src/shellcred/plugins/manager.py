"""Plugin registry -- built-in plugins plus entry-point discovery.

This module contains :class:`PluginRegistry`, the host's view of every
available :class:`~shellcred.schema.Plugin`. Built-in plugins (``aws``,
``mysql``, ``gcloud``, ``terraform``) are always offered; third-party
packages add more by declaring an entry point in the ``shellcred.plugins``
group that resolves to a zero-argument factory returning a ``Plugin``::

    [project.entry-points."shellcred.plugins"]
    vault = "my_package.vault:new"
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Callable, Optional

from shellcred.exceptions import NotFoundError, PluginError
from shellcred.models import GlobalConfig
from shellcred.plugins import aws, gcloud, mysql, terraform
from shellcred.schema import CredentialType, Plugin

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "shellcred.plugins"
"""The entry-point group name used for plugin discovery."""

BUILTIN_PLUGINS: dict[str, Callable[[], Plugin]] = {
    "aws": aws.new,
    "gcloud": gcloud.new,
    "mysql": mysql.new,
    "terraform": terraform.new,
}


class PluginRegistry:
    """Holds the plugins available to this invocation.

    The *enabled* and *disabled* lists in
    :class:`~shellcred.models.PluginsConfig` act as an explicit
    allowlist/blocklist. When *enabled* is non-empty only those plugins are
    loaded; otherwise every plugin not in *disabled* is loaded.

    Example::

        registry = PluginRegistry()
        registry.discover(config)
        credential = registry.get("aws").credential()
    """

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self, config: GlobalConfig, entry_points: bool = True) -> list[str]:
        """Load built-in plugins and, optionally, entry-point plugins.

        Returns:
            Names of the plugins that were loaded. Entry points that fail to
            load are logged as warnings and skipped.
        """
        loaded: list[str] = []
        for name, factory in BUILTIN_PLUGINS.items():
            if not self._allowed(name, config):
                continue
            self.register(factory())
            loaded.append(name)

        if not entry_points:
            return loaded

        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            if not self._allowed(ep.name, config):
                continue
            try:
                factory = ep.load()
                plugin = factory() if callable(factory) else factory
                if not isinstance(plugin, Plugin):
                    raise PluginError(f"entry point did not produce a Plugin: {plugin!r}")
                self.register(plugin)
                loaded.append(plugin.name)
            except Exception as exc:
                logger.warning("Failed to load plugin '%s': %s", ep.name, exc)
        return loaded

    @staticmethod
    def _allowed(name: str, config: GlobalConfig) -> bool:
        enabled = set(config.plugins.enabled)
        if enabled and name not in enabled:
            logger.debug("Plugin '%s' not in enabled list, skipping", name)
            return False
        if name in config.plugins.disabled:
            logger.debug("Plugin '%s' is disabled, skipping", name)
            return False
        return True

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, plugin: Plugin) -> None:
        """Add *plugin* to the registry.

        Raises:
            PluginError: If a plugin with the same name is already registered
                or the plugin's definition is invalid.
        """
        if plugin.name in self._plugins:
            raise PluginError(f"Plugin '{plugin.name}' is already loaded")
        problems = plugin.validate()
        if problems:
            raise PluginError(f"Plugin '{plugin.name}' is invalid: {'; '.join(problems)}")
        self._plugins[plugin.name] = plugin
        logger.debug("Registered plugin '%s'", plugin.name)

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def get(self, name: str) -> Plugin:
        """Retrieve a plugin by name.

        Raises:
            NotFoundError: If no plugin with the given *name* is loaded.
        """
        try:
            return self._plugins[name]
        except KeyError:
            available = ", ".join(sorted(self._plugins)) or "none"
            raise NotFoundError(f"Unknown plugin '{name}' (available: {available})") from None

    def credential(self, plugin: str, name: Optional[str] = None) -> CredentialType:
        return self.get(plugin).credential(name)

    def list_plugins(self) -> list[Plugin]:
        return [self._plugins[name] for name in sorted(self._plugins)]

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)


def create_default_registry(config: Optional[GlobalConfig] = None) -> PluginRegistry:
    """Build a registry with every allowed built-in and entry-point plugin."""
    registry = PluginRegistry()
    registry.discover(config or GlobalConfig())
    return registry
