"""The set of plugins taking part in a build.

A build always has the AssemblyScript plugin. Other installed packages can
add plugins of their own by publishing a :class:`~ascwasm.plugins.base.Plugin`
subclass under the ``ascwasm.plugins`` entry-point group::

    [project.entry-points."ascwasm.plugins"]
    svg = "ascwasm_svg:SvgPlugin"

Those extras run after the built-in plugin, in discovery order, subject to
the ``plugins.enabled``/``plugins.disabled`` lists of the user config.
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Any, Optional

from ascwasm.exceptions import PluginError
from ascwasm.models import GlobalConfig
from ascwasm.plugins.base import Plugin
from ascwasm.plugins.hooks import HookRunner

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "ascwasm.plugins"


def _entry_points() -> list[importlib.metadata.EntryPoint]:
    return list(importlib.metadata.entry_points(group=ENTRY_POINT_GROUP))


class PluginManager:
    """Owns the plugins of one command run, from ``on_init`` to ``cleanup``.

    Args:
        config: User config passed to each plugin's ``on_init`` and used to
            filter extras.
        builtin: The plugin that always runs first. It is not subject to
            the enabled/disabled lists.

    Example::

        with PluginManager(config, AscPlugin(options)) as manager:
            manager.discover_extras()
            build = BuildContext(manager.runner())
    """

    def __init__(self, config: GlobalConfig, builtin: Optional[Plugin] = None) -> None:
        self._config = config
        self._plugins: dict[str, Plugin] = {}
        self._builtin: Optional[str] = None
        if builtin is not None:
            self.add(builtin)
            self._builtin = builtin.name

    def __enter__(self) -> PluginManager:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def plugins(self) -> list[Plugin]:
        """Plugins in hook order."""
        return list(self._plugins.values())

    def add(self, plugin: Plugin) -> None:
        """Initialise *plugin* and append it to the hook order.

        Raises:
            PluginError: If a plugin with the same name is already present.
        """
        if plugin.name in self._plugins:
            raise PluginError(f"Plugin '{plugin.name}' is already loaded")
        plugin.on_init(self._config)
        self._plugins[plugin.name] = plugin
        logger.debug("Plugin '%s' v%s ready", plugin.name, plugin.version)

    def _wanted(self, name: str) -> bool:
        plugins = self._config.plugins
        if plugins.enabled:
            return name in plugins.enabled
        return name not in plugins.disabled

    def discover_extras(self) -> list[str]:
        """Load the entry-point plugins allowed by the user config.

        Entry points whose name is already present (the built-in plugin
        registers itself under ``assemblyscript``) are passed over. A plugin
        that fails to import or initialise is logged and left out.

        Returns:
            Names of the plugins added.
        """
        added: list[str] = []
        for entry_point in _entry_points():
            if entry_point.name in self._plugins or not self._wanted(entry_point.name):
                continue
            try:
                self.add(entry_point.load()())
            except Exception as exc:
                logger.warning("Skipping plugin '%s': %s", entry_point.name, exc)
                continue
            added.append(entry_point.name)
        return added

    def runner(self) -> HookRunner:
        return HookRunner(self.plugins)

    def describe(self) -> list[dict[str, str]]:
        """One ``name``/``version``/``origin``/``description`` row per plugin."""
        return [
            {
                "name": plugin.name,
                "version": plugin.version,
                "origin": "built-in" if plugin.name == self._builtin else "entry point",
                "description": plugin.description,
            }
            for plugin in self._plugins.values()
        ]

    def close(self) -> None:
        """Call every plugin's ``cleanup``; a failing one does not stop the rest."""
        for name, plugin in self._plugins.items():
            try:
                plugin.cleanup()
            except Exception as exc:
                logger.warning("Error cleaning up plugin '%s': %s", name, exc)
        self._plugins.clear()
