"""Plugin system for ascwasm -- discovery, loading, and build hooks.

This package provides the extensibility layer that the build host drives.
Every plugin implements two asynchronous hooks, ``resolve_id`` and
``load``, each returning either a value or ``None`` to decline so the
next plugin (or the host's default behaviour) gets a turn. Third-party
packages can register plugins by declaring an entry point in the
``ascwasm.plugins`` group; the bundled AssemblyScript plugin is
registered there as ``assemblyscript``.

Key classes:

* :class:`Plugin` -- Abstract base class that all plugins must extend.
* :class:`PluginContext` -- The host capabilities handed to each hook.
* :class:`HookRunner` -- Executes hooks across loaded plugins in order.
* :class:`PluginManager` -- The built-in plugin plus entry-point extras.

Example:
    Typical usage from the CLI::

        from ascwasm.plugins import PluginManager

        with PluginManager(global_config, AscPlugin(options)) as manager:
            manager.discover_extras()
            runner = manager.runner()
"""

from ascwasm.plugins.base import Plugin
from ascwasm.plugins.hooks import HookRunner, PluginContext
from ascwasm.plugins.manager import PluginManager

__all__ = ["Plugin", "PluginContext", "HookRunner", "PluginManager"]
