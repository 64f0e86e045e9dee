"""Host capability protocol and the runner that chains build hooks.

This module provides two core components:

* :class:`PluginContext` -- the capabilities a host hands to every hook
  call: delegated resolution, watch-file registration, asset emission, and
  the URL placeholder for an emitted asset.
* :class:`HookRunner` -- Executes ``resolve_id`` and ``load`` hooks across
  all loaded plugins in registration order.

Both hooks follow a first-answer-wins pattern: plugins are asked in turn
and the first one that returns something other than ``None`` settles the
result. A plugin that returns anything other than a string or ``None`` is
reported as a :class:`~ascwasm.exceptions.PluginError`.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Protocol

from ascwasm.exceptions import PluginError
from ascwasm.models import ResolvedId
from ascwasm.plugins.base import Plugin


class PluginContext(Protocol):
    """Capabilities a build host exposes to plugin hooks.

    A context is bound to the plugin it is handed to, so that
    :meth:`resolve` can skip that plugin when ``skip_self`` is set.
    """

    async def resolve(
        self, source: str, importer: Optional[str] = None, *, skip_self: bool = True
    ) -> Optional[ResolvedId]:
        """Resolve *source* the way the host would for an ordinary import."""
        ...

    def add_watch_file(self, path: str) -> None:
        """Register *path* as a build input to watch for changes."""
        ...

    def emit_file(self, type: str, name: str, source: bytes) -> str:
        """Register a build output and return its reference id."""
        ...

    def file_url_placeholder(self, reference_id: str) -> str:
        """Return the expression the host replaces with the asset's final URL."""
        ...


ContextFactory = Callable[[Plugin], PluginContext]


class HookRunner:
    """Executes plugin hooks across all loaded plugins in registration order.

    :meth:`~ascwasm.plugins.manager.PluginManager.runner` builds one from
    the plugins present at that moment; later additions need a new runner.
    """

    def __init__(self, plugins: list[Plugin]) -> None:
        """Initialize the hook runner with a list of plugins.

        Args:
            plugins: Ordered list of plugin instances. Hooks are executed
                in the order plugins appear in this list.
        """
        self._plugins = list(plugins)

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins)

    async def run_resolve_id(
        self,
        specifier: str,
        importer: Optional[str],
        context_for: ContextFactory,
        skip: Iterable[Plugin] = (),
    ) -> Optional[str]:
        """Ask each plugin to resolve *specifier* until one answers.

        Args:
            specifier: The raw import string.
            importer: Absolute path of the importing module, or ``None``.
            context_for: Builds the :class:`PluginContext` bound to a plugin.
            skip: Plugins that must not be asked (``skip_self`` resolution).

        Returns:
            The first non-``None`` id, or ``None`` if every plugin declined.
        """
        skipped = set(map(id, skip))
        for plugin in self._plugins:
            if id(plugin) in skipped:
                continue
            result = await plugin.resolve_id(specifier, importer, context_for(plugin))
            if result is not None:
                _check_result(plugin, "resolve_id", result)
                return result
        return None

    async def run_load(self, module_id: str, context_for: ContextFactory) -> Optional[str]:
        """Ask each plugin to load *module_id* until one returns source text.

        Exceptions raised by a plugin propagate unchanged to the caller.

        Returns:
            The first non-``None`` module text, or ``None`` if every plugin
            declined.
        """
        for plugin in self._plugins:
            result = await plugin.load(module_id, context_for(plugin))
            if result is not None:
                _check_result(plugin, "load", result)
                return result
        return None


def _check_result(plugin: Plugin, hook: str, result: object) -> None:
    if not isinstance(result, str):
        raise PluginError(
            f"Plugin '{plugin.name}' returned {type(result).__name__} from {hook}; "
            "expected a string or None"
        )
