"""The :class:`Plugin` base class.

Only :attr:`Plugin.name` is required. Both build hooks decline by default
and the lifecycle methods do nothing, so a plugin overrides just the parts
it cares about::

    class VirtualPlugin(Plugin):
        @property
        def name(self) -> str:
            return "virtual"

        async def resolve_id(self, specifier, importer, ctx):
            return specifier if specifier == "virtual:hello" else None

        async def load(self, id, ctx):
            return "export default 'hello';" if id == "virtual:hello" else None
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from ascwasm.models import GlobalConfig

if TYPE_CHECKING:
    from ascwasm.plugins.hooks import PluginContext


class Plugin(ABC):
    """A participant in the build.

    :class:`~ascwasm.plugins.manager.PluginManager` calls :meth:`on_init`
    once, the host then calls the hooks any number of times, and
    :meth:`cleanup` runs when the manager closes. Extras published under
    the ``ascwasm.plugins`` entry-point group are built with no arguments.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier, also matched against ``plugins.enabled``/``disabled``."""
        ...

    @property
    def version(self) -> str:
        return "0.1.0"

    @property
    def description(self) -> str:
        return ""

    def on_init(self, config: GlobalConfig) -> None:
        """Receive the user config before any hook runs."""

    async def resolve_id(
        self, specifier: str, importer: Optional[str], ctx: PluginContext
    ) -> Optional[str]:
        """Map *specifier* to a module id, or return ``None`` to let others try.

        Args:
            specifier: The import string as written.
            importer: Absolute path of the importing module; ``None`` for entries.
            ctx: Host capabilities bound to this plugin.
        """
        return None

    async def load(self, id: str, ctx: PluginContext) -> Optional[str]:
        """Return JavaScript source for *id*, or ``None`` to let others try."""
        return None

    def cleanup(self) -> None:
        """Release anything acquired since :meth:`on_init`."""
