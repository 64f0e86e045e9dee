"""The ``assemblyscript`` plugin.

Wires the three stages together behind the two build hooks:

* ``resolve_id`` -- :func:`~ascwasm.resolver.resolve_specifier` turns
  ``asc:./add.ts`` into ``asc:/abs/path/add.ts``.
* ``load`` -- :func:`~ascwasm.pipeline.compile_module` compiles the file
  and emits ``add.wasm``; :func:`~ascwasm.synthesizer.synthesize_module`
  builds the module text returned to the host.

Usage::

    plugin = AscPlugin({"compiler_options": {"optimizeLevel": 3}})
    build = BuildContext([plugin])
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import ValidationError

from ascwasm.compiler import Compiler, SubprocessCompiler
from ascwasm.exceptions import ConfigError
from ascwasm.models import GlobalConfig, PluginOptions
from ascwasm.pipeline import compile_module
from ascwasm.plugins.base import Plugin
from ascwasm.plugins.hooks import PluginContext
from ascwasm.resolver import is_marked, resolve_specifier
from ascwasm.synthesizer import synthesize_module


class AscPlugin(Plugin):
    """Compiles marked AssemblyScript imports through ``asc``.

    Args:
        options: Plugin options, either a :class:`~ascwasm.models.PluginOptions`
            or a mapping validated into one. When omitted, the options from
            the global configuration are adopted in :meth:`on_init`.
        compiler: Compiler capability. Defaults to a
            :class:`~ascwasm.compiler.SubprocessCompiler` running
            ``options.compiler_command``.
        scratch_root: Parent directory for scratch files (defaults to the
            system temp dir).

    Raises:
        ConfigError: If *options* fail validation.
    """

    def __init__(
        self,
        options: Optional[Union[PluginOptions, dict[str, Any]]] = None,
        compiler: Optional[Compiler] = None,
        scratch_root: Optional[str] = None,
    ) -> None:
        self._explicit_options = options is not None
        self._options = _coerce_options(options)
        self._compiler = compiler
        self._scratch_root = scratch_root

    @property
    def name(self) -> str:
        return "assemblyscript"

    @property
    def description(self) -> str:
        return "Compile asc: imports to WebAssembly with the AssemblyScript compiler"

    @property
    def options(self) -> PluginOptions:
        return self._options

    @property
    def compiler(self) -> Compiler:
        if self._compiler is None:
            self._compiler = SubprocessCompiler(self._options.compiler_command)
        return self._compiler

    def on_init(self, config: GlobalConfig) -> None:
        if not self._explicit_options:
            self._options = config.plugin

    async def resolve_id(
        self, specifier: str, importer: Optional[str], ctx: PluginContext
    ) -> Optional[str]:
        return await resolve_specifier(specifier, importer, ctx, self._options.matcher)

    async def load(self, id: str, ctx: PluginContext) -> Optional[str]:
        if not is_marked(id):
            return None

        artifacts = await compile_module(
            id, ctx, self._options, self.compiler, scratch_root=self._scratch_root
        )
        placeholder = ctx.file_url_placeholder(artifacts.wasm_reference_id)
        return synthesize_module(artifacts.bindings, placeholder)


def _coerce_options(
    options: Optional[Union[PluginOptions, dict[str, Any]]],
) -> PluginOptions:
    if isinstance(options, PluginOptions):
        return options
    try:
        return PluginOptions.model_validate(options or {})
    except ValidationError as exc:
        raise ConfigError(f"Invalid plugin options: {exc}") from exc
