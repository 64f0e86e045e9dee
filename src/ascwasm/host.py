"""Reference build host implementing the plugin context.

:class:`BuildContext` is a small, single-pass host that drives plugins the
way a module bundler does. It does not walk a module graph; it resolves and
loads the entries it is asked for:

* **Resolution** -- plugins' ``resolve_id`` hooks run first (first answer
  wins); if all decline, relative (``./``, ``../``) and absolute paths are
  looked up on disk, trying each of :data:`DEFAULT_EXTENSIONS`. Bare
  package names are left unresolved.
* **Loading** -- plugins' ``load`` hooks run first, falling back to reading
  the file. Each id is loaded at most once per build; concurrent requests
  for the same id share one task.
* **Assets** -- :meth:`BuildContext.emit_file` registers binary outputs
  and returns a reference id. Module text refers to an asset through
  ``import.meta.ROLLUP_FILE_URL_<id>``; :meth:`BuildContext.finalize`
  rewrites those placeholders to ``new URL('assets/<name>-<hash><ext>',
  import.meta.url).href`` once final names are known.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import re
from pathlib import Path
from typing import Iterable, Optional, Union

from ascwasm.exceptions import PluginError, ResolutionError
from ascwasm.models import EmittedAsset, ResolvedId
from ascwasm.plugins.base import Plugin
from ascwasm.plugins.hooks import HookRunner, PluginContext

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = ("", ".ts", ".mjs", ".js")
"""Suffixes tried, in order, when resolving a path on disk."""

ASSETS_DIR = "assets"

FILE_URL_PREFIX = "import.meta.ROLLUP_FILE_URL_"

_PLACEHOLDER_RE = re.compile(re.escape(FILE_URL_PREFIX) + r"(\w+)")


class _BoundContext:
    """The :class:`PluginContext` handed to one plugin."""

    def __init__(
        self, build: BuildContext, plugin: Plugin, skip: tuple[Plugin, ...] = ()
    ) -> None:
        self._build = build
        self._plugin = plugin
        # Plugins already skipped by the resolution this context was created in.
        self._skip = skip

    async def resolve(
        self, source: str, importer: Optional[str] = None, *, skip_self: bool = True
    ) -> Optional[ResolvedId]:
        skip = (*self._skip, self._plugin) if skip_self else self._skip
        return await self._build.resolve(source, importer, skip=skip)

    def add_watch_file(self, path: str) -> None:
        self._build.add_watch_file(path)

    def emit_file(self, type: str, name: str, source: bytes) -> str:
        return self._build.emit_file(type, name, source)

    def file_url_placeholder(self, reference_id: str) -> str:
        return self._build.file_url_placeholder(reference_id)


class BuildContext:
    """State of one build pass.

    Args:
        plugins: Plugins in hook order, or a ready
            :class:`~ascwasm.plugins.hooks.HookRunner`.
        extensions: Suffixes tried when resolving paths on disk.
        cwd: Directory that importer-less relative specifiers resolve
            against. Defaults to the current working directory.

    Example::

        build = BuildContext([AscPlugin()])
        module_id, code = await build.build_entry("asc:./add.ts")
        build.write("dist")
    """

    def __init__(
        self,
        plugins: Union[HookRunner, Iterable[Plugin]],
        extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
        cwd: Optional[Union[str, Path]] = None,
    ) -> None:
        self._runner = plugins if isinstance(plugins, HookRunner) else HookRunner(list(plugins))
        self._extensions = extensions
        self._cwd = Path(cwd) if cwd is not None else Path.cwd()
        self._watch_files: set[str] = set()
        self._assets: dict[str, EmittedAsset] = {}
        self._loads: dict[str, asyncio.Future[str]] = {}

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _context_for(self, plugin: Plugin) -> PluginContext:
        return _BoundContext(self, plugin)

    async def resolve(
        self,
        source: str,
        importer: Optional[str] = None,
        skip: Iterable[Plugin] = (),
    ) -> Optional[ResolvedId]:
        """Resolve *source* through plugins, then on disk.

        Args:
            source: The import specifier.
            importer: Absolute path of the importing module, or ``None``.
            skip: Plugins whose ``resolve_id`` must not be called.

        Returns:
            The resolved id, or ``None`` if nothing could resolve it.
        """
        skip = tuple(skip)
        plugin_id = await self._runner.run_resolve_id(
            source, importer, lambda plugin: _BoundContext(self, plugin, skip), skip=skip
        )
        if plugin_id is not None:
            return ResolvedId(id=plugin_id)

        path = self._resolve_on_disk(source, importer)
        if path is None:
            return None
        return ResolvedId(id=path)

    async def resolve_id(self, specifier: str, importer: Optional[str] = None) -> Optional[str]:
        """Resolve *specifier* with every plugin eligible; return the id only."""
        resolved = await self.resolve(specifier, importer)
        return resolved.id if resolved is not None else None

    def _resolve_on_disk(self, source: str, importer: Optional[str]) -> Optional[str]:
        if source.startswith(("./", "../")) or source in (".", ".."):
            base = Path(importer).parent if importer else self._cwd
            candidate = base / source
        elif os.path.isabs(source):
            candidate = Path(source)
        else:
            return None

        for extension in self._extensions:
            path = Path(f"{candidate}{extension}")
            if path.is_file():
                return str(path.resolve())
        return None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, module_id: str) -> str:
        """Return the source text of *module_id*, loading it at most once.

        Raises:
            ResolutionError: If no plugin loads the id and it is not a
                readable file.
        """
        task = self._loads.get(module_id)
        if task is None:
            task = asyncio.ensure_future(self._load(module_id))
            self._loads[module_id] = task
        return await task

    async def _load(self, module_id: str) -> str:
        code = await self._runner.run_load(module_id, self._context_for)
        if code is not None:
            return code
        try:
            return await asyncio.to_thread(Path(module_id).read_text, encoding="utf-8")
        except OSError as exc:
            raise ResolutionError(f"Could not load '{module_id}': {exc}") from exc

    async def build_entry(self, specifier: str, importer: Optional[str] = None) -> tuple[str, str]:
        """Resolve and load one entry, returning ``(module_id, finalized_code)``.

        Raises:
            ResolutionError: If the specifier cannot be resolved.
        """
        module_id = await self.resolve_id(specifier, importer)
        if module_id is None:
            raise ResolutionError(f"Could not resolve entry '{specifier}'")
        code = await self.load(module_id)
        return module_id, self.finalize(code)

    # ------------------------------------------------------------------
    # Watch files
    # ------------------------------------------------------------------

    def add_watch_file(self, path: str) -> None:
        self._watch_files.add(path)

    @property
    def watch_files(self) -> list[str]:
        return sorted(self._watch_files)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def emit_file(self, type: str, name: str, source: bytes) -> str:
        """Register an asset and return its reference id.

        Emitting the same name and bytes twice returns the same id.

        Raises:
            PluginError: For any *type* other than ``"asset"``.
        """
        if type != "asset":
            raise PluginError(f"Unsupported emitted file type: {type!r}")

        digest = hashlib.sha256(name.encode("utf-8") + b"\0" + source).hexdigest()
        length = 8
        reference_id = digest[:length]
        while reference_id in self._assets:
            existing = self._assets[reference_id]
            if existing.name == name and existing.source == source:
                return reference_id
            length += 1
            reference_id = digest[:length]

        self._assets[reference_id] = EmittedAsset(
            reference_id=reference_id, name=name, source=source
        )
        logger.debug("Emitted asset %s as %s", name, reference_id)
        return reference_id

    def file_url_placeholder(self, reference_id: str) -> str:
        self._get_asset(reference_id)
        return f"{FILE_URL_PREFIX}{reference_id}"

    def get_file_name(self, reference_id: str) -> str:
        """Return the final output path of an emitted asset."""
        asset = self._get_asset(reference_id)
        if asset.file_name is None:
            asset.file_name = _asset_file_name(asset.name, asset.source)
        return asset.file_name

    @property
    def assets(self) -> list[EmittedAsset]:
        return list(self._assets.values())

    def _get_asset(self, reference_id: str) -> EmittedAsset:
        try:
            return self._assets[reference_id]
        except KeyError:
            raise PluginError(f"Unknown asset reference '{reference_id}'") from None

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def finalize(self, code: str) -> str:
        """Replace asset URL placeholders in *code* with relative URLs."""

        def _replace(match: re.Match[str]) -> str:
            file_name = self.get_file_name(match.group(1))
            return f"new URL({json.dumps(file_name)}, import.meta.url).href"

        return _PLACEHOLDER_RE.sub(_replace, code)

    def write(self, out_dir: Union[str, Path]) -> list[Path]:
        """Write every emitted asset below *out_dir*.

        Returns:
            The paths written, in emission order.
        """
        out = Path(out_dir)
        written: list[Path] = []
        for asset in self._assets.values():
            target = out / self.get_file_name(asset.reference_id)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(asset.source)
            written.append(target)
        return written


def _asset_file_name(name: str, source: bytes) -> str:
    # The hash goes before the first dot so "add.wasm.map" stays "add-<hash>.wasm.map".
    base = os.path.basename(name)
    stem, dot, rest = base.partition(".")
    if not stem:
        stem, dot, rest = base, "", ""
    extension = dot + rest
    content_hash = hashlib.sha256(source).hexdigest()[:8]
    return f"{ASSETS_DIR}/{stem}-{content_hash}{extension}"
