"""Compilation pipeline -- from a tagged source path to emitted assets.

:func:`compile_module` is the heart of the plugin's ``load`` hook:

1. Strip the ``asc:`` tag and derive the base name (file name minus its
   last extension).
2. Pick a scratch directory under the system temp dir, keyed by a hash of
   the absolute source path so equally named files in different folders
   never share scratch files.
3. Build the ``asc`` argument list (``bindings`` forced to ``raw``) and run
   the compiler.
4. Read ``<base>.wasm``, ``<base>.js`` and, when ``sourceMap`` is set,
   ``<base>.wasm.map`` back into memory.
5. Emit the binary (and map) through the host. Emission happens only after
   every read succeeded, so a failed file emits nothing.

The scratch directory is removed afterwards unless
:attr:`~ascwasm.models.PluginOptions.keep_scratch` is set.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ascwasm.compiler import Compiler, build_compiler_args
from ascwasm.exceptions import CompilationError, ScratchIOError
from ascwasm.models import CompilationArtifacts, PluginOptions
from ascwasm.plugins.hooks import PluginContext
from ascwasm.resolver import strip_marker

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "ascwasm-"

_EXTENSION_RE = re.compile(r"\.[^.]+$")


@dataclass(frozen=True)
class ScratchPaths:
    """Files the compiler writes for one source file."""

    directory: Path
    wasm: Path
    bindings: Path
    source_map: Path


def base_name(source_path: str) -> str:
    """Return the file name of *source_path* without its last extension."""
    return _EXTENSION_RE.sub("", os.path.basename(source_path))


def scratch_paths(source_path: str, root: Optional[str] = None) -> ScratchPaths:
    """Compute the scratch files for *source_path*.

    Args:
        source_path: Path of the source file being compiled.
        root: Parent directory for scratch directories. Defaults to
            :func:`tempfile.gettempdir`.
    """
    token = hashlib.sha256(os.path.abspath(source_path).encode("utf-8")).hexdigest()[:16]
    directory = Path(root or tempfile.gettempdir()) / f"{SCRATCH_PREFIX}{token}"
    name = base_name(source_path)
    wasm = directory / f"{name}.wasm"
    return ScratchPaths(
        directory=directory,
        wasm=wasm,
        bindings=directory / f"{name}.js",
        source_map=directory / f"{name}.wasm.map",
    )


async def _read_scratch(path: Path) -> bytes:
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as exc:
        raise ScratchIOError(
            f"Cannot read compiler output {path}: {exc}", path=str(path)
        ) from exc


async def compile_module(
    module_id: str,
    ctx: PluginContext,
    options: PluginOptions,
    compiler: Compiler,
    scratch_root: Optional[str] = None,
) -> CompilationArtifacts:
    """Compile one tagged source file and emit its assets.

    Args:
        module_id: ``asc:``-tagged absolute path produced by the resolver.
        ctx: Host capabilities used to emit the assets.
        options: Effective plugin options.
        compiler: The compiler capability to invoke.
        scratch_root: Override for the scratch parent directory.

    Returns:
        The artifacts read back from the compiler together with the asset
        reference ids returned by the host.

    Raises:
        CompilationError: If the compiler reports an error.
        ScratchIOError: If an expected artifact cannot be read.
    """
    source_path = strip_marker(module_id)
    name = base_name(source_path)
    paths = scratch_paths(source_path, scratch_root)

    try:
        paths.directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ScratchIOError(
            f"Cannot create scratch directory {paths.directory}: {exc}",
            path=str(paths.directory),
        ) from exc

    args = build_compiler_args(source_path, str(paths.wasm), options.compiler_options)
    logger.debug("Compiling %s in %s", source_path, paths.directory)

    try:
        result = await compiler.compile(args)
        if not result.ok:
            raise CompilationError(result.error or "unknown error", result.stderr)

        binary = await _read_scratch(paths.wasm)
        raw_bindings = await _read_scratch(paths.bindings)
        source_map = await _read_scratch(paths.source_map) if options.source_map else None
    finally:
        if options.keep_scratch:
            logger.debug("Keeping scratch directory %s", paths.directory)
        else:
            shutil.rmtree(paths.directory, ignore_errors=True)

    try:
        bindings = raw_bindings.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ScratchIOError(
            f"Compiler bindings {paths.bindings} are not valid UTF-8: {exc}",
            path=str(paths.bindings),
        ) from exc

    wasm_reference_id = ctx.emit_file("asset", f"{name}.wasm", binary)
    map_reference_id: Optional[str] = None
    if source_map is not None:
        map_reference_id = ctx.emit_file("asset", f"{name}.wasm.map", source_map)

    logger.info("Compiled %s (%d bytes of wasm)", source_path, len(binary))

    return CompilationArtifacts(
        source_path=source_path,
        base_name=name,
        binary=binary,
        bindings=bindings,
        source_map=source_map,
        wasm_reference_id=wasm_reference_id,
        map_reference_id=map_reference_id,
    )
