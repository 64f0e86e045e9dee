"""Canonical Pydantic models shared across all ascwasm modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config
directory or the project's ``ascwasm.json``:
    :class:`PluginOptions`, :class:`OutputConfig`, :class:`PluginsConfig`,
    and :class:`GlobalConfig`.

**Build models** -- produced while a marked import travels through the
resolver, compilation pipeline, and host:
    :class:`ResolvedId`, :class:`CompilerResult`,
    :class:`CompilationArtifacts`, and :class:`EmittedAsset`.

All models use Pydantic v2.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ASC_FILE_MARKER = "asc:"
"""Prefix that tags a resolved id as belonging to the AssemblyScript plugin."""

ASC_IMPORT_MATCHER = r"^asc:(.+)$"
"""Default pattern recognising marked import specifiers."""

DEFAULT_COMPILER_COMMAND = ["npx", "--no-install", "asc"]
"""Command prefix used to launch the AssemblyScript compiler."""

CompilerOptionValue = Union[bool, int, float, str]


# --- Configuration ---


class PluginOptions(BaseModel):
    """Options accepted by :class:`~ascwasm.plugins.asc.AscPlugin`.

    ``compiler_options`` is forwarded to ``asc`` as ``--name`` /
    ``--name=value`` flags. Only two keys are interpreted locally:
    ``bindings`` is always overridden with ``raw``, and a truthy
    ``sourceMap`` makes the pipeline emit the ``.wasm.map`` asset too.

    Example::

        PluginOptions(
            compiler_options={"optimizeLevel": 3, "exportRuntime": True},
            import_matcher=r"^wasm:(.+)$",
        )
    """

    model_config = ConfigDict(extra="forbid")

    compiler_options: dict[str, CompilerOptionValue] = Field(
        default_factory=dict,
        description="Options passed to asc as --name or --name=value flags",
    )
    import_matcher: str = Field(
        default=ASC_IMPORT_MATCHER,
        description="Regular expression with exactly one capture group for the inner path",
    )
    compiler_command: list[str] = Field(
        default_factory=lambda: list(DEFAULT_COMPILER_COMMAND),
        description="Executable and leading arguments used to launch asc",
    )
    keep_scratch: bool = Field(
        default=False,
        description="Keep compiler scratch files after the artifacts are read",
    )

    @field_validator("import_matcher", mode="before")
    @classmethod
    def _pattern_source(cls, value: Any) -> Any:
        if isinstance(value, re.Pattern):
            return value.pattern
        return value

    @field_validator("import_matcher")
    @classmethod
    def _one_capture_group(cls, value: str) -> str:
        try:
            compiled = re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid import matcher {value!r}: {exc}") from exc
        if compiled.groups != 1:
            raise ValueError(
                f"import matcher {value!r} must declare exactly one capture group, "
                f"found {compiled.groups}"
            )
        return value

    @field_validator("compiler_command")
    @classmethod
    def _non_empty_command(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("compiler_command must not be empty")
        return value

    @property
    def matcher(self) -> re.Pattern[str]:
        """The compiled :attr:`import_matcher`."""
        return re.compile(self.import_matcher)

    @property
    def source_map(self) -> bool:
        """Whether a ``.wasm.map`` asset should be emitted alongside the binary."""
        return bool(self.compiler_options.get("sourceMap"))


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class PluginsConfig(BaseModel):
    """Explicit plugin allow/deny lists stored in :class:`GlobalConfig`."""

    enabled: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/ascwasm/config.json``.

    Loaded and saved by :func:`~ascwasm.config.load_global_config` and
    :func:`~ascwasm.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~ascwasm.config.resolve_options`
    for the full precedence chain.
    """

    plugin: PluginOptions = Field(default_factory=PluginOptions)
    output: OutputConfig = Field(default_factory=OutputConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)


# --- Build Models ---


class ResolvedId(BaseModel):
    """Result of resolving an import specifier against its importer."""

    id: str = Field(description="Absolute file path or plugin-tagged id")
    external: bool = False


class CompilerResult(BaseModel):
    """Outcome of a single compiler invocation.

    ``error`` is ``None`` when the compiler succeeded; otherwise it holds the
    compiler's own error message and ``stderr`` carries the diagnostics.
    """

    error: Optional[str] = None
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class CompilationArtifacts(BaseModel):
    """Everything the pipeline produced for one source file.

    ``wasm_reference_id`` is the asset reference returned by the host when
    the binary was emitted; ``map_reference_id`` is only set when a source
    map was requested.
    """

    source_path: str
    base_name: str
    binary: bytes
    bindings: str
    source_map: Optional[bytes] = None
    wasm_reference_id: str
    map_reference_id: Optional[str] = None


class EmittedAsset(BaseModel):
    """A build output registered through the host's ``emit_file`` capability."""

    reference_id: str
    name: str
    source: bytes
    file_name: Optional[str] = Field(
        default=None, description="Final output path, assigned at finalization"
    )
