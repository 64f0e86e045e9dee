"""Fixtures shared by the ascwasm tests.

``FakeCompiler`` stands in for ``asc`` inside the pipeline and
``fake_asc`` is a real script for subprocess runs. ``RecordingContext``
logs every host call a plugin makes. ``isolated_config`` points the XDG
directories, environment and cwd at ``tmp_path``.
"""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path
from typing import Optional

import pytest

from ascwasm.models import CompilerResult, ResolvedId
from ascwasm.output import OutputFormat, OutputManager, reset_output, set_output


WASM_BYTES = b"\x00asm\x01\x00\x00\x00"

BINDINGS_SOURCE = textwrap.dedent(
    """\
    export async function instantiate(module, imports = {}) {
      const { exports } = await WebAssembly.instantiate(module, imports);
      return exports;
    }
    """
)

SOURCE_MAP_BYTES = b'{"version":3,"sources":["add.ts"],"mappings":""}'


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Each test starts without an installed OutputManager."""
    yield
    reset_output()


class FakeCompiler:
    """In-memory stand-in for ``asc`` that writes the expected scratch files.

    Args:
        error: When set, every call fails with this error and writes nothing.
        stderr: Diagnostic text returned with the result.
        write_bindings: Set to ``False`` to simulate a compiler that reports
            success without producing the bindings file.
    """

    def __init__(
        self,
        wasm: bytes = WASM_BYTES,
        bindings: str = BINDINGS_SOURCE,
        error: Optional[str] = None,
        stderr: str = "",
        write_bindings: bool = True,
    ) -> None:
        self.wasm = wasm
        self.bindings = bindings
        self.error = error
        self.stderr = stderr
        self.write_bindings = write_bindings
        self.calls: list[list[str]] = []

    async def compile(self, args: list[str]) -> CompilerResult:
        self.calls.append(list(args))
        if self.error is not None:
            return CompilerResult(error=self.error, stderr=self.stderr, returncode=1)

        wasm_path = Path(args[args.index("-o") + 1])
        wasm_path.write_bytes(self.wasm)
        if self.write_bindings:
            wasm_path.with_suffix(".js").write_text(self.bindings, encoding="utf-8")
        if "--sourceMap" in args:
            Path(f"{wasm_path}.map").write_bytes(SOURCE_MAP_BYTES)
        return CompilerResult(stderr=self.stderr)


class RecordingContext:
    """A :class:`~ascwasm.plugins.hooks.PluginContext` that records host calls.

    Args:
        resolutions: Map of specifier to absolute path returned by
            :meth:`resolve`. Unknown specifiers resolve to ``None``.
    """

    def __init__(self, resolutions: Optional[dict[str, str]] = None) -> None:
        self.resolutions = dict(resolutions or {})
        self.resolve_calls: list[tuple[str, Optional[str], bool]] = []
        self.watch_files: list[str] = []
        self.emitted: list[tuple[str, str, bytes]] = []

    async def resolve(
        self, source: str, importer: Optional[str] = None, *, skip_self: bool = True
    ) -> Optional[ResolvedId]:
        self.resolve_calls.append((source, importer, skip_self))
        path = self.resolutions.get(source)
        return ResolvedId(id=path) if path is not None else None

    def add_watch_file(self, path: str) -> None:
        self.watch_files.append(path)

    def emit_file(self, type: str, name: str, source: bytes) -> str:
        self.emitted.append((type, name, source))
        return f"ref{len(self.emitted)}"

    def file_url_placeholder(self, reference_id: str) -> str:
        return f"import.meta.ROLLUP_FILE_URL_{reference_id}"


@pytest.fixture
def fake_compiler() -> FakeCompiler:
    """A compiler that succeeds and writes wasm + bindings scratch files."""
    return FakeCompiler()


@pytest.fixture
def compiler_factory():
    """Build a :class:`FakeCompiler` with custom behaviour."""
    return FakeCompiler


@pytest.fixture
def recording_context() -> RecordingContext:
    """A plugin context with no known resolutions."""
    return RecordingContext()


@pytest.fixture
def context_factory():
    """Build a :class:`RecordingContext` with custom resolutions."""
    return RecordingContext


@pytest.fixture
def scratch_root(tmp_path: Path) -> str:
    """A private parent directory for scratch files."""
    root = tmp_path / "scratch"
    root.mkdir()
    return str(root)


@pytest.fixture
def asc_source(tmp_path: Path) -> Path:
    """An AssemblyScript source file at ``<tmp>/proj/src/add.ts``."""
    src = tmp_path / "proj" / "src"
    src.mkdir(parents=True)
    path = src / "add.ts"
    path.write_text("export function add(a: i32, b: i32): i32 { return a + b; }\n")
    return path


_FAKE_ASC_SCRIPT = textwrap.dedent(
    """\
    import sys
    from pathlib import Path

    args = sys.argv[1:]
    source = Path(args[0])
    if "error" in source.read_text():
        sys.stderr.write("ERROR TS1005: ';' expected.\\n")
        sys.exit(1)
    wasm = Path(args[args.index("-o") + 1])
    wasm.write_bytes(b"\\x00asm\\x01\\x00\\x00\\x00")
    wasm.with_suffix(".js").write_text(
        "export async function instantiate(module, imports = {}) {}\\n"
        "// args: " + " ".join(args[2:]) + "\\n"
    )
    if "--sourceMap" in args:
        Path(str(wasm) + ".map").write_text('{"version":3}')
    """
)


@pytest.fixture
def fake_asc(tmp_path: Path) -> list[str]:
    """Command that runs a Python script mimicking the ``asc`` CLI.

    Sources containing the word ``error`` fail with exit code 1.
    """
    script = tmp_path / "fake_asc.py"
    script.write_text(_FAKE_ASC_SCRIPT)
    return [sys.executable, str(script)]


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep config, crash logs and ./ascwasm.json inside *tmp_path* (returned)."""
    monkeypatch.setattr("ascwasm.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    monkeypatch.delenv("ASCWASM_COMPILER", raising=False)
    monkeypatch.delenv("ASCWASM_KEEP_SCRATCH", raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
