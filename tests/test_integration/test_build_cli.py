"""Integration tests for the ascwasm CLI.

Runs the real Typer application end to end. ``asc`` is replaced by a small
Python script (the ``fake_asc`` fixture) selected through the
``ASCWASM_COMPILER`` environment variable, so the subprocess compiler,
option resolution, build host, and output layers are all exercised.
"""

from __future__ import annotations

import json
import logging
import shlex
from pathlib import Path
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from ascwasm import __version__
from ascwasm.app import app
from ascwasm.config import ENV_COMPILER, load_global_config, resolve_options
from ascwasm.exit_codes import (
    EXIT_COMPILATION_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_RESOLUTION_FAILURE,
)
from ascwasm.plugins.asc import AscPlugin
from ascwasm.plugins.base import Plugin


@pytest.fixture(autouse=True)
def _restore_logging():
    """The root callback installs a handler bound to the runner's stderr."""
    logger = logging.getLogger("ascwasm")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    logger.handlers = handlers
    logger.setLevel(level)


@pytest.fixture
def project(isolated_config: Path, fake_asc: list[str], monkeypatch: pytest.MonkeyPatch) -> Path:
    """A project directory (the cwd) whose compiler is the fake ``asc``."""
    monkeypatch.setenv(ENV_COMPILER, shlex.join(fake_asc))
    src = isolated_config / "src"
    src.mkdir()
    (src / "add.ts").write_text("export function add(a: i32, b: i32): i32 { return a + b; }\n")
    (src / "bad.ts").write_text("export function add(a: i32 b: i32) error\n")
    (src / "util.js").write_text("export const util = 1;\n")
    return isolated_config


def _entry_point(name: str, cls: type) -> SimpleNamespace:
    return SimpleNamespace(name=name, load=lambda: cls)


class TestVersion:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"ascwasm {__version__}" in result.output


class TestBuild:
    def test_builds_module_and_assets(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(
            app,
            ["--plain", "build", "asc:./src/add.ts", "-O", "optimizeLevel=3", "--source-map"],
        )

        assert result.exit_code == 0, result.output
        code = (project / "dist" / "add.mjs").read_text()
        assert "// args: " in code
        assert "--bindings=raw --optimizeLevel=3 --sourceMap" in code
        assert "ROLLUP_FILE_URL" not in code
        assert 'const WASM_URL = new URL("assets/add-' in code
        assert "export default async function instantiateModule(imports = {})" in code

        assets = [p.name for p in (project / "dist" / "assets").iterdir()]
        assert len(assets) == 2
        assert all(name.startswith("add-") for name in assets)
        assert sum(name.endswith(".wasm") for name in assets) == 1
        assert sum(name.endswith(".wasm.map") for name in assets) == 1
        assert "add.mjs" in result.output

    def test_option_values_keep_their_spelling(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(
            app, ["build", "asc:./src/add.ts", "-O", "initialMemory=007", "-O", "lowMemoryLimit=1e3"]
        )

        assert result.exit_code == 0, result.output
        code = (project / "dist" / "add.mjs").read_text()
        assert "--initialMemory=007 --lowMemoryLimit=1e3" in code

    def test_out_dir_and_importer(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(
            app,
            [
                "--quiet",
                "build",
                "asc:./add.ts",
                "--importer",
                "src/main.js",
                "--out-dir",
                "web/build",
            ],
        )

        assert result.exit_code == 0, result.output
        assert (project / "web" / "build" / "add.mjs").is_file()
        assets = list((project / "web" / "build" / "assets").iterdir())
        assert [p.suffix for p in assets] == [".wasm"]

    def test_unmarked_entry_is_copied(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(app, ["build", "./src/util.js"])

        assert result.exit_code == 0, result.output
        assert (project / "dist" / "util.mjs").read_text() == "export const util = 1;\n"

    def test_project_config_is_applied(self, cli_runner: CliRunner, project: Path) -> None:
        (project / "ascwasm.json").write_text(json.dumps({"compiler_options": {"debug": True}}))

        result = cli_runner.invoke(app, ["build", "asc:./src/add.ts"])

        assert result.exit_code == 0, result.output
        assert "--bindings=raw --debug" in (project / "dist" / "add.mjs").read_text()

    def test_compile_error_exit_code(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(app, ["--plain", "build", "asc:./src/bad.ts"])

        assert result.exit_code == EXIT_COMPILATION_FAILURE
        assert "ASC compilation failed" in result.output
        assert "exited with code 1" in result.output
        assert "ERROR TS1005" in result.output
        assert not (project / "dist").exists()

    def test_unresolvable_entry(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(app, ["build", "asc:./src/missing.ts"])

        assert result.exit_code == EXIT_RESOLUTION_FAILURE
        assert "Could not resolve entry" in result.output

    def test_invalid_matcher(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(app, ["build", "asc:./src/add.ts", "--matcher", "^asc:.+$"])

        assert result.exit_code == 1
        assert "capture group" in result.output

    def test_conflicting_module_names(self, cli_runner: CliRunner, project: Path) -> None:
        other = project / "lib"
        other.mkdir()
        (other / "add.ts").write_text("export function add(): i32 { return 0; }\n")

        result = cli_runner.invoke(app, ["build", "asc:./src/add.ts", "asc:./lib/add.ts"])

        assert result.exit_code == EXIT_INVALID_USAGE
        assert "both produce add.mjs" in result.output


class TestConfigCommands:
    def test_init_writes_project_config(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "init", "-O", "optimizeLevel=3", "-O", "debug"])

        assert result.exit_code == 0, result.output
        data = json.loads((isolated_config / "ascwasm.json").read_text())
        assert data == {"compiler_options": {"optimizeLevel": "3", "debug": True}}

    def test_init_leaves_global_settings_in_charge(
        self, cli_runner: CliRunner, isolated_config: Path
    ) -> None:
        cli_runner.invoke(app, ["config", "set", "plugin.compiler_command", "node ./asc"])
        cli_runner.invoke(app, ["config", "init", "-O", "optimizeLevel=3"])

        _, options = resolve_options()

        assert options.compiler_command == ["node", "./asc"]
        assert options.compiler_options == {"optimizeLevel": "3"}

    def test_init_refuses_to_overwrite(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        (isolated_config / "ascwasm.json").write_text("{}")

        result = cli_runner.invoke(app, ["config", "init"])
        assert result.exit_code == 1
        assert "already exists" in result.output

        result = cli_runner.invoke(app, ["--force", "config", "init", "--matcher", "^wasm:(.+)$"])
        assert result.exit_code == 0, result.output
        assert json.loads((isolated_config / "ascwasm.json").read_text())["import_matcher"] == (
            "^wasm:(.+)$"
        )

    def test_show_effective(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        (isolated_config / "ascwasm.json").write_text(
            json.dumps({"compiler_options": {"optimizeLevel": 2}})
        )

        result = cli_runner.invoke(app, ["--json", "config", "show", "--effective"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["compiler_options"] == {"optimizeLevel": 2}

    def test_set_and_unset_compiler_option(
        self, cli_runner: CliRunner, isolated_config: Path
    ) -> None:
        result = cli_runner.invoke(app, ["config", "set", "plugin.compiler_options.runtime", "stub"])
        assert result.exit_code == 0, result.output
        assert load_global_config().plugin.compiler_options == {"runtime": "stub"}

        result = cli_runner.invoke(app, ["config", "unset", "runtime"])
        assert result.exit_code == 0, result.output
        assert load_global_config().plugin.compiler_options == {}

    def test_set_typed_fields(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "plugin.keep_scratch", "true"])
        cli_runner.invoke(app, ["config", "set", "plugin.compiler_command", "node ./asc.js"])

        plugin = load_global_config().plugin
        assert plugin.keep_scratch is True
        assert plugin.compiler_command == ["node", "./asc.js"]

    def test_configured_output_format(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "output.format", "json"])

        result = cli_runner.invoke(app, ["config", "show", "--effective"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["keep_scratch"] is False

    def test_set_unknown_key(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "plugin.nope", "1"])
        assert result.exit_code == 2
        assert "Unknown config key" in result.output

    def test_set_invalid_matcher(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "plugin.import_matcher", "^asc:.+$"])
        assert result.exit_code == 2
        assert "Validation error" in result.output

    def test_reset(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "plugin.keep_scratch", "true"])

        result = cli_runner.invoke(app, ["--force", "config", "reset"])

        assert result.exit_code == 0, result.output
        assert load_global_config().plugin.keep_scratch is False


class TestPluginsCommand:
    def test_builtin_listed_without_extras(
        self, cli_runner: CliRunner, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("ascwasm.plugins.manager._entry_points", lambda: [])

        result = cli_runner.invoke(app, ["--plain", "plugins", "list"])

        assert result.exit_code == 0, result.output
        assert "assemblyscript\t0.1.0\tbuilt-in\t" in result.output

    def test_extras_follow_builtin(
        self, cli_runner: CliRunner, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        class Extra(Plugin):
            @property
            def name(self) -> str:
                return "extra"

        monkeypatch.setattr(
            "ascwasm.plugins.manager._entry_points",
            lambda: [_entry_point("assemblyscript", AscPlugin), _entry_point("extra", Extra)],
        )

        result = cli_runner.invoke(app, ["--plain", "plugins", "list"])

        assert result.exit_code == 0, result.output
        names = [line.split("\t")[0] for line in result.output.splitlines() if "\t" in line]
        assert names == ["name", "assemblyscript", "extra"]
        assert "extra\t0.1.0\tentry point\t" in result.output
