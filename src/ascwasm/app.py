"""The ``ascwasm`` command line.

:data:`app` is the Typer root with the ``build``, ``config`` and
``plugins`` commands; :func:`main` is the console-script entry point.
"""

from __future__ import annotations

import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import typer

from ascwasm import __version__
from ascwasm.commands.build import build_command
from ascwasm.commands.config import config_app
from ascwasm.commands.plugins import plugins_app
from ascwasm.exit_codes import EXIT_GENERIC_FAILURE

if TYPE_CHECKING:
    from ascwasm.output import OutputFormat

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="ascwasm",
    help="Compile asc: imports to WebAssembly modules.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("build")(build_command)
app.add_typer(config_app, name="config", help="Configuration management.")
app.add_typer(plugins_app, name="plugins", help="Plugin discovery.")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"ascwasm {__version__}")
        raise typer.Exit()


def _pick_format(json_output: bool, plain_output: bool) -> OutputFormat:
    """Flags win; otherwise ``output.format`` from the user config, else ``AUTO``.

    A broken config file is left for the command that reads it to report.
    """
    from ascwasm.config import load_global_config
    from ascwasm.exceptions import ConfigError
    from ascwasm.output import OutputFormat

    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    try:
        return OutputFormat(load_global_config().output.format)
    except (ConfigError, ValueError):
        return OutputFormat.AUTO


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations and overwrite files."
    ),
) -> None:
    """Set up output and logging, and share ``--force``/``--verbose`` via ``ctx.obj``."""
    from ascwasm.output import OutputManager, configure_logging, set_output

    output = OutputManager(
        format=_pick_format(json_output, plain_output),
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    configure_logging(verbose, console=output.console)

    ctx.obj = {"force": force, "verbose": verbose}


def _save_traceback() -> Path:
    """Store the current traceback under ``<data dir>/logs`` and return its path."""
    from ascwasm.config import get_data_dir

    path = get_data_dir() / "logs" / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(traceback.format_exc(), encoding="utf-8")
    return path


def main() -> None:
    """Run :data:`app`, turning escaped errors into exit codes.

    An :class:`~ascwasm.exceptions.AscwasmError` exits with its own code.
    Anything else leaves a crash log and exits with
    :data:`~ascwasm.exit_codes.EXIT_GENERIC_FAILURE`.
    """
    from ascwasm.exceptions import AscwasmError
    from ascwasm.output import error

    try:
        app()
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except AscwasmError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_save_traceback()}")
        sys.exit(EXIT_GENERIC_FAILURE)
