"""``ascwasm config``: inspect and edit the settings files.

``show``, ``set``, ``unset`` and ``reset`` work on the user-wide config;
``init`` writes ``./ascwasm.json`` for the current project.
"""

from __future__ import annotations

import shlex
from typing import Any, NoReturn, Optional

import typer

from ascwasm.output import error, format_response, info, success, suggest


config_app = typer.Typer(no_args_is_help=True)

_COMPILER_OPTIONS_PATH = ["plugin", "compiler_options"]


def _fail(message: str, code: int = 2) -> NoReturn:
    error(message)
    raise typer.Exit(code=code)


def _forced(ctx: typer.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("force"))


def _load_global():
    from ascwasm.config import load_global_config
    from ascwasm.exceptions import ConfigError

    try:
        return load_global_config()
    except ConfigError as exc:
        _fail(str(exc), exc.exit_code)


def _parse_for(current: Any, raw: str, key: str) -> Any:
    """Interpret *raw* the way the existing value at *key* is typed."""
    if isinstance(current, bool):
        return raw.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        try:
            return int(raw)
        except ValueError:
            _fail(f"Expected integer for {key}, got: {raw}")
    if isinstance(current, list):
        return shlex.split(raw)
    return raw


@config_app.command("show")
def config_show(
    effective: bool = typer.Option(
        False,
        "--effective",
        "-e",
        help="Show the plugin options after project, env, and default merging.",
    ),
) -> None:
    """Print the user-wide config, or the merged plugin options.

    Example::

        ascwasm config show
        ascwasm --json config show --effective
    """
    from ascwasm.config import get_config_dir, resolve_options
    from ascwasm.exceptions import ConfigError

    if effective:
        try:
            _, options = resolve_options()
        except ConfigError as exc:
            _fail(str(exc), exc.exit_code)
        format_response(options.model_dump(mode="json"))
        return

    config = _load_global()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g. 'plugin.compiler_options.optimizeLevel')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Change one user-wide setting.

    Existing settings keep their type: booleans accept ``true``/``1``/``yes``
    and list settings are split like a shell command line. Any name may be
    added under ``plugin.compiler_options``.

    Example::

        ascwasm config set plugin.compiler_options.optimizeLevel 3
        ascwasm config set plugin.compiler_command "node ./node_modules/.bin/asc"
    """
    from pydantic import ValidationError

    from ascwasm.config import parse_option_value, save_global_config
    from ascwasm.models import GlobalConfig

    data = _load_global().model_dump(mode="json")
    *parents, leaf = key.split(".")

    section = data
    for part in parents:
        section = section.get(part) if isinstance(section, dict) else None
    if not isinstance(section, dict):
        _fail(f"Invalid config key: {key}")

    if parents == _COMPILER_OPTIONS_PATH:
        section[leaf] = parse_option_value(value)
    elif leaf in section:
        section[leaf] = _parse_for(section[leaf], value, key)
    else:
        _fail(f"Unknown config key: {key}")

    try:
        updated = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        _fail(f"Validation error: {exc}")

    save_global_config(updated)
    success(f"Set {key} = {section[leaf]}")


@config_app.command("unset")
def config_unset(
    name: str = typer.Argument(help="Compiler option to remove from the global config."),
) -> None:
    """Drop a compiler option from ``plugin.compiler_options``."""
    from ascwasm.config import save_global_config

    config = _load_global()
    if config.plugin.compiler_options.pop(name, None) is None:
        _fail(f"Compiler option not set: {name}")
    save_global_config(config)
    success(f"Removed compiler option {name}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Restore the user-wide config to its defaults (asks first unless ``--force``)."""
    from ascwasm.config import save_global_config
    from ascwasm.models import GlobalConfig

    if not _forced(ctx) and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")


@config_app.command("init")
def config_init(
    ctx: typer.Context,
    option: Optional[list[str]] = typer.Option(
        None, "--option", "-O", help="Compiler option as name=value. Repeatable."
    ),
    matcher: Optional[str] = typer.Option(
        None, "--matcher", help="Import matcher regex with one capture group."
    ),
) -> None:
    """Create ``./ascwasm.json`` holding only the values given here.

    Example::

        ascwasm config init -O optimizeLevel=3 -O exportRuntime
    """
    from pydantic import ValidationError

    from ascwasm.config import parse_option_pairs, project_config_path, save_project_config
    from ascwasm.exceptions import ConfigError
    from ascwasm.models import PluginOptions

    path = project_config_path()
    if path.exists() and not _forced(ctx):
        error(f"{path} already exists.")
        suggest("Pass --force to overwrite it.")
        raise typer.Exit(code=1)

    fields: dict[str, Any] = {}
    try:
        fields["compiler_options"] = parse_option_pairs(option or [])
    except ConfigError as exc:
        _fail(str(exc), exc.exit_code)
    if matcher is not None:
        fields["import_matcher"] = matcher

    try:
        options = PluginOptions.model_validate(fields)
    except ValidationError as exc:
        _fail(f"Validation error: {exc}")

    success(f"Wrote {save_project_config(options)}")
    suggest("Build with: ascwasm build asc:./path/to/module.ts")
