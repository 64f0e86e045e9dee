"""``ascwasm plugins``: show which plugins a build would run."""

from __future__ import annotations

import typer

from ascwasm.output import error, print_table


plugins_app = typer.Typer(no_args_is_help=True)


@plugins_app.command("list")
def plugins_list() -> None:
    """List the built-in plugin and the entry-point extras, in hook order.

    Extras are filtered by ``plugins.enabled``/``plugins.disabled``.
    """
    from ascwasm.config import load_global_config
    from ascwasm.exceptions import ConfigError
    from ascwasm.plugins import PluginManager
    from ascwasm.plugins.asc import AscPlugin

    try:
        config = load_global_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    with PluginManager(config, AscPlugin()) as manager:
        manager.discover_extras()
        rows = manager.describe()

    headers = ["name", "version", "origin", "description"]
    print_table(headers, [[row[h] for h in headers] for row in rows], title="Plugins")
