"""Build command -- compile marked specifiers from the command line.

``ascwasm build`` runs one build pass through a
:class:`~ascwasm.host.BuildContext` with the ``assemblyscript`` plugin
(configured from the resolved option chain) followed by any other plugins
discovered through entry points. For every specifier it writes the
synthesized module as ``<out-dir>/<base>.mjs`` and every emitted asset
under ``<out-dir>/assets/``.

Example::

    ascwasm build asc:./src/add.ts --option optimizeLevel=3 --option exportRuntime
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import typer

from ascwasm.output import debug, error, info, print_table, success, suggest

if TYPE_CHECKING:
    from ascwasm.host import BuildContext


def build_command(
    specifiers: list[str] = typer.Argument(
        ..., help="Marked specifiers to compile, e.g. asc:./src/add.ts."
    ),
    importer: Optional[str] = typer.Option(
        None,
        "--importer",
        "-i",
        help="File the specifiers are imported from. Defaults to the current directory.",
    ),
    out_dir: str = typer.Option(
        "dist", "--out-dir", "-d", help="Directory for modules and assets."
    ),
    option: Optional[list[str]] = typer.Option(
        None,
        "--option",
        "-O",
        help="Compiler option as name=value, or bare name for a flag. Repeatable.",
    ),
    source_map: bool = typer.Option(
        False, "--source-map", help="Emit a .wasm.map asset alongside each binary."
    ),
    matcher: Optional[str] = typer.Option(
        None, "--matcher", help="Import matcher regex with one capture group."
    ),
    keep_scratch: Optional[bool] = typer.Option(
        None,
        "--keep-scratch/--no-keep-scratch",
        help="Keep compiler scratch files for inspection.",
    ),
) -> None:
    """Compile marked AssemblyScript imports into loadable modules.

    Raises:
        typer.Exit: With the error's exit code when configuration,
            resolution, or compilation fails.
    """
    from ascwasm.config import parse_option_pairs, resolve_options
    from ascwasm.exceptions import AscwasmError, InvalidUsageError
    from ascwasm.host import BuildContext
    from ascwasm.pipeline import base_name
    from ascwasm.plugins import PluginManager
    from ascwasm.plugins.asc import AscPlugin
    from ascwasm.resolver import strip_marker

    try:
        cli_options = parse_option_pairs(option or [])
        if source_map:
            cli_options["sourceMap"] = True
        global_cfg, options = resolve_options(cli_options, matcher, keep_scratch)
        debug(f"Compiler command: {' '.join(options.compiler_command)}")

        importer_path = str(Path(importer).resolve()) if importer else None
        with PluginManager(global_cfg, AscPlugin(options)) as manager:
            manager.discover_extras()
            build = BuildContext(manager.runner())
            info(f"Building {len(specifiers)} module(s)...")
            results = asyncio.run(_build_all(build, specifiers, importer_path))

        out = Path(out_dir)
        modules: dict[str, str] = {}
        for module_id, code in results:
            module_name = f"{base_name(strip_marker(module_id))}.mjs"
            if module_name in modules and modules[module_name] != module_id:
                raise InvalidUsageError(
                    f"Entries '{modules[module_name]}' and '{module_id}' both produce {module_name}"
                )
            modules[module_name] = module_id
            target = out / module_name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(code, encoding="utf-8")

        assets = build.write(out)
    except AscwasmError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    rows = [[name, module_id] for name, module_id in modules.items()]
    rows.extend([str(path.relative_to(out)), "(asset)"] for path in assets)
    print_table(["output", "source"], rows, title="Build output")

    for path in build.watch_files:
        debug(f"Watching {path}")

    success(f"Built {len(modules)} module(s) into {out}")
    suggest("Import the default export and call it: await instantiateModule(imports)")


async def _build_all(
    build: BuildContext, specifiers: list[str], importer: Optional[str]
) -> list[tuple[str, str]]:
    return list(
        await asyncio.gather(*(build.build_entry(s, importer) for s in specifiers))
    )
