"""Terminal output for the ascwasm CLI.

Results (tables, config dumps) go to stdout; every status line, error and
hint goes to stderr so a build can be piped without noise. The active
:class:`OutputManager` is installed once per invocation by the root
callback and reached through the module-level helpers.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

_LOG_HANDLER_NAME = "ascwasm-rich"


class OutputFormat(str, Enum):
    """How results are rendered. ``AUTO`` picks ``RICH`` on a colour TTY."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Holds the output preferences of one CLI invocation.

    Args:
        format: Result format; ``AUTO`` is resolved immediately.
        no_color: Never emit colour. ``NO_COLOR`` and ``TERM=dumb`` imply it.
        quiet: Hide info, success and suggestion lines.
        verbose: Show debug lines.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        if format == OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(no_color=self._no_color, force_terminal=format == OutputFormat.RICH)
        self._stderr = Console(no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def console(self) -> Console:
        """The stderr console, shared with the log handler."""
        return self._stderr

    def format_response(self, data: Any) -> None:
        """Write a mapping, list or scalar to stdout in the active format.

        Plain output puts one ``key<TAB>value`` pair per line, with nested
        values as compact JSON.
        """
        if self._format == OutputFormat.JSON:
            _emit(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.RICH and isinstance(data, (dict, list)):
            self._stdout.print_json(data=data, default=str)
        elif isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, (dict, list)):
                    value = json.dumps(value, ensure_ascii=False, default=str)
                _emit(f"{key}\t{value}")
        else:
            _emit(str(data))

    def print_table(
        self, headers: list[str], rows: list[list[str]], title: Optional[str] = None
    ) -> None:
        """Write rows to stdout: a Rich table, TSV lines, or JSON records."""
        if self._format == OutputFormat.JSON:
            _emit(json.dumps([dict(zip(headers, row)) for row in rows], indent=2))
        elif self._format == OutputFormat.PLAIN:
            for line in (headers, *rows):
                _emit("\t".join(line))
        else:
            table = Table(*headers, title=title, header_style="bold cyan")
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    def _notice(
        self, message: str, label: str = "", style: str = "", optional: bool = True
    ) -> None:
        # Messages are Text, never markup: compiler output is full of brackets.
        if optional and self._quiet:
            return
        line = Text.assemble((label, style), (message, style if not label else ""))
        self._stderr.print(line, soft_wrap=True)

    def info(self, message: str) -> None:
        self._notice(message)

    def success(self, message: str) -> None:
        self._notice(message, style="green")

    def error(self, message: str) -> None:
        """Never hidden by ``--quiet``."""
        self._notice(message, "Error: ", "bold red", optional=False)

    def suggest(self, message: str) -> None:
        self._notice(f"→ {message}", style="dim")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._notice(message, "[debug] ", "dim", optional=False)


def _emit(line: str) -> None:
    print(line, file=sys.stdout, flush=True)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set to anything or ``TERM`` is ``dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def configure_logging(verbose: bool, console: Optional[Console] = None) -> None:
    """Route the ``ascwasm`` logger to a :class:`~rich.logging.RichHandler`.

    Warnings and above are shown unless *verbose*. Repeated calls replace
    the handler rather than stacking another one.
    """
    logger = logging.getLogger("ascwasm")
    for old in [h for h in logger.handlers if h.get_name() == _LOG_HANDLER_NAME]:
        logger.removeHandler(old)

    handler = RichHandler(
        console=console or Console(stderr=True), show_path=False, show_time=False
    )
    handler.set_name(_LOG_HANDLER_NAME)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """The installed manager; a default one is created on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
