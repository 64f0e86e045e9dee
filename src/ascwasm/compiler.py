"""Invocation of the external AssemblyScript compiler.

The pipeline only depends on the :class:`Compiler` protocol -- an object
with an asynchronous ``compile(args)`` method returning a
:class:`~ascwasm.models.CompilerResult`. :class:`SubprocessCompiler` is
the default implementation and runs ``asc`` out-of-process; tests and
alternative toolchains can substitute any object with the same method.

:func:`build_compiler_args` translates the configured options mapping into
the flat argument list ``asc`` expects.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from typing import Mapping, Optional, Protocol

from ascwasm.models import DEFAULT_COMPILER_COMMAND, CompilerOptionValue, CompilerResult

logger = logging.getLogger(__name__)

FORCED_BINDINGS = "raw"
"""Bindings mode the generated module relies on (exports ``instantiate``)."""


class Compiler(Protocol):
    """Anything that can turn an ``asc`` argument list into a result."""

    async def compile(self, args: list[str]) -> CompilerResult:
        ...


def format_option_value(value: CompilerOptionValue) -> str:
    """Render an option value in its literal textual form.

    Booleans are lower-cased and integral floats lose their ``.0`` so that
    ``--optimizeLevel=3`` is produced whether the value came from JSON or
    from Python.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_compiler_args(
    source_path: str,
    wasm_path: str,
    compiler_options: Mapping[str, CompilerOptionValue],
) -> list[str]:
    """Translate compiler options into an ``asc`` argument list.

    The source path and ``-o <wasm_path>`` always come first, followed by
    ``--bindings=raw`` (any user-supplied ``bindings`` is replaced) and then
    the remaining options in mapping order. A value of exactly ``True``
    becomes a bare ``--name`` flag; anything else becomes ``--name=value``.

    *compiler_options* is not modified.
    """
    options: dict[str, CompilerOptionValue] = {"bindings": FORCED_BINDINGS}
    for name, value in compiler_options.items():
        if name != "bindings":
            options[name] = value

    args = [source_path, "-o", wasm_path]
    for name, value in options.items():
        if value is True:
            args.append(f"--{name}")
        else:
            args.append(f"--{name}={format_option_value(value)}")
    return args


class SubprocessCompiler:
    """Runs the AssemblyScript compiler as a child process.

    Args:
        command: Executable plus leading arguments, e.g.
            ``["npx", "--no-install", "asc"]``. The argument list passed to
            :meth:`compile` is appended to it.

    No timeout is applied; a hung compiler hangs the calling pipeline.
    """

    def __init__(self, command: Optional[list[str]] = None) -> None:
        self._command = list(command or DEFAULT_COMPILER_COMMAND)

    @property
    def command(self) -> list[str]:
        return list(self._command)

    async def compile(self, args: list[str]) -> CompilerResult:
        """Run the compiler with *args* and capture its output.

        Returns:
            A :class:`~ascwasm.models.CompilerResult` whose ``error`` is set
            when the executable cannot be started or exits non-zero.
        """
        command = [*self._command, *args]
        logger.debug("Running compiler: %s", shlex.join(command))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            return CompilerResult(
                error=f"Could not start compiler '{self._command[0]}': {exc}",
                returncode=127,
            )

        stdout, stderr = await process.communicate()
        result = CompilerResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            returncode=process.returncode or 0,
        )
        if process.returncode != 0:
            result.error = f"{self._command[-1]} exited with code {process.returncode}"
        return result
