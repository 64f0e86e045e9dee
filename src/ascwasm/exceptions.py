"""Errors raised by ascwasm, each tied to a process exit code.

:func:`ascwasm.app.main` prints an escaped :class:`AscwasmError` and exits
with its ``exit_code``; any other exception is treated as a crash. A hook
that returns ``None`` is declining, not failing, and raises nothing.

::

    AscwasmError            1
      InvalidUsageError     2
      ResolutionError       4
      CompilationError      5
      ScratchIOError        6
      PluginError          10
      ConfigError           1
"""

from __future__ import annotations

from typing import Optional

from ascwasm.exit_codes import (
    EXIT_COMPILATION_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PLUGIN_ERROR,
    EXIT_RESOLUTION_FAILURE,
    EXIT_SCRATCH_IO_ERROR,
)


class AscwasmError(Exception):
    """Root of the hierarchy.

    Args:
        message: Text shown to the user.
        exit_code: Replaces the class default for this instance.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(AscwasmError):
    """Arguments that cannot work together, e.g. two entries writing one file."""

    exit_code = EXIT_INVALID_USAGE


class ResolutionError(AscwasmError):
    """A build entry that neither a plugin nor the disk lookup could find."""

    exit_code = EXIT_RESOLUTION_FAILURE


class CompilationError(AscwasmError):
    """``asc`` failed. The message carries its error and everything it printed.

    Attributes:
        compiler_error: What the compiler reported as the failure.
        diagnostics: The compiler's captured stderr.
    """

    exit_code = EXIT_COMPILATION_FAILURE

    def __init__(self, compiler_error: str, diagnostics: str = ""):
        self.compiler_error = compiler_error
        self.diagnostics = diagnostics
        super().__init__(
            f"ASC compilation failed:\n{compiler_error}\n[Details]\n{diagnostics}"
        )


class ScratchIOError(AscwasmError):
    """An artifact missing or unreadable after ``asc`` reported success."""

    exit_code = EXIT_SCRATCH_IO_ERROR

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class PluginError(AscwasmError):
    """A plugin misused the host API, or a plugin name was registered twice."""

    exit_code = EXIT_PLUGIN_ERROR


class ConfigError(AscwasmError):
    """Unreadable config files or option values that fail validation."""

    exit_code = EXIT_GENERIC_FAILURE
