"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~ascwasm.exceptions.AscwasmError` subclass so that
CI scripts can tell a compiler failure from a configuration problem
without parsing stderr.

Example::

    $ ascwasm build asc:./broken.ts
    $ echo $?
    5   # EXIT_COMPILATION_FAILURE -- asc rejected the source
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_RESOLUTION_FAILURE = 4
"""An entry specifier could not be resolved to a file."""

EXIT_COMPILATION_FAILURE = 5
"""The external compiler reported an error."""

EXIT_SCRATCH_IO_ERROR = 6
"""A compiler artifact could not be read back from the scratch directory."""

EXIT_PLUGIN_ERROR = 10
"""A plugin failed to load, initialise, or execute."""
