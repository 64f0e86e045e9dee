"""AssemblyScript plugin -- compiles ``asc:`` imports into WebAssembly modules.

The main export is :class:`AscPlugin`, registered under the
``ascwasm.plugins`` entry-point group as ``assemblyscript``.
"""

from ascwasm.plugins.asc.plugin import AscPlugin

__all__ = ["AscPlugin"]
