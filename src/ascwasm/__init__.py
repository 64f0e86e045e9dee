"""ascwasm -- compile ``asc:`` imports to WebAssembly at build time.

This package provides a bundler plugin that intercepts import specifiers
marked with the ``asc:`` prefix, compiles the referenced AssemblyScript
source with the external ``asc`` toolchain, emits the resulting ``.wasm``
binary as a build asset, and replaces the import with a small JavaScript
module whose default export fetches and instantiates that binary.

Typical workflow::

    ascwasm build asc:./src/add.ts --out-dir dist

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    resolver: Marked-specifier recognition and resolution.
    pipeline: Compiler invocation, scratch files, and asset emission.
    synthesizer: Generated instantiation module text.
    host: Reference build host implementing the plugin context.
"""

__version__ = "0.1.0"
