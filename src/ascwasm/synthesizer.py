"""Module synthesizer -- the JavaScript text that replaces a marked import.

The generated module is composed of three blocks, each produced by its own
function so it can be checked on its own:

1. :func:`bindings_block` -- the ``raw`` bindings ``asc`` generated,
   verbatim. They define ``instantiate(module, imports)``.
2. :func:`url_binding_block` -- ``const WASM_URL = <placeholder>;`` where the
   placeholder is an expression the host rewrites to the asset's final URL.
3. :func:`factory_block` -- the default-exported ``instantiateModule``
   factory that streams, compiles and instantiates the binary.

Errors thrown by the factory at runtime (fetch, compile, instantiate) reach
its caller unchanged.
"""

from __future__ import annotations

WASM_URL_CONSTANT = "WASM_URL"
FACTORY_NAME = "instantiateModule"

_FACTORY_TEMPLATE = """\
export default async function {factory}(imports = {{}}) {{
  const module = await WebAssembly.compileStreaming(fetch({url}));
  return await instantiate(module, imports);
}}"""


def bindings_block(bindings: str) -> str:
    return bindings


def url_binding_block(placeholder: str) -> str:
    """Bind :data:`WASM_URL_CONSTANT` to the host's URL *placeholder*."""
    return f"const {WASM_URL_CONSTANT} = {placeholder};"


def factory_block() -> str:
    return _FACTORY_TEMPLATE.format(factory=FACTORY_NAME, url=WASM_URL_CONSTANT)


def synthesize_module(bindings: str, placeholder: str) -> str:
    """Compose the final module text for a compiled AssemblyScript file.

    Args:
        bindings: The bindings source read from the compiler output.
        placeholder: URL placeholder expression for the emitted ``.wasm``.

    Returns:
        Bindings, URL constant and factory separated by blank lines.
    """
    blocks = [bindings_block(bindings), url_binding_block(placeholder), factory_block()]
    return "\n\n".join(blocks) + "\n"
