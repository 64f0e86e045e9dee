"""Recognition and resolution of marked ``asc:`` import specifiers.

A marked specifier such as ``asc:./add.ts`` tells the build that the inner
path must be compiled with the AssemblyScript toolchain rather than loaded
as JavaScript. The resolver extracts that inner path, lets the host resolve
it exactly as it would an ordinary import, and re-tags the absolute result
with :data:`~ascwasm.models.ASC_FILE_MARKER` so the ``load`` hook can
recognise it later.

Specifiers that do not match, or whose inner path the host cannot resolve,
are declined by returning ``None``.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from ascwasm.models import ASC_FILE_MARKER, ASC_IMPORT_MATCHER
from ascwasm.plugins.hooks import PluginContext

logger = logging.getLogger(__name__)

_DEFAULT_MATCHER = re.compile(ASC_IMPORT_MATCHER)


def mark(path: str) -> str:
    """Tag *path* as an AssemblyScript module id."""
    return ASC_FILE_MARKER + path


def is_marked(module_id: str) -> bool:
    return module_id.startswith(ASC_FILE_MARKER)


def strip_marker(module_id: str) -> str:
    """Return *module_id* without the ``asc:`` tag (unchanged if untagged)."""
    if is_marked(module_id):
        return module_id[len(ASC_FILE_MARKER):]
    return module_id


async def resolve_specifier(
    specifier: str,
    importer: Optional[str],
    ctx: PluginContext,
    matcher: Optional[re.Pattern[str]] = None,
) -> Optional[str]:
    """Resolve a marked import specifier to a tagged absolute path.

    Args:
        specifier: The raw import string, e.g. ``"asc:./add.ts"``.
        importer: Absolute path of the importing module, or ``None``.
        ctx: Host capabilities used for delegated resolution and watch-file
            registration.
        matcher: Pattern with a single capture group holding the inner
            path. Defaults to ``^asc:(.+)$``.

    Returns:
        ``"asc:" + <absolute path>`` or ``None`` when the specifier is not
        marked or its inner path does not resolve.
    """
    match = (matcher or _DEFAULT_MATCHER).search(specifier)
    if match is None:
        return None

    inner = match.group(1)
    if not inner:
        # An optional group can match while capturing nothing.
        return None

    resolved = await ctx.resolve(inner, importer, skip_self=True)
    if resolved is None:
        logger.debug("Host could not resolve %r (from %s)", inner, importer)
        return None

    ctx.add_watch_file(resolved.id)
    return mark(resolved.id)
