"""Where ascwasm keeps its settings and how the layers combine.

Two files can hold plugin options: the user-wide ``config.json`` in the
config directory and a per-project ``ascwasm.json`` in the working
directory. :func:`resolve_options` stacks them under the ``ASCWASM_*``
environment variables and the CLI flags.

Directories follow the XDG base directory layout on Linux and the BSDs and
live under ``~/.ascwasm`` elsewhere.
"""

from __future__ import annotations

import contextlib
import json
import os
import platform
import shlex
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ascwasm.exceptions import ConfigError
from ascwasm.models import CompilerOptionValue, GlobalConfig, PluginOptions

_APP_NAME = "ascwasm"
_CONFIG_FILENAME = "config.json"
PROJECT_CONFIG_FILENAME = "ascwasm.json"

ENV_COMPILER = "ASCWASM_COMPILER"
ENV_KEEP_SCRATCH = "ASCWASM_KEEP_SCRATCH"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: str, fallback: str) -> Path:
    """Return (and create) one of the per-user application directories.

    Args:
        xdg_var: Environment variable naming the XDG base, e.g. ``XDG_CONFIG_HOME``.
        xdg_default: Base relative to the home directory when *xdg_var* is unset.
        fallback: Directory relative to the home directory on non-XDG platforms.
    """
    if _is_xdg_platform():
        base = os.environ.get(xdg_var) or Path.home() / xdg_default
        path = Path(base) / _APP_NAME
    else:
        path = Path.home() / fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """``$XDG_CONFIG_HOME/ascwasm``, or ``~/.ascwasm`` off XDG platforms."""
    return _app_dir("XDG_CONFIG_HOME", ".config", f".{_APP_NAME}")


def get_data_dir() -> Path:
    """``$XDG_DATA_HOME/ascwasm``, or ``~/.ascwasm/logs`` off XDG platforms.

    Crash logs are written here.
    """
    return _app_dir("XDG_DATA_HOME", ".local/share", f".{_APP_NAME}/logs")


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* without ever leaving it half written.

    The text goes to a sibling temp file first, which is then renamed over
    the target. A failed write removes the temp file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def _write_json(path: Path, data: Any) -> None:
    _atomic_write(path, json.dumps(data, indent=2) + "\n")


def _read_json(path: Path, label: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ConfigError(f"Invalid {label} config at {path}: {exc}") from exc


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Read the user-wide config, or return defaults when there is none.

    Raises:
        ConfigError: If the file is not valid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global")
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    _write_json(_global_config_path(), config.model_dump(mode="json"))


def project_config_path() -> Path:
    return Path.cwd() / PROJECT_CONFIG_FILENAME


def load_project_config() -> Optional[dict[str, Any]]:
    """Read ``./ascwasm.json`` if present.

    The file is a partial :class:`~ascwasm.models.PluginOptions` mapping,
    e.g. ``{"compiler_options": {"optimizeLevel": 3}}``. It is validated
    only once merged with the other layers.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = project_config_path()
    if not path.is_file():
        return None
    data = _read_json(path, "project")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def save_project_config(options: PluginOptions) -> Path:
    """Write the fields set on *options* to ``./ascwasm.json``.

    Fields left at their defaults are omitted, so they keep deferring to
    the user-wide config.
    """
    path = project_config_path()
    _write_json(path, options.model_dump(mode="json", exclude_unset=True))
    return path


def _merge_options(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Layer *override* on top of *base*; ``compiler_options`` merge key-wise."""
    merged = {**base, **override}
    if isinstance(override.get("compiler_options"), dict):
        merged["compiler_options"] = {
            **base.get("compiler_options", {}),
            **override["compiler_options"],
        }
    return merged


def parse_option_value(raw: str) -> CompilerOptionValue:
    """Turn the text after ``name=`` into a compiler option value.

    Only ``true`` and ``false`` (any case) are interpreted. Everything else
    is passed to the compiler exactly as typed, so ``007`` stays ``007``.
    """
    lowered = raw.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    return raw


def parse_option_pairs(pairs: list[str]) -> dict[str, CompilerOptionValue]:
    """Parse ``name=value`` CLI pairs; a bare ``name`` means ``True``.

    Leading dashes on the name are ignored, so ``--runtime=stub`` works too.

    Raises:
        ConfigError: If a pair has an empty name.
    """
    parsed: dict[str, CompilerOptionValue] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        name = name.strip().lstrip("-")
        if not name:
            raise ConfigError(f"Invalid compiler option: {pair!r}")
        parsed[name] = parse_option_value(value) if sep else True
    return parsed


def _env_layer() -> dict[str, Any]:
    layer: dict[str, Any] = {}
    command = os.environ.get(ENV_COMPILER)
    if command:
        layer["compiler_command"] = shlex.split(command)
    keep = os.environ.get(ENV_KEEP_SCRATCH)
    if keep:
        layer["keep_scratch"] = keep.strip().lower() in _TRUTHY
    return layer


def resolve_options(
    cli_compiler_options: Optional[dict[str, CompilerOptionValue]] = None,
    cli_import_matcher: Optional[str] = None,
    cli_keep_scratch: Optional[bool] = None,
) -> tuple[GlobalConfig, PluginOptions]:
    """Compute the effective plugin options.

    Layers, lowest first: defaults, the user-wide config, ``./ascwasm.json``,
    the ``ASCWASM_COMPILER``/``ASCWASM_KEEP_SCRATCH`` variables, then the CLI
    arguments. ``compiler_options`` merge key by key; other fields are
    replaced whole.

    Returns:
        ``(global_config, options)``.

    Raises:
        ConfigError: If a layer is unreadable or the merged result is invalid.
    """
    global_cfg = load_global_config()

    cli: dict[str, Any] = {}
    if cli_compiler_options:
        cli["compiler_options"] = dict(cli_compiler_options)
    if cli_import_matcher is not None:
        cli["import_matcher"] = cli_import_matcher
    if cli_keep_scratch is not None:
        cli["keep_scratch"] = cli_keep_scratch

    data = global_cfg.plugin.model_dump(mode="json")
    for layer in (load_project_config() or {}, _env_layer(), cli):
        data = _merge_options(data, layer)

    try:
        return global_cfg, PluginOptions.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid plugin options: {exc}") from exc
