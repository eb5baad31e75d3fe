# src/utils/path_resolver.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping
import os
import re

from src.core.errors import ConfigError


# "C:\data" or "C:/data" is absolute even when read on a POSIX host
_WIN_DRIVE_RE = re.compile(r"^[a-zA-Z]:[\\/]")

PATH_SUFFIXES = ("_path", "_dir", "_root")


def is_path_key(key: str) -> bool:
    """Config keys holding filesystem locations: path, *_path, *_dir, *_root."""
    k = key.lower()
    return k == "path" or k.endswith(PATH_SUFFIXES)


def resolve_path(value: str, base: Path) -> str:
    """
    Expand ${VAR} and "~", keep absolute paths, join relative ones onto base.
    """
    expanded = str(Path(os.path.expandvars(value)).expanduser())
    if os.path.isabs(expanded) or _WIN_DRIVE_RE.match(expanded) or expanded.startswith("\\\\"):
        return str(Path(expanded))
    return str((base / expanded).resolve())


def resolve_paths_in_config(cfg: Any, base: Path) -> Any:
    """
    Return a copy of a dict/list config with every path-like value made
    absolute. Table specs point at CSVs next to the config, so `base` is
    normally the config file's directory. Null paths (e.g. a relation
    table without a test split) are left as they are.
    """
    if isinstance(cfg, Mapping):
        out = {}
        for k, v in cfg.items():
            if is_path_key(str(k)) and v is not None:
                if not isinstance(v, (str, os.PathLike)):
                    raise ConfigError(f"'{k}' must be a path string, got {type(v).__name__}")
                out[k] = resolve_path(os.fspath(v), base)
            else:
                out[k] = resolve_paths_in_config(v, base)
        return out

    if isinstance(cfg, list):
        return [resolve_paths_in_config(x, base) for x in cfg]

    return cfg
