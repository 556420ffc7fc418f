# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/yaml_utils.py
"""Lettura YAML per la configurazione.

`yaml_read(base, path)` accetta solo file sotto `base` (`PathTraversalError`,
sottotipo di `ConfigError`), usa `yaml.safe_load` e tiene in cache il
risultato finché mtime e dimensione del file non cambiano.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, NamedTuple

import yaml

from .exceptions import ConfigError
from .path_utils import ensure_within_and_resolve


class _Cached(NamedTuple):
    mtime_ns: int
    size: int
    value: Any


_CACHE: Dict[Path, _Cached] = {}


def yaml_read(
    base: Path | str,
    path: Path | str,
    *,
    encoding: str = "utf-8",
    use_cache: bool = True,
) -> Any:
    """Contenuto YAML di `path` (None per file vuoto).

    Raises:
        PathTraversalError: `path` fuori da `base`.
        ConfigError: file assente, illeggibile o YAML non valido.
    """
    target = ensure_within_and_resolve(base, path)
    if not target.is_file():
        raise ConfigError(f"File YAML non trovato: {target}", file_path=str(target))

    st = target.stat()
    hit = _CACHE.get(target) if use_cache else None
    if hit is not None and (hit.mtime_ns, hit.size) == (st.st_mtime_ns, st.st_size):
        return hit.value

    try:
        value = yaml.safe_load(target.read_text(encoding=encoding))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"YAML non leggibile: {e}", file_path=str(target)) from e

    if use_cache:
        _CACHE[target] = _Cached(st.st_mtime_ns, st.st_size, value)
    return value


def clear_yaml_cache() -> None:
    _CACHE.clear()


__all__ = ["yaml_read", "clear_yaml_cache"]
