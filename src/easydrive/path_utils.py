# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/path_utils.py
"""Guardia di path per le scritture locali di easydrive.

- `ensure_within_and_resolve(base, candidate) -> Path`
  Guardia **STRONG**: solleva `PathTraversalError` se `candidate` NON ricade sotto
  `base`, altrimenti ritorna il path risolto. Da usare prima di write/copy.
"""

from __future__ import annotations

from pathlib import Path

from .exceptions import PathTraversalError


def ensure_within_and_resolve(base: Path | str, candidate: Path | str) -> Path:
    """Resolve a candidate path ensuring it remains within the base perimeter."""
    base_r = Path(base).resolve()
    target_r = Path(candidate).resolve()
    try:
        target_r.relative_to(base_r)
    except ValueError:
        raise PathTraversalError(
            f"Path fuori dal perimetro consentito: {target_r} non è sotto {base_r}",
            file_path=str(candidate),
        )
    return target_r


__all__ = ["ensure_within_and_resolve"]
