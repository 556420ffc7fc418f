# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/env_utils.py
"""Accesso alle variabili d'ambiente, senza side-effect a import-time.

Il file `.env` (cercato a partire dalla directory corrente) viene caricato una
sola volta, alla prima lettura, e non sovrascrive variabili già presenti.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Optional

from dotenv import find_dotenv, load_dotenv

_ENV_LOADED = False
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def ensure_dotenv_loaded() -> bool:
    """Carica `.env` se non già fatto; True solo alla chiamata che lo carica."""
    global _ENV_LOADED
    if _ENV_LOADED:
        return False
    found = load_dotenv(find_dotenv(usecwd=True))
    _ENV_LOADED = True

    from easydrive.logging_utils import get_structured_logger

    get_structured_logger("easydrive.env_utils", redact_logs=True).debug("env.loaded", extra={"loaded": bool(found)})
    return True


def reset_dotenv_state() -> None:
    """Il prossimo accesso ricarica `.env` (uso nei test)."""
    global _ENV_LOADED
    _ENV_LOADED = False


def get_env_var(name: str, default: Optional[str] = None, *, required: bool = False) -> Optional[str]:
    """Valore ripulito dagli spazi; vuoto equivale a non impostato.

    Raises:
        KeyError: `required=True` e variabile assente o vuota.
    """
    ensure_dotenv_loaded()
    value = (os.environ.get(name) or "").strip()
    if value:
        return value
    if required:
        raise KeyError(f"ENV missing: {name}")
    return default


def get_bool(name: str, default: bool = False, *, env: Mapping[str, str] | None = None) -> bool:
    """Booleano da ENV (o dal mapping `env`): 1/true/yes/on, 0/false/no/off.

    Valori assenti o non riconosciuti danno `default`.
    """
    if env is None:
        ensure_dotenv_loaded()
        env = os.environ
    raw = env.get(name)
    if raw is None:
        return bool(default)
    token = str(raw).strip().lower()
    if token in _TRUE_VALUES:
        return True
    if token in _FALSE_VALUES:
        return False
    return bool(default)


__all__ = [
    "ensure_dotenv_loaded",
    "reset_dotenv_state",
    "get_env_var",
    "get_bool",
]
