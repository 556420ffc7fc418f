# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/logging_utils.py
"""Logging strutturato per easydrive.

Ogni modulo ottiene il proprio logger con `get_structured_logger(__name__-like)`:
- idempotente: chiamate ripetute sostituiscono handler e filtro, non li duplicano;
- un unico filtro per record: `run_id`, codice `event` di default, redazione
  dei segreti quando attiva (`context.redact_logs` o ENV `EASYDRIVE_LOG_REDACT`);
- formato `asctime level name: event | k=v ...` su stdout e, opzionale, su file
  rotante.

Il messaggio del record è il codice evento (es. `drive.archive.done`); i dati
variabili viaggiano in `extra`.

Utility di masking: `mask_partial` per ID Drive, `tail_path` per i percorsi,
`redact_secrets` per testo libero. `phase_scope` misura una fase e ne registra
inizio, esito e durata.
"""

from __future__ import annotations

import logging
import os
import re
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from types import TracebackType
from typing import Any, Dict, Literal, Optional, Type, Union

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_KEY_ATTR = "_logging_utils_key"
_STATE_ATTR = "_easydrive_log_state"

# attributi del record azzerati quando la redazione è attiva
_SECRET_FIELDS = ("SERVICE_ACCOUNT_FILE", "Authorization", "access_token", "refresh_token")

_SECRET_PATTERNS = (
    (re.compile(r"Authorization\s*:\s*Bearer\s+\S+", re.IGNORECASE), "Authorization: Bearer ***"),
    (re.compile(r"access_token=[^&\s]+", re.IGNORECASE), "access_token=***"),
    (re.compile(r"\"private_key\"\s*:\s*\"[^\"]*\"", re.IGNORECASE), '"private_key": "***"'),
)


# ---------------------------------------------------------------------------
# Masking
# ---------------------------------------------------------------------------


def redact_secrets(msg: str) -> str:
    """Sostituisce bearer token, access token e chiavi private presenti nel testo."""
    if not msg:
        return msg
    for pattern, replacement in _SECRET_PATTERNS:
        msg = pattern.sub(replacement, msg)
    return msg


def mask_partial(value: Optional[str], keep: int = 3) -> str:
    """'abcdef' -> 'abc...'; valori corti restano invariati."""
    if not value:
        return ""
    return f"{value[:keep]}..." if len(value) > keep else value


def tail_path(p: Union[Path, str], keep_segments: int = 2) -> str:
    """Ultimi `keep_segments` componenti del path."""
    parts = Path(p).parts
    return "/".join(parts[-keep_segments:]) if parts else str(p)


# ---------------------------------------------------------------------------
# Filtro e formatter
# ---------------------------------------------------------------------------


class _LogState:
    """Stato condiviso tra filtro e `phase_scope` per un logger."""

    def __init__(self, run_id: Optional[str], redact: bool) -> None:
        self.run_id = run_id
        self.redact = redact


class _RecordFilter(logging.Filter):
    def __init__(self, state: _LogState) -> None:
        super().__init__()
        self.state = state

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            record.run_id = self.state.run_id or "-"
        if self.state.redact:
            if isinstance(record.msg, str):
                record.msg = redact_secrets(record.msg)
            for name in _SECRET_FIELDS:
                if hasattr(record, name):
                    setattr(record, name, "***")
        if not hasattr(record, "event"):
            msg = record.msg
            record.event = (msg.strip() or "log") if isinstance(msg, str) else "log"
        return True


class _KVFormatter(logging.Formatter):
    """Aggiunge in coda le chiavi strutturate note, nell'ordine fisso di `_KEYS`."""

    _KEYS = ("run_id", "event", "file_id", "folder_id", "file_path", "phase", "duration_ms", "artifact_count")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = [
            f"{key}={value}"
            for key in self._KEYS
            if (value := getattr(record, key, None)) not in (None, "", "-")
        ]
        return f"{line} | {' '.join(pairs)}" if pairs else line


def _install(lg: logging.Logger, key: str, obj: Union[logging.Handler, logging.Filter]) -> None:
    """Sostituisce l'handler/filtro marcato con `key` (se presente) con `obj`."""
    if isinstance(obj, logging.Handler):
        for old in [h for h in lg.handlers if getattr(h, _KEY_ATTR, None) == key]:
            lg.removeHandler(old)
            old.close()
        setattr(obj, _KEY_ATTR, key)
        lg.addHandler(obj)
        return
    for old_filter in [f for f in lg.filters if getattr(f, _KEY_ATTR, None) == key]:
        lg.removeFilter(old_filter)
    setattr(obj, _KEY_ATTR, key)
    lg.addFilter(obj)


def _resolve_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        from easydrive.env_utils import get_env_var  # lazy: env_utils importa questo modulo

        level = get_env_var("EASYDRIVE_LOG_LEVEL", default="INFO") or "INFO"
    return getattr(logging, str(level).upper(), logging.INFO)


def _resolve_redact(context: Any, redact_logs: Optional[bool]) -> bool:
    if redact_logs is not None:
        return bool(redact_logs)
    if context is not None and hasattr(context, "redact_logs"):
        return bool(context.redact_logs)
    from easydrive.env_utils import get_bool

    return get_bool("EASYDRIVE_LOG_REDACT", default=False)


def get_structured_logger(
    name: str,
    *,
    context: Any = None,
    log_file: Optional[Path] = None,
    run_id: Optional[str] = None,
    level: int | str | None = None,
    redact_logs: Optional[bool] = None,
    propagate: Optional[bool] = None,
) -> logging.Logger:
    """Logger configurato e idempotente.

    Args:
        name: nome del logger (es. 'easydrive.drive.archive').
        context: oggetto con attributi opzionali `run_id`, `redact_logs`, `log_level`
            (tipicamente un `DriveContext`).
        log_file: se presente aggiunge un `RotatingFileHandler` (directory creata).
        run_id: usato quando `context.run_id` manca.
        level: default `context.log_level`, poi ENV `EASYDRIVE_LOG_LEVEL`, poi INFO.
        redact_logs: default `context.redact_logs`, poi ENV `EASYDRIVE_LOG_REDACT`.
        propagate: default False; True sotto pytest (caplog ascolta il root logger).
    """
    if level is None and context is not None:
        level = getattr(context, "log_level", None)
    lvl = _resolve_level(level)
    state = _LogState(
        run_id=getattr(context, "run_id", None) or run_id,
        redact=_resolve_redact(context, redact_logs),
    )

    lg = logging.getLogger(name)
    lg.setLevel(lvl)
    if propagate is None:
        propagate = bool(os.getenv("PYTEST_CURRENT_TEST") or "pytest" in sys.modules)
    lg.propagate = propagate
    setattr(lg, _STATE_ATTR, state)
    _install(lg, f"{name}::filter", _RecordFilter(state))

    console = logging.StreamHandler(stream=sys.stdout)
    console.setLevel(lvl)
    console.setFormatter(_KVFormatter(_FORMAT))
    _install(lg, f"{name}::console", console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(path, encoding="utf-8", maxBytes=1024 * 1024, backupCount=3)
        fh.setLevel(lvl)
        fh.setFormatter(_KVFormatter(_FORMAT))
        _install(lg, f"{name}::file::{path}", fh)

    return lg


# ---------------------------------------------------------------------------
# Telemetria di fase
# ---------------------------------------------------------------------------


class phase_scope:
    """Misura una fase: `phase_started`, poi `phase_completed` o `phase_failed`.

    Campi: phase, run_id, status, duration_ms, artifact_count (se impostato con
    `set_artifacts`), error (solo in caso di fallimento). Le eccezioni non
    vengono mai soppresse.
    """

    def __init__(self, logger: logging.Logger, *, stage: str):
        self.logger = logger
        self.stage = stage
        state = getattr(logger, _STATE_ATTR, None)
        self._run_id = getattr(state, "run_id", None)
        self._started: Optional[float] = None
        self._artifacts: Optional[int] = None

    def set_artifacts(self, count: Optional[int]) -> None:
        self._artifacts = None if count is None else int(count)

    def _fields(self) -> Dict[str, Any]:
        return {"phase": self.stage, "run_id": self._run_id or "-"}

    def __enter__(self) -> "phase_scope":
        self._started = time.monotonic()
        self.logger.info("phase_started", extra={**self._fields(), "event": "phase_started"})
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> Literal[False]:
        extra = self._fields()
        if self._started is not None:
            extra["duration_ms"] = int(round((time.monotonic() - self._started) * 1000))
        if self._artifacts is not None:
            extra["artifact_count"] = self._artifacts
        if exc is None:
            self.logger.info("phase_completed", extra={**extra, "status": "success", "event": "phase_completed"})
        else:
            self.logger.error(
                "phase_failed",
                extra={**extra, "status": "failed", "error": str(exc), "event": "phase_failed"},
            )
        return False


__all__ = [
    "get_structured_logger",
    "phase_scope",
    "redact_secrets",
    "mask_partial",
    "tail_path",
]
