# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/drive/client.py
"""
Client Drive v3, policy di retry e primitive di lettura.

Superficie pubblica:
- get_drive_service(context)
    Client Drive v3 autenticato con service account; scope da `context.settings.scopes`.
- list_children(service, folder_id, *, page_size=1000)
    **Tutti** i figli diretti non cestinati di una cartella: le pagine vengono
    concatenate finché Drive restituisce un `nextPageToken`.
- get_entry(service, entry_id)
    `RemoteEntry` dell'elemento, oppure None se Drive risponde 404.
- retry_policy_scope(policy) / drive_metrics_scope() / get_retry_metrics()
    Policy di retry attiva nel blocco e statistiche dei retry eseguiti.

Retry: backoff esponenziale con jitter pieno, solo su errori transienti
(429, 5xx, rete) e con un tetto all'attesa cumulata. Il resto risale subito.
"""

from __future__ import annotations

import os
import random
import time
from collections import Counter
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Mapping, Optional, Union, cast

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..env_utils import get_env_var
from ..exceptions import ConfigError, InvalidArgumentError, TransportFailure
from ..logging_utils import get_structured_logger
from ..settings import DRIVE_SCOPE
from .models import RemoteEntry

logger = get_structured_logger("easydrive.drive.client")

ENTRY_FIELDS = "id, name, mimeType, parents, size"
_LIST_FIELDS = f"nextPageToken, files({ENTRY_FIELDS})"

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
_TRANSIENT_MARKERS = (
    "timed out",
    "timeout",
    "temporarily unavailable",
    "connection reset",
    "connection aborted",
    "reset by peer",
    "rate limit",
    "too many requests",
)


# ------------------------------- Policy & statistiche ------------------------------


@dataclass(frozen=True)
class RetryPolicy:
    """Parametri del backoff: tentativi massimi, ritardo base, attesa cumulata massima."""

    max_attempts: int = 6
    base_delay_s: float = 0.5
    max_total_sleep_s: float = 20.0

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "RetryPolicy":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known and v is not None})

    def jitter(self, attempt: int) -> float:
        """Attesa casuale in [0, base * 2^(attempt-1)]."""
        return random.uniform(0, self.base_delay_s * (2 ** (attempt - 1)))


@dataclass
class RetryStats:
    """Retry eseguiti nel blocco `drive_metrics_scope` corrente."""

    retries: int = 0
    by_error: Counter = field(default_factory=Counter)
    slept_ms: int = 0
    last_error: Optional[str] = None
    last_status: Optional[int] = None

    def record(self, err: BaseException, sleep_s: float) -> None:
        self.retries += 1
        self.by_error[type(err).__name__] += 1
        self.slept_ms += int(round(sleep_s * 1000))
        self.last_error = str(err)[:300]
        self.last_status = http_status(err)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "retries_total": self.retries,
            "retries_by_error": dict(self.by_error),
            "backoff_total_ms": self.slept_ms,
            "last_error": self.last_error,
            "last_status": self.last_status,
        }


_POLICY: ContextVar[RetryPolicy] = ContextVar("easydrive_retry_policy", default=RetryPolicy())
_STATS: ContextVar[Optional[RetryStats]] = ContextVar("easydrive_retry_stats", default=None)


@contextmanager
def retry_policy_scope(
    policy: Union[RetryPolicy, Mapping[str, Any], None],
) -> Generator[RetryPolicy, None, None]:
    """Applica una policy (es. `Settings.retry_policy`) alle chiamate del blocco."""
    active = policy if isinstance(policy, RetryPolicy) else RetryPolicy.from_mapping(policy)
    token = _POLICY.set(active)
    try:
        yield active
    finally:
        _POLICY.reset(token)


@contextmanager
def drive_metrics_scope() -> Generator[RetryStats, None, None]:
    """Raccoglie le statistiche dei retry eseguiti dentro il blocco."""
    stats = RetryStats()
    token = _STATS.set(stats)
    try:
        yield stats
    finally:
        _STATS.reset(token)


def get_retry_metrics() -> Dict[str, Any]:
    """Snapshot delle statistiche correnti; dict vuoto fuori da `drive_metrics_scope`."""
    stats = _STATS.get()
    return stats.snapshot() if stats is not None else {}


# ------------------------------- Retry ---------------------------------------------


class _RetryBudgetExceeded(RuntimeError):
    """L'attesa cumulata ha raggiunto `max_total_sleep_s`."""


def http_status(err: BaseException) -> Optional[int]:
    """Status HTTP di un `HttpError` (o di un errore con `.resp.status`), se disponibile."""
    status = getattr(getattr(err, "resp", None), "status", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def _is_retryable_error(err: Exception) -> bool:
    if isinstance(err, HttpError):
        return http_status(err) in _RETRYABLE_STATUS
    text = str(err).lower()
    return any(marker in text for marker in _TRANSIENT_MARKERS)


def _retry(
    op: Callable[[], Any],
    *,
    op_name: str = "drive-op",
    is_retryable: Optional[Callable[[Exception], bool]] = None,
    **overrides: Any,
) -> Any:
    """Esegue `op()` ritentando gli errori transienti secondo la policy attiva.

    `overrides` (max_attempts, base_delay_s, max_total_sleep_s) sostituiscono i
    valori della policy solo per questa chiamata.
    """
    policy = replace(_POLICY.get(), **{k: v for k, v in overrides.items() if v is not None})
    check = is_retryable or _is_retryable_error
    stats = _STATS.get()
    slept = 0.0
    attempt = 0
    while True:
        attempt += 1
        try:
            return op()
        except Exception as e:  # noqa: BLE001
            transient = bool(check(e))
            if not transient or attempt >= policy.max_attempts:
                logger.debug(
                    "drive.retry.giveup",
                    extra={"op": op_name, "attempts": attempt, "retryable": transient, "exc_type": type(e).__name__},
                )
                raise
            delay = min(policy.jitter(attempt), policy.max_total_sleep_s - slept)
            if delay <= 0:
                logger.debug("drive.retry.budget_exceeded", extra={"op": op_name, "attempts": attempt})
                raise _RetryBudgetExceeded(f"Budget di retry esaurito per {op_name}") from e
            if stats is not None:
                stats.record(e, delay)
            logger.debug("drive.retry.backoff", extra={"op": op_name, "attempt": attempt, "sleep_s": round(delay, 3)})
            time.sleep(delay)
            slept += delay


def execute(op: Callable[[], Any], *, op_name: str, drive_id: Optional[str] = None, **retry_kwargs: Any) -> Any:
    """`_retry(op)` con gli errori finali convertiti in `TransportFailure`."""
    try:
        return _retry(op, op_name=op_name, **retry_kwargs)
    except TransportFailure:
        raise
    except Exception as e:  # noqa: BLE001
        raise TransportFailure(f"Drive {op_name} fallita: {e}", drive_id=drive_id) from e


# ------------------------------- Client --------------------------------------------


def _resolve_service_account_file(context: Any) -> str:
    """Path assoluto del JSON del service account: prima il contesto, poi l'ENV."""
    for raw in (getattr(context, "service_account_file", None), get_env_var("SERVICE_ACCOUNT_FILE")):
        if not raw:
            continue
        candidate = os.path.abspath(os.path.expanduser(str(raw)))
        if Path(candidate).is_file():
            return candidate
    raise ConfigError(
        "Service account non configurato: impostare context.service_account_file "
        "oppure SERVICE_ACCOUNT_FILE con il path di un file JSON leggibile."
    )


def get_drive_service(context: Any) -> Any:
    """Client Google Drive v3 autenticato con il service account del contesto."""
    local_logger = get_structured_logger("easydrive.drive.client", context=context)
    sa_path = _resolve_service_account_file(context)
    scopes = list(getattr(getattr(context, "settings", None), "scopes", None) or [DRIVE_SCOPE])

    try:
        creds = Credentials.from_service_account_file(sa_path, scopes=scopes)
    except Exception as e:  # noqa: BLE001
        raise ConfigError(f"Credenziali service account non valide: {e}", file_path=sa_path) from e
    try:
        service = build("drive", "v3", credentials=creds, cache_discovery=False)
    except Exception as e:  # noqa: BLE001
        raise ConfigError(f"Client Drive v3 non costruibile: {e}") from e

    local_logger.debug("drive.client.built", extra={"sa_file": Path(sa_path).name, "scopes": ",".join(scopes)})
    return service


# ------------------------------- Primitive di lettura ------------------------------


def ensure_id(value: Optional[str], *, what: str = "ID") -> str:
    """Normalizza e valida un ID Drive (config-boundary)."""
    value = str(value or "").strip()
    if not value:
        raise InvalidArgumentError(f"Google Drive: {what} mancante o vuoto.")
    return value


def list_children(service: Any, folder_id: str, *, page_size: int = 1000) -> List[RemoteEntry]:
    """Figli diretti (non cestinati) di una cartella, tutte le pagine concatenate.

    Raises:
        InvalidArgumentError: se `folder_id` è vuoto.
        TransportFailure: errore di listing non recuperabile dai retry.
    """
    folder_id = ensure_id(folder_id, what="folder_id")
    q = f"'{folder_id}' in parents and trashed = false"

    items: List[RemoteEntry] = []
    page_token: Optional[str] = None
    pages = 0
    while True:

        def _call() -> Any:
            return (
                service.files()
                .list(
                    q=q,
                    fields=_LIST_FIELDS,
                    spaces="drive",
                    pageSize=page_size,
                    pageToken=page_token,
                    includeItemsFromAllDrives=True,
                    supportsAllDrives=True,
                )
                .execute()
            )

        resp = execute(_call, op_name="files.list", drive_id=folder_id)
        pages += 1
        items.extend(RemoteEntry.from_api(f) for f in resp.get("files", []) or [])
        page_token = resp.get("nextPageToken")
        if not page_token:
            break

    logger.debug("drive.list.children", extra={"folder_id": folder_id, "pages": pages, "count": len(items)})
    return items


def get_entry(service: Any, entry_id: str) -> Optional[RemoteEntry]:
    """Metadati minimi di un file/cartella; None se Drive risponde 404.

    Raises:
        InvalidArgumentError: se `entry_id` è vuoto.
        TransportFailure: qualunque altro errore del provider.
    """
    entry_id = ensure_id(entry_id, what="file_id")

    def _call() -> Any:
        return service.files().get(fileId=entry_id, fields=ENTRY_FIELDS, supportsAllDrives=True).execute()

    try:
        payload = _retry(_call, op_name="files.get")
    except Exception as e:  # noqa: BLE001
        if http_status(e) == 404:
            return None
        raise TransportFailure(f"Drive files.get fallita: {e}", drive_id=entry_id) from e
    return RemoteEntry.from_api(cast(Dict[str, Any], payload))


__all__ = [
    "ENTRY_FIELDS",
    "get_drive_service",
    "list_children",
    "get_entry",
    "ensure_id",
    "execute",
    "http_status",
    "_retry",
    "RetryPolicy",
    "retry_policy_scope",
    "drive_metrics_scope",
    "get_retry_metrics",
]
