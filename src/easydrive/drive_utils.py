# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/drive_utils.py
"""
Facade pubblica di easydrive: operazioni Google Drive che restituiscono `Result`.

Obiettivo
---------
- Esporre la superficie "comoda" (upload, download ricorsivo, zip, rinomina, delete)
  delegando l'implementazione ai moduli interni:
  - `easydrive.drive.client`   → client e primitive di lettura/elenco
  - `easydrive.drive.archive`  → cartella → zip
  - `easydrive.drive.download` → contenuti e scrittura su disco
  - `easydrive.drive.upload`   → cartelle, upload, rinomina, delete
- Nessuna eccezione di dominio esce da qui: ogni errore diventa `Result.failed(exc)`
  con l'eccezione originale in `result.error` (`NotFoundError`,
  `InvalidArgumentError`, `TransportFailure`, ...).

Funzioni (ruolo sintetico)
--------------------------
Download / archivio:
- `archive_folder(service, folder_id, depth, files_only, include_ext, exclude_ext)`
- `download_all_files(...)` / `download_all_files_to(...)` → solo file, archivio piatto.
- `download_folder(...)` / `download_folder_to(...)` → albero completo con cartelle.
- `download_file(...)` / `download_file_to(...)` → singolo file.
- `compress_folder(service, folder_id)` → zip della cartella caricato accanto ad essa.

Upload / gestione:
- `upload_file(...)`, `upload_files(...)`, `create_folder(...)`,
  `rename_folder(...)`, `delete_folder_or_file(...)`.

Tutte accettano `context=DriveContext` opzionale (page size, chunk, retry, redazione).
"""

from __future__ import annotations

import io
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from pathlib import Path
from typing import Any, Callable, ContextManager, Iterable, List, Optional, Sequence, TypeVar, Union

from .exceptions import DriveDownloadError, DriveError, InvalidArgumentError, NotFoundError, TransportFailure
from .logging_utils import get_structured_logger, mask_partial
from .mime_types import ZIP_MIME
from .result import Result
from .drive.archive import build_archive
from .drive.client import get_drive_service, get_entry, list_children, retry_policy_scope
from .drive.download import DEFAULT_CHUNK_SIZE, download_content, save_stream
from .drive.models import ArchiveJob, ProgressCallback, RemoteEntry, UploadItem
from .drive.upload import create_folder as _create_folder
from .drive.upload import delete_entry, rename_entry, upload_content

T = TypeVar("T")
Parents = Union[str, Sequence[str], None]

logger = get_structured_logger("easydrive.drive_utils")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _Runtime:
    """Parametri runtime derivati dal contesto (o default)."""

    def __init__(self, context: Any = None) -> None:
        settings = getattr(context, "settings", None)
        self.page_size: int = getattr(settings, "page_size", 1000) if settings is not None else 1000
        self.chunk_size: int = (
            getattr(settings, "chunk_size", DEFAULT_CHUNK_SIZE) if settings is not None else DEFAULT_CHUNK_SIZE
        )
        self.redact_logs: bool = bool(getattr(context, "redact_logs", False))
        self._retry_policy = getattr(settings, "retry_policy", None) if settings is not None else None

    def retry_scope(self) -> ContextManager[Any]:
        return retry_policy_scope(self._retry_policy) if self._retry_policy else nullcontext()

    def mask(self, value: Optional[str]) -> str:
        return mask_partial(value) if self.redact_logs else (value or "")


def _run(op_name: str, fn: Callable[[], T], rt: _Runtime) -> Result[T]:
    """Esegue `fn` e converte l'esito in `Result` (mai eccezioni verso il chiamante)."""
    try:
        with rt.retry_scope():
            return Result.success(fn())
    except DriveError as e:
        logger.warning(
            "drive.op.failed",
            extra={"op": op_name, "error_type": type(e).__name__, "error_message": str(e)[:300]},
        )
        return Result.failed(e)
    except Exception as e:  # noqa: BLE001
        logger.error(
            "drive.op.unexpected",
            extra={"op": op_name, "error_type": type(e).__name__, "error_message": str(e)[:300]},
            exc_info=True,
        )
        wrapped = TransportFailure(f"{op_name} fallita: {e}")
        wrapped.__cause__ = e
        return Result.failed(wrapped)


def _require_entry(service: Any, entry_id: str, *, what: str = "File") -> RemoteEntry:
    entry = get_entry(service, entry_id)
    if entry is None:
        raise NotFoundError(f"{what} not exist.", drive_id=entry_id)
    return entry


def _archive(
    service: Any,
    rt: _Runtime,
    folder_id: str,
    depth: Optional[int],
    files_only: bool,
    include_ext: Optional[Iterable[str]],
    exclude_ext: Optional[Iterable[str]],
    per_branch_depth: bool = False,
    root: Optional[RemoteEntry] = None,
) -> io.BytesIO:
    return build_archive(
        service,
        folder_id,
        depth,
        files_only=files_only,
        include_ext=include_ext,
        exclude_ext=exclude_ext,
        per_branch_depth=per_branch_depth,
        root=root,
        page_size=rt.page_size,
        chunk_size=rt.chunk_size,
        redact_logs=rt.redact_logs,
    )


# ---------------------------------------------------------------------------
# Archivio cartelle
# ---------------------------------------------------------------------------


def archive_folder(
    service: Any,
    folder_id: str,
    depth: Optional[int] = None,
    files_only: bool = True,
    include_ext: Optional[Iterable[str]] = None,
    exclude_ext: Optional[Iterable[str]] = None,
    *,
    per_branch_depth: bool = False,
    context: Any = None,
) -> Result[io.BytesIO]:
    """Cartella → zip in memoria (posizione 0).

    Failure: `InvalidArgumentError` (depth <= 0, ID vuoto), `NotFoundError`
    (cartella assente), `TransportFailure` (listing/download).
    """
    rt = _Runtime(context)
    return _run(
        "archive_folder",
        lambda: _archive(service, rt, folder_id, depth, files_only, include_ext, exclude_ext, per_branch_depth),
        rt,
    )


def download_all_files(
    service: Any,
    folder_id: str,
    *,
    depth: Optional[int] = None,
    include_ext: Optional[Iterable[str]] = None,
    exclude_ext: Optional[Iterable[str]] = None,
    context: Any = None,
) -> Result[io.BytesIO]:
    """Solo i file della cartella (e delle sottocartelle entro `depth`), archivio piatto."""
    return archive_folder(service, folder_id, depth, True, include_ext, exclude_ext, context=context)


def download_folder(
    service: Any,
    folder_id: str,
    *,
    depth: Optional[int] = None,
    include_ext: Optional[Iterable[str]] = None,
    exclude_ext: Optional[Iterable[str]] = None,
    context: Any = None,
) -> Result[io.BytesIO]:
    """Sottocartelle e file in modo gerarchico (prefissi di cartella nelle entry)."""
    return archive_folder(service, folder_id, depth, False, include_ext, exclude_ext, context=context)


def _archive_to(
    op_name: str,
    service: Any,
    folder_id: str,
    path: Union[str, Path],
    *,
    name: Optional[str],
    depth: Optional[int],
    files_only: bool,
    include_ext: Optional[Iterable[str]],
    exclude_ext: Optional[Iterable[str]],
    context: Any,
) -> Result[Path]:
    rt = _Runtime(context)

    def _op() -> Path:
        # valida depth/ID prima di qualsiasi chiamata remota
        ArchiveJob.create(folder_id, depth, files_only=files_only)
        folder = _require_entry(service, folder_id, what="Folder")
        buffer = _archive(service, rt, folder_id, depth, files_only, include_ext, exclude_ext, root=folder)
        return save_stream(buffer, Path(path), f"{name or folder.name}.zip")

    return _run(op_name, _op, rt)


def download_all_files_to(
    service: Any,
    folder_id: str,
    path: Union[str, Path],
    *,
    name: Optional[str] = None,
    depth: Optional[int] = None,
    include_ext: Optional[Iterable[str]] = None,
    exclude_ext: Optional[Iterable[str]] = None,
    context: Any = None,
) -> Result[Path]:
    """Come `download_all_files`, scritto in `<path>/<name o nome cartella>.zip`."""
    return _archive_to(
        "download_all_files_to",
        service,
        folder_id,
        path,
        name=name,
        depth=depth,
        files_only=True,
        include_ext=include_ext,
        exclude_ext=exclude_ext,
        context=context,
    )


def download_folder_to(
    service: Any,
    folder_id: str,
    path: Union[str, Path],
    *,
    name: Optional[str] = None,
    depth: Optional[int] = None,
    include_ext: Optional[Iterable[str]] = None,
    exclude_ext: Optional[Iterable[str]] = None,
    context: Any = None,
) -> Result[Path]:
    """Come `download_folder`, scritto in `<path>/<name o nome cartella>.zip`."""
    return _archive_to(
        "download_folder_to",
        service,
        folder_id,
        path,
        name=name,
        depth=depth,
        files_only=False,
        include_ext=include_ext,
        exclude_ext=exclude_ext,
        context=context,
    )


def compress_folder(service: Any, folder_id: str, *, context: Any = None) -> Result[str]:
    """Comprime la cartella (albero completo) e carica `<nome>.zip` nei suoi parent.

    Ritorna l'ID Drive del nuovo file zip.
    """
    rt = _Runtime(context)

    def _op() -> str:
        folder = _require_entry(service, folder_id, what="Folder")
        buffer = _archive(service, rt, folder.id, None, False, None, None, root=folder)
        return upload_content(
            service,
            buffer,
            f"{folder.name}.zip",
            list(folder.parents),
            mime_type=ZIP_MIME,
            chunk_size=rt.chunk_size,
            redact_logs=rt.redact_logs,
        )

    return _run("compress_folder", _op, rt)


# ---------------------------------------------------------------------------
# Singolo file
# ---------------------------------------------------------------------------


def _download_one(service: Any, rt: _Runtime, file_id: str, on_progress: Optional[ProgressCallback]) -> tuple:
    entry = _require_entry(service, file_id)
    if entry.is_folder:
        raise InvalidArgumentError("L'ID indicato è una cartella: usare download_folder.", drive_id=file_id)
    stream = download_content(service, entry.id, chunk_size=rt.chunk_size, on_progress=on_progress, label=entry.name)
    if stream is None:
        raise DriveDownloadError("File non scaricabile come contenuto binario.", drive_id=file_id)
    return entry, stream


def download_file(
    service: Any,
    file_id: str,
    *,
    on_progress: Optional[ProgressCallback] = None,
    context: Any = None,
) -> Result[io.BytesIO]:
    """Singolo file in memoria (posizione 0)."""
    rt = _Runtime(context)
    return _run("download_file", lambda: _download_one(service, rt, file_id, on_progress)[1], rt)


def download_file_to(
    service: Any,
    file_id: str,
    path: Union[str, Path],
    *,
    name: Optional[str] = None,
    on_progress: Optional[ProgressCallback] = None,
    context: Any = None,
) -> Result[Path]:
    """Singolo file scritto in `<path>/<name o nome remoto>`."""
    rt = _Runtime(context)

    def _op() -> Path:
        entry, stream = _download_one(service, rt, file_id, on_progress)
        return save_stream(stream, Path(path), name or entry.name)

    return _run("download_file_to", _op, rt)


# ---------------------------------------------------------------------------
# Upload / gestione
# ---------------------------------------------------------------------------


def upload_file(
    service: Any,
    content: Any,
    name: Optional[str] = None,
    parents: Parents = None,
    *,
    description: str = "",
    on_progress: Optional[ProgressCallback] = None,
    context: Any = None,
) -> Result[str]:
    """Carica bytes / stream / path locale; ritorna l'ID del nuovo file."""
    rt = _Runtime(context)
    return _run(
        "upload_file",
        lambda: upload_content(
            service,
            content,
            name,
            parents,
            description=description,
            chunk_size=rt.chunk_size,
            on_progress=on_progress,
            redact_logs=rt.redact_logs,
        ),
        rt,
    )


def upload_files(
    service: Any,
    files: Sequence[Any],
    parents: Parents = None,
    *,
    max_workers: int = 1,
    service_factory: Optional[Callable[[], Any]] = None,
    on_progress: Optional[ProgressCallback] = None,
    context: Any = None,
) -> Result[List[str]]:
    """Carica più file indipendenti; il primo fallimento determina l'esito.

    Con `max_workers > 1` gli upload girano su un thread pool e ogni worker usa
    un proprio client creato da `service_factory` (i client googleapiclient non
    sono thread-safe). L'ordine degli ID riflette l'ordine di `files`.
    """
    rt = _Runtime(context)
    if max_workers < 1:
        return Result.failed(InvalidArgumentError("max_workers deve essere >= 1."))
    if max_workers > 1 and service_factory is None:
        return Result.failed(InvalidArgumentError("service_factory richiesta per upload paralleli."))

    items = [UploadItem.coerce(f) for f in files]
    local = threading.local()

    def _service() -> Any:
        if service_factory is None:
            return service
        if not hasattr(local, "service"):
            local.service = service_factory()
        return local.service

    def _one(item: UploadItem) -> Result[str]:
        return upload_file(
            _service(),
            item.content,
            item.name,
            parents,
            description=item.description,
            on_progress=on_progress,
            context=context,
        )

    if max_workers == 1:
        results = [_one(item) for item in items]
    else:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="easydrive-upload") as pool:
            results = list(pool.map(_one, items))

    aggregated = Result.aggregate(results)
    logger.info(
        "drive.upload.batch.done",
        extra={
            "count": len(items),
            "failed": sum(1 for r in results if r.is_failed),
            "parents": [rt.mask(p) for p in ([parents] if isinstance(parents, str) else list(parents or []))],
        },
    )
    return aggregated


def create_folder(service: Any, name: str, parents: Parents = None, *, context: Any = None) -> Result[str]:
    """Crea una cartella; ritorna il suo ID."""
    rt = _Runtime(context)
    return _run("create_folder", lambda: _create_folder(service, name, parents, redact_logs=rt.redact_logs), rt)


def rename_folder(service: Any, entry_id: str, new_name: str, *, context: Any = None) -> Result[RemoteEntry]:
    """Rinomina cartella (o file); ritorna i metadati aggiornati."""
    rt = _Runtime(context)
    return _run("rename_folder", lambda: rename_entry(service, entry_id, new_name, redact_logs=rt.redact_logs), rt)


def delete_folder_or_file(service: Any, entry_id: Optional[str], *, context: Any = None) -> Result[bool]:
    """Elimina un file o una cartella. ID vuoto/None → `InvalidArgumentError`."""
    rt = _Runtime(context)

    def _op() -> bool:
        delete_entry(service, entry_id or "", redact_logs=rt.redact_logs)
        return True

    return _run("delete_folder_or_file", _op, rt)


# --------------------------------- Superficie pubblica ------------------------------

__all__: list[str] = [
    # client / lettura
    "get_drive_service",
    "get_entry",
    "list_children",
    # archivio / download
    "archive_folder",
    "download_all_files",
    "download_all_files_to",
    "download_folder",
    "download_folder_to",
    "compress_folder",
    "download_file",
    "download_file_to",
    # upload / gestione
    "upload_file",
    "upload_files",
    "create_folder",
    "rename_folder",
    "delete_folder_or_file",
]
