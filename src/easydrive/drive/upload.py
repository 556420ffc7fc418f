# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/drive/upload.py
from __future__ import annotations

import io
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Sequence, Union, cast

from googleapiclient.http import MediaIoBaseUpload

from ..exceptions import DriveUploadError, InvalidArgumentError, NotFoundError
from ..logging_utils import get_structured_logger, mask_partial
from ..mime_types import GDRIVE_FOLDER_MIME, get_mime
from .client import ENTRY_FIELDS, _retry, ensure_id, http_status
from .download import DEFAULT_CHUNK_SIZE
from .models import ProgressCallback, RemoteEntry, TransferProgress

logger = get_structured_logger("easydrive.drive.upload")

UploadContent = Union[bytes, bytearray, BinaryIO, Path, str]


# ---------------------------------------------------------------------------
# Helpers generali
# ---------------------------------------------------------------------------


def _maybe_redact(text: str, redact: bool) -> str:
    if not redact or not text:
        return text
    return mask_partial(text)


def normalize_parents(parents: Union[str, Sequence[str], None]) -> List[str]:
    """Accetta un ID singolo o una sequenza; scarta i valori vuoti."""
    if parents is None:
        return []
    if isinstance(parents, str):
        parents = [parents]
    return [p.strip() for p in parents if p and p.strip()]


def _open_content(content: UploadContent) -> tuple[BinaryIO, Optional[str]]:
    """Stream binario + nome suggerito (solo per path locali)."""
    if isinstance(content, (bytes, bytearray)):
        return io.BytesIO(bytes(content)), None
    if isinstance(content, (str, Path)):
        p = Path(content)
        if not p.is_file():
            raise InvalidArgumentError(f"File locale non trovato: {p}", file_path=str(p))
        return io.BytesIO(p.read_bytes()), p.name
    if hasattr(content, "read"):
        if hasattr(content, "seek"):
            content.seek(0)
        return content, getattr(content, "name", None)
    raise InvalidArgumentError(f"Contenuto upload non supportato: {type(content).__name__}")


def _stream_size(stream: BinaryIO) -> Optional[int]:
    try:
        pos = stream.tell()
        stream.seek(0, io.SEEK_END)
        size = stream.tell()
        stream.seek(pos)
        return size
    except (OSError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Cartelle
# ---------------------------------------------------------------------------


def create_folder(
    service: Any,
    name: str,
    parents: Union[str, Sequence[str], None] = None,
    *,
    redact_logs: bool = False,
) -> str:
    """Crea una cartella e ne restituisce l'ID."""
    name = (name or "").strip()
    if not name:
        raise InvalidArgumentError("Nome cartella mancante.")
    body: Dict[str, Any] = {"name": name, "mimeType": GDRIVE_FOLDER_MIME}
    parent_ids = normalize_parents(parents)
    if parent_ids:
        body["parents"] = parent_ids

    def _call() -> Any:
        return service.files().create(body=body, fields="id", supportsAllDrives=True).execute()

    try:
        resp = cast(Dict[str, Any], _retry(_call, op_name="files.create.folder"))
    except Exception as e:  # noqa: BLE001
        logger.error(
            "drive.upload.folder.create_error",
            extra={"folder_name": name, "error_message": str(e)[:300]},
        )
        raise DriveUploadError(f"Creazione cartella fallita: {name}") from e

    folder_id = cast(str, resp["id"])
    logger.info(
        "drive.upload.folder.created",
        extra={
            "parents": [_maybe_redact(p, redact_logs) for p in parent_ids] or ["root"],
            "folder_name": name,
            "folder_id": _maybe_redact(folder_id, redact_logs),
        },
    )
    return folder_id


# ---------------------------------------------------------------------------
# Upload contenuti
# ---------------------------------------------------------------------------


def upload_content(
    service: Any,
    content: UploadContent,
    name: Optional[str] = None,
    parents: Union[str, Sequence[str], None] = None,
    *,
    description: str = "",
    mime_type: Optional[str] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: Optional[ProgressCallback] = None,
    redact_logs: bool = False,
) -> str:
    """Carica un contenuto (bytes, stream o path locale) e ritorna l'ID del nuovo file.

    Il MIME deriva dall'estensione del nome (`*/*` se sconosciuta). L'upload è
    resumable: `on_progress` riceve un `TransferProgress` per ogni chunk inviato,
    nell'ordine riportato dal trasporto.
    """
    stream, suggested = _open_content(content)
    file_name = Path(str(name or suggested or "")).name
    if not file_name:
        raise InvalidArgumentError("Nome file mancante per l'upload.")
    mime = mime_type or get_mime(Path(file_name).suffix)
    parent_ids = normalize_parents(parents)
    total = _stream_size(stream)

    body: Dict[str, Any] = {"name": file_name, "description": description, "mimeType": mime}
    if parent_ids:
        body["parents"] = parent_ids

    def _notify(progress: TransferProgress) -> None:
        if on_progress is None:
            return
        try:
            on_progress(progress)
        except Exception as e:  # noqa: BLE001
            logger.warning("upload.progress.callback_failed", extra={"error": str(e)[:200]})

    def _call() -> Any:
        stream.seek(0)
        media = MediaIoBaseUpload(stream, mimetype=mime, chunksize=int(chunk_size), resumable=True)
        request = service.files().create(body=body, media_body=media, fields="id", supportsAllDrives=True)
        response = None
        while response is None:
            status, response = request.next_chunk()
            if status is not None:
                _notify(
                    TransferProgress(
                        bytes_transferred=int(status.resumable_progress),
                        total_bytes=status.total_size,
                        done=False,
                        label=file_name,
                    )
                )
        return response

    try:
        resp = cast(Dict[str, Any], _retry(_call, op_name="files.create.upload"))
    except Exception as e:  # noqa: BLE001
        logger.error(
            "drive.upload.file.error",
            extra={"upload_name": file_name, "error_message": str(e)[:300]},
        )
        raise DriveUploadError(f"Upload file fallito: {e}", drive_id=",".join(parent_ids) or None) from e

    _notify(TransferProgress(bytes_transferred=total or 0, total_bytes=total, done=True, label=file_name))
    file_id = cast(str, resp["id"])
    logger.info(
        "drive.upload.file.done",
        extra={
            "upload_name": file_name,
            "file_id": _maybe_redact(file_id, redact_logs),
            "mime": mime,
            "size": total,
        },
    )
    return file_id


# ---------------------------------------------------------------------------
# Rinomina / eliminazione
# ---------------------------------------------------------------------------


def rename_entry(service: Any, entry_id: str, new_name: str, *, redact_logs: bool = False) -> RemoteEntry:
    """Rinomina un file o una cartella; ritorna i metadati aggiornati."""
    entry_id = ensure_id(entry_id, what="file_id")
    new_name = (new_name or "").strip()
    if not new_name:
        raise InvalidArgumentError("Nuovo nome mancante.", drive_id=entry_id)

    def _call() -> Any:
        return (
            service.files()
            .update(fileId=entry_id, body={"name": new_name}, fields=ENTRY_FIELDS, supportsAllDrives=True)
            .execute()
        )

    try:
        resp = _retry(_call, op_name="files.update.name")
    except Exception as e:  # noqa: BLE001
        if http_status(e) == 404:
            raise NotFoundError("File not exist.", drive_id=entry_id) from e
        raise DriveUploadError(f"Rinomina fallita: {e}", drive_id=entry_id) from e

    logger.info(
        "drive.upload.entry.renamed",
        extra={"file_id": _maybe_redact(entry_id, redact_logs), "new_name": new_name},
    )
    return RemoteEntry.from_api(cast(Dict[str, Any], resp))


def delete_entry(service: Any, entry_id: str, *, redact_logs: bool = False) -> None:
    """Elimina un file/cartella su Drive (idempotente su 404)."""
    entry_id = ensure_id(entry_id, what="file_id")

    def _call() -> Any:
        return service.files().delete(fileId=entry_id, supportsAllDrives=True).execute()

    try:
        _retry(_call, op_name="files.delete")
    except Exception as e:  # noqa: BLE001
        if http_status(e) == 404:
            logger.info("drive.upload.entry.already_deleted", extra={"file_id": _maybe_redact(entry_id, redact_logs)})
            return
        raise DriveUploadError(f"Eliminazione file Drive fallita: {e}", drive_id=entry_id) from e

    logger.info("drive.upload.entry.deleted", extra={"file_id": _maybe_redact(entry_id, redact_logs)})


__all__ = [
    "UploadContent",
    "normalize_parents",
    "create_folder",
    "upload_content",
    "rename_entry",
    "delete_entry",
]
