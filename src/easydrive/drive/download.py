# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/drive/download.py
"""Download di contenuti da Google Drive e scrittura **atomica** su disco.

API
---
download_content(service, file_id, *, chunk_size=..., on_progress=None, label="") -> BytesIO | None
    Scarica il contenuto binario in memoria (posizione 0). Ritorna None come
    segnale di *skip* (non errore) quando il file non esiste più (404) o Drive lo
    dichiara non scaricabile come binario (documenti nativi Google).

save_stream(stream, target_dir, file_name) -> Path
    Copia lo stream in `target_dir/file_name`: file temporaneo nello stesso folder,
    `flush` + `fsync`, quindi `os.replace()`. Path-safety STRONG (`ensure_within`).

Dipendenze
----------
- google-api-python-client (MediaIoBaseDownload)
"""

from __future__ import annotations

import io
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, BinaryIO, Optional

from googleapiclient.http import MediaIoBaseDownload

from ..exceptions import DriveDownloadError, TransportFailure
from ..logging_utils import get_structured_logger, tail_path
from ..path_utils import ensure_within_and_resolve
from .client import _retry, http_status
from .models import ProgressCallback, TransferProgress

logger = get_structured_logger("easydrive.drive.download")

# Chunk di download (8 MiB bilanciato per throughput/ram)
DEFAULT_CHUNK_SIZE = 8 * 1024 * 1024

_NOT_DOWNLOADABLE_REASONS = ("fileNotDownloadable", "cannotDownloadAbusiveFile")


def _is_skip_error(err: BaseException) -> bool:
    status = http_status(err)
    if status == 404:
        return True
    if status == 403:
        content = getattr(err, "content", b"") or b""
        text = content.decode("utf-8", "ignore") if isinstance(content, bytes) else str(content)
        return any(reason in text for reason in _NOT_DOWNLOADABLE_REASONS)
    return False


def _notify(on_progress: Optional[ProgressCallback], progress: TransferProgress) -> None:
    if on_progress is None:
        return
    try:
        on_progress(progress)
    except Exception as e:  # noqa: BLE001
        logger.warning("download.progress.callback_failed", extra={"error": str(e)[:200]})


def download_content(
    service: Any,
    file_id: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: Optional[ProgressCallback] = None,
    label: str = "",
) -> Optional[io.BytesIO]:
    """Scarica un file in memoria; None se il file va saltato.

    Raises:
        DriveDownloadError: errore di trasporto non recuperabile.
    """

    def _call() -> io.BytesIO:
        buffer = io.BytesIO()
        request = service.files().get_media(fileId=file_id, supportsAllDrives=True)
        downloader = MediaIoBaseDownload(buffer, request, chunksize=int(chunk_size))
        done = False
        while not done:
            status, done = downloader.next_chunk()
            if status is not None:
                _notify(
                    on_progress,
                    TransferProgress(
                        bytes_transferred=int(status.resumable_progress),
                        total_bytes=status.total_size,
                        done=bool(done),
                        label=label,
                    ),
                )
        buffer.seek(0)
        return buffer

    try:
        stream = _retry(_call, op_name="files.get_media")
    except Exception as e:  # noqa: BLE001
        if _is_skip_error(e):
            logger.info("download.skip", extra={"file_id": file_id, "status": http_status(e)})
            return None
        raise DriveDownloadError(f"Download fallito: {e}", drive_id=file_id) from e
    return stream


def save_stream(stream: BinaryIO, target_dir: Path | str, file_name: str) -> Path:
    """Scrive lo stream (dall'inizio) in `target_dir/file_name` con commit atomico.

    Raises:
        PathTraversalError: `file_name` esce da `target_dir`.
        TransportFailure: errore di I/O locale.
    """
    target_dir = Path(target_dir)
    dest_path = ensure_within_and_resolve(target_dir, target_dir / file_name)
    tmp_name: Optional[str] = None
    try:
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(mode="wb", delete=False, dir=str(dest_path.parent)) as tmp:
            tmp_name = tmp.name
            stream.seek(0)
            shutil.copyfileobj(stream, tmp)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, dest_path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise TransportFailure(f"Scrittura locale fallita: {e}", file_path=str(dest_path)) from e
    finally:
        stream.seek(0)

    logger.info("download.saved", extra={"file_path": tail_path(dest_path)})
    return dest_path


__all__ = ["DEFAULT_CHUNK_SIZE", "download_content", "save_stream"]
