# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/drive/archive.py
"""Cartella Drive → archivio zip (in memoria).

Cosa fa
-------
- Risolve la cartella radice (`NotFoundError` se assente, `InvalidArgumentError`
  se l'ID indica un file); il chiamante che l'ha già letta può passarla a `run`.
- Visita ricorsivamente i figli (listing paginato completo per ogni cartella),
  separa cartelle e file, applica i filtri per estensione e copia ogni file in
  una entry zip `<prefisso><nome><estensione>`.
- In modalità albero completo (`files_only=False`) scrive anche una entry vuota
  `<prefisso><nome>/` per ogni sottocartella e usa `<nome>/` come prefisso dei figli;
  in modalità *files only* il prefisso resta vuoto (archivio piatto).
- Budget di profondità: decrementato a ogni discesa in una sottocartella; si
  scende solo se il budget residuo è > 0. Il contatore è condiviso tra le
  sottocartelle sorelle dello stesso livello; con `per_branch_depth=True` ogni
  sorella riceve invece lo stesso budget `depth - 1`.

Errori
------
Qualunque errore di listing/download è fatale per l'intero archivio
(`TransportFailure` con causa originale). Un download che restituisce None
(segnale di skip) omette l'entry senza errore.
"""

from __future__ import annotations

import io
import shutil
import zipfile
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from ..exceptions import InvalidArgumentError, NotFoundError
from ..logging_utils import get_structured_logger, mask_partial, phase_scope
from ..mime_types import FOLDER_EXTENSION
from .client import get_entry, list_children
from .download import DEFAULT_CHUNK_SIZE, download_content
from .models import ArchiveJob, RemoteEntry

logger = get_structured_logger("easydrive.drive.archive")


@dataclass
class _ArchiveStats:
    files: int = 0
    folders: int = 0
    skipped: int = 0
    filtered: int = 0


def _split(items: List[RemoteEntry]) -> Tuple[List[RemoteEntry], List[RemoteEntry]]:
    """(cartelle, file) mantenendo l'ordine di listing."""
    folders: List[RemoteEntry] = []
    files: List[RemoteEntry] = []
    for it in items:
        (folders if it.is_folder else files).append(it)
    return folders, files


class FolderArchiver:
    """Esegue un singolo `ArchiveJob`; lo zip è posseduto in esclusiva dalla chiamata."""

    def __init__(
        self,
        service: Any,
        *,
        page_size: int = 1000,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        redact_logs: bool = False,
    ) -> None:
        self.service = service
        self.page_size = page_size
        self.chunk_size = chunk_size
        self.redact_logs = redact_logs
        self._stats = _ArchiveStats()

    def _id(self, value: str) -> str:
        return mask_partial(value) if self.redact_logs else value

    def run(self, job: ArchiveJob, root: Optional[RemoteEntry] = None) -> io.BytesIO:
        """Costruisce l'archivio e lo restituisce con posizione 0.

        Raises:
            InvalidArgumentError: job non valido (depth <= 0, ID vuoto) o radice
                che non è una cartella.
            NotFoundError: cartella radice inesistente.
            TransportFailure: errore di listing/download.
        """
        job.validate()
        if root is None or root.id != job.folder_id:
            root = get_entry(self.service, job.folder_id)
        if root is None:
            raise NotFoundError("Folder not exist.", drive_id=job.folder_id)
        if not root.is_folder:
            raise InvalidArgumentError("L'ID indicato non è una cartella.", drive_id=job.folder_id)

        self._stats = _ArchiveStats()
        buffer = io.BytesIO()
        with phase_scope(logger, stage="drive.archive") as phase:
            logger.info(
                "drive.archive.start",
                extra={
                    "folder_id": self._id(root.id),
                    "depth": job.depth,
                    "files_only": job.files_only,
                    "include_ext": sorted(job.include_ext),
                    "exclude_ext": sorted(job.exclude_ext),
                },
            )
            with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
                self._walk(zf, job, root.id, "", job.depth)
            phase.set_artifacts(self._stats.files + self._stats.folders)

        buffer.seek(0)
        logger.info(
            "drive.archive.done",
            extra={
                "folder_id": self._id(root.id),
                "files": self._stats.files,
                "folders": self._stats.folders,
                "skipped": self._stats.skipped,
                "filtered": self._stats.filtered,
                "zip_bytes": buffer.getbuffer().nbytes,
            },
        )
        return buffer

    def _walk(self, zf: zipfile.ZipFile, job: ArchiveJob, folder_id: str, prefix: str, depth: int) -> None:
        children = list_children(self.service, folder_id, page_size=self.page_size)
        subfolders, files = _split(children)

        for entry in files:
            if not job.accepts(entry):
                self._stats.filtered += 1
                continue
            self._add_file(zf, entry, prefix)

        for sub in subfolders:
            if not job.files_only:
                zf.writestr(f"{prefix}{sub.name}{FOLDER_EXTENSION}", b"")
                self._stats.folders += 1
            if job.per_branch_depth:
                remaining = depth - 1
            else:
                # contatore condiviso tra le sorelle dello stesso livello
                depth -= 1
                remaining = depth
            if remaining > 0:
                child_prefix = "" if job.files_only else f"{prefix}{sub.name}/"
                self._walk(zf, job, sub.id, child_prefix, remaining)

    def _add_file(self, zf: zipfile.ZipFile, entry: RemoteEntry, prefix: str) -> None:
        stream = download_content(
            self.service,
            entry.id,
            chunk_size=self.chunk_size,
            label=entry.name,
        )
        if stream is None:
            self._stats.skipped += 1
            return
        arcname = f"{prefix}{entry.archive_name}"
        stream.seek(0)
        with zf.open(arcname, mode="w") as dest:
            shutil.copyfileobj(stream, dest)
        self._stats.files += 1
        logger.debug("drive.archive.entry", extra={"file_id": self._id(entry.id), "entry": arcname})


def build_archive(
    service: Any,
    folder_id: str,
    depth: Optional[int] = None,
    *,
    files_only: bool = True,
    include_ext: Optional[Any] = None,
    exclude_ext: Optional[Any] = None,
    per_branch_depth: bool = False,
    root: Optional[RemoteEntry] = None,
    page_size: int = 1000,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    redact_logs: bool = False,
) -> io.BytesIO:
    """Shortcut: crea l'`ArchiveJob` e lo esegue con un `FolderArchiver` dedicato."""
    job = ArchiveJob.create(
        folder_id,
        depth,
        files_only=files_only,
        include_ext=include_ext,
        exclude_ext=exclude_ext,
        per_branch_depth=per_branch_depth,
    )
    archiver = FolderArchiver(service, page_size=page_size, chunk_size=chunk_size, redact_logs=redact_logs)
    return archiver.run(job, root)


__all__ = ["FolderArchiver", "build_archive"]
