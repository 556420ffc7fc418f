# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/drive/models.py
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple

from ..exceptions import InvalidArgumentError
from ..mime_types import get_extension, is_folder_mime, normalize_extensions

UNBOUNDED_DEPTH = sys.maxsize


@dataclass(frozen=True)
class RemoteEntry:
    """File o cartella come restituito da Drive (sola lettura)."""

    id: str
    name: str
    mime_type: str
    parents: Tuple[str, ...] = ()
    size: Optional[int] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "RemoteEntry":
        size = payload.get("size")
        return cls(
            id=str(payload.get("id") or ""),
            name=str(payload.get("name") or ""),
            mime_type=str(payload.get("mimeType") or ""),
            parents=tuple(payload.get("parents") or ()),
            size=int(size) if size not in (None, "") else None,
        )

    @property
    def is_folder(self) -> bool:
        return is_folder_mime(self.mime_type)

    @property
    def extension(self) -> str:
        return get_extension(self.mime_type)

    @property
    def archive_name(self) -> str:
        """Nome dell'entry zip: nome Drive + estensione da MIME, sempre accodata."""
        return f"{self.name}{self.extension}"


@dataclass(frozen=True)
class ArchiveJob:
    """Una richiesta cartella -> zip, consumata una sola volta."""

    folder_id: str
    depth: int = UNBOUNDED_DEPTH
    files_only: bool = True
    include_ext: frozenset[str] = field(default_factory=frozenset)
    exclude_ext: frozenset[str] = field(default_factory=frozenset)
    per_branch_depth: bool = False

    @classmethod
    def create(
        cls,
        folder_id: str,
        depth: Optional[int] = None,
        *,
        files_only: bool = True,
        include_ext: Optional[Iterable[str]] = None,
        exclude_ext: Optional[Iterable[str]] = None,
        per_branch_depth: bool = False,
    ) -> "ArchiveJob":
        job = cls(
            folder_id=(folder_id or "").strip(),
            depth=UNBOUNDED_DEPTH if depth is None else depth,
            files_only=bool(files_only),
            include_ext=normalize_extensions(include_ext),
            exclude_ext=normalize_extensions(exclude_ext),
            per_branch_depth=bool(per_branch_depth),
        )
        job.validate()
        return job

    def validate(self) -> None:
        if not self.folder_id:
            raise InvalidArgumentError("ID cartella mancante o vuoto.")
        if isinstance(self.depth, bool) or not isinstance(self.depth, int):
            raise InvalidArgumentError(f"Depth deve essere un intero, ricevuto {type(self.depth).__name__}.")
        if self.depth <= 0:
            raise InvalidArgumentError("Depth deve essere un intero positivo.", drive_id=self.folder_id)

    def accepts(self, entry: RemoteEntry) -> bool:
        """Filtro estensioni: prima inclusione (se non vuota), poi esclusione."""
        ext = entry.extension
        if self.include_ext and ext not in self.include_ext:
            return False
        return ext not in self.exclude_ext


@dataclass(frozen=True)
class TransferProgress:
    """Notifica di avanzamento upload/download."""

    bytes_transferred: int
    total_bytes: Optional[int]
    done: bool
    label: str = ""

    @property
    def ratio(self) -> Optional[float]:
        if not self.total_bytes:
            return None
        return min(1.0, self.bytes_transferred / self.total_bytes)


ProgressCallback = Callable[[TransferProgress], None]


@dataclass(frozen=True)
class UploadItem:
    """Un file da caricare: nome remoto + contenuto (bytes, stream o path locale)."""

    name: Optional[str]
    content: Any
    description: str = ""

    @classmethod
    def coerce(cls, value: Any) -> "UploadItem":
        """Accetta `UploadItem`, tupla `(nome, contenuto)` o path locale."""
        if isinstance(value, cls):
            return value
        if isinstance(value, tuple) and len(value) == 2:
            return cls(name=value[0], content=value[1])
        return cls(name=None, content=value)


__all__ = [
    "UNBOUNDED_DEPTH",
    "RemoteEntry",
    "ArchiveJob",
    "TransferProgress",
    "ProgressCallback",
    "UploadItem",
]
