# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/exceptions.py
"""
Tassonomia degli errori di easydrive.

- `DriveError`: base comune. Porta un contesto opzionale (`file_path`,
  `drive_id`, `run_id`) reso in `__str__` in forma sicura: del file resta solo
  il nome, dell'ID solo la coda.
- `NotFoundError`: l'ID sorgente non esiste (o non è visibile al service account).
- `InvalidArgumentError`: argomenti non validi (depth non positiva, ID o nomi vuoti).
- `TransportFailure`: qualunque errore del provider o di I/O locale; la causa
  originale resta in `__cause__`. Sottotipi per download e upload.
- `ConfigError` / `PathTraversalError`: configurazione, credenziali, path di scrittura.

Le eccezioni non fanno I/O e non terminano il processo.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional


class DriveError(Exception):
    """Errore di dominio easydrive con contesto diagnostico opzionale."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        file_path: Optional[str | Path] = None,
        drive_id: Optional[str] = None,
        run_id: Optional[str] = None,
        **_: Any,
    ) -> None:
        super().__init__(message or "")
        self.file_path = file_path
        self.drive_id = drive_id
        self.run_id = run_id

    @property
    def message(self) -> str:
        """Messaggio nudo, senza contesto."""
        return super().__str__() or type(self).__name__

    def _context(self) -> list[str]:
        parts: list[str] = []
        if self.file_path:
            parts.append(f"file={Path(str(self.file_path)).name or self.file_path}")
        if self.drive_id:
            tail = str(self.drive_id)
            parts.append(f"drive_id={tail if len(tail) <= 6 else '…' + tail[-6:]}")
        if self.run_id:
            parts.append(f"run_id={self.run_id}")
        return parts

    def __str__(self) -> str:
        parts = self._context()
        return f"{self.message} [{' | '.join(parts)}]" if parts else self.message


class NotFoundError(DriveError):
    """L'elemento richiesto non esiste su Drive."""


class InvalidArgumentError(DriveError, ValueError):
    """Parametri di chiamata non validi."""


class TransportFailure(DriveError):
    """Errore del provider o di I/O; la causa originale è in `__cause__`."""


class DriveDownloadError(TransportFailure):
    """Download di un contenuto fallito."""


class DriveUploadError(TransportFailure):
    """Creazione, upload, rinomina o eliminazione fallita."""


class ConfigError(DriveError):
    """Configurazione o credenziali non valide."""


class PathTraversalError(ConfigError):
    """Path di scrittura fuori dalla directory consentita."""


__all__ = [
    "DriveError",
    "NotFoundError",
    "InvalidArgumentError",
    "TransportFailure",
    "DriveDownloadError",
    "DriveUploadError",
    "ConfigError",
    "PathTraversalError",
]
