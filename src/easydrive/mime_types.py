# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/mime_types.py
"""Tabella estensione <-> MIME usata da Drive.

Le due mappe (diretta e inversa) sono costruite una sola volta a import-time e
sono immutabili. Le chiavi estensione sono normalizzate in minuscolo con punto
iniziale; la cartella usa la convenzione "/" come estensione.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

GDRIVE_FOLDER_MIME = "application/vnd.google-apps.folder"
ZIP_MIME = "application/zip"
FALLBACK_MIME = "*/*"
FOLDER_EXTENSION = "/"

_DRIVE_MIMES: tuple[tuple[str, str], ...] = (
    (FOLDER_EXTENSION, GDRIVE_FOLDER_MIME),
    (".docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
    (".odt", "application/vnd.oasis.opendocument.text"),
    (".rtf", "application/rtf"),
    (".pdf", "application/pdf"),
    (".txt", "text/plain"),
    (".zip", ZIP_MIME),
    (".epub", "application/epub+zip"),
    (".xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
    (".ods", "application/x-vnd.oasis.opendocument.spreadsheet"),
    (".csv", "text/csv"),
    (".tsv", "text/tab-separated-values"),
    (".pptx", "application/vnd.openxmlformats-officedocument.presentationml.presentation"),
    (".odp", "application/vnd.oasis.opendocument.presentation"),
    (".jpg", "image/jpeg"),
    (".png", "image/png"),
    (".svg", "image/svg+xml"),
    (".json", "application/vnd.google-apps.script+json"),
)

EXTENSION_TO_MIME: Mapping[str, str] = MappingProxyType({ext: mime for ext, mime in _DRIVE_MIMES})
MIME_TO_EXTENSION: Mapping[str, str] = MappingProxyType({mime: ext for ext, mime in _DRIVE_MIMES})


def normalize_extension(ext: Optional[str]) -> str:
    """'TXT' / 'txt' / '.txt' -> '.txt'; la cartella resta '/'."""
    value = (ext or "").strip().lower()
    if not value or value == FOLDER_EXTENSION:
        return value
    return value if value.startswith(".") else f".{value}"


def normalize_extensions(exts: Optional[Iterable[str]]) -> frozenset[str]:
    if not exts:
        return frozenset()
    if isinstance(exts, str):
        exts = [exts]
    return frozenset(e for e in (normalize_extension(x) for x in exts) if e)


def get_mime(extension: Optional[str]) -> str:
    """MIME per un'estensione (case-insensitive); `*/*` se sconosciuta."""
    return EXTENSION_TO_MIME.get(normalize_extension(extension), FALLBACK_MIME)


def get_extension(mime_type: Optional[str]) -> str:
    """Estensione per un MIME; stringa vuota se sconosciuto."""
    return MIME_TO_EXTENSION.get((mime_type or "").strip(), "")


def is_folder_mime(mime_type: Optional[str]) -> bool:
    return mime_type == GDRIVE_FOLDER_MIME


__all__ = [
    "GDRIVE_FOLDER_MIME",
    "ZIP_MIME",
    "FALLBACK_MIME",
    "FOLDER_EXTENSION",
    "EXTENSION_TO_MIME",
    "MIME_TO_EXTENSION",
    "normalize_extension",
    "normalize_extensions",
    "get_mime",
    "get_extension",
    "is_folder_mime",
]
