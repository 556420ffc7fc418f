# SPDX-License-Identifier: GPL-3.0-or-later
# tests/test_mime_types.py
from __future__ import annotations

import pytest

from easydrive.mime_types import (
    EXTENSION_TO_MIME,
    FALLBACK_MIME,
    FOLDER_EXTENSION,
    GDRIVE_FOLDER_MIME,
    MIME_TO_EXTENSION,
    get_extension,
    get_mime,
    is_folder_mime,
    normalize_extensions,
)


@pytest.mark.parametrize("ext", [".txt", "txt", "TXT", " .Txt "])
def test_get_mime_is_case_insensitive(ext: str) -> None:
    assert get_mime(ext) == "text/plain"


def test_unknown_values_fall_back() -> None:
    assert get_mime(".xyz") == FALLBACK_MIME
    assert get_mime(None) == FALLBACK_MIME
    assert get_extension("application/x-unknown") == ""


def test_maps_are_mutual_inverses() -> None:
    for ext, mime in EXTENSION_TO_MIME.items():
        assert MIME_TO_EXTENSION[mime] == ext


def test_maps_are_read_only() -> None:
    with pytest.raises(TypeError):
        EXTENSION_TO_MIME[".new"] = "x/y"  # type: ignore[index]


def test_folder_marker() -> None:
    assert get_extension(GDRIVE_FOLDER_MIME) == FOLDER_EXTENSION
    assert is_folder_mime(GDRIVE_FOLDER_MIME)
    assert not is_folder_mime("text/plain")


def test_normalize_extensions() -> None:
    assert normalize_extensions(None) == frozenset()
    assert normalize_extensions("CSV") == frozenset({".csv"})
    assert normalize_extensions(["txt", ".PDF", ""]) == frozenset({".txt", ".pdf"})
