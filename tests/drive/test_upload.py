# SPDX-License-Identifier: GPL-3.0-or-later
# tests/drive/test_upload.py
from __future__ import annotations

import io
from pathlib import Path

import pytest

from easydrive.drive.models import TransferProgress
from easydrive.drive.upload import (
    create_folder,
    delete_entry,
    normalize_parents,
    rename_entry,
    upload_content,
)
from easydrive.exceptions import DriveUploadError, InvalidArgumentError, NotFoundError
from easydrive.mime_types import FALLBACK_MIME, GDRIVE_FOLDER_MIME
from tests._helpers.drive_fake import FakeDrive, http_error


def test_normalize_parents_accepts_single_id_and_sequences() -> None:
    assert normalize_parents(None) == []
    assert normalize_parents(" P1 ") == ["P1"]
    assert normalize_parents(["P1", "", "  ", "P2"]) == ["P1", "P2"]


def test_create_folder_sets_mime_and_parents(drive: FakeDrive) -> None:
    folder_id = create_folder(drive, "Nuova", "ROOT")
    entry = drive.entries[folder_id]
    assert entry["mimeType"] == GDRIVE_FOLDER_MIME
    assert entry["parents"] == ["ROOT"]


def test_create_folder_requires_name(drive: FakeDrive) -> None:
    with pytest.raises(InvalidArgumentError):
        create_folder(drive, "  ")


def test_create_folder_wraps_provider_errors(drive: FakeDrive) -> None:
    drive.fail_create = http_error(403, "insufficientPermissions")
    with pytest.raises(DriveUploadError):
        create_folder(drive, "X")


def test_upload_bytes_with_mime_from_extension(drive: FakeDrive) -> None:
    file_id = upload_content(drive, b"a;b", "tabella.csv", ["ROOT"], description="dati")
    entry = drive.entries[file_id]
    assert entry["mimeType"] == "text/csv"
    assert entry["description"] == "dati"
    assert drive.contents[file_id] == b"a;b"


def test_upload_unknown_extension_uses_fallback_mime(drive: FakeDrive) -> None:
    file_id = upload_content(drive, io.BytesIO(b"raw"), "dump.bin", "ROOT")
    assert drive.entries[file_id]["mimeType"] == FALLBACK_MIME


def test_upload_local_path_uses_file_name(drive: FakeDrive, tmp_path: Path) -> None:
    src = tmp_path / "appunti.txt"
    src.write_bytes(b"ciao")
    file_id = upload_content(drive, src, parents="ROOT")
    assert drive.entries[file_id]["name"] == "appunti.txt"
    assert drive.contents[file_id] == b"ciao"


def test_upload_missing_local_file(drive: FakeDrive, tmp_path: Path) -> None:
    with pytest.raises(InvalidArgumentError):
        upload_content(drive, tmp_path / "assente.txt", parents="ROOT")


def test_upload_stream_without_name_is_rejected(drive: FakeDrive) -> None:
    with pytest.raises(InvalidArgumentError):
        upload_content(drive, b"anon")


def test_upload_reports_progress_then_done(drive: FakeDrive) -> None:
    events: list[TransferProgress] = []
    upload_content(drive, b"0123456789", "n.txt", "ROOT", chunk_size=4, on_progress=events.append)
    assert [e.bytes_transferred for e in events] == [4, 8, 10]
    assert [e.done for e in events] == [False, False, True]
    assert events[0].total_bytes == 10


def test_upload_error_is_wrapped(drive: FakeDrive) -> None:
    drive.fail_upload = http_error(400, "badRequest")
    with pytest.raises(DriveUploadError) as ei:
        upload_content(drive, b"x", "x.txt", "ROOT")
    assert isinstance(ei.value.__cause__, Exception)


def test_rename_returns_updated_entry(drive: FakeDrive) -> None:
    entry = rename_entry(drive, "SUB1", "Annate")
    assert entry.name == "Annate"
    assert entry.is_folder
    assert drive.entries["SUB1"]["name"] == "Annate"


def test_rename_missing_entry(drive: FakeDrive) -> None:
    with pytest.raises(NotFoundError):
        rename_entry(drive, "NOPE", "x")


def test_delete_removes_subtree_and_is_idempotent(drive: FakeDrive) -> None:
    delete_entry(drive, "SUB1")
    assert "SUB1" not in drive.entries
    assert "F_D" not in drive.entries
    # 404 → già eliminato, nessun errore
    delete_entry(drive, "SUB1")


def test_delete_requires_id(drive: FakeDrive) -> None:
    with pytest.raises(InvalidArgumentError):
        delete_entry(drive, "")
