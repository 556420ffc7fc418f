# SPDX-License-Identifier: GPL-3.0-or-later
# tests/drive/test_download.py
from __future__ import annotations

import io
from pathlib import Path

import pytest

from easydrive.drive.download import download_content, save_stream
from easydrive.drive.models import TransferProgress
from easydrive.exceptions import DriveDownloadError, PathTraversalError
from tests._helpers.drive_fake import FakeDrive, http_error


def test_download_content_reports_progress_in_order(drive: FakeDrive) -> None:
    drive.contents["F_A"] = b"0123456789"
    events: list[TransferProgress] = []
    stream = download_content(drive, "F_A", chunk_size=4, on_progress=events.append, label="a.txt")
    assert stream is not None
    assert stream.tell() == 0
    assert stream.read() == b"0123456789"
    assert [e.bytes_transferred for e in events] == [4, 8, 10]
    assert [e.done for e in events] == [False, False, True]
    assert events[-1].ratio == 1.0
    assert {e.label for e in events} == {"a.txt"}


def test_progress_callback_errors_do_not_abort(drive: FakeDrive) -> None:
    def _boom(_p: TransferProgress) -> None:
        raise RuntimeError("ui chiusa")

    stream = download_content(drive, "F_A", on_progress=_boom)
    assert stream is not None and stream.read() == b"alpha"


@pytest.mark.parametrize(
    "err",
    [http_error(404, "notFound"), http_error(403, "fileNotDownloadable"), http_error(403, "cannotDownloadAbusiveFile")],
)
def test_skip_signal_returns_none(drive: FakeDrive, err: Exception) -> None:
    drive.media_errors["F_A"] = err
    assert download_content(drive, "F_A") is None


def test_other_errors_raise_download_error(drive: FakeDrive) -> None:
    drive.media_errors["F_A"] = http_error(403, "insufficientFilePermissions")
    with pytest.raises(DriveDownloadError) as ei:
        download_content(drive, "F_A")
    assert ei.value.drive_id == "F_A"


def test_save_stream_writes_atomically(tmp_path: Path) -> None:
    stream = io.BytesIO(b"payload")
    stream.read()
    dest = save_stream(stream, tmp_path / "out", "report.zip")
    assert dest == (tmp_path / "out" / "report.zip").resolve()
    assert dest.read_bytes() == b"payload"
    assert stream.tell() == 0
    assert [p.name for p in dest.parent.iterdir()] == ["report.zip"]


def test_save_stream_overwrites_existing(tmp_path: Path) -> None:
    (tmp_path / "a.bin").write_bytes(b"old")
    save_stream(io.BytesIO(b"new"), tmp_path, "a.bin")
    assert (tmp_path / "a.bin").read_bytes() == b"new"


def test_save_stream_rejects_traversal(tmp_path: Path) -> None:
    with pytest.raises(PathTraversalError):
        save_stream(io.BytesIO(b"x"), tmp_path / "inner", "../escape.bin")
    assert not (tmp_path / "escape.bin").exists()
