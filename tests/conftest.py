# SPDX-License-Identifier: GPL-3.0-or-later
# tests/conftest.py
from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
for candidate in (REPO_ROOT, SRC_ROOT):
    if str(candidate) not in sys.path:
        sys.path.insert(0, str(candidate))

from tests._helpers.drive_fake import FakeDrive, FakeMediaDownload  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Nessun .env reale e nessuna variabile easydrive ereditata dalla shell."""
    from easydrive import env_utils

    for name in ("SERVICE_ACCOUNT_FILE", "EASYDRIVE_LOG_LEVEL", "EASYDRIVE_LOG_REDACT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(env_utils, "_ENV_LOADED", True)


@pytest.fixture(autouse=True)
def _fake_media_download(monkeypatch: pytest.MonkeyPatch) -> None:
    """Il downloader reale parla HTTP: nei test legge dal Drive finto."""
    import easydrive.drive.download as dl

    monkeypatch.setattr(dl, "MediaIoBaseDownload", FakeMediaDownload)


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Backoff dei retry istantaneo; registra le attese richieste."""
    import easydrive.drive.client as client

    sleeps: list[float] = []
    monkeypatch.setattr(client.time, "sleep", lambda s: sleeps.append(s))
    return sleeps


@pytest.fixture()
def drive() -> FakeDrive:
    """Albero di esempio (profondità 3); i nomi Drive sono senza estensione,
    l'archivio aggiunge quella ricavata dal MIME:

    ROOT "Report"
      a (text/plain), b (text/csv)
      SUB1 "Anni"
        c
        SUB2 "2024"
          d
      EMPTY "Vuota"
    """
    d = FakeDrive()
    d.add_folder("PARENT", "Progetti")
    d.add_folder("ROOT", "Report", parent="PARENT")
    d.add_file("F_A", "a", b"alpha", "ROOT")
    d.add_file("F_B", "b", b"x,y\n1,2\n", "ROOT", mime="text/csv")
    d.add_folder("SUB1", "Anni", parent="ROOT")
    d.add_file("F_C", "c", b"gamma", "SUB1")
    d.add_folder("SUB2", "2024", parent="SUB1")
    d.add_file("F_D", "d", b"delta", "SUB2")
    d.add_folder("EMPTY", "Vuota", parent="ROOT")
    return d
