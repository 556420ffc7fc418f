# SPDX-License-Identifier: GPL-3.0-or-later
# tests/drive/test_client.py
from __future__ import annotations

import types
from typing import Any

import pytest

from easydrive.drive import client
from easydrive.drive.client import (
    _retry,
    drive_metrics_scope,
    ensure_id,
    get_entry,
    get_retry_metrics,
    list_children,
    retry_policy_scope,
)
from easydrive.exceptions import ConfigError, InvalidArgumentError, TransportFailure
from tests._helpers.drive_fake import FakeDrive, http_error


class _ServiceStub(types.SimpleNamespace):
    """Stub minimale per simulare il resource Drive."""

    def files(self) -> Any:
        return self

    # get/list non verranno chiamati perché validiamo prima i parametri
    def get(self, **_kwargs: Any) -> Any:  # pragma: no cover
        raise AssertionError("get() non dovrebbe essere invocato su input non valido")

    def list(self, **_kwargs: Any) -> Any:  # pragma: no cover
        raise AssertionError("list() non dovrebbe essere invocato su input non valido")


def test_list_children_folder_id_required():
    with pytest.raises(InvalidArgumentError):
        list_children(_ServiceStub(), "")


def test_get_entry_file_id_required():
    with pytest.raises(InvalidArgumentError):
        get_entry(_ServiceStub(), "   ")


def test_ensure_id_strips():
    assert ensure_id("  abc ") == "abc"


def test_list_children_concatenates_pages(drive: FakeDrive):
    for i in range(5):
        drive.add_file(f"P{i}", f"p{i}.txt", b"p", "SUB2")
    drive.max_page_size = 2
    children = list_children(drive, "SUB2", page_size=2)
    assert [c.id for c in children] == ["F_D", "P0", "P1", "P2", "P3", "P4"]
    queries = [c for c in drive.calls if c[0] == "list"]
    assert len(queries) == 3
    assert queries[0][1] == "'SUB2' in parents and trashed = false"


def test_list_children_skips_trashed(drive: FakeDrive):
    drive.entries["F_A"]["trashed"] = True
    assert "F_A" not in {c.id for c in list_children(drive, "ROOT")}


def test_get_entry_maps_metadata_and_404(drive: FakeDrive):
    entry = get_entry(drive, "F_B")
    assert entry is not None
    assert entry.name == "b"
    assert entry.extension == ".csv"
    assert entry.size == len(b"x,y\n1,2\n")
    assert entry.parents == ("ROOT",)
    assert get_entry(drive, "missing") is None


def test_get_entry_wraps_other_errors():
    class _Boom(_ServiceStub):
        def get(self, **_kwargs: Any) -> Any:
            raise http_error(403, "forbidden")

    with pytest.raises(TransportFailure) as ei:
        get_entry(_Boom(), "X")
    assert ei.value.drive_id == "X"


def test_retry_recovers_from_transient_errors(_no_sleep: list[float]):
    attempts = {"n": 0}

    def _op() -> str:
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise http_error(503, "backendError")
        return "ok"

    with drive_metrics_scope():
        assert _retry(_op, op_name="test.op", base_delay_s=0.01) == "ok"
        metrics = get_retry_metrics()

    assert attempts["n"] == 3
    assert len(_no_sleep) == 2
    assert metrics["retries_total"] == 2
    assert metrics["retries_by_error"] == {"HttpError": 2}
    assert metrics["last_status"] == 503
    assert get_retry_metrics() == {}


def test_retry_does_not_repeat_permanent_errors(_no_sleep: list[float]):
    calls = {"n": 0}

    def _op() -> None:
        calls["n"] += 1
        raise http_error(404, "notFound")

    with pytest.raises(Exception):
        _retry(_op, op_name="test.op")
    assert calls["n"] == 1
    assert _no_sleep == []


def test_retry_gives_up_after_max_attempts(_no_sleep: list[float]):
    calls = {"n": 0}

    def _op() -> None:
        calls["n"] += 1
        raise TimeoutError("read timed out")

    with retry_policy_scope({"max_attempts": 3, "base_delay_s": 0.01}):
        with pytest.raises(TimeoutError):
            _retry(_op, op_name="test.op")
    assert calls["n"] == 3


def test_retry_budget_exhaustion(_no_sleep: list[float], monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(client.random, "uniform", lambda _a, b: b)

    def _op() -> None:
        raise http_error(500, "backendError")

    with pytest.raises(client._RetryBudgetExceeded):
        _retry(_op, op_name="test.op", max_attempts=10, base_delay_s=1.0, max_total_sleep_s=2.0)
    assert sum(_no_sleep) == pytest.approx(2.0)


def test_get_drive_service_requires_credentials(tmp_path):
    ctx = types.SimpleNamespace(service_account_file=str(tmp_path / "missing.json"))
    with pytest.raises(ConfigError):
        client.get_drive_service(ctx)


def test_get_drive_service_builds_with_configured_scopes(monkeypatch: pytest.MonkeyPatch, tmp_path):
    sa = tmp_path / "sa.json"
    sa.write_text("{}", encoding="utf-8")
    seen: dict[str, Any] = {}

    def _fake_creds(path: str, scopes: list[str]) -> str:
        seen["path"], seen["scopes"] = path, scopes
        return "CREDS"

    def _fake_build(name: str, version: str, **kwargs: Any) -> str:
        seen["api"] = (name, version, kwargs["credentials"])
        return "SERVICE"

    monkeypatch.setattr(client.Credentials, "from_service_account_file", _fake_creds)
    monkeypatch.setattr(client, "build", _fake_build)
    settings = types.SimpleNamespace(scopes=["https://www.googleapis.com/auth/drive.readonly"])
    ctx = types.SimpleNamespace(service_account_file=str(sa), settings=settings)

    assert client.get_drive_service(ctx) == "SERVICE"
    assert seen["path"] == str(sa)
    assert seen["scopes"] == ["https://www.googleapis.com/auth/drive.readonly"]
    assert seen["api"] == ("drive", "v3", "CREDS")


def test_get_drive_service_falls_back_to_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    sa = tmp_path / "sa.json"
    sa.write_text("{}", encoding="utf-8")
    monkeypatch.setenv("SERVICE_ACCOUNT_FILE", str(sa))
    monkeypatch.setattr(client.Credentials, "from_service_account_file", lambda p, scopes: p)
    monkeypatch.setattr(client, "build", lambda *a, **k: k["credentials"])
    assert client.get_drive_service(types.SimpleNamespace()) == str(sa)
