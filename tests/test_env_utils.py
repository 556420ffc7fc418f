# SPDX-License-Identifier: GPL-3.0-or-later
# tests/test_env_utils.py
from __future__ import annotations

from pathlib import Path

import pytest

from easydrive import env_utils


@pytest.mark.parametrize(
    "raw, expected",
    [("1", True), ("TRUE", True), (" on ", True), ("0", False), ("no", False), ("forse", True)],
)
def test_get_bool_with_mapping(raw: str, expected: bool) -> None:
    # valore non riconosciuto → default (True)
    assert env_utils.get_bool("FLAG", default=True, env={"FLAG": raw}) is expected


def test_get_bool_missing_uses_default() -> None:
    assert env_utils.get_bool("FLAG", env={}) is False


def test_get_env_var_trims_and_treats_blank_as_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EASYDRIVE_X", "  valore ")
    assert env_utils.get_env_var("EASYDRIVE_X") == "valore"
    monkeypatch.setenv("EASYDRIVE_X", "   ")
    assert env_utils.get_env_var("EASYDRIVE_X", default="d") == "d"
    with pytest.raises(KeyError):
        env_utils.get_env_var("EASYDRIVE_X", required=True)


def test_dotenv_is_loaded_once(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("EASYDRIVE_FROM_DOTENV=si\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("EASYDRIVE_FROM_DOTENV", raising=False)
    env_utils.reset_dotenv_state()

    assert env_utils.ensure_dotenv_loaded() is True
    assert env_utils.ensure_dotenv_loaded() is False
    assert env_utils.get_env_var("EASYDRIVE_FROM_DOTENV") == "si"
    monkeypatch.delenv("EASYDRIVE_FROM_DOTENV", raising=False)
