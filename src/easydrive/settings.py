# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/settings.py
"""Configurazione di easydrive: `config/config.yaml` sopra i default di `DEFAULTS`.

Chiavi:
    drive.service_account_file_env  variabile d'ambiente con il path del JSON SA
    drive.scopes                    scope OAuth del client
    drive.page_size                 dimensione pagina di `files.list`
    drive.chunk_size_mb             chunk download/upload (MiB)
    retry.max_attempts / retry.base_delay_s / retry.max_total_sleep_s
    logging.level / logging.redact
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .env_utils import get_env_var
from .exceptions import ConfigError
from .yaml_utils import yaml_read

DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"

DEFAULTS: Dict[str, Any] = {
    "drive": {
        "service_account_file_env": "SERVICE_ACCOUNT_FILE",
        "scopes": [DRIVE_SCOPE],
        "page_size": 1000,
        "chunk_size_mb": 8,
    },
    "retry": {
        "max_attempts": 6,
        "base_delay_s": 0.5,
        "max_total_sleep_s": 20.0,
    },
    "logging": {
        "level": "INFO",
        "redact": False,
    },
}

_MISSING = object()


def _merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ricorsivo: le sezioni annidate si fondono, gli scalari vengono sostituiti."""
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = _merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


@dataclass
class Settings:
    """Vista tipizzata sulla configurazione; `data` è il dict già fuso con i default."""

    config_path: Optional[Path] = None
    data: Dict[str, Any] = field(default_factory=lambda: _merge(DEFAULTS, {}))

    @classmethod
    def load(
        cls,
        repo_root: Path,
        *,
        config_path: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "Settings":
        """Legge `config_path` (default `<repo_root>/config/config.yaml`), confinato a `repo_root`."""
        root = Path(repo_root).resolve()
        path = Path(config_path or root / "config" / "config.yaml").resolve()
        payload = yaml_read(root, path)
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ConfigError("config.yaml deve contenere una mappa di sezioni.", file_path=str(path))
        settings = cls(config_path=path, data=_merge(DEFAULTS, payload))
        if logger is not None:
            logger.info("settings.loaded", extra={"file_path": str(path)})
        return settings

    def get_value(self, dotted_key: str, *, default: Any = _MISSING) -> Any:
        """Valore per chiave puntata (`drive.page_size`); KeyError senza default."""
        node: Any = self.data
        for part in dotted_key.split("."):
            if isinstance(node, Mapping) and part in node:
                node = node[part]
            elif default is _MISSING:
                raise KeyError(dotted_key)
            else:
                return default
        return node

    def get_secret(self, name: str, *, required: bool = False, default: Optional[str] = None) -> Optional[str]:
        """Segreto da ENV/.env; `ConfigError` se richiesto e assente."""
        try:
            return get_env_var(name, default=default, required=required)
        except KeyError as exc:
            raise ConfigError(
                f"Variabile d'ambiente mancante: {name}",
                file_path=str(self.config_path) if self.config_path else None,
            ) from exc

    def _positive_int(self, dotted_key: str) -> int:
        raw = self.get_value(dotted_key)
        try:
            value = int(raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{dotted_key}: atteso un intero, trovato {raw!r}") from exc
        if value <= 0:
            raise ConfigError(f"{dotted_key}: atteso un intero positivo, trovato {value}")
        return value

    # ------------------------------------------------------------------ drive

    @property
    def scopes(self) -> list[str]:
        value = self.get_value("drive.scopes", default=None) or [DRIVE_SCOPE]
        return [value] if isinstance(value, str) else [str(v) for v in value]

    @property
    def page_size(self) -> int:
        return self._positive_int("drive.page_size")

    @property
    def chunk_size(self) -> int:
        """Chunk di trasferimento in byte."""
        return self._positive_int("drive.chunk_size_mb") * 1024 * 1024

    @property
    def service_account_file(self) -> Optional[str]:
        """Path del JSON SA letto dalla variabile indicata in `drive.service_account_file_env`."""
        return self.get_secret(str(self.get_value("drive.service_account_file_env")))

    # ------------------------------------------------------------------ retry / logging

    @property
    def retry_policy(self) -> Dict[str, Any]:
        return {
            "max_attempts": self._positive_int("retry.max_attempts"),
            "base_delay_s": float(self.get_value("retry.base_delay_s")),
            "max_total_sleep_s": float(self.get_value("retry.max_total_sleep_s")),
        }

    @property
    def log_level(self) -> str:
        return str(self.get_value("logging.level")).upper()

    @property
    def redact_logs(self) -> bool:
        return bool(self.get_value("logging.redact"))


__all__ = ["DRIVE_SCOPE", "DEFAULTS", "Settings"]
