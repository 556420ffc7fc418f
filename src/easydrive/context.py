# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/context.py
"""DriveContext – contenitore di stato e configurazione per le chiamate easydrive.

- Carica `config/config.yaml` tramite `Settings.load` (default se assente).
- Risolve il path del service account (config -> ENV).
- Espone i flag di logging (`redact_logs`, `log_level`, `run_id`) letti da
  `get_structured_logger`.

Nessun I/O interattivo e nessun `sys.exit`.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from .env_utils import get_bool, get_env_var
from .logging_utils import get_structured_logger
from .settings import Settings


@dataclass
class DriveContext:
    """Contesto per le operazioni Drive.

    `service_account_file` ha precedenza sulla variabile d'ambiente indicata in config.
    """

    settings: Settings = field(default_factory=Settings)
    service_account_file: Optional[str] = None
    redact_logs: bool = False
    log_level: str = "INFO"
    run_id: Optional[str] = None

    @classmethod
    def load(
        cls,
        repo_root: Optional[Path] = None,
        *,
        config_path: Optional[Path] = None,
        run_id: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "DriveContext":
        root = Path(repo_root or Path.cwd()).resolve()
        cfg = Path(config_path) if config_path else root / "config" / "config.yaml"
        if cfg.is_file():
            settings = Settings.load(root, config_path=cfg, logger=logger)
        else:
            settings = Settings()

        redact = settings.redact_logs or get_bool("EASYDRIVE_LOG_REDACT", default=False)
        level = get_env_var("EASYDRIVE_LOG_LEVEL", default=None) or settings.log_level
        ctx = cls(
            settings=settings,
            service_account_file=settings.service_account_file,
            redact_logs=redact,
            log_level=level,
            run_id=run_id or uuid.uuid4().hex[:12],
        )
        get_structured_logger("easydrive.context", context=ctx).debug(
            "context.loaded",
            extra={"config": str(settings.config_path or "-"), "redact": redact},
        )
        return ctx

    def with_run_id(self, run_id: Optional[str]) -> "DriveContext":
        return replace(self, run_id=run_id)
