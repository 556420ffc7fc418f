# SPDX-License-Identifier: GPL-3.0-or-later
"""Package interno 'drive' (client/download/archive/upload).

⚠️ Nota:
- L'API pubblica resta esposta da `easydrive.drive_utils` (facade con `Result`).
- I moduli qui dentro sollevano eccezioni tipizzate (`easydrive.exceptions`);
  la conversione in `Result` avviene solo nella facade.

Struttura:
- easydrive/drive/models.py   → RemoteEntry, ArchiveJob, TransferProgress
- easydrive/drive/client.py   → bootstrap client GDrive + retry/metriche + primitive read
- easydrive/drive/download.py → download contenuti (skip signal) + scrittura atomica
- easydrive/drive/archive.py  → cartella → zip ricorsivo con filtri e depth
- easydrive/drive/upload.py   → cartelle, upload con progress, rinomina, delete
"""

from typing import List

__all__: List[str] = []
