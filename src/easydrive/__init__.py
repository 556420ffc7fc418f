# SPDX-License-Identifier: GPL-3.0-or-later
"""easydrive: livello di convenienza sopra Google Drive v3.

Uso tipico::

    from easydrive import DriveContext, get_drive_service, download_folder_to

    ctx = DriveContext.load()
    service = get_drive_service(ctx)
    res = download_folder_to(service, "<folder-id>", "out/", context=ctx)
    if res.is_failed:
        print(res.message)
"""

from .context import DriveContext
from .drive.models import ArchiveJob, RemoteEntry, TransferProgress, UploadItem
from .drive_utils import (
    archive_folder,
    compress_folder,
    create_folder,
    delete_folder_or_file,
    download_all_files,
    download_all_files_to,
    download_file,
    download_file_to,
    download_folder,
    download_folder_to,
    get_drive_service,
    get_entry,
    list_children,
    rename_folder,
    upload_file,
    upload_files,
)
from .exceptions import (
    ConfigError,
    DriveError,
    InvalidArgumentError,
    NotFoundError,
    TransportFailure,
)
from .result import Result, ResultType
from .settings import Settings

__version__ = "0.1.0"

__all__ = [
    "DriveContext",
    "Settings",
    "Result",
    "ResultType",
    "RemoteEntry",
    "ArchiveJob",
    "TransferProgress",
    "UploadItem",
    "DriveError",
    "NotFoundError",
    "InvalidArgumentError",
    "TransportFailure",
    "ConfigError",
    "get_drive_service",
    "get_entry",
    "list_children",
    "archive_folder",
    "download_all_files",
    "download_all_files_to",
    "download_folder",
    "download_folder_to",
    "compress_folder",
    "download_file",
    "download_file_to",
    "upload_file",
    "upload_files",
    "create_folder",
    "rename_folder",
    "delete_folder_or_file",
]
