"""Run one backup: archive, authenticate, upload, clean up.

Steps run strictly in order and the first failure aborts the run. Nothing is
rolled back, so an archive whose upload failed stays on disk for a manual
retry.
"""

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path

import requests

from pterobackup.archiver import archive_name, compress_volume
from pterobackup.auth import get_access_token
from pterobackup.config import Config, ServerType
from pterobackup.errors import ArchiveError, StorageError
from pterobackup.uploader import upload_file

logger = logging.getLogger(__name__)


@dataclass
class BackupResult:
    object_name: str
    archive_path: Path
    size_bytes: int


def remove_archive(path: Path) -> None:
    """Delete the local archive. Call only after a confirmed upload."""
    try:
        Path(path).unlink()
    except OSError as exc:
        raise StorageError(f"failed to delete local archive {path}: {exc}") from exc
    logger.info("Deleted local archive %s", path)


def run_backup(
    config: Config,
    server_type: ServerType,
    exclude: str | None = None,
    today: date | None = None,
    session: requests.Session | None = None,
    show_progress: bool = True,
) -> BackupResult:
    archive_path = config.archive_dir / archive_name(config.server_name, server_type, today)

    compress_volume(config, server_type, archive_path, exclude)
    try:
        size = archive_path.stat().st_size
    except OSError as exc:
        raise ArchiveError(f"failed to stat archive {archive_path}: {exc}") from exc

    own_session = session is None
    if own_session:
        session = requests.Session()
    try:
        token = get_access_token(config.credentials_path, session=session)
        name = upload_file(
            archive_path,
            config.bucket_name,
            config.server_name,
            server_type,
            token,
            session=session,
            show_progress=show_progress,
        )
    finally:
        if own_session:
            session.close()

    remove_archive(archive_path)
    return BackupResult(object_name=name, archive_path=archive_path, size_bytes=size)
