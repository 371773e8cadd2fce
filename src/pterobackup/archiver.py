"""Build the tar.gz archive of a server volume.

The archive is streamed straight to disk; nothing is held in memory beyond
tarfile's own buffers.
"""

import logging
import os
import tarfile
from datetime import date, datetime, timezone
from pathlib import Path

from pterobackup.config import Config, ServerType
from pterobackup.errors import ArchiveError

logger = logging.getLogger(__name__)


def archive_name(server_name: str, server_type: ServerType, today: date | None = None) -> str:
    """Return ``{YYYY-MM-DD}_{server}_{TYPE}.tar.gz`` for today's UTC date."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    return f"{today.strftime('%Y-%m-%d')}_{server_name}_{server_type.upper}.tar.gz"


def is_excluded(path: Path, exclude: str | None) -> bool:
    """True if ``exclude`` occurs anywhere in the absolute path string.

    This is a plain substring test, not a component match: excluding
    ``log`` also drops ``catalog.txt``.
    """
    return bool(exclude) and exclude in str(path)


def create_archive(source_dir: Path, output_file: Path, exclude: str | None = None) -> Path:
    """Write a gzip-compressed tar of everything below ``source_dir``.

    Entry names are relative to the canonicalized source root and the root
    itself is never added. Paths matching ``exclude`` (see is_excluded) are
    skipped, and excluded directories are not descended into.

    Raises ArchiveError on any filesystem failure. A partial output file may
    be left behind.
    """
    try:
        root = Path(source_dir).resolve(strict=True)
    except OSError as exc:
        raise ArchiveError(f"failed to resolve source directory {source_dir}: {exc}") from exc
    if not root.is_dir():
        raise ArchiveError(f"source is not a directory: {root}")
    logger.debug("Canonicalized source directory: %s", root)

    output_file = Path(output_file)
    logger.info("Creating tar.gz file: %s", output_file)

    def _raise(err: OSError):
        raise err

    try:
        output_abs = output_file.resolve()
        # dereference: symlinked files are stored with their target's bytes and
        # symlinked directories as plain directory entries (never descended)
        with tarfile.open(output_file, mode="w:gz", dereference=True) as tar:
            for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
                current = Path(dirpath)
                dirnames.sort()
                filenames.sort()

                kept_dirs = []
                for name in dirnames:
                    path = current / name
                    rel = path.relative_to(root)
                    if is_excluded(path, exclude):
                        logger.info("Excluding: %s", rel)
                        continue
                    logger.debug("Adding directory to tar.gz: %s", rel)
                    tar.add(path, arcname=rel.as_posix(), recursive=False)
                    kept_dirs.append(name)
                dirnames[:] = kept_dirs

                for name in filenames:
                    path = current / name
                    rel = path.relative_to(root)
                    if path == output_abs:
                        logger.warning("Skipping the archive being written: %s", rel)
                        continue
                    if is_excluded(path, exclude):
                        logger.info("Excluding: %s", rel)
                        continue
                    logger.debug("Adding file to tar.gz: %s", rel)
                    tar.add(path, arcname=rel.as_posix(), recursive=False)
    except (OSError, tarfile.TarError) as exc:
        raise ArchiveError(f"failed to create archive {output_file}: {exc}") from exc

    logger.info("Successfully created tar.gz file: %s", output_file)
    return output_file


def compress_volume(
    config: Config,
    server_type: ServerType,
    output_file: Path,
    exclude: str | None = None,
) -> Path:
    """Archive the volume of ``server_type`` into ``output_file``."""
    return create_archive(config.volume_path(server_type), output_file, exclude)
