"""Stream the archive to Google Cloud Storage with a simple media upload."""

import contextlib
import logging
from pathlib import Path
from typing import BinaryIO, Callable, Iterator

import click
import requests

from pterobackup.config import ServerType
from pterobackup.errors import ArchiveError, NetworkError

logger = logging.getLogger(__name__)

UPLOAD_BASE_URL = "https://storage.googleapis.com/upload/storage/v1/b"
CONTENT_TYPE = "application/gzip"
CHUNK_SIZE = 256 * 1024


def object_name(server_name: str, server_type: ServerType, file_name: str) -> str:
    return f"{server_name}/{server_type.upper}/{file_name}"


def upload_url(bucket_name: str) -> str:
    return f"{UPLOAD_BASE_URL}/{bucket_name}/o"


def iter_file_chunks(
    fileobj: BinaryIO,
    chunk_size: int = CHUNK_SIZE,
    on_chunk: Callable[[int], None] | None = None,
) -> Iterator[bytes]:
    """Yield successive reads from ``fileobj`` until EOF.

    ``on_chunk`` is called with each chunk's length before it is yielded.
    """
    while True:
        chunk = fileobj.read(chunk_size)
        if not chunk:
            return
        if on_chunk:
            on_chunk(len(chunk))
        yield chunk


def upload_file(
    file_path: Path,
    bucket_name: str,
    server_name: str,
    server_type: ServerType,
    access_token: str,
    session: requests.Session | None = None,
    show_progress: bool = True,
) -> str:
    """Upload ``file_path`` to ``{server}/{TYPE}/{file name}`` in the bucket.

    The body is read from the open file handle chunk by chunk, so memory use
    does not grow with the archive size. Any non-2xx response is a failure;
    nothing is retried. Returns the object name.
    """
    file_path = Path(file_path)
    name = object_name(server_name, server_type, file_path.name)
    url = upload_url(bucket_name)
    http = session or requests
    logger.debug("Upload URL: %s (name=%s)", url, name)

    try:
        fh = open(file_path, "rb")
    except OSError as exc:
        raise ArchiveError(f"failed to open archive {file_path}: {exc}") from exc

    with fh:
        try:
            size = file_path.stat().st_size
        except OSError as exc:
            raise ArchiveError(f"failed to stat archive {file_path}: {exc}") from exc

        logger.info("Uploading %s (%d bytes) to gs://%s/%s", file_path.name, size, bucket_name, name)
        if show_progress:
            progress = click.progressbar(
                length=size,
                label="Uploading",
                show_pos=True,
                file=click.get_text_stream("stderr"),
            )
        else:
            progress = contextlib.nullcontext()
        with progress as bar:
            body = iter_file_chunks(fh, on_chunk=bar.update if bar is not None else None)
            try:
                resp = http.post(
                    url,
                    params={"uploadType": "media", "name": name},
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Content-Type": CONTENT_TYPE,
                    },
                    data=body,
                )
            except requests.RequestException as exc:
                raise NetworkError(f"failed to upload file {file_path.name}: {exc}") from exc
            except OSError as exc:
                raise ArchiveError(f"failed to read archive {file_path}: {exc}") from exc

    if not 200 <= resp.status_code < 300:
        raise NetworkError(
            f"failed to upload file {file_path.name}: storage returned {resp.status_code}: {resp.text}"
        )

    logger.info("File uploaded successfully.")
    return name

