"""Backup configuration loaded from a JSON file.

The file path defaults to ``config.json`` in the working directory and can be
overridden with PTEROBACKUP_CONFIG (a ``.env`` file is honoured).
"""

import json
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from pterobackup.errors import ConfigError

load_dotenv()

DEFAULT_CONFIG_FILE = "config.json"

_REQUIRED_KEYS = (
    "server_name",
    "gcs_credentials",
    "bucket_name",
    "volumes_path",
    "smp_uuid",
    "cmp_uuid",
)


class ServerType(str, Enum):
    """The two game servers this tool backs up."""

    SMP = "smp"  # survival
    CMP = "cmp"  # creative

    @property
    def upper(self) -> str:
        return self.value.upper()

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Config:
    server_name: str
    credentials_path: Path
    bucket_name: str
    volumes_path: Path
    smp_uuid: str
    cmp_uuid: str
    archive_dir: Path

    def volume_id(self, server_type: ServerType) -> str:
        if server_type is ServerType.SMP:
            return self.smp_uuid
        return self.cmp_uuid

    def volume_path(self, server_type: ServerType) -> Path:
        """Return the on-disk volume directory for the given server."""
        return self.volumes_path / self.volume_id(server_type)


def config_path() -> Path:
    """Return the config file path: PTEROBACKUP_CONFIG or ./config.json."""
    return Path(os.environ.get("PTEROBACKUP_CONFIG", DEFAULT_CONFIG_FILE))


def load_config(path: Path | None = None) -> Config:
    """Read and validate the JSON config file.

    Relative ``gcs_credentials``, ``volumes_path`` and ``archive_dir`` entries
    are resolved against the directory holding the config file. Required keys
    must be non-empty strings.

    Raises ConfigError if the file is missing, unreadable or malformed.
    """
    if path is None:
        path = config_path()
    path = Path(path)

    try:
        raw = path.read_text()
    except FileNotFoundError as exc:
        raise ConfigError(f"config file not found: {path}") from exc
    except OSError as exc:
        raise ConfigError(f"failed to read config file {path}: {exc}") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"failed to parse config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")

    missing = [k for k in _REQUIRED_KEYS if k not in data]
    if missing:
        raise ConfigError(f"config file {path} is missing: {', '.join(missing)}")
    for key in _REQUIRED_KEYS + ("archive_dir",):
        if key in data and not isinstance(data[key], str):
            raise ConfigError(f"config key '{key}' must be a string")
    empty = [k for k in _REQUIRED_KEYS if not data[k].strip()]
    if empty:
        raise ConfigError(f"config file {path} has empty values for: {', '.join(empty)}")

    base_dir = path.resolve().parent

    def _resolve(raw_path: str) -> Path:
        p = Path(raw_path)
        if p.is_absolute():
            return p
        return base_dir / p

    archive_dir = data.get("archive_dir")
    return Config(
        server_name=data["server_name"],
        credentials_path=_resolve(data["gcs_credentials"]),
        bucket_name=data["bucket_name"],
        volumes_path=_resolve(data["volumes_path"]),
        smp_uuid=data["smp_uuid"],
        cmp_uuid=data["cmp_uuid"],
        archive_dir=_resolve(archive_dir) if archive_dir else Path.cwd(),
    )
