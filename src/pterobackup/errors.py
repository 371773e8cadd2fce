"""Error kinds raised by the backup pipeline.

Every failure aborts the run; the CLI is the only place these are caught.
"""


class BackupError(Exception):
    """Base class for pipeline failures. ``str()`` names the stage and cause."""


class ConfigError(BackupError):
    """Missing or malformed config or credentials file."""


class ArchiveError(BackupError):
    """Filesystem read/write/traversal failure while archiving or reading the archive."""


class CryptoError(BackupError):
    """Private key could not be parsed or the assertion could not be signed."""


class NetworkError(BackupError):
    """Transport failure or non-2xx response from a remote endpoint."""


class StorageError(BackupError):
    """Local archive could not be deleted after upload."""
