"""Logging setup driven by the CLI's -v count."""

import logging
from dataclasses import dataclass

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO)


@dataclass(frozen=True)
class LogConfig:
    level: int = logging.ERROR
    fmt: str = LOG_FORMAT

    @classmethod
    def from_verbosity(cls, verbose: int) -> "LogConfig":
        """0=error, 1=warning, 2=info, 3+=debug."""
        if verbose < 0:
            verbose = 0
        if verbose >= len(_LEVELS):
            return cls(level=logging.DEBUG)
        return cls(level=_LEVELS[verbose])


def configure_logging(cfg: LogConfig) -> None:
    """Apply the config to the ``pterobackup`` logger tree."""
    logging.basicConfig(format=cfg.fmt)
    logging.getLogger("pterobackup").setLevel(cfg.level)
