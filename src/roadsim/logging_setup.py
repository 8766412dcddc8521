"""
Logging setup - Unified log format for console and file output.

Library modules only create loggers (``logging.getLogger(__name__)``);
applications call :func:`setup_logging` once at startup.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from roadsim import config


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(
    level: int | str | None = None,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """Configure the ``roadsim`` logger hierarchy.

    Args:
        level: Minimum severity (defaults to ROADSIM_LOG_LEVEL)
        log_file: Optional path for a rotating log file (1 MB, 2 backups)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("roadsim")
    logger.setLevel(level if level is not None else config.LOG_LEVEL)

    fmt = logging.Formatter(LOG_FORMAT)

    logger.handlers.clear()

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file is not None:
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=2)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger
