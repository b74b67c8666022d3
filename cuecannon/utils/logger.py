"""Centralized logging setup for CueCannon.

Log records go to stderr because the CLI prints the aggregated script on
stdout. Every module obtains its logger through ``get_logger(__name__)``.
"""

import logging
import sys
from typing import TextIO

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Pillow logs every decoded PNG chunk at DEBUG.
NOISY_LOGGERS = ("PIL",)


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Install one stream handler on the root logger.

    Calling it again once a handler is installed is a no-op, so the CLI and
    the API server can both call it at startup.

    Args:
        level: Logging level name. Unknown names fall back to INFO.
        stream: Destination of log records, ``sys.stderr`` when omitted.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a CueCannon module."""
    return logging.getLogger(name)
