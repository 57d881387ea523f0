"""
Console logging for physio_align.

Library modules log through logging.getLogger(__name__); setup_logging()
attaches a single stderr handler to the package logger that prints
"[INFO] ..." / "[WARN] ..." tagged lines.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

ROOT_LOGGER = "physio_align"

_TAGS = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARNING": "WARN",
    "ERROR": "ERROR",
    "CRITICAL": "ERROR",
}


class TagFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        tag = _TAGS.get(record.levelname, record.levelname)
        msg = f"[{tag}] {record.getMessage()}"
        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)
        return msg


def level_for(verbosity: int) -> int:
    """-1 (quiet) -> WARNING, 0 -> INFO, >=1 -> DEBUG."""
    if verbosity < 0:
        return logging.WARNING
    if verbosity == 0:
        return logging.INFO
    return logging.DEBUG


def setup_logging(verbosity: int = 0, stream: Optional[TextIO] = None) -> logging.Logger:
    """Configure the package logger; calling again replaces the previous handler."""
    logger = logging.getLogger(ROOT_LOGGER)
    level = level_for(verbosity)
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(TagFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger
