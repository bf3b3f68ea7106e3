"""
Process-wide logging setup.
"""

from __future__ import annotations

import logging

from . import settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str | None = None) -> logging.Logger:
    """
    Send every record at `level` (default: LOG_LEVEL) and above to stderr.

    Safe to call more than once; the previous handlers are replaced.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logging.basicConfig(
        level=(level or settings.log_level()),
        handlers=[handler],
        force=True,
    )
    return logging.getLogger()
