"""Logging helpers for the ``ledger`` package.

``configure_logging`` attaches one stderr handler to the package logger and
is meant to be called by entry points. Library modules only call
``get_logger(__name__)``. Stdout is reserved for protocol responses.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional, Union

_PKG_LOGGER_NAME = "ledger"
_CONFIGURED = False


def configure_logging(level: Union[int, str] = logging.WARNING, stream: IO[str] = sys.stderr) -> None:
    """Configure the package logger once; later calls only adjust the level."""

    global _CONFIGURED
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    pkg_logger.setLevel(level)
    if _CONFIGURED:
        return

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    pkg_logger.addHandler(handler)
    pkg_logger.propagate = False
    _CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name or _PKG_LOGGER_NAME)
