"""Mini README: Application-wide logging helpers for the cashflow service.

Structure:
    * configure_root_logger - installs one formatted handler on the root logger.
    * get_logger - factory returning module loggers with baseline configuration.

Usage:
    Modules create ``LOGGER = get_logger(__name__)``. The CLI calls
    ``configure_root_logger`` with the configured level before uvicorn
    starts; later calls only adjust the level so reloads never stack
    duplicate handlers.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

_LOGGER_INITIALISED = False


def configure_root_logger(level: Union[int, str] = logging.INFO) -> None:
    """Configure the root logger once, accepting numeric or named levels."""

    global _LOGGER_INITIALISED
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    if _LOGGER_INITIALISED:
        root_logger.setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    _LOGGER_INITIALISED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-specific logger ensuring baseline configuration."""

    if not _LOGGER_INITIALISED:
        configure_root_logger()
    return logging.getLogger(name)
