"""Logging configuration for the ``smartybudget`` package.

``configure_logging`` attaches a single ``StreamHandler`` to the package root
logger and is called once by the app shell. Library modules only call
``get_logger("smartybudget.<module>")``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "smartybudget"
_DEFAULT_FMT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    env_val = os.getenv("SMARTYBUDGET_LOG_LEVEL")
    if env_val and env_val != level:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package root logger exactly once.

    Later calls only adjust the level.
    """
    global _CONFIGURED
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    logger.setLevel(_parse_level(level))
    if _CONFIGURED:
        return

    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FMT))
    logger.addHandler(handler)
    logger.propagate = False
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    root = logging.getLogger(_PKG_LOGGER_NAME)
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)
