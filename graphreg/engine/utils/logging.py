"""Shared logging helpers for graphreg.

Every module obtains its logger through :func:`get_stream_logger` so that
verbosity and format can be controlled from the environment without touching
code: ``GRAPHREG_LOG_LEVEL`` selects the level and ``GRAPHREG_LOG_FORMAT`` the
message format.
"""

from __future__ import annotations

import logging
import os
from functools import cache
from typing import Final

DEFAULT_FORMAT: Final[str] = "[%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL: Final[str] = "WARNING"
LEVEL_ENV_FLAG: Final[str] = "GRAPHREG_LOG_LEVEL"
FORMAT_ENV_FLAG: Final[str] = "GRAPHREG_LOG_FORMAT"


@cache
def _determine_level() -> int:
    """Translate ``GRAPHREG_LOG_LEVEL`` into a numeric logging level.

    Unknown names fall back to the default level so that a typo in the
    environment never silences warnings.
    """

    level_name = os.environ.get(LEVEL_ENV_FLAG, DEFAULT_LEVEL).upper().strip()
    level = logging.getLevelName(level_name)
    if isinstance(level, int):
        return level
    return logging.getLevelName(DEFAULT_LEVEL)


@cache
def _determine_format() -> str:
    """Return the message format, honouring ``GRAPHREG_LOG_FORMAT`` when set."""

    fmt = os.environ.get(FORMAT_ENV_FLAG, DEFAULT_FORMAT).strip()
    return fmt or DEFAULT_FORMAT


def get_stream_logger(name: str) -> logging.Logger:
    """Return a module logger wired to a single ``stderr`` handler.

    The handler is attached to the ``graphreg`` package logger (not the root
    logger) the first time it is requested, so applications embedding the
    package keep control over their own logging tree. Records still propagate
    upwards, which keeps ``caplog`` working in tests.
    """

    logger = logging.getLogger(name)
    package_logger = logging.getLogger(name.split(".", 1)[0])
    if not any(getattr(h, "_graphreg_stream", False) for h in package_logger.handlers):
        handler = logging.StreamHandler()
        handler._graphreg_stream = True  # type: ignore[attr-defined]
        package_logger.addHandler(handler)
    formatter = logging.Formatter(_determine_format())
    for handler in package_logger.handlers:
        if getattr(handler, "_graphreg_stream", False):
            handler.setFormatter(formatter)
    package_logger.setLevel(_determine_level())
    return logger


__all__ = ["get_stream_logger"]
