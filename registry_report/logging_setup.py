"""Logging for the ``registry_report`` package.

Entry points (the CLI) call ``configure_logging`` once; every other module
asks ``get_logger("registry_report.<module>")`` for its logger and leaves
handlers alone. Until the package is configured its logger only carries a
``NullHandler``, so embedding the exporter in another program stays quiet.
"""

from __future__ import annotations

import logging
import os
from typing import IO, Optional

_PKG_LOGGER_NAME = "registry_report"
_LEVEL_ENV = "REGISTRY_REPORT_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _level_from_name(value: int | str | None) -> Optional[int]:
    """Map ``20``, ``"20"`` or ``"info"`` to a level number; ``None`` if unknown."""

    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return None
    name = value.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else None


def _resolve_level(level: int | str | None) -> int:
    # Explicit level first, then the environment, then INFO.
    resolved = _level_from_name(level)
    if resolved is None:
        resolved = _level_from_name(os.getenv(_LEVEL_ENV))
    return logging.INFO if resolved is None else resolved


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Attach the package's single ``StreamHandler`` and return its logger.

    ``level`` is a level number or name. When it is missing or not a level
    ``logging`` knows, ``REGISTRY_REPORT_LOG_LEVEL`` is consulted, and when
    that is unusable too the level is ``INFO``. Records go to ``stream``,
    standard error by default. Calls after the first change nothing.
    """

    global _CONFIGURED
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _CONFIGURED:
        return logger

    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    resolved = _resolve_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True
    return logger


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
