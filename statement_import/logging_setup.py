"""Centralized logging configuration for the ``statement_import`` package.

Public helpers:

- ``configure_logging(...)``: attach one ``StreamHandler`` to the package root
  logger (``"statement_import"``). Host applications call it once at startup;
  repeated calls are ignored.
- ``get_logger(name)``: return a named logger; while nothing is configured the
  package root carries a ``NullHandler`` so library use stays silent.
- ``session_logger(logger, session_id)``: wrap a logger so every record from one
  import session carries the ``[import <id>]`` prefix, which keeps interleaved
  sessions of a multi-user host readable.

Library modules never attach handlers themselves; they call
``get_logger("statement_import.<module>")``.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import MutableMapping
from typing import IO, Any

_PKG_LOGGER_NAME = "statement_import"
_LEVEL_ENV = "STATEMENT_IMPORT_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.strip():
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
        raise ValueError(f"unknown log level: {level!r}")
    env_val = os.getenv(_LEVEL_ENV)
    if env_val:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package root logger exactly once.

    Parameters
    ----------
    level:
        ``int`` or level name (``"DEBUG"``, ``"INFO"``...). ``None`` falls back
        to ``STATEMENT_IMPORT_LOG_LEVEL`` and then to ``logging.INFO``.
    fmt:
        Optional format string; defaults to
        ``"%(asctime)s %(name)s %(levelname)s %(message)s"``.
    stream:
        Destination of the single ``StreamHandler`` (``sys.stderr`` by default).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved = _parse_level(level)
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Host applications often configure the root logger too; avoid duplicates.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name with library-safe defaults."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


class _SessionAdapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[import {self.extra['session_id']}] {msg}", kwargs


def session_logger(logger: logging.Logger, session_id: str) -> logging.LoggerAdapter:
    """Return ``logger`` wrapped so messages carry the import session id."""

    return _SessionAdapter(logger, {"session_id": session_id})


__all__ = ["configure_logging", "get_logger", "session_logger"]
