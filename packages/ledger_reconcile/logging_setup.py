"""Where the reconciler's log records go.

Everything under ``ledger_reconcile.*`` logs through one package logger. The
batch commands (``list``, ``balance``) send records to stderr next to their
output. The full-screen ``reconcile`` command draws on the terminal itself, so
it only logs when given a file, and then nothing reaches the screen.

Modules ask for their logger with ``get_logger("ledger_reconcile.<module>")``
and never add handlers; until ``configure_logging`` runs the package logger
only carries a ``NullHandler`` and stays quiet.
"""

from __future__ import annotations

import logging
import os
import sys
from os import PathLike
from typing import IO

_PKG_LOGGER_NAME = "ledger_reconcile"
_LEVEL_ENV = "LEDGER_RECONCILE_LOG_LEVEL"
_DEFAULT_FMT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        # "10", "debug" and "DEBUG" are all accepted.
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    env_val = os.getenv(_LEVEL_ENV)
    if env_val:
        return _parse_level(env_val)
    return logging.INFO


def _handler_for(
    log_file: str | PathLike[str] | None, stream: IO[str] | None
) -> logging.Handler:
    if log_file is not None:
        return logging.FileHandler(os.fspath(log_file), encoding="utf-8")
    # Resolved at call time so a redirected stderr is honoured.
    return logging.StreamHandler(stream if stream is not None else sys.stderr)


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
    log_file: str | PathLike[str] | None = None,
) -> None:
    """Route ``ledger_reconcile`` records to ``log_file`` or a stream.

    Only the first call in a process has an effect. ``level`` may be a number
    or a level name; when omitted, ``LEDGER_RECONCILE_LOG_LEVEL`` decides and
    INFO is the fallback. ``stream`` defaults to stderr and is ignored when
    ``log_file`` is set (records are appended to the file).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = _handler_for(log_file, stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FMT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Records stop here; the host's root logger never sees them twice.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``; silent until ``configure_logging`` has run."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
