"""
Diagnostic logging for the CLI process.

``setup_logging`` runs once, from main.py, before any phase is built.
Modules only ever call ``logging.getLogger(__name__)``.

Level precedence:
    --debug  >  --verbose  >  MACSETUP_LOG_LEVEL  >  WARNING

This is the developer-facing channel on stderr (plus an optional
debug file from MACSETUP_DEBUG_LOG). What the user reads, and what
lands in ~/mac-setup.log, goes through ``Transcript`` instead.
"""

from __future__ import annotations

import logging
import sys

# Console format per threshold: (format, datefmt)
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_PLAIN_FORMAT = "%(message)s"

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _PLAIN_FORMAT, None
    for threshold, candidate, candidate_datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            fmt, datefmt = candidate, candidate_datefmt
            break

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def setup_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    """Install the process-wide handlers.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ...). Unknown
            names fall back to WARNING.
        log_file: Optional diagnostic file; it always records DEBUG, so
            the root logger is lowered to DEBUG when one is given.
    """
    console_level = _parse_level(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_console_handler(console_level))

    if log_file:
        root.addHandler(_file_handler(log_file))
        root.setLevel(logging.DEBUG)
    else:
        root.setLevel(console_level)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    if not level:
        return logging.WARNING
    value = getattr(logging, level.upper(), None)
    return value if isinstance(value, int) else logging.WARNING
