"""
Logging configuration — central setup for the clickpkg CLI.

Called once at startup by main.py. Every engine module does
``logger = logging.getLogger(__name__)`` and inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  CLICKPKG_LOG_LEVEL env var  >  WARNING (default)

Optional file output via CLICKPKG_LOG_FILE / CLICKPKG_LOG_FILE_LEVEL.
The privileged unpack helper logs with the same setup, so its messages
interleave with the parent's on stderr.
"""

from __future__ import annotations

import logging
import sys

# ── Format strings ──────────────────────────────────────────────

# WARNING and above: what an operator reads during an install
_FMT_CONSOLE = "clickpkg: %(message)s"

# INFO: which engine layer is talking
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_SHORT = "%H:%M:%S"

# DEBUG and file output: full location
_FMT_DETAIL = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

ENGINE_LOGGER = "clickpkg"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> int:
    """Configure logging for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path of an append-only log file.
        log_file_level: Level for the log file; defaults to ``level``.

    Returns:
        The numeric console level that was applied.
    """
    console_level = _parse_level(level)

    if console_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DETAIL, _DATEFMT_SHORT
    elif console_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_SHORT
    else:
        fmt, datefmt = _FMT_CONSOLE, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        effective = min(effective, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_DETAIL, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective)
    logging.getLogger(ENGINE_LOGGER).setLevel(effective)

    # a broken stderr must not abort an install half-way
    logging.raiseExceptions = False
    return console_level


def _parse_level(level: str | None) -> int:
    """Convert a level name to its numeric constant (WARNING if unknown)."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
