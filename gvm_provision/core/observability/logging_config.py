"""
Logging configuration — central setup for all entrypoints.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Every line, on the console and in the log file, reads::

    2024-05-01 12:00:00 [INFO] Executing command: apt update

Levels are resolved in precedence order:
    CLI flag  >  GVM_PROVISION_LOG_LEVEL env var  >  INFO (default)

The log file defaults to ``/var/log/openvas_install.log`` and can be
moved with GVM_PROVISION_LOG_FILE / the ``log_file`` setting.  When it
cannot be opened the run continues with console output only.
"""

from __future__ import annotations

import logging
import sys

import click

# ── Format strings ──────────────────────────────────────────────

_FMT = "%(asctime)s [%(levelname)s] %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# DEBUG adds the emitting module
_FMT_DEBUG = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d %(message)s"

# Operator-facing level names
_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "ERROR",
}

_LEVEL_COLORS = {
    logging.INFO: "cyan",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


class LevelFormatter(logging.Formatter):
    """Formatter that prints WARNING as WARN and optionally colours lines."""

    def __init__(self, fmt: str, datefmt: str | None = None, *, color: bool = False):
        super().__init__(fmt, datefmt=datefmt)
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        record.levelname = _LEVEL_NAMES.get(record.levelno, original)
        try:
            line = super().format(record)
        finally:
            record.levelname = original
        if self.color and record.levelno in _LEVEL_COLORS:
            return click.style(line, fg=_LEVEL_COLORS[record.levelno], bold=True)
        return line


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    color: bool | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional path to the persistent log file.
        log_file_level: Optional separate level for the log file.
            Defaults to INFO so the file always holds the full run.
        color: Colour console lines by level. Defaults to whether stderr
            is a terminal.
    """
    numeric_level = _parse_level(level)
    fmt = _FMT_DEBUG if numeric_level <= logging.DEBUG else _FMT
    if color is None:
        color = sys.stderr.isatty()

    # ── Console handler (stderr) ────────────────────────────────
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(LevelFormatter(fmt, datefmt=_DATEFMT, color=color))

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level
    file_error: OSError | None = None

    # ── File handler (optional) ─────────────────────────────────
    if log_file:
        file_level = _parse_level(log_file_level or "INFO")
        try:
            fh = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            file_error = e
        else:
            fh.setLevel(file_level)
            fh.setFormatter(LevelFormatter(_FMT, datefmt=_DATEFMT))
            root.addHandler(fh)
            effective_level = min(effective_level, file_level)

    root.setLevel(effective_level)

    # Don't propagate exceptions from logging itself
    logging.raiseExceptions = False

    if file_error is not None:
        logging.getLogger(__name__).warning(
            "Cannot write log file %s (%s). Logging to console only.",
            log_file, file_error.strerror or file_error,
        )


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.INFO
    name = level.upper()
    if name == "WARN":
        name = "WARNING"
    numeric = getattr(logging, name, None)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
