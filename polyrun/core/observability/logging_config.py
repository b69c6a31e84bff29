"""
Logging setup for the polyrun CLI.

Diagnostics go to stderr through the root logger; modules only ever
call ``logging.getLogger(__name__)``.  Child process output is never
routed through logging, it streams straight to the terminal.

Resolution:
    --debug / --verbose / --quiet  >  POLYRUN_LOG_LEVEL  >  WARNING

A second, independent sink can be enabled with POLYRUN_LOG_FILE (and
POLYRUN_LOG_FILE_LEVEL, which defaults to the console level).
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "POLYRUN_LOG_LEVEL"
LOG_FILE_ENV = "POLYRUN_LOG_FILE"
LOG_FILE_LEVEL_ENV = "POLYRUN_LOG_FILE_LEVEL"

# level threshold → (format, datefmt); first threshold >= level wins
_CONSOLE_FORMATS: list[tuple[int, str, str | None]] = [
    (logging.DEBUG, "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s %(name)s: %(message)s", "%H:%M:%S"),
]
_CONSOLE_DEFAULT = "polyrun: %(message)s"

_FILE_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%dT%H:%M:%S"


def parse_level(level: str | None) -> int:
    """Level name → numeric level.  Empty or unknown names mean WARNING."""
    if not level:
        return logging.WARNING
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.WARNING


def resolve_level(verbose: bool = False, quiet: bool = False, debug: bool = False) -> str:
    """Pick the console level from CLI flags, falling back to the env var."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LOG_LEVEL_ENV, "WARNING")


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _CONSOLE_DEFAULT, None
    for threshold, f, d in _CONSOLE_FORMATS:
        if level <= threshold:
            fmt, datefmt = f, d
            break
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the console handler (and optional file handler) on the root logger.

    Existing root handlers are replaced, so calling this twice is safe.
    The root level is the lower of the two sinks so neither starves.
    """
    console_level = parse_level(level)
    handlers = [_console_handler(console_level)]

    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    # A closed stderr (piped into `head`) must not print tracebacks
    logging.raiseExceptions = False
