"""
Diagnostic Logging

The report owns stdout; diagnostics (command traces, escalations, probe
crashes) go to a single stderr handler so the two never interleave.
Nothing is written to disk.

Usage:
    from nethealth.logging_config import setup_logging
    setup_logging(logging.DEBUG)    # --debug: every command and exit status
"""

import logging
import sys
import threading
from typing import Optional, TextIO

_configured = False
_setup_lock = threading.Lock()

BRIEF_FORMAT = "%(levelname)s %(name)s: %(message)s"
TRACE_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d: %(message)s"

_ANSI = {
    logging.DEBUG: '\033[2m',
    logging.INFO: '\033[34m',
    logging.WARNING: '\033[33m',
    logging.ERROR: '\033[31m',
    logging.CRITICAL: '\033[1;31m',
}
_ANSI_RESET = '\033[0m'


class ColoredFormatter(logging.Formatter):
    """Colors the level name when the target stream is a terminal."""

    def __init__(self, fmt: str, stream: Optional[TextIO] = None):
        super().__init__(fmt)
        target = stream if stream is not None else sys.stderr
        self.use_colors = bool(getattr(target, 'isatty', None) and target.isatty())

    def format(self, record):
        color = _ANSI.get(record.levelno)
        if not (self.use_colors and color):
            return super().format(record)
        # Other handlers must still see the plain level name
        tinted = logging.makeLogRecord(record.__dict__)
        tinted.levelname = f"{color}{record.levelname}{_ANSI_RESET}"
        return super().format(tinted)


def setup_logging(level: int = logging.WARNING, use_colors: bool = True,
                  force: bool = False) -> None:
    """
    Install the stderr handler on the root logger.

    Args:
        level: Threshold; DEBUG also switches to the trace format
        use_colors: Color level names on a terminal
        force: Replace an earlier configuration
    """
    global _configured

    with _setup_lock:
        if _configured and not force:
            return

        fmt = TRACE_FORMAT if level <= logging.DEBUG else BRIEF_FORMAT
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(ColoredFormatter(fmt, sys.stderr) if use_colors
                             else logging.Formatter(fmt))

        root = logging.getLogger()
        root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(level)

        _configured = True


def level_from_name(name: str) -> int:
    """Map a level name such as 'DEBUG' to its logging constant."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.WARNING
