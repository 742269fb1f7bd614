"""
logging_setup.py - Logging configuration for the fire runner

Human format:
    2026-10-19T13:45:12.345Z | INFO     | fire_engine | Message

Idempotent: repeated setup_logging() calls replace the handlers this module
installed instead of stacking new ones.
"""

import logging
import sys
from datetime import datetime, timezone

_handlers = []


class FireFormatter(logging.Formatter):
    """UTC timestamps, padded level, optional ANSI colour."""

    colors = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    reset = '\033[0m'

    def __init__(self, use_color=False):
        super().__init__()
        self.use_color = use_color

    def format(self, record):
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        ts_str = ts.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'

        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{self.colors.get(record.levelname, '')}{level}{self.reset}"

        line = f"{ts_str} | {level} | {record.name} | {record.getMessage()}"
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


def setup_logging(log_level="INFO", log_file=None, *, color=True, to_stderr=True):
    """
    Configure the root logger.

    Parameters
    ----------
    log_level : str
        "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL"
    log_file : str, optional
        Also write to this file (never coloured)
    color : bool
        ANSI colours on stderr when it is a TTY
    to_stderr : bool
        Log to the console; turned off while curses owns the terminal
    """
    root = logging.getLogger()
    for handler in _handlers:
        root.removeHandler(handler)
        handler.close()
    _handlers.clear()

    root.setLevel(getattr(logging, str(log_level).upper()))

    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(FireFormatter(use_color=color and sys.stderr.isatty()))
        _handlers.append(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(FireFormatter(use_color=False))
        _handlers.append(file_handler)

    if not _handlers:
        _handlers.append(logging.NullHandler())

    for handler in _handlers:
        root.addHandler(handler)

    logging.captureWarnings(True)
    logging.getLogger('numba').setLevel(logging.WARNING)
