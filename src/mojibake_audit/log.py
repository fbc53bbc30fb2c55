from __future__ import annotations

import logging
import sys
from typing import TextIO

LOGGER_NAME = "mojibake_audit"

logger = logging.getLogger(LOGGER_NAME)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


class _ColorFormatter(logging.Formatter):
    RESET = "\033[0m"
    COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }

    def __init__(self, fmt: str, use_color: bool) -> None:
        super().__init__(fmt=fmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if not self.use_color:
            return message
        color = self.COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{self.RESET}"


def setup_default_logging(
    level: int = logging.INFO, stream: TextIO | None = None
) -> None:
    """Install a stderr handler on the root logger unless one exists.

    stdout carries the TAP stream, so log records never go there.
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    handler = logging.StreamHandler(stream or sys.stderr)
    use_color = bool(getattr(handler.stream, "isatty", lambda: False)())
    handler.setFormatter(_ColorFormatter(fmt=fmt, use_color=use_color))
    root.setLevel(level)
    root.addHandler(handler)
