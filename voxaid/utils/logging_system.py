"""
Logging setup shared by every VoxAid module.

Loggers are created through :func:`setup_log_system`, which honours the
``LOG_LEVEL`` and ``NO_COLOR`` environment variables and renders through
Rich on an interactive terminal.  :class:`LogBuffer` keeps the most recent
formatted records in memory so the HTTP control API can show them.
"""
from __future__ import annotations

import logging
import os
import sys
import threading
from collections import deque
from typing import List

from rich.logging import RichHandler

_PLAIN_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%H:%M:%S"


class LogBuffer(logging.Handler):
    """Handler that retains the last ``capacity`` formatted log lines."""

    def __init__(self, capacity: int = 200) -> None:
        super().__init__(level=logging.DEBUG)
        self._lines: deque[str] = deque(maxlen=capacity)
        self._lines_lock = threading.Lock()
        self.setFormatter(logging.Formatter(_PLAIN_FORMAT, _DATE_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self._lines_lock:
            self._lines.append(line)

    def lines(self, limit: int | None = None) -> List[str]:
        with self._lines_lock:
            items = list(self._lines)
        if limit is not None:
            return items[-limit:]
        return items

    def clear(self) -> None:
        with self._lines_lock:
            self._lines.clear()


def setup_log_system(name: str, *, level: str | None = None) -> logging.Logger:
    """
    Create (or return) the logger ``voxaid.<name>``.

    - Level comes from ``level`` or the ``LOG_LEVEL`` env var (default INFO).
    - A RichHandler is attached on a TTY unless ``NO_COLOR`` is set; a plain
      stream handler is used otherwise.
    - Calling this twice for the same name never stacks handlers.
    """
    level_str = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_str, logging.INFO)

    full_name = name if name.startswith("voxaid") else f"voxaid.{name}"
    logger = logging.getLogger(full_name)
    if logger.handlers:
        logger.setLevel(log_level)
        return logger

    handler: logging.Handler
    if os.getenv("NO_COLOR") is None and sys.stdout.isatty():
        handler = RichHandler(
            rich_tracebacks=True,
            show_time=True,
            show_level=True,
            show_path=False,
            markup=False,
        )
        # RichHandler renders time and level itself
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT, _DATE_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(log_level)
    # Root-level handlers (LogBuffer) still see module records.
    logger.propagate = True
    root_logger = logging.getLogger()
    if root_logger.level > log_level:
        root_logger.setLevel(log_level)
    return logger


def attach_log_buffer(buffer: LogBuffer) -> LogBuffer:
    """Install ``buffer`` on the root logger once and return it."""
    root_logger = logging.getLogger()
    if buffer not in root_logger.handlers:
        root_logger.addHandler(buffer)
    return buffer


get_logger = setup_log_system
