"""
Basic logging configuration for the application.

The ``setup_logging`` function configures the root logger with a
console handler, an optional file handler and an in-memory buffer of
recent records.  The buffer backs the ``/health/metrics`` endpoint,
which reports recent log lines and error counts without needing an
external log store.  Logging is set up exactly once.
"""

import logging
import threading
import time
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional


class RecentLogHandler(logging.Handler):
    """Keep the most recent log records in memory.

    Only a bounded number of records is retained; older records are
    discarded as new ones arrive.
    """

    def __init__(self, capacity: int = 1000) -> None:
        super().__init__()
        self._records: Deque[dict] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = {
                "timestamp": record.created,
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
        except Exception:
            self.handleError(record)
            return
        with self._lock:
            self._records.append(entry)

    def get_logs(self, level: Optional[str] = None, limit: int = 100) -> List[dict]:
        """Return up to ``limit`` most recent entries, optionally filtered by level."""
        with self._lock:
            entries = list(self._records)
        if level:
            entries = [e for e in entries if e["level"] == level.upper()]
        return entries[-limit:] if limit else entries

    def error_count(self, window_seconds: float = 3600) -> int:
        """Count ERROR (and worse) records newer than ``window_seconds``."""
        cutoff = time.time() - window_seconds
        with self._lock:
            return sum(
                1 for e in self._records
                if e["timestamp"] > cutoff and e["level"] in {"ERROR", "CRITICAL"}
            )

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


# Shared buffer; attached to the root logger by ``setup_logging``.
recent_logs = RecentLogHandler()


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure root logger.

    If the recent-log buffer is not yet attached to the root logger,
    attach it together with a console handler and optionally a file
    handler.  The root logger's level is set based on ``level``.

    Parameters
    ----------
    level : str
        Logging level name (e.g. ``"DEBUG"``, ``"INFO"``).  Case
        insensitive.
    logfile : Optional[str]
        Path to a file to log messages to.  If omitted, no file
        handler is added.
    """
    logger = logging.getLogger()
    if recent_logs in logger.handlers:
        # Already configured, e.g. ``create_app`` called again in tests.
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger.addHandler(recent_logs)

    # Test runners and ASGI servers may have installed their own console
    # handler already.
    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
               for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if logfile:
        log_path = Path(logfile).resolve()
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
