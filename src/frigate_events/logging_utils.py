"""Logging setup and the recent-errors buffer shown by /api/status."""

import logging
import threading
import time
from collections import deque

from frigate_events.constants import DISPLAY_DATETIME_FORMAT, ERROR_BUFFER_MAX_SIZE

logger = logging.getLogger('frigate-events')

# Longest message kept per buffered record.
MAX_BUFFERED_MESSAGE = 500


class ErrorBuffer:
    """Most recent WARNING/ERROR records, newest first when read.

    Background poll failures are only logged, never raised to a caller; this
    is where a client can still see them.
    """

    def __init__(self, max_size: int = ERROR_BUFFER_MAX_SIZE):
        self._entries: deque[dict] = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def append(self, timestamp: str, level: str, message: str) -> None:
        entry = {"ts": timestamp, "level": level, "message": (message or "")[:MAX_BUFFERED_MESSAGE]}
        with self._lock:
            self._entries.append(entry)

    def get_all(self) -> list[dict]:
        with self._lock:
            return list(reversed(self._entries))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class ErrorBufferHandler(logging.Handler):
    """Copies WARNING and above into an ErrorBuffer."""

    def __init__(self, buffer: ErrorBuffer):
        super().__init__(level=logging.WARNING)
        self.buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            stamp = time.strftime(DISPLAY_DATETIME_FORMAT, time.localtime(record.created))
            self.buffer.append(stamp, record.levelname, record.getMessage())
        except Exception:
            self.handleError(record)


error_buffer = ErrorBuffer()


def setup_logging(log_level: str):
    """Apply the configured level and attach the status error buffer (once)."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)
    logger.setLevel(level)

    if not any(isinstance(h, ErrorBufferHandler) for h in logger.handlers):
        logger.addHandler(ErrorBufferHandler(error_buffer))

    # Per-request and connection-pool logs at WARNING only.
    for noisy in ('werkzeug', 'urllib3'):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info("Log level set to %s", log_level.upper())
