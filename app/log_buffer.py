"""In-memory circular buffer log handler backing the /api/logs endpoint."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

APP_LOGGERS = (
    "app.main",
    "app.scoreboard",
    "app.ingestion.espn_client",
    "app.ingestion.espn_parser",
    "app.ingestion.coverage",
    "app.ingestion.news",
)


@dataclass(frozen=True)
class LogEntry:
    timestamp: str
    level: str
    levelno: int
    logger: str
    message: str


class BufferHandler(logging.Handler):
    """Keeps the last *maxlen* records from the scoreboard/news pipeline."""

    def __init__(self, maxlen: int = 200) -> None:
        super().__init__()
        self._buffer: deque[LogEntry] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._buffer.append(
                LogEntry(
                    timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc)
                    .strftime("%Y-%m-%d %H:%M:%S UTC"),
                    level=record.levelname,
                    levelno=record.levelno,
                    logger=record.name,
                    message=self.format(record),
                )
            )
        except Exception:
            self.handleError(record)

    def entries(self, limit: int = 100, min_level: str | None = None) -> list[dict]:
        """Newest-first entries, optionally only those at or above *min_level*."""
        threshold = logging.getLevelName(min_level.upper()) if min_level else logging.NOTSET
        if not isinstance(threshold, int):
            threshold = logging.NOTSET
        items = [entry for entry in self._buffer if entry.levelno >= threshold]
        items = items[-limit:] if limit > 0 else []
        items.reverse()
        return [asdict(entry) for entry in items]

    def clear(self) -> None:
        self._buffer.clear()


_handler: BufferHandler | None = None


def get_buffer_handler() -> BufferHandler:
    global _handler
    if _handler is None:
        _handler = BufferHandler(maxlen=200)
        _handler.setFormatter(logging.Formatter("%(message)s"))
        _handler.setLevel(logging.DEBUG)
    return _handler


def install_buffer_handler(level: str = "INFO") -> BufferHandler:
    """Attach the buffer handler to the app loggers at *level*."""
    handler = get_buffer_handler()
    for name in APP_LOGGERS:
        app_logger = logging.getLogger(name)
        if handler not in app_logger.handlers:
            app_logger.addHandler(handler)
        app_logger.setLevel(level)
    return handler
