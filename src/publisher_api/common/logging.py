"""Process logging for the publisher API.

Two output shapes are supported and picked by ``PUBLISHER_LOG_FORMAT``:
a single-line console rendering for local work and one JSON object per line
for log shippers. Both append whatever the caller passed through ``extra=``,
which is why call sites build their payload with :func:`log_context`.

The request middleware binds a correlation id per request; formatters read it
from a context variable so application code never has to pass it around.
"""

from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from publisher_api.settings import Settings

_request_id: ContextVar[str | None] = ContextVar("publisher_request_id", default=None)

# Everything a bare LogRecord carries, plus attributes set by formatters or uvicorn.
_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "correlation_id", "color_message", "taskName"}

_SERVICE = "publisher-api"
_INSTALLED_MARKER = "_publisher_handler"
_THIRD_PARTY = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
)


class _StructuredFormatter(logging.Formatter):
    """Shared plumbing: UTC millisecond timestamps, correlation id and extras."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=UTC)
        return stamp.strftime("%Y-%m-%dT%H:%M:%S") + f".{int(record.msecs):03d}Z"

    @staticmethod
    def correlation_id(record: logging.LogRecord) -> str:
        cid = getattr(record, "correlation_id", None) or _request_id.get() or "-"
        record.correlation_id = cid
        return cid

    @staticmethod
    def extras(record: logging.LogRecord) -> dict[str, Any]:
        return {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED and not key.startswith("_")
        }


class ConsoleLogFormatter(_StructuredFormatter):
    """``<time> <LEVEL> <logger> [cid=<id>] <event> key=value ...``"""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-5s %(name)s [cid=%(correlation_id)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        self.correlation_id(record)
        line = super().format(record)
        pairs = sorted(self.extras(record).items())
        if not pairs:
            return line
        rendered = " ".join(f"{key}={'null' if value is None else value}" for key, value in pairs)
        return f"{line} {rendered}"


class JsonLogFormatter(_StructuredFormatter):
    def format(self, record: logging.LogRecord) -> str:
        document: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "service": _SERVICE,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": self.correlation_id(record),
        }
        document.update(self.extras(record))
        if record.exc_info:
            document["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(document, default=str, separators=(",", ":"))


def _level(name: str | None, fallback: str = "WARNING") -> int:
    return logging.getLevelName(name or fallback)


def setup_logging(settings: Settings) -> None:
    """Install one stream handler on the root logger and align library loggers.

    Safe to call more than once: the handler installed on the first call is
    reused and only its formatter and the levels are refreshed.
    """

    root = logging.getLogger()
    handler = next((h for h in root.handlers if getattr(h, _INSTALLED_MARKER, False)), None)
    if handler is None:
        handler = logging.StreamHandler()
        setattr(handler, _INSTALLED_MARKER, True)
    root.handlers = [handler]
    handler.setFormatter(
        JsonLogFormatter() if settings.log_format == "json" else ConsoleLogFormatter()
    )

    api_level = _level(settings.effective_api_log_level)
    root.setLevel(api_level)

    for name in _THIRD_PARTY:
        library_logger = logging.getLogger(name)
        library_logger.handlers.clear()
        library_logger.propagate = True
        library_logger.disabled = False

    levels = {
        "uvicorn": api_level,
        "uvicorn.error": api_level,
        "publisher_api.request": _level(settings.effective_request_log_level),
        "uvicorn.access": _level(settings.effective_access_log_level),
    }
    # SQL statements stay quiet unless PUBLISHER_DATABASE_LOG_LEVEL asks for them.
    for name in ("sqlalchemy", "sqlalchemy.engine", "sqlalchemy.pool"):
        levels[name] = _level(settings.database_log_level)
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)

    if not settings.access_log_enabled:
        access = logging.getLogger("uvicorn.access")
        access.propagate = False
        access.disabled = True


def bind_request_context(correlation_id: str | None) -> None:
    _request_id.set(correlation_id)


def clear_request_context() -> None:
    _request_id.set(None)


def current_request_id() -> str | None:
    return _request_id.get()


def log_context(
    *,
    principal: str | None = None,
    division_id: int | None = None,
    game_id: int | None = None,
    user_id: int | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Return an ``extra=`` mapping; identifier keywords left as ``None`` are omitted.

    >>> log_context(principal="julia@vice.president", game_id=7, permissions="read")
    {'principal': 'julia@vice.president', 'game_id': 7, 'permissions': 'read'}
    """

    identifiers = {
        "principal": principal,
        "division_id": division_id,
        "game_id": game_id,
        "user_id": user_id,
    }
    context = {key: value for key, value in identifiers.items() if value is not None}
    context.update(extra)
    return context


__all__ = [
    "ConsoleLogFormatter",
    "JsonLogFormatter",
    "bind_request_context",
    "clear_request_context",
    "current_request_id",
    "log_context",
    "setup_logging",
]
