"""Structured logging configuration.

JSON lines carry a `category` derived from the logger name (geometry,
session, sync, store, cli, system), the `canvas_id` when a call site passes it
via `extra`, and the OpenTelemetry trace id of the current span if one is
recording.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from typing import TextIO

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10MB

# Module (or package) name -> category; the longest matching prefix wins
CATEGORIES = {
    "inkshare.geometry": "geometry",
    "inkshare.session": "session",
    "inkshare.controller": "session",
    "inkshare.sync": "sync",
    "inkshare.registry": "sync",
    "inkshare.store": "store",
    "inkshare.cli": "cli",
}
DEFAULT_CATEGORY = "system"

# Loggers that only add noise at INFO
QUIET_LOGGERS = ("asyncio", "aiofiles")

# Attributes every LogRecord has; anything else was passed through `extra`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}


def category_for(logger_name: str) -> str:
    """Category of a logger, matching dotted prefixes from most to least specific."""
    parts = logger_name.split(".")
    while parts:
        category = CATEGORIES.get(".".join(parts))
        if category is not None:
            return category
        parts.pop()
    return DEFAULT_CATEGORY


def current_trace_id() -> str | None:
    """Trace id of the recording OpenTelemetry span, if any."""
    try:
        from opentelemetry import trace

        span = trace.get_current_span()
        if not span.is_recording():
            return None
        return f"1-{span.get_span_context().trace_id:032x}"
    except Exception:
        # Tracing must never break logging
        return None


class StructuredFormatter(logging.Formatter):
    """Formats each record as one JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "category": category_for(record.name),
            "logger": record.name,
            "message": record.getMessage(),
        }

        canvas_id = getattr(record, "canvas_id", None)
        if canvas_id is not None:
            entry["canvas_id"] = canvas_id

        trace_id = getattr(record, "trace_id", None) or current_trace_id()
        if trace_id:
            entry["trace_id"] = trace_id

        extra = self._extra_fields(record)
        if extra:
            entry["extra"] = extra

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry)

    @staticmethod
    def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
        extra: dict[str, Any] = {}
        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key in ("canvas_id", "trace_id") or key.startswith("_"):
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            extra[key] = value
        return extra


class ErrorFilter(logging.Filter):
    """Passes ERROR and CRITICAL records only."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def _file_handler(path: str, backup_count: int) -> RotatingFileHandler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=backup_count, encoding="utf-8"
    )


def configure_logging(
    *,
    json_format: bool = True,
    log_level: int = logging.INFO,
    log_file: str | None = None,
    error_log_file: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Replace the root logger's handlers.

    Args:
        json_format: JSON lines (False for human-readable output)
        log_level: Minimum level on the root logger
        log_file: Also write everything to this rotating file
        error_log_file: Also write ERROR and above to this rotating file
        stream: Console stream (default: sys.stderr)
    """
    formatter: logging.Formatter = (
        StructuredFormatter()
        if json_format
        else logging.Formatter(
            "%(asctime)s %(levelname)5s [%(name)s] %(message)s", datefmt="%H:%M:%S"
        )
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if log_file:
        handlers.append(_file_handler(log_file, backup_count=5))
    if error_log_file:
        error_handler = _file_handler(error_log_file, backup_count=10)
        error_handler.addFilter(ErrorFilter())
        handlers.append(error_handler)

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
    root.setLevel(log_level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_cli_logging() -> None:
    """Configure logging from settings (INKSHARE_LOG_* environment variables)."""
    from inkshare.config import settings

    level = logging.getLevelName(settings.log_level.upper())
    configure_logging(
        json_format=settings.log_json,
        log_level=level if isinstance(level, int) else logging.INFO,
        log_file=settings.log_file,
    )
