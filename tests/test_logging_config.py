"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
import sys
from io import StringIO
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from inkshare.logging_config import (
    CATEGORIES,
    ErrorFilter,
    StructuredFormatter,
    category_for,
    configure_logging,
    setup_cli_logging,
)


def make_record(
    name: str = "inkshare.session",
    level: int = logging.INFO,
    msg: str = "Stroke finalized",
    exc_info=None,
) -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="session.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


@pytest.fixture
def restore_root_logger():
    """Put back the root logger's handlers and level after configure_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestStructuredFormatter:
    """Tests for StructuredFormatter JSON output."""

    @pytest.fixture
    def formatter(self) -> StructuredFormatter:
        return StructuredFormatter()

    def test_basic_json_output(self, formatter: StructuredFormatter) -> None:
        """Output is valid JSON with the required fields."""
        data = json.loads(formatter.format(make_record()))

        assert "timestamp" in data
        assert data["level"] == "INFO"
        assert data["logger"] == "inkshare.session"
        assert data["message"] == "Stroke finalized"
        assert data["category"] == "session"

    @pytest.mark.parametrize(
        ("logger_name", "category"),
        [
            ("inkshare.geometry", "geometry"),
            ("inkshare.session", "session"),
            ("inkshare.controller", "session"),
            ("inkshare.sync", "sync"),
            ("inkshare.registry", "sync"),
            ("inkshare.store.filesystem", "store"),
            ("inkshare.store.base", "store"),
            ("inkshare.cli", "cli"),
            ("inkshare.config", "system"),
            ("some.other.library", "system"),
        ],
    )
    def test_category_detection(
        self, formatter: StructuredFormatter, logger_name: str, category: str
    ) -> None:
        data = json.loads(formatter.format(make_record(name=logger_name)))
        assert data["category"] == category

    def test_canvas_id_included(self, formatter: StructuredFormatter) -> None:
        record = make_record()
        record.canvas_id = "canvas-1"  # type: ignore[attr-defined]

        data = json.loads(formatter.format(record))

        assert data["canvas_id"] == "canvas-1"
        assert "extra" not in data

    def test_canvas_id_excluded_when_none(self, formatter: StructuredFormatter) -> None:
        record = make_record()
        record.canvas_id = None  # type: ignore[attr-defined]
        assert "canvas_id" not in json.loads(formatter.format(record))

    def test_extra_fields(self, formatter: StructuredFormatter) -> None:
        record = make_record()
        record.stroke_count = 3  # type: ignore[attr-defined]
        record.document = object()  # type: ignore[attr-defined]

        data = json.loads(formatter.format(record))

        assert data["extra"]["stroke_count"] == 3
        assert data["extra"]["document"].startswith("<object object")

    def test_exception_info(self, formatter: StructuredFormatter) -> None:
        try:
            raise ConnectionError("store offline")
        except ConnectionError:
            record = make_record(level=logging.ERROR, exc_info=sys.exc_info())

        data = json.loads(formatter.format(record))

        assert "ConnectionError" in data["exception"]
        assert "store offline" in data["exception"]

    def test_trace_id_from_opentelemetry(self, formatter: StructuredFormatter) -> None:
        mock_span = MagicMock()
        mock_span.is_recording.return_value = True
        mock_span.get_span_context.return_value = MagicMock(
            trace_id=0x1234567890ABCDEF1234567890ABCDEF
        )

        with patch("opentelemetry.trace.get_current_span", return_value=mock_span):
            data = json.loads(formatter.format(make_record()))

        assert data["trace_id"] == "1-1234567890abcdef1234567890abcdef"

    def test_trace_id_not_recording(self, formatter: StructuredFormatter) -> None:
        mock_span = MagicMock()
        mock_span.is_recording.return_value = False

        with patch("opentelemetry.trace.get_current_span", return_value=mock_span):
            data = json.loads(formatter.format(make_record()))

        assert "trace_id" not in data

    def test_trace_id_from_record(self, formatter: StructuredFormatter) -> None:
        """A trace_id set on the record takes precedence."""
        record = make_record()
        record.trace_id = "custom-trace-id"  # type: ignore[attr-defined]
        assert json.loads(formatter.format(record))["trace_id"] == "custom-trace-id"


class TestCategoryFor:
    def test_most_specific_prefix_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setitem(CATEGORIES, "inkshare.store.filesystem", "disk")
        assert category_for("inkshare.store.filesystem") == "disk"
        assert category_for("inkshare.store.memory") == "store"

    def test_package_root_is_system(self) -> None:
        assert category_for("inkshare") == "system"


class TestErrorFilter:
    @pytest.mark.parametrize(
        ("level", "allowed"),
        [
            (logging.DEBUG, False),
            (logging.INFO, False),
            (logging.WARNING, False),
            (logging.ERROR, True),
            (logging.CRITICAL, True),
        ],
    )
    def test_filter(self, level: int, allowed: bool) -> None:
        assert ErrorFilter().filter(make_record(level=level)) is allowed


@pytest.mark.usefixtures("restore_root_logger")
class TestConfigureLogging:
    """Tests for configure_logging and setup_cli_logging."""

    def test_json_format_output(self) -> None:
        output = StringIO()
        configure_logging(json_format=True, log_level=logging.INFO, stream=output)

        logging.getLogger("inkshare.sync").info("Subscribed", extra={"canvas_id": "c1"})

        data = json.loads(output.getvalue().strip())
        assert data["message"] == "Subscribed"
        assert data["category"] == "sync"
        assert data["canvas_id"] == "c1"

    def test_plain_format_output(self) -> None:
        output = StringIO()
        configure_logging(json_format=False, log_level=logging.INFO, stream=output)

        logging.getLogger("inkshare.store").info("Canvas cleared")

        content = output.getvalue()
        assert "Canvas cleared" in content
        assert "INFO" in content
        assert "[inkshare.store]" in content

    def test_log_level_filtering(self) -> None:
        output = StringIO()
        configure_logging(json_format=False, log_level=logging.WARNING, stream=output)

        logger = logging.getLogger("inkshare.session")
        logger.info("Info message")
        logger.warning("Warning message")

        content = output.getvalue()
        assert "Info message" not in content
        assert "Warning message" in content

    def test_file_handlers(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "inkshare.log"
        error_file = tmp_path / "logs" / "errors.log"
        configure_logging(
            log_file=str(log_file), error_log_file=str(error_file), stream=StringIO()
        )

        logger = logging.getLogger("inkshare.sync")
        logger.info("routine")
        logger.error("write failed")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "routine" in log_file.read_text()
        errors = error_file.read_text()
        assert "write failed" in errors
        assert "routine" not in errors

    def test_noisy_loggers_silenced(self) -> None:
        configure_logging(json_format=False, log_level=logging.DEBUG, stream=StringIO())

        for name in ("asyncio", "aiofiles"):
            assert logging.getLogger(name).level >= logging.WARNING, f"{name} should be silenced"

    def test_setup_cli_logging_uses_settings(self) -> None:
        with (
            patch("inkshare.config.settings.log_json", True),
            patch("inkshare.config.settings.log_level", "warning"),
            patch("inkshare.config.settings.log_file", None),
        ):
            setup_cli_logging()

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
