"""
Tests for structured JSON logging configuration.

This module tests:
- JSONFormatter (JSON log output)
- setup_logging() (logging configuration)
- log_with_context() (structured context fields)

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

import io
import json
import logging

import pytest
from sqlalchemy.orm import Session

from repositori import DataContext, SqlAlchemyRepository
from repositori.core.logging_config import (
    JSONFormatter,
    get_logger,
    log_with_context,
    setup_logging,
)
from tests.models import Widget


def _capture(name: str, level: int = logging.DEBUG) -> io.StringIO:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    return stream


def _lines(stream: io.StringIO) -> list:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_json_formatter_basic_message(self):
        """
        Test JSONFormatter outputs valid JSON.

        Arrange: Create logger with JSONFormatter
        Act: Log a message
        Assert: Output is valid JSON with required fields
        """
        # Arrange
        stream = _capture("test_logger")

        # Act
        logging.getLogger("test_logger").info("Test message")

        # Assert
        log_data = _lines(stream)[0]
        assert log_data["level"] == "INFO"
        assert log_data["message"] == "Test message"
        assert "timestamp" in log_data
        assert log_data["logger"] == "test_logger"

    def test_json_formatter_with_context_fields(self):
        stream = _capture("test_logger_context")

        logging.getLogger("test_logger_context").debug(
            "Marked entity modified",
            extra={"entity": "Widget", "entity_id": 3, "operation": "update", "custom": "x"},
        )

        log_data = _lines(stream)[0]
        assert log_data["entity"] == "Widget"
        assert log_data["entity_id"] == 3
        assert log_data["operation"] == "update"
        assert log_data["custom"] == "x"

    def test_json_formatter_with_exception(self):
        """
        Test JSONFormatter includes exception details.

        Arrange: Create logger with JSONFormatter
        Act: Log exception
        Assert: Exception info included in JSON output
        """
        # Arrange
        stream = _capture("test_logger_exc", logging.ERROR)

        # Act
        try:
            raise ValueError("Test exception")
        except ValueError:
            logging.getLogger("test_logger_exc").exception("Error occurred")

        # Assert
        log_data = _lines(stream)[0]
        assert log_data["level"] == "ERROR"
        assert "ValueError: Test exception" in log_data["exception"]


class TestLogWithContext:
    """Tests for log_with_context helper."""

    def test_only_given_fields_are_included(self):
        stream = _capture("test_log_with_context")
        logger = get_logger("test_log_with_context")

        log_with_context(logger, "info", "Batch", operation="add_range", count=2)

        log_data = _lines(stream)[0]
        assert log_data["operation"] == "add_range"
        assert log_data["count"] == 2
        assert "entity" not in log_data

    def test_disabled_level_emits_nothing(self):
        stream = _capture("test_log_disabled", logging.WARNING)

        log_with_context(get_logger("test_log_disabled"), "debug", "Quiet", entity="Widget")

        assert stream.getvalue() == ""


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_installs_single_json_handler(self):
        setup_logging(level="WARNING", json_format=True)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_plain_format_and_settings_defaults(self):
        setup_logging(json_format=False)

        root = logging.getLogger()
        assert root.level == logging.DEBUG  # LOG_LEVEL from conftest
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)


class TestRepositoryLogging:
    """Repository operations emit structured records."""

    def test_update_and_commit_are_logged(self, session: Session):
        """
        Test state marking and transaction boundaries are logged.

        Arrange: Capture the context logger
        Act: Create, commit in an explicit transaction, then update
        Assert: Records carry entity and operation fields
        """
        # Arrange
        stream = _capture("repositori.core.context")
        repo = SqlAlchemyRepository(DataContext(session), Widget)

        # Act
        with repo.transaction():
            widget = repo.create(Widget(id=1, name="logged"))
        repo.update(widget)

        # Assert
        records = _lines(stream)
        messages = [r["message"] for r in records]
        assert "Transaction started" in messages
        assert "Transaction committed" in messages
        update_record = next(r for r in records if r.get("operation") == "update")
        assert update_record["entity"] == "Widget"
        assert update_record["entity_id"] == 1
