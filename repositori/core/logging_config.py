"""
Structured JSON logging configuration.

This module sets up JSON logging with:
- Consistent field names across all logs
- Entity and operation tracking for repository calls
- Transaction state for commit/rollback boundaries
- Timestamp, level, message, logger name

Logs are output to stdout in JSON format for easy parsing by
log aggregation systems.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from repositori.core.config import get_settings


# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName",
})


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Outputs log records as single-line JSON objects with consistent fields:
    - timestamp: ISO 8601 format with microseconds (UTC)
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - message: Log message
    - logger: Logger name (module path)
    - entity: Entity class name (if available)
    - entity_id: Entity identifier (if available)
    - operation: Repository operation name (if available)
    - count: Number of entities in a batch call (if available)
    - transaction_state: Context transaction state (if available)
    - exception: Exception details (if exception occurred)
    - extra: Any additional fields from log record

    Example output:
        {"timestamp": "2026-10-18T10:30:00.123456+00:00", "level": "DEBUG",
         "message": "Marked entity modified", "logger": "repositori.core.context",
         "entity": "Widget", "entity_id": 1, "operation": "update"}
    """

    context_fields = ("entity", "entity_id", "operation", "count", "transaction_state")

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON string.

        Args:
            record: LogRecord to format

        Returns:
            JSON string representation of log record
        """
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        for field in self.context_fields:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None
) -> None:
    """
    Configure application logging.

    Sets up:
    - Root logger with specified level
    - JSON formatter (if json_format=True)
    - StreamHandler to stdout
    - Removes default handlers

    Args:
        level: Logging level; defaults to LOG_LEVEL from settings
        json_format: Use JSON formatter; defaults to LOG_JSON from settings

    Example:
        setup_logging(level="DEBUG", json_format=False)

    Note:
        Call this once at application startup, before any logging occurs.
        The library itself never calls it.
    """
    settings = get_settings()
    if level is None:
        level = settings.log_level
    if json_format is None:
        json_format = settings.log_json

    root_logger = logging.getLogger()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # SQL echo goes through its own logger; keep it quiet unless asked for
    if not settings.sql_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance with given name.

    Args:
        name: Logger name (usually __name__ of the module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    entity: Optional[str] = None,
    entity_id: Any = None,
    operation: Optional[str] = None,
    count: Optional[int] = None,
    transaction_state: Optional[str] = None,
    **extra_fields: Any
) -> None:
    """
    Log message with structured context fields.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        entity: Entity class name
        entity_id: Entity identifier
        operation: Repository operation name
        count: Number of entities in a batch call
        transaction_state: Context transaction state
        **extra_fields: Additional fields to include

    Example:
        log_with_context(
            logger,
            "debug",
            "Marked entities removed",
            entity="Widget",
            operation="delete_many",
            count=3,
        )
    """
    log_method = getattr(logger, level.lower())
    if not logger.isEnabledFor(logging.getLevelName(level.upper())):
        return

    extra: Dict[str, Any] = {}

    if entity is not None:
        extra["entity"] = entity
    if entity_id is not None:
        extra["entity_id"] = entity_id
    if operation is not None:
        extra["operation"] = operation
    if count is not None:
        extra["count"] = count
    if transaction_state is not None:
        extra["transaction_state"] = transaction_state

    extra.update(extra_fields)

    log_method(message, extra=extra)
