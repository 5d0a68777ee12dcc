"""
Structured JSON logging configuration.

This module sets up JSON logging with:
- Consistent field names across all logs
- Repository context (model, operation)
- Query latency and result counts

Logs are output to stdout in JSON format for easy parsing by
log aggregation systems.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from alchemy_generics.core.config import get_settings


# Attributes every LogRecord carries; anything else came in via `extra`
_RESERVED_ATTRS = frozenset([
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName",
])


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Outputs log records as single-line JSON objects with consistent fields:
    - timestamp: ISO 8601 format with microseconds (UTC)
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - message: Log message
    - logger: Logger name (module path)
    - model: Mapped model class name (if available)
    - operation: Repository operation (if available)
    - latency_ms: Operation latency in milliseconds (if available)
    - count: Number of rows returned or counted (if available)
    - associations: Preloaded association names (if available)
    - exception: Exception details (if exception occurred)
    - extra: Any additional fields from log record

    Example output:
        {"timestamp": "2025-11-24T10:30:00.123456+00:00", "level": "DEBUG",
         "message": "find_with_limit completed", "model": "Book",
         "operation": "find_with_limit", "latency_ms": 1.2, "count": 3}
    """

    context_fields = ("model", "operation", "latency_ms", "count", "associations")

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

        # Any other custom fields from extra
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None
) -> None:
    """
    Configure logging for applications embedding the library.

    Sets up:
    - Root logger with specified level
    - JSON formatter (if json_format=True)
    - StreamHandler to stdout
    - Removes default handlers

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            defaults to Settings.log_level
        json_format: Use JSON formatter (True) or simple formatter (False);
            defaults to Settings.log_json

    Note:
        Call this once at application startup, before any logging occurs.
    """
    if level is None or json_format is None:
        settings = get_settings()
        level = settings.log_level if level is None else level
        json_format = settings.log_json if json_format is None else json_format

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

    # SQL echo is controlled by Settings.sql_echo, not the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance with given name.

    Example:
        logger = get_logger(__name__)
        logger.debug("Query built", extra={"model": "Book"})
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    model: Optional[str] = None,
    operation: Optional[str] = None,
    latency_ms: Optional[float] = None,
    count: Optional[int] = None,
    exc_info: bool = False,
    **extra_fields: Any
) -> None:
    """
    Log message with structured repository context fields.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        model: Mapped model class name
        operation: Repository operation name
        latency_ms: Operation latency in milliseconds
        count: Rows returned or counted
        exc_info: Attach the active exception to the record
        **extra_fields: Additional fields to include

    Example:
        log_with_context(
            logger,
            "debug",
            "count completed",
            model="Book",
            operation="count",
            count=12
        )
    """
    extra: Dict[str, Any] = {}

    if model is not None:
        extra["model"] = model
    if operation is not None:
        extra["operation"] = operation
    if latency_ms is not None:
        extra["latency_ms"] = latency_ms
    if count is not None:
        extra["count"] = count

    extra.update(extra_fields)

    log_method = getattr(logger, level.lower())
    log_method(message, extra=extra, exc_info=exc_info)
