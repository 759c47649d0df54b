"""
Structured logging for the metrics scraper.

Log records are emitted as single-line JSON objects by default so that the
container runtime's log collector can index them. A plain-text format is
available for local runs.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from metrics_scraper.config import LoggingConfig

ROOT_LOGGER_NAME = "metrics_scraper"

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Debug output also names the emitting source line.
DEBUG_LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
)

# Attributes every LogRecord has; anything else came in through `extra`.
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the non-None attributes passed through ``extra``, sorted by key."""
    fields = {}
    for key in sorted(set(record.__dict__.keys()) - _RESERVED_ATTRS):
        value = getattr(record, key, None)
        if value is not None:
            fields[key] = value
    return fields


class JSONFormatter(logging.Formatter):
    """
    A logging formatter that outputs log records as JSON objects.

    Each record carries:
    - timestamp: ISO 8601 timestamp in UTC
    - level: Log level name
    - logger: Logger name
    - message: Rendered log message
    - source: ``file:line`` of the call, when ``include_source`` is set
    - exception: Formatted traceback, when present
    - any fields passed through the ``extra`` argument
    """

    def __init__(self, *, include_source: bool = False) -> None:
        super().__init__()
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            JSON-formatted string representation of the log record.
        """
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_source:
            log_entry["source"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        log_entry.update(extra_fields(record))

        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    """
    Plain-text formatter for local runs.

    Fields passed through ``extra`` are appended to the message as
    ``key=value`` pairs so that text output loses none of the context the
    JSON output carries.
    """

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        message = super().formatMessage(record)
        fields = extra_fields(record)
        if not fields:
            return message
        pairs = " ".join(f"{key}={value}" for key, value in fields.items())
        return f"{message} {pairs}"


def setup_logging(
    config: LoggingConfig | None = None,
    *,
    level: str = "INFO",
    json_format: bool = True,
    log_to_stdout: bool = True,
) -> logging.Logger:
    """
    Configure the ``metrics_scraper`` logger.

    Args:
        config: Optional LoggingConfig. When given, it overrides the keyword
            arguments.
        level: Log level used when no config is provided.
        json_format: Whether to emit JSON (default: True).
        log_to_stdout: Whether to attach a stdout handler (default: True).

    At debug level every entry also names the source file and line of the
    logging call, in either output format.

    Returns:
        The configured package logger.

    Example:
        >>> logger = setup_logging(level="DEBUG")
        >>> logger.info("Scraper started", extra={"db_path": "/tmp/metrics.db"})
    """
    if config is not None:
        log_level = config.level.upper()
        json_format = config.json_format
        log_to_stdout = config.log_to_stdout
    else:
        log_level = level.upper()

    numeric_level = getattr(logging, log_level, logging.INFO)
    debug = numeric_level <= logging.DEBUG

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    if log_to_stdout:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(numeric_level)

        if json_format:
            handler.setFormatter(JSONFormatter(include_source=debug))
        else:
            handler.setFormatter(
                TextFormatter(DEBUG_LOG_FORMAT if debug else DEFAULT_LOG_FORMAT)
            )

        logger.addHandler(handler)

    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a child of the package logger.

    Args:
        name: Logger name, typically ``__name__``. The ``metrics_scraper.``
            prefix is added when missing.

    Returns:
        A logger instance.
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    return logging.getLogger(name)
