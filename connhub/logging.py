"""
Structured logging configuration with Loki integration.

This module provides logging for the registry and its HTTP/WebSocket surface:
- Human-readable console output tagged with the current connection key
- JSON-formatted error log file
- Optional Loki handler for centralized log aggregation
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any

from connhub.constants import LOKI_MAX_LOG_SIZE_BYTES
from connhub.settings import app_settings

# Context variable for fields attached to every record (e.g. connection_key)
log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

# Attributes every LogRecord carries; anything else was passed via extra=
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "connection_key"}

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def set_log_context(**kwargs: Any) -> None:
    """
    Set contextual fields for structured logging.

    The fields are added to every log message emitted from the current
    context (task or thread).

    Args:
        **kwargs: Key-value pairs to add to log context.

    Example:
        >>> set_log_context(connection_key="127.0.0.1:50432")
        >>> logger.info("Relaying message")  # Includes connection_key
    """
    current = dict(log_context.get())
    current.update(kwargs)
    log_context.set(current)


def get_log_context() -> dict[str, Any]:
    return log_context.get()


def clear_log_context() -> None:
    """Clear the log context (useful when a connection closes)."""
    log_context.set({})


class StructuredJSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Carries the connection key, the remaining log_context fields, any
    extra= fields and the traceback when there is one.
    """

    def format(self, record: logging.LogRecord) -> str:
        context = dict(get_log_context())
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, _DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "connection_key": context.pop("connection_key", None),
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "environment": app_settings.ENVIRONMENT,
            **context,
        }
        log_data.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES
        )
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        json_str = json.dumps(log_data, default=str)
        if len(json_str) > LOKI_MAX_LOG_SIZE_BYTES:
            overflow = len(json_str) - LOKI_MAX_LOG_SIZE_BYTES
            log_data["message"] = (
                log_data["message"][: -(overflow + 100)] + "... [TRUNCATED]"
            )
            json_str = json.dumps(log_data, default=str)
        return json_str


class HumanReadableFormatter(logging.Formatter):
    """
    Console formatter: "<time> - [<connection key>] LEVEL: message".

    Anything other than INFO also gets the source location.
    """

    SHORT_FMT = "%(asctime)s - [%(connection_key)s] %(levelname)s: %(message)s"
    DETAILED_FMT = "%(asctime)s - [%(connection_key)s] %(levelname)s: %(module)s.%(funcName)s:%(lineno)d - %(message)s"

    def __init__(self) -> None:
        super().__init__(self.DETAILED_FMT, datefmt=_DATE_FORMAT)
        self._short = logging.Formatter(self.SHORT_FMT, datefmt=_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "connection_key"):
            record.connection_key = get_log_context().get("connection_key", "-")
        if record.levelno == logging.INFO:
            return self._short.format(record)
        return super().format(record)


class ExcludePathsFilter(logging.Filter):
    """
    Logging filter dropping access log lines for monitoring endpoints.

    Health checks and Prometheus scraping would otherwise flood uvicorn's
    access log. The paths come from the LOG_EXCLUDED_PATHS setting.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        return not any(
            path in message for path in app_settings.LOG_EXCLUDED_PATHS
        )


def install_access_log_filter(logger_name: str = "uvicorn.access") -> None:
    """
    Attach ExcludePathsFilter to the access logger, at most once.

    Args:
        logger_name: Name of the access logger.
    """
    access_logger = logging.getLogger(logger_name)
    if not any(isinstance(f, ExcludePathsFilter) for f in access_logger.filters):
        access_logger.addFilter(ExcludePathsFilter())


def setup_logging() -> logging.Logger:
    """
    Configure the connhub logger.

    This function sets up:
    - Console handler with human-readable format
    - File handler for errors (JSON format)
    - Loki handler for centralized logging (if enabled)

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger("connhub")
    logger.setLevel(getattr(logging, app_settings.LOG_LEVEL.upper()))

    # Clear existing handlers to avoid duplicates on reload
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(HumanReadableFormatter())
    logger.addHandler(console_handler)

    try:
        file_handler = logging.FileHandler(app_settings.LOG_FILE_PATH)
        file_handler.setLevel(logging.ERROR)
        file_handler.setFormatter(StructuredJSONFormatter())
        logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"Could not create file handler: {e}")

    if app_settings.LOKI_ENABLED:
        try:
            from logging_loki import LokiHandler

            loki_handler = LokiHandler(
                url=f"{app_settings.LOKI_URL}/loki/api/v{app_settings.LOKI_VERSION}/push",
                tags={
                    "application": "connhub",
                    "environment": app_settings.ENVIRONMENT,
                },
                version=app_settings.LOKI_VERSION,
            )
            loki_handler.setLevel(logging.INFO)
            loki_handler.setFormatter(StructuredJSONFormatter())
            logger.addHandler(loki_handler)
            logger.info("Loki handler configured successfully")
        except Exception as e:
            logger.warning(f"Could not configure Loki handler: {e}")

    # Disable logging during pytest runs
    if sys.argv[0].split("/")[-1] in ["pytest"]:
        logging.disable(logging.ERROR)

    return logger


logger = setup_logging()
