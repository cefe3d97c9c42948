"""Structured logging configuration.

Features:
- JSON and text format support
- Service context injection
- Store call logging helpers

Log output goes to stderr so that library consumers keep stdout for
their own use.
"""

import logging
import sys
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, Processor

from cache_facade.config import LogFormat, LogLevel, get_settings


def add_service_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add service context to log events."""
    settings = get_settings()
    event_dict.setdefault("service", settings.app_name)
    event_dict["environment"] = settings.environment.value
    return event_dict


def add_timestamp(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add ISO 8601 timestamp."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def setup_logging(
    service_name: str | None = None,
    log_level: LogLevel | None = None,
    log_format: LogFormat | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        service_name: Bound into every event as ``service`` (defaults to settings.app_name)
        log_level: Override log level (defaults to settings.log_level)
        log_format: Override log format (defaults to settings.log_format)
    """
    settings = get_settings()

    level = log_level or settings.log_level
    fmt = log_format or settings.log_format

    # Convert LogLevel enum to logging constant (handle both enum and string)
    level_str = level.value if hasattr(level, "value") else str(level).upper()
    numeric_level = getattr(logging, level_str)

    logging.basicConfig(
        level=numeric_level,
        stream=sys.stderr,
        format="%(message)s",
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        add_service_context,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    fmt_str = fmt.value if hasattr(fmt, "value") else str(fmt).lower()
    if fmt_str == LogFormat.JSON.value:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=False,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if service_name:
        structlog.contextvars.bind_contextvars(service=service_name)

    # redis-py logs every reconnect at DEBUG
    logging.getLogger("redis").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (defaults to module name)

    The structlog logger wraps a standard library logger, so events always
    reach the ``logging`` module. Until setup_logging() runs, that means
    Python's last-resort handler: WARNING and above on stderr, debug
    chatter dropped.

    Returns:
        Configured structlog logger
    """
    return structlog.wrap_logger(logging.getLogger(name))


def log_store_call_start(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    key: str,
) -> None:
    """Log start of a key-value store call."""
    logger.debug(
        "Store call started",
        store_operation=operation,
        key=key,
    )


def log_store_call_end(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    key: str,
    success: bool,
    duration_ms: float,
    error: str | None = None,
) -> None:
    """Log completion of a key-value store call."""
    log_data = {
        "store_operation": operation,
        "key": key,
        "success": success,
        "duration_ms": round(duration_ms, 2),
    }
    if error:
        log_data["error"] = error

    if success:
        logger.debug("Store call completed", **log_data)
    else:
        logger.warning("Store call failed", **log_data)
