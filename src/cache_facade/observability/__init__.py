"""Observability module for structured logging."""

from .logging import (
    get_logger,
    log_store_call_end,
    log_store_call_start,
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    # Logging helpers
    "log_store_call_start",
    "log_store_call_end",
]
