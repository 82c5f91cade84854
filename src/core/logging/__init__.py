"""
Structured logging module.

Provides JSON logging with request IDs and context propagation.
"""

from core.logging.context import (
    clear_log_context,
    get_log_context,
    reset_log_context,
    set_log_context,
)
from core.logging.context_managers import LogContext, generate_request_id
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import NOISY_LOGGERS, get_logger, setup_logging

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    "NOISY_LOGGERS",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "reset_log_context",
    # Context Managers
    "LogContext",
    "generate_request_id",
]
