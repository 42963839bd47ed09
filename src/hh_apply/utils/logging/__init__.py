"""Logging functionality and custom formatters."""

from .formatters import (
    LogError,
    LogRecord,
    ColoredConsoleFormatter,
    JSONFormatter,
    UvicornAccessFormatter,
    mask_sensitive_data,
    mask_sensitive_string,
    mask_token,
)

from .handlers import (
    LogEvent,
    init_logger,
    debug,
    info,
    warning,
    error,
    critical,
)

__all__ = [
    "LogError",
    "LogRecord",
    "ColoredConsoleFormatter",
    "JSONFormatter",
    "UvicornAccessFormatter",
    "LogEvent",
    "init_logger",
    "debug",
    "info",
    "warning",
    "error",
    "critical",
    "mask_sensitive_data",
    "mask_sensitive_string",
    "mask_token",
]
