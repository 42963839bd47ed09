"""
Utility modules for hh-apply.

This package contains logging utilities with colored console output and
JSON formatting, plus small time helpers shared by server and client.
"""

import time

from .logging import (
    LogRecord, LogEvent, LogError,
    ColoredConsoleFormatter, JSONFormatter, UvicornAccessFormatter,
    init_logger, debug, info, warning, error, critical,
    mask_sensitive_data, mask_sensitive_string, mask_token,
)


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


__all__ = [
    # Logging utilities
    "LogRecord", "LogEvent", "LogError",
    "ColoredConsoleFormatter", "JSONFormatter", "UvicornAccessFormatter",
    "init_logger", "debug", "info", "warning", "error", "critical",
    "mask_sensitive_data", "mask_sensitive_string", "mask_token",
    # Time
    "now_ms",
]
