"""Custom logging formatters."""

import dataclasses
import json
import logging
import re
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple


@dataclasses.dataclass
class LogError:
    name: str
    message: str
    stack_trace: Optional[str] = None
    args: Optional[Tuple[Any, ...]] = None


@dataclasses.dataclass
class LogRecord:
    event: str
    message: str
    request_id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[LogError] = None


SENSITIVE_FIELDS = {
    "access_token", "refresh_token", "accessToken", "refreshToken",
    "client_secret", "code", "authorization", "x-api-key", "api_key",
}


def mask_token(token: Optional[str]) -> str:
    """Short, log-safe preview of a bearer credential."""
    if not token:
        return "<none>"
    if len(token) <= 12:
        return "***"
    return f"{token[:6]}...{token[-4:]}"


def mask_sensitive_data(data: Any, mask_char: str = "*") -> Any:
    """Recursively mask sensitive data in dictionaries, lists, and strings."""
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if isinstance(key, str) and key in SENSITIVE_FIELDS and isinstance(value, str):
                masked[key] = mask_token(value)
            else:
                masked[key] = mask_sensitive_data(value, mask_char)
        return masked
    elif isinstance(data, list):
        return [mask_sensitive_data(item, mask_char) for item in data]
    elif isinstance(data, str):
        return mask_sensitive_string(data, mask_char)
    else:
        return data


def mask_sensitive_string(text: str, mask_char: str = "*") -> str:
    """Mask bearer tokens and secret-looking JSON fields inside free text."""
    if not isinstance(text, str):
        return text

    patterns = [
        (r'(Bearer\s+)([A-Za-z0-9\-_\.]{8,})', lambda m: m.group(1) + mask_char * 10),
        (r'("(?:access_token|refresh_token|client_secret)"\s*:\s*")([^"]+)', lambda m: m.group(1) + "[REDACTED]"),
        (r'((?:access_token|refresh_token|client_secret)=)([^&\s]+)', lambda m: m.group(1) + "[REDACTED]"),
    ]

    masked_text = text
    for pattern, replacement in patterns:
        masked_text = re.sub(pattern, replacement, masked_text, flags=re.IGNORECASE)

    return masked_text


class ColoredConsoleFormatter(logging.Formatter):
    """Console formatter with color support and simplified output for CLI."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[95m', # Magenta
    }

    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        log_dict = self._get_simplified_log_dict(record)
        formatted_json = json.dumps(log_dict, ensure_ascii=False)

        use_colors = (
            self.use_colors
            and hasattr(sys.stdout, 'isatty')
            and sys.stdout.isatty()
        )
        if use_colors:
            color = self.COLORS.get(record.levelname, '')
            return f"{color}{formatted_json}{self.RESET}"
        return formatted_json

    def _get_simplified_log_dict(self, record: logging.LogRecord) -> dict:
        """Extract simplified log dictionary for console output."""
        log_payload = getattr(record, "log_record", None)

        if isinstance(log_payload, LogRecord):
            message = mask_sensitive_string(log_payload.message)
            if len(message) > 200:
                message = message[:200] + "..."

            simplified = {
                "time": datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
                "level": record.levelname,
                "event": log_payload.event,
                "message": message
            }

            if log_payload.request_id:
                simplified["req_id"] = log_payload.request_id[:8]

            if log_payload.error and record.levelname in ['ERROR', 'WARNING', 'CRITICAL']:
                simplified["error"] = log_payload.error.name
                if log_payload.error.message != log_payload.message:
                    simplified["error_msg"] = mask_sensitive_string(log_payload.error.message[:100])

            # Only a few fields are worth the console width
            if log_payload.data and record.levelname in ['WARNING', 'ERROR', 'CRITICAL']:
                for field in ('status_code', 'user_id', 'vacancy_id', 'attempt'):
                    if field in log_payload.data:
                        simplified[field] = log_payload.data[field]

            return simplified

        return {
            "time": datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
            "level": record.levelname,
            "message": record.getMessage()
        }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        header = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        log_payload = getattr(record, "log_record", None)
        if isinstance(log_payload, LogRecord):
            detail = dataclasses.asdict(log_payload)
            detail["message"] = mask_sensitive_string(detail["message"])
            if detail.get("data"):
                detail["data"] = mask_sensitive_data(detail["data"])
            header["detail"] = detail
        else:
            header["message"] = record.getMessage()
            if record.exc_info:
                exc_type, exc_value, exc_tb = record.exc_info
                header["error"] = {
                    "name": exc_type.__name__ if exc_type else "UnknownError",
                    "message": str(exc_value),
                    "stack_trace": "".join(
                        traceback.format_exception(exc_type, exc_value, exc_tb)
                    ),
                    "args": exc_value.args if hasattr(exc_value, "args") else [],
                }
        return json.dumps(header, ensure_ascii=False, default=str)


class UvicornAccessFormatter(logging.Formatter):
    """Formatter for uvicorn access logs so they sit quietly next to app logs."""

    INFO_GRAY = '\033[38;5;244m'
    RESET = '\033[0m'

    def __init__(self):
        super().__init__(fmt="%(levelname)s:     %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        formatted_message = super().format(record)
        use_colors = (
            hasattr(sys, 'stdout')
            and hasattr(sys.stdout, 'isatty')
            and sys.stdout.isatty()
        )
        if use_colors:
            return f"{self.INFO_GRAY}{formatted_message}{self.RESET}"
        return formatted_message
