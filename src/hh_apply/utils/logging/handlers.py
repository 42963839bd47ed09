"""Logging handlers and utility functions."""

import enum
import logging
import traceback
from typing import Optional

from .formatters import LogError, LogRecord


class LogEvent(enum.Enum):
    # System events
    FASTAPI_STARTUP_COMPLETE = "fastapi_startup_complete"
    FASTAPI_SHUTDOWN = "fastapi_shutdown"
    HTTP_REQUEST = "http_request"
    REQUEST_FAILURE = "request_failure"
    DATABASE_READY = "database_ready"
    CONFIG_LOAD_FAILED = "config_load_failed"

    # API key authentication events
    AUTH_MIDDLEWARE_ENABLED = "auth_middleware_enabled"
    AUTH_FAILED = "auth_failed"
    AUTH_MISSING_TOKEN = "auth_missing_token"
    AUTH_INVALID_TOKEN = "auth_invalid_token"

    # Authorization-code exchange events
    OAUTH_EXCHANGE_START = "oauth_exchange_start"
    OAUTH_TOKEN_EXCHANGE_FAILED = "oauth_token_exchange_failed"
    OAUTH_PROFILE_FETCH_FAILED = "oauth_profile_fetch_failed"
    OAUTH_USER_CREATED = "oauth_user_created"
    OAUTH_USER_UPDATED = "oauth_user_updated"
    OAUTH_EXCHANGE_SUCCESS = "oauth_exchange_success"

    # Token store events
    TOKEN_SAVED = "token_saved"
    TOKEN_DELETED = "token_deleted"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_REFRESHED_ELSEWHERE = "token_refreshed_elsewhere"
    TOKEN_UNAVAILABLE = "token_unavailable"

    # Token refresh events
    OAUTH_REFRESH_REQUEST = "oauth_refresh_request"
    OAUTH_REFRESH_FAILED = "oauth_refresh_failed"
    OAUTH_REFRESH_INVALID_GRANT = "oauth_refresh_invalid_grant"
    OAUTH_TOKEN_REFRESHED = "oauth_token_refreshed"
    OAUTH_REFRESH_ERROR = "oauth_refresh_error"

    # Provider communication events
    PROVIDER_REQUEST = "provider_request"
    PROVIDER_REQUEST_RETRY = "provider_request_retry"
    PROVIDER_REQUEST_ERROR = "provider_request_error"
    PROVIDER_HTTP_ERROR = "provider_http_error"
    PROVIDER_UNAUTHORIZED = "provider_unauthorized"

    # Proxy events
    VACANCY_SEARCH = "vacancy_search"
    VACANCIES_EXCLUDED = "vacancies_excluded"
    RESUMES_NOT_JOB_SEEKER = "resumes_not_job_seeker"
    NEGOTIATION_SUBMITTED = "negotiation_submitted"

    # Application history events
    APPLICATION_ALREADY_EXISTS = "application_already_exists"
    APPLICATION_SAVED = "application_saved"
    APPLICATION_STATUS_UPDATED = "application_status_updated"

    # Client-side flow events
    OAUTH_LOGIN_INITIATED = "oauth_login_initiated"
    OAUTH_CALLBACK_PROVIDER_ERROR = "oauth_callback_provider_error"
    OAUTH_MISSING_PARAMETERS = "oauth_missing_parameters"
    OAUTH_STATE_MISMATCH = "oauth_state_mismatch"
    OAUTH_CALLBACK_SUCCESS = "oauth_callback_success"
    OAUTH_CALLBACK_FAILED = "oauth_callback_failed"
    CLIENT_STORAGE_LOAD_FAILED = "client_storage_load_failed"
    CLIENT_STORAGE_SAVE_FAILED = "client_storage_save_failed"

    # Bulk apply events
    AUTO_APPLY_START = "auto_apply_start"
    AUTO_APPLY_VACANCY_FAILED = "auto_apply_vacancy_failed"
    AUTO_APPLY_ABORTED = "auto_apply_aborted"
    AUTO_APPLY_COMPLETE = "auto_apply_complete"


# Initialize logger - will be set up when module is initialized
_logger = None


def init_logger(app_name: str = "hh-apply"):
    """Initialize the logger for this module."""
    global _logger
    _logger = logging.getLogger(app_name)


def _log(level: int, record: LogRecord, exc: Optional[Exception] = None) -> None:
    """Internal logging function."""
    if _logger is None:
        init_logger()

    if exc:
        record.error = LogError(
            name=type(exc).__name__,
            message=str(exc),
            stack_trace="".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            ),
            args=exc.args if hasattr(exc, "args") else tuple(),
        )
        if not record.message:
            record.message = str(exc) or "An unspecified error occurred"

    _logger.log(level=level, msg=record.message, extra={"log_record": record})


def debug(record: LogRecord):
    """Log a debug message."""
    _log(logging.DEBUG, record)


def info(record: LogRecord):
    """Log an info message."""
    _log(logging.INFO, record)


def warning(record: LogRecord, exc: Optional[Exception] = None):
    """Log a warning message."""
    _log(logging.WARNING, record, exc=exc)


def error(record: LogRecord, exc: Optional[Exception] = None):
    """Log an error message."""
    _log(logging.ERROR, record, exc=exc)


def critical(record: LogRecord, exc: Optional[Exception] = None):
    """Log a critical message."""
    _log(logging.CRITICAL, record, exc=exc)
