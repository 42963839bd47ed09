"""Exception taxonomy for hh-apply.

Every failure that crosses a component boundary is one of these. The server
translates them into the ``{error, description?, requireReauth?}`` JSON body in
the exception handlers registered by ``create_app``.
"""

from typing import Any, Dict, Optional


class HHApplyError(Exception):
    """Base class for all hh-apply errors."""

    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, message: str = "", description: Optional[str] = None):
        super().__init__(message or self.error)
        self.description = description

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": str(self)}
        if self.description:
            body["description"] = self.description
        return body


class ConfigurationError(HHApplyError):
    """Required configuration is missing or malformed."""

    error = "configuration_error"


class ProviderAuthError(HHApplyError):
    """The provider's token endpoint rejected the request or could not be reached."""

    error = "provider_auth_error"

    def __init__(
        self,
        status_code: int,
        error: str,
        description: Optional[str] = None,
    ):
        super().__init__(error, description)
        self.status_code = status_code
        self.error = error


class ProfileFetchError(HHApplyError):
    """The token was issued but the ``/me`` profile request failed."""

    status_code = 502
    error = "Failed to fetch user profile"


class StateMismatch(HHApplyError):
    """The callback state does not match the stored anti-CSRF value."""

    status_code = 400
    error = "Invalid state parameter"


class MissingParameters(HHApplyError):
    """The callback is missing ``code`` or ``state``."""

    status_code = 400
    error = "Missing required parameters"


class RequireReauth(HHApplyError):
    """No usable token for the user; a fresh login is required."""

    status_code = 401
    error = "Authentication required"

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["requireReauth"] = True
        return body


class ProviderError(HHApplyError):
    """Pass-through of a provider 4xx/5xx other than 401."""

    error = "provider_error"

    def __init__(
        self,
        status_code: int,
        error: str,
        description: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(error, description)
        self.status_code = status_code
        self.error = error
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.details is not None:
            body["details"] = self.details
        return body


class RateLimited(ProviderError):
    """Provider answered 429."""


class NotFound(HHApplyError):
    """A local record does not exist."""

    status_code = 404
    error = "Not found"
