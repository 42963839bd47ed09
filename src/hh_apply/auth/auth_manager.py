"""
API key check for the internal HTTP surface.
The CLI client sends the key as ``x-api-key`` or ``Authorization: Bearer``.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import HTTPException, status

from hh_apply.config import DEFAULT_EXEMPT_PATHS
from hh_apply.utils import LogEvent, LogRecord, error, mask_token, warning


@dataclass
class AuthConfig:
    """Configuration for API authentication."""
    enabled: bool = False
    api_key: str = ""
    exempt_paths: List[str] = field(default_factory=lambda: list(DEFAULT_EXEMPT_PATHS))


class AuthManager:
    """Validates the shared API key on incoming requests."""

    def __init__(self, config: AuthConfig):
        self.config = config

    def is_enabled(self) -> bool:
        return self.config.enabled

    def is_path_exempt(self, path: str) -> bool:
        return path in self.config.exempt_paths

    def has_api_key(self) -> bool:
        return bool(self.config.api_key)

    def validate_token(self, token: str, request_id: Optional[str] = None) -> bool:
        if not token:
            return False

        is_valid = token == self.config.api_key
        if not is_valid:
            warning(LogRecord(
                event=LogEvent.AUTH_FAILED.value,
                message="Authentication failed - invalid API key",
                request_id=request_id,
                data={"token_prefix": mask_token(token)},
            ))
        return is_valid

    def extract_token_from_headers(self, api_key: Optional[str], authorization: Optional[str]) -> Optional[str]:
        # x-api-key wins over Authorization
        if api_key:
            return api_key
        if authorization:
            if authorization.startswith("Bearer "):
                return authorization[7:]
            return authorization
        return None

    def authenticate_request(
        self,
        api_key: Optional[str],
        authorization: Optional[str],
        path: str,
        request_id: Optional[str] = None,
    ) -> None:
        """Raise ``HTTPException(401)`` unless the request carries the configured key."""
        if not self.is_enabled() or self.is_path_exempt(path):
            return

        token = self.extract_token_from_headers(api_key, authorization)
        if not token:
            error(LogRecord(
                event=LogEvent.AUTH_MISSING_TOKEN.value,
                message="Authentication failed - missing API key",
                request_id=request_id,
                data={"path": path},
            ))
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required. Provide the API key in the x-api-key header or Authorization Bearer header.",
            )

        if not self.validate_token(token, request_id):
            error(LogRecord(
                event=LogEvent.AUTH_INVALID_TOKEN.value,
                message="Authentication failed - invalid API key",
                request_id=request_id,
                data={"path": path},
            ))
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid API key.",
            )
