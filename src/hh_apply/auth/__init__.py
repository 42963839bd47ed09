"""
API key authentication for the hh-apply server.
"""

from .auth_manager import AuthManager, AuthConfig
from .middleware import AuthenticationMiddleware

__all__ = [
    "AuthManager",
    "AuthConfig",
    "AuthenticationMiddleware",
]
