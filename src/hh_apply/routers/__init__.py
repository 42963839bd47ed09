"""HTTP routers for the hh-apply server."""

from .auth import create_auth_router
from .health import create_health_router
from .user import create_user_router
from .vacancies import create_vacancies_router

__all__ = [
    "create_auth_router",
    "create_health_router",
    "create_user_router",
    "create_vacancies_router",
]
