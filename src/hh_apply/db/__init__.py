"""
Persistence layer: SQLModel tables on an async SQLAlchemy engine.
"""

from .models import ApplicationRecord, ApplicationStatus, TokenRecord, User
from .database import Database
from .repositories import ApplicationRepository, UserRepository

__all__ = [
    "ApplicationRecord",
    "ApplicationStatus",
    "TokenRecord",
    "User",
    "Database",
    "ApplicationRepository",
    "UserRepository",
]
