"""SQLModel tables."""

import enum
import uuid
from typing import Optional

from sqlalchemy import BigInteger, UniqueConstraint
from sqlmodel import Field, SQLModel

from hh_apply.utils import now_ms


def new_id() -> str:
    return uuid.uuid4().hex


class ApplicationStatus(str, enum.Enum):
    APPLIED = "applied"
    VIEWED = "viewed"
    INVITED = "invited"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    username: str = Field(unique=True, index=True)
    external_id: Optional[str] = Field(default=None, unique=True, index=True)
    first_name: Optional[str] = Field(default=None)
    last_name: Optional[str] = Field(default=None)
    email: Optional[str] = Field(default=None)
    created_at: int = Field(default_factory=now_ms, sa_type=BigInteger)
    last_login_at: int = Field(default_factory=now_ms, sa_type=BigInteger)

    def projection(self) -> dict:
        """The user shape handed to clients."""
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }


class TokenRecord(SQLModel, table=True):
    __tablename__ = "tokens"

    user_id: str = Field(primary_key=True)
    access_token: str = Field(max_length=2048)
    refresh_token: str = Field(max_length=2048)
    # Absolute expiry, epoch milliseconds
    expires_at: int = Field(sa_type=BigInteger)

    def is_expired(self, now: int) -> bool:
        return self.expires_at <= now


class ApplicationRecord(SQLModel, table=True):
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("user_id", "vacancy_id", name="uq_applications_user_vacancy"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    vacancy_id: str
    vacancy_title: str
    company_name: str
    salary_display: str = Field(default="Не указана")
    location: Optional[str] = Field(default=None)
    applied_at: int = Field(default_factory=now_ms, sa_type=BigInteger)
    status: str = Field(default=ApplicationStatus.APPLIED.value)
    url: Optional[str] = Field(default=None)
    cover_letter: Optional[str] = Field(default=None)
