"""Request bodies for the internal HTTP API."""

from typing import Optional

from pydantic import Field

from hh_apply.db.models import ApplicationStatus

from .filters import CamelModel, SearchFilter


class TokenExchangeRequest(CamelModel):
    code: str = Field(min_length=1)


class UserRequest(CamelModel):
    user_id: str = Field(min_length=1)


class SearchRequest(CamelModel):
    user_id: str = Field(min_length=1)
    filter: SearchFilter = Field(default_factory=SearchFilter)


class ApplyRequest(CamelModel):
    user_id: str = Field(min_length=1)
    vacancy_id: str = Field(min_length=1)
    resume_id: str = Field(min_length=1)
    cover_letter: Optional[str] = None


class StatusUpdateRequest(CamelModel):
    status: ApplicationStatus
