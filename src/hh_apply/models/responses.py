"""Response shapes for the internal HTTP API."""

from typing import Any, Dict, Optional

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from .filters import CamelModel


class ApplicationOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    vacancy_id: str
    vacancy_title: str
    company_name: str
    salary_display: str
    location: Optional[str] = None
    applied_at: int
    status: str
    url: Optional[str] = None
    cover_letter: Optional[str] = None


def application_to_dict(record: Any) -> Dict[str, Any]:
    """Serialize an ApplicationRecord with camelCase keys."""
    return ApplicationOut.model_validate(record).model_dump(by_alias=True)
