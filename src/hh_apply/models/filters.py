"""Job search filter."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SEARCH_PAGE_SIZE = 100


def split_keywords(value: Optional[str]) -> List[str]:
    """Comma-separated keywords, trimmed, blanks dropped."""
    if not value:
        return []
    return [keyword.strip() for keyword in value.split(",") if keyword.strip()]


class CamelModel(BaseModel):
    """Accepts and emits camelCase field names alongside the snake_case ones."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchFilter(CamelModel):
    job_title: str = ""
    keywords_include: str = ""
    keywords_exclude: str = ""
    location: str = ""
    min_salary: Optional[int] = None
    max_salary: Optional[int] = None
    cover_letter: str = ""
    limit: int = Field(default=20, ge=1, le=SEARCH_PAGE_SIZE)
    auto_apply: bool = False

    @field_validator("min_salary", "max_salary", mode="before")
    @classmethod
    def blank_salary_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def search_text(self) -> str:
        parts = [self.job_title.strip()] if self.job_title.strip() else []
        parts.extend(split_keywords(self.keywords_include))
        return " ".join(parts)

    def excluded_keywords(self) -> List[str]:
        return [keyword.lower() for keyword in split_keywords(self.keywords_exclude)]

    def to_query_params(self) -> Dict[str, Any]:
        """Provider query parameters. Exclusion keywords are applied locally, never sent."""
        params: Dict[str, Any] = {}
        text = self.search_text()
        if text:
            params["text"] = text
        if self.min_salary:
            params["salary"] = self.min_salary
        if self.max_salary:
            params["only_with_salary"] = "true"
        if self.location:
            params["area"] = self.location
        params["per_page"] = SEARCH_PAGE_SIZE
        return params
