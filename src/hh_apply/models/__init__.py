"""Pydantic models shared by the server routes and the CLI client."""

from .filters import CamelModel, SearchFilter, split_keywords, SEARCH_PAGE_SIZE
from .requests import (
    ApplyRequest,
    SearchRequest,
    StatusUpdateRequest,
    TokenExchangeRequest,
    UserRequest,
)
from .responses import ApplicationOut, application_to_dict

__all__ = [
    "CamelModel", "SearchFilter", "split_keywords", "SEARCH_PAGE_SIZE",
    "ApplyRequest", "SearchRequest", "StatusUpdateRequest",
    "TokenExchangeRequest", "UserRequest",
    "ApplicationOut", "application_to_dict",
]
