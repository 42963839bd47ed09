"""Authenticated calls to the hh.ru API on behalf of a user."""

from typing import Any, Dict, List, Optional

from hh_apply.core.provider_client import ProviderClient
from hh_apply.errors import ProviderError
from hh_apply.models import SearchFilter
from hh_apply.utils import LogEvent, LogRecord, debug, info, warning

NOT_JOB_SEEKER_MESSAGE = "User is not registered as a job seeker"


def vacancy_matches_excluded(vacancy: Dict[str, Any], excluded: List[str]) -> bool:
    """True if any excluded keyword occurs in the name, requirement or responsibility."""
    snippet = vacancy.get("snippet") or {}
    haystack = " ".join([
        vacancy.get("name") or "",
        snippet.get("requirement") or "",
        snippet.get("responsibility") or "",
    ]).lower()
    return any(keyword in haystack for keyword in excluded)


def map_negotiation(item: Dict[str, Any]) -> Dict[str, Any]:
    vacancy = item.get("vacancy") or {}
    employer = vacancy.get("employer") or {}
    state = item.get("state") or {}
    return {
        "id": item.get("id"),
        "vacancyId": vacancy.get("id", "unknown"),
        "vacancyName": vacancy.get("name", "Unknown position"),
        "employerName": employer.get("name", "Unknown employer"),
        "status": state.get("name", "Unknown status"),
        "createdAt": item.get("created_at"),
        "updatedAt": item.get("updated_at"),
        "hasUpdates": bool(item.get("has_updates", False)),
        "url": vacancy.get("alternate_url"),
    }


class HHApiProxy:
    """
    Every method takes a ready access token; token lookup and refresh live
    in the Token Store. Provider 401 raises ``RequireReauth``, other
    failures raise ``ProviderError``.
    """

    def __init__(self, provider: ProviderClient):
        self.provider = provider

    async def search_vacancies(self, token: str, search_filter: SearchFilter) -> Dict[str, Any]:
        params = search_filter.to_query_params()
        info(LogRecord(
            event=LogEvent.VACANCY_SEARCH.value,
            message=f"Searching vacancies: {params.get('text', '')!r}",
            data={"params": params},
        ))
        response = await self.provider.call("GET", "/vacancies", token=token, params=params)
        data = _json_object(response)

        items = data.get("items") or []
        excluded = search_filter.excluded_keywords()
        if excluded:
            kept = [vacancy for vacancy in items if not vacancy_matches_excluded(vacancy, excluded)]
            if len(kept) != len(items):
                debug(LogRecord(
                    event=LogEvent.VACANCIES_EXCLUDED.value,
                    message=f"Excluded {len(items) - len(kept)} vacancies by keyword",
                    data={"excluded_keywords": excluded},
                ))
            items = kept

        return {
            "items": items,
            "found": data.get("found", 0),
            "pages": data.get("pages", 0),
            "filtered_count": len(items),
        }

    async def list_resumes(self, token: str) -> Dict[str, Any]:
        try:
            response = await self.provider.call("GET", "/resumes/mine", token=token)
        except ProviderError as e:
            if e.status_code != 403:
                raise
            warning(LogRecord(
                event=LogEvent.RESUMES_NOT_JOB_SEEKER.value,
                message=NOT_JOB_SEEKER_MESSAGE,
                data={"status_code": 403},
            ))
            return {"items": [], "found": 0, "message": NOT_JOB_SEEKER_MESSAGE}

        data = _json_object(response)
        return {"items": data.get("items") or [], "found": data.get("found", 0)}

    async def get_vacancy(self, token: str, vacancy_id: str) -> Dict[str, Any]:
        response = await self.provider.call("GET", f"/vacancies/{vacancy_id}", token=token)
        return _json_object(response)

    async def submit_negotiation(
        self,
        token: str,
        vacancy_id: str,
        resume_id: str,
        message: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Multipart POST to ``/negotiations``. hh.ru answers 201 or a 303 whose
        ``Location`` points at the new negotiation; both are success.
        """
        form = {"vacancy_id": vacancy_id, "resume_id": resume_id}
        if message:
            form["message"] = message
        # Sending as files forces multipart/form-data
        files = {name: (None, value) for name, value in form.items()}

        response = await self.provider.call("POST", "/negotiations", token=token, files=files)

        redirect_url = response.headers.get("location") if response.status_code == 303 else None
        info(LogRecord(
            event=LogEvent.NEGOTIATION_SUBMITTED.value,
            message=f"Applied to vacancy {vacancy_id}",
            data={"vacancy_id": vacancy_id, "status_code": response.status_code},
        ))
        return {
            "status_code": response.status_code,
            "redirect_url": redirect_url,
            "body": _json_or_none(response),
        }

    async def list_negotiations(self, token: str) -> Dict[str, Any]:
        response = await self.provider.call("GET", "/negotiations", token=token)
        items = _json_object(response).get("items") or []
        applications = [map_negotiation(item) for item in items]
        return {"applications": applications, "total": len(applications)}


def _json_or_none(response) -> Optional[Any]:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}


def _json_object(response) -> Dict[str, Any]:
    data = _json_or_none(response)
    if not isinstance(data, dict):
        raise ProviderError(502, "invalid_provider_response", "Invalid response from HH.ru", details=data)
    return data
