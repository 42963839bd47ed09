"""HTTP client for the hh-apply server's internal API."""

from typing import Any, Dict, Optional

import httpx

from hh_apply.errors import ProviderAuthError, ProviderError, RateLimited, RequireReauth
from hh_apply.models import SearchFilter
from hh_apply.oauth.exchange import ExchangeResult
from hh_apply.utils import LogEvent, LogRecord, error


class BackendClient:
    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = 60.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = httpx.Timeout(timeout)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method, url, json=json, params=params, headers=self._headers(),
                )
        except httpx.TransportError as e:
            error(LogRecord(
                event=LogEvent.PROVIDER_REQUEST_ERROR.value,
                message=f"Cannot reach hh-apply server at {self.base_url}",
            ), exc=e)
            raise ProviderError(503, "server_unreachable", f"Cannot reach {self.base_url}: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text or f"HTTP {response.status_code}"}

        if response.is_success:
            return body

        body = body if isinstance(body, dict) else {"error": str(body)}
        message = body.get("error") or f"HTTP {response.status_code}"
        description = body.get("description")
        if body.get("requireReauth") or response.status_code == 401:
            raise RequireReauth(message, description=description)
        if response.status_code == 429:
            raise RateLimited(429, message, description, details=body.get("details"))
        raise ProviderError(response.status_code, message, description, details=body.get("details"))

    async def exchange_code(self, code: str) -> ExchangeResult:
        try:
            body = await self._request("POST", "/api/auth/token", json={"code": code})
        except (ProviderError, RequireReauth) as e:
            raise ProviderAuthError(e.status_code, str(e), e.description) from e
        return ExchangeResult(
            access_token=body["access_token"],
            refresh_token=body["refresh_token"],
            expires_at=body["expirationTimestamp"],
            user=body["user"],
        )

    async def refresh(self, user_id: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/auth/refresh", json={"userId": user_id})

    async def logout(self, user_id: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/auth/logout", json={"userId": user_id})

    async def search(self, user_id: str, search_filter: SearchFilter) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/api/vacancies/search",
            json={"userId": user_id, "filter": search_filter.model_dump(by_alias=True)},
        )

    async def get_vacancy(self, user_id: str, vacancy_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/api/vacancies/{vacancy_id}", params={"userId": user_id})

    async def apply(
        self,
        user_id: str,
        vacancy_id: str,
        resume_id: str,
        cover_letter: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {"userId": user_id, "vacancyId": vacancy_id, "resumeId": resume_id}
        if cover_letter:
            payload["coverLetter"] = cover_letter
        return await self._request("POST", "/api/vacancies/apply", json=payload)

    async def resumes(self, user_id: str) -> Dict[str, Any]:
        return await self._request("GET", "/api/user/resumes", params={"userId": user_id})

    async def applications(self, user_id: str) -> Dict[str, Any]:
        return await self._request("GET", "/api/user/applications", params={"userId": user_id})

    async def update_application_status(self, user_id: str, application_id: str, status: str) -> Dict[str, Any]:
        return await self._request(
            "PATCH",
            f"/api/user/applications/{application_id}",
            json={"status": status},
            params={"userId": user_id},
        )

    async def negotiations(self, user_id: str) -> Dict[str, Any]:
        return await self._request("GET", "/api/user/negotiations", params={"userId": user_id})
