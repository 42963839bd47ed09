"""
HTTP client for hh.ru.

Every call carries an explicit deadline. Idempotent GETs are retried once on
transport errors; anything else is sent exactly once.
"""

from typing import Any, Dict, Optional

import httpx

from hh_apply.errors import ProviderError, RateLimited, RequireReauth
from hh_apply.utils import LogEvent, LogRecord, debug, error, warning

RETRYABLE_METHODS = {"GET"}


def parse_provider_error(response: httpx.Response) -> Dict[str, Any]:
    """Pull ``error``/``description`` out of an hh.ru error body, whatever its shape."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    result: Dict[str, Any] = {
        "error": f"HTTP {response.status_code}",
        "description": None,
        "details": payload,
    }
    if not isinstance(payload, dict):
        result["description"] = response.text[:500] or None
        return result

    # OAuth endpoints use error/error_description; the API uses errors[] + description
    if payload.get("error"):
        result["error"] = payload["error"]
    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        result["error"] = errors[0].get("type") or result["error"]
        result["description"] = errors[0].get("value")
    result["description"] = (
        payload.get("error_description")
        or payload.get("description")
        or result["description"]
    )
    return result


def raise_for_provider(response: httpx.Response) -> None:
    """Map a failed provider response onto the exception taxonomy."""
    if response.is_success or response.status_code == 303:
        return

    parsed = parse_provider_error(response)
    if response.status_code == 401:
        warning(LogRecord(
            event=LogEvent.PROVIDER_UNAUTHORIZED.value,
            message=f"Provider rejected the access token for {response.request.url.path}",
            data={"status_code": 401},
        ))
        raise RequireReauth(
            "Access token rejected by hh.ru",
            description=parsed["description"] or "You need to re-authenticate with HH.ru",
        )

    warning(LogRecord(
        event=LogEvent.PROVIDER_HTTP_ERROR.value,
        message=f"Provider returned {response.status_code} for {response.request.url.path}",
        data={"status_code": response.status_code, "error": parsed["error"]},
    ))
    exc_class = RateLimited if response.status_code == 429 else ProviderError
    raise exc_class(
        response.status_code,
        parsed["error"],
        description=parsed["description"],
        details=parsed["details"],
    )


class ProviderClient:
    """Thin wrapper over ``httpx.AsyncClient`` with the provider's headers and deadline."""

    def __init__(self, base_url: str, user_agent: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = httpx.Timeout(timeout)

    def headers(self, token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "HH-User-Agent": self.user_agent,
            "Accept": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send one request; raises ``httpx.TransportError`` when the last attempt fails."""
        method = method.upper()
        url = self.url_for(path)
        attempts = 2 if method in RETRYABLE_METHODS else 1

        for attempt in range(1, attempts + 1):
            debug(LogRecord(
                event=LogEvent.PROVIDER_REQUEST.value,
                message=f"{method} {url}",
                data={"attempt": attempt, "params": params},
            ))
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    return await client.request(
                        method,
                        url,
                        headers=self.headers(token),
                        params=params,
                        data=data,
                        files=files,
                        follow_redirects=False,
                    )
            except httpx.TransportError as e:
                if attempt < attempts:
                    warning(LogRecord(
                        event=LogEvent.PROVIDER_REQUEST_RETRY.value,
                        message=f"Transport error on {method} {url}, retrying once",
                        data={"attempt": attempt},
                    ), exc=e)
                    continue
                error(LogRecord(
                    event=LogEvent.PROVIDER_REQUEST_ERROR.value,
                    message=f"Transport error on {method} {url}",
                    data={"attempt": attempt},
                ), exc=e)
                raise

    async def call(self, method: str, path: str, **kwargs) -> httpx.Response:
        """``request`` plus error mapping; transport failures become ``ProviderError``."""
        try:
            response = await self.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderError(504, "provider_timeout", description=str(e) or "hh.ru did not answer in time") from e
        except httpx.TransportError as e:
            raise ProviderError(502, "provider_unreachable", description=str(e) or "Could not reach hh.ru") from e
        raise_for_provider(response)
        return response
