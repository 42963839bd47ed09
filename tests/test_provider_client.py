"""Tests for the hh.ru HTTP client and its error mapping."""

import httpx
import pytest
import respx

from hh_apply.core import ProviderClient, parse_provider_error
from hh_apply.errors import ProviderError, RateLimited, RequireReauth

from factories import HH_API


@pytest.fixture
def provider():
    return ProviderClient(HH_API, "hh-apply-tests/1.0 (tests@example.com)", timeout=5.0)


class TestRequest:
    @pytest.mark.asyncio
    @respx.mock
    async def test_sends_provider_headers(self, provider):
        route = respx.get(f"{HH_API}/me").mock(return_value=httpx.Response(200, json={"id": "1"}))

        await provider.request("GET", "/me", token="access-1")

        headers = route.calls.last.request.headers
        assert headers["Authorization"] == "Bearer access-1"
        assert headers["User-Agent"] == "hh-apply-tests/1.0 (tests@example.com)"
        assert headers["HH-User-Agent"] == "hh-apply-tests/1.0 (tests@example.com)"
        assert headers["Accept"] == "application/json"

    def test_absolute_urls_pass_through(self, provider):
        assert provider.url_for("https://hh.ru/oauth/token") == "https://hh.ru/oauth/token"
        assert provider.url_for("vacancies") == f"{HH_API}/vacancies"

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_is_retried_once_on_transport_error(self, provider):
        route = respx.get(f"{HH_API}/vacancies").mock(side_effect=[
            httpx.ConnectError("connection reset"),
            httpx.Response(200, json={"items": []}),
        ])

        response = await provider.request("GET", "/vacancies")

        assert response.status_code == 200
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_is_never_retried(self, provider):
        route = respx.post(f"{HH_API}/negotiations").mock(side_effect=httpx.ConnectError("connection reset"))

        with pytest.raises(httpx.ConnectError):
            await provider.request("POST", "/negotiations", data={"vacancy_id": "1"})

        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_redirects_are_not_followed(self, provider):
        respx.post(f"{HH_API}/negotiations").mock(
            return_value=httpx.Response(303, headers={"Location": f"{HH_API}/negotiations/77"})
        )

        response = await provider.call("POST", "/negotiations", files={"vacancy_id": (None, "1")})

        assert response.status_code == 303


class TestCallErrorMapping:
    @pytest.mark.asyncio
    @respx.mock
    async def test_two_transport_failures_become_502(self, provider):
        route = respx.get(f"{HH_API}/vacancies").mock(side_effect=httpx.ConnectError("down"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.call("GET", "/vacancies")

        assert exc_info.value.status_code == 502
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_becomes_504(self, provider):
        respx.get(f"{HH_API}/vacancies").mock(side_effect=httpx.ReadTimeout("too slow"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.call("GET", "/vacancies")

        assert exc_info.value.status_code == 504
        assert exc_info.value.error == "provider_timeout"

    @pytest.mark.asyncio
    @respx.mock
    async def test_401_requires_reauth(self, provider):
        respx.get(f"{HH_API}/me").mock(return_value=httpx.Response(401, json={
            "errors": [{"type": "oauth", "value": "token_expired"}],
        }))

        with pytest.raises(RequireReauth) as exc_info:
            await provider.call("GET", "/me", token="stale")

        assert exc_info.value.to_dict()["requireReauth"] is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_429_is_rate_limited(self, provider):
        respx.get(f"{HH_API}/vacancies").mock(return_value=httpx.Response(429, json={
            "errors": [{"type": "too_many_requests"}], "description": "Slow down",
        }))

        with pytest.raises(RateLimited) as exc_info:
            await provider.call("GET", "/vacancies")

        assert exc_info.value.status_code == 429
        assert exc_info.value.error == "too_many_requests"
        assert exc_info.value.description == "Slow down"

    @pytest.mark.asyncio
    @respx.mock
    async def test_other_failures_pass_status_and_details_through(self, provider):
        body = {"errors": [{"type": "not_found"}], "description": "Not Found"}
        respx.get(f"{HH_API}/vacancies/404404").mock(return_value=httpx.Response(404, json=body))

        with pytest.raises(ProviderError) as exc_info:
            await provider.call("GET", "/vacancies/404404")

        assert exc_info.value.status_code == 404
        assert exc_info.value.to_dict() == {
            "error": "not_found", "description": "Not Found", "details": body,
        }


class TestParseProviderError:
    def test_oauth_shape(self):
        response = httpx.Response(400, json={"error": "invalid_grant", "error_description": "expired"})
        parsed = parse_provider_error(response)
        assert parsed["error"] == "invalid_grant"
        assert parsed["description"] == "expired"

    def test_plain_text_body(self):
        parsed = parse_provider_error(httpx.Response(502, text="Bad Gateway"))
        assert parsed["error"] == "HTTP 502"
        assert parsed["description"] == "Bad Gateway"
        assert parsed["details"] is None
