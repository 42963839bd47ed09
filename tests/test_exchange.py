"""Tests for the authorization-code exchange service."""

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest
import respx
from sqlmodel import select

from hh_apply.db import User
from hh_apply.errors import ProfileFetchError, ProviderAuthError

from factories import HH_API, TOKEN_URL, profile_response, token_response


async def all_users(db):
    async with db.session() as session:
        result = await session.execute(select(User))
        return list(result.scalars().all())


class TestExchangeCode:
    @pytest.mark.asyncio
    @respx.mock
    async def test_first_login_creates_user_and_token(self, services, db, clock, credentials):
        token_route = respx.post(TOKEN_URL).mock(return_value=token_response(expires_in=3600))
        me_route = respx.get(f"{HH_API}/me").mock(return_value=profile_response())

        result = await services.exchange_service.exchange_code("abc123")

        users = await all_users(db)
        assert len(users) == 1
        user = users[0]
        assert user.external_id == "12345"
        assert user.username == "ivan@example.com"
        assert (await services.users.find_by_external_id("12345")).id == user.id
        assert result.user == {
            "id": user.id, "email": "ivan@example.com", "firstName": "Ivan", "lastName": "Petrov",
        }

        record = await services.token_store.find_by_user_id(user.id)
        assert record is not None
        assert record.expires_at == clock() + 3_600_000
        assert result.expires_at == record.expires_at
        assert result.access_token == record.access_token

        form = parse_qs(token_route.calls.last.request.content.decode())
        assert form == {
            "grant_type": ["authorization_code"],
            "client_id": [credentials.client_id],
            "client_secret": [credentials.client_secret],
            "redirect_uri": [credentials.redirect_uri],
            "code": ["abc123"],
        }
        me_request = me_route.calls.last.request
        assert me_request.headers["Authorization"] == "Bearer access-new-0000000000"
        assert me_request.headers["HH-User-Agent"] == "hh-apply-tests/1.0 (tests@example.com)"

    @pytest.mark.asyncio
    @respx.mock
    async def test_repeat_login_updates_existing_user(self, services, db, clock):
        respx.post(TOKEN_URL).mock(side_effect=[
            token_response(access="access-1"),
            token_response(access="access-2"),
        ])
        respx.get(f"{HH_API}/me").mock(side_effect=[
            profile_response(first_name="Ivan"),
            profile_response(first_name="Ivan-Renamed"),
        ])

        first = await services.exchange_service.exchange_code("code-1")
        clock.advance(60_000)
        second = await services.exchange_service.exchange_code("code-2")

        users = await all_users(db)
        assert len(users) == 1
        assert first.user["id"] == second.user["id"]
        assert users[0].first_name == "Ivan-Renamed"
        assert users[0].last_login_at == clock()
        assert (await services.token_store.find_by_user_id(users[0].id)).access_token == "access-2"

    @pytest.mark.asyncio
    @respx.mock
    async def test_user_matched_by_username_gets_external_id(self, services, db):
        existing = User(username="ivan@example.com", email="ivan@example.com")
        async with db.session() as session:
            session.add(existing)
            await session.commit()

        respx.post(TOKEN_URL).mock(return_value=token_response())
        respx.get(f"{HH_API}/me").mock(return_value=profile_response())

        result = await services.exchange_service.exchange_code("abc123")

        users = await all_users(db)
        assert len(users) == 1
        assert result.user["id"] == existing.id
        assert users[0].external_id == "12345"

    @pytest.mark.asyncio
    @respx.mock
    async def test_profile_without_email_uses_hh_prefixed_username(self, services, db):
        respx.post(TOKEN_URL).mock(return_value=token_response())
        respx.get(f"{HH_API}/me").mock(return_value=profile_response(hh_id="777", email=None))

        await services.exchange_service.exchange_code("abc123")

        users = await all_users(db)
        assert users[0].username == "hh_777"
        assert (await services.users.find_by_username("hh_777")).external_id == "777"

    @pytest.mark.asyncio
    async def test_rejected_code_raises_provider_auth_error(self, services, db):
        with respx.mock(assert_all_called=False) as router:
            token_route = router.post(TOKEN_URL).mock(return_value=httpx.Response(400, json={
                "error": "invalid_grant", "error_description": "code has already been used",
            }))
            me_route = router.get(f"{HH_API}/me").mock(return_value=profile_response())

            with pytest.raises(ProviderAuthError) as exc_info:
                await services.exchange_service.exchange_code("used-code")

        assert exc_info.value.status_code == 400
        assert exc_info.value.error == "invalid_grant"
        assert exc_info.value.description == "code has already been used"
        assert token_route.call_count == 1
        assert me_route.call_count == 0
        assert await all_users(db) == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_unparseable_token_response_is_not_swallowed(self, services):
        respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, text="not json"))

        with pytest.raises(ProviderAuthError) as exc_info:
            await services.exchange_service.exchange_code("abc123")

        assert exc_info.value.description == "Invalid response from HH.ru"

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_failure_surfaces_and_is_not_retried(self, services):
        route = respx.post(TOKEN_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(ProviderAuthError) as exc_info:
            await services.exchange_service.exchange_code("abc123")

        assert exc_info.value.status_code == 502
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_profile_failure_raises_profile_fetch_error(self, services, db):
        respx.post(TOKEN_URL).mock(return_value=token_response())
        respx.get(f"{HH_API}/me").mock(return_value=httpx.Response(500, json={"errors": []}))

        with pytest.raises(ProfileFetchError):
            await services.exchange_service.exchange_code("abc123")

        assert await all_users(db) == []


class TestUpsertFromProfile:
    @pytest.mark.asyncio
    async def test_concurrent_first_logins_resolve_to_one_user(self, services, db):
        profile = {"id": "4242", "email": "race@example.com", "first_name": "Anna", "last_name": "Ivanova"}

        results = await asyncio.gather(
            services.users.upsert_from_profile(profile),
            services.users.upsert_from_profile(profile),
        )

        users = await all_users(db)
        assert len(users) == 1
        assert {user.id for user, _ in results} == {users[0].id}
        assert sorted(created for _, created in results) == [False, True]
        assert users[0].external_id == "4242"
