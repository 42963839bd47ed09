"""Pytest configuration and fixtures for hh-apply tests."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from hh_apply.config import OAuthCredentials, Settings
from hh_apply.db import Database
from hh_apply.main import create_app
from hh_apply.services import AppServices, build_services

from factories import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credentials() -> OAuthCredentials:
    return OAuthCredentials(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://localhost:8000/callback",
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    test_settings = Settings(config_path=None)
    test_settings.database_url = f"sqlite+aiosqlite:///{tmp_path / 'hh_apply_test.db'}"
    test_settings.request_timeout = 5.0
    test_settings.hh_user_agent = "hh-apply-tests/1.0 (tests@example.com)"
    return test_settings


@pytest_asyncio.fixture
async def db(settings) -> AsyncGenerator[Database, None]:
    database = Database(settings.database_url)
    await database.create_all()
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def services(settings, credentials, db, clock) -> AppServices:
    return build_services(settings, credentials, db=db, clock=clock)


@pytest_asyncio.fixture
async def app(settings, credentials, clock):
    test_app = create_app(settings=settings, credentials=credentials, clock=clock)
    # ASGITransport does not run the lifespan
    await test_app.state.services.db.create_all()
    yield test_app
    await test_app.state.services.db.dispose()


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async client talking to the app in-process."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def signed_in_user(app):
    """A stored user with a valid token pair; returns the user id."""
    services: AppServices = app.state.services
    user, _ = await services.users.upsert_from_profile({
        "id": "12345", "email": "ivan@example.com", "first_name": "Ivan", "last_name": "Petrov",
    })
    await services.token_store.save_token(user.id, "access-valid-0000000000", "refresh-valid-0000000000", 3600)
    return user.id
