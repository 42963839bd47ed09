"""
Tests for API key authentication of the internal HTTP API.
"""

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from hh_apply.auth import AuthConfig, AuthManager
from hh_apply.main import create_app


@pytest.fixture
def protected_client(settings, credentials, clock):
    """Client for an app that requires the ``secret-key-123`` API key."""
    settings.auth_enabled = True
    settings.auth_api_key = "secret-key-123"
    app = create_app(settings=settings, credentials=credentials, clock=clock)
    with TestClient(app) as client:
        yield client


class TestAuthManager:
    """Unit tests for AuthManager."""

    def test_token_validation(self):
        auth_manager = AuthManager(AuthConfig(enabled=True, api_key="test-key-123", exempt_paths=["/health"]))

        assert auth_manager.validate_token("test-key-123")
        assert not auth_manager.validate_token("invalid-key")
        assert not auth_manager.validate_token("")
        assert not auth_manager.validate_token(None)

    def test_header_extraction(self):
        auth_manager = AuthManager(AuthConfig())

        # x-api-key wins
        assert auth_manager.extract_token_from_headers("header-key", "Bearer bearer-key") == "header-key"
        assert auth_manager.extract_token_from_headers(None, "Bearer bearer-key") == "bearer-key"
        assert auth_manager.extract_token_from_headers(None, "direct-key") == "direct-key"
        assert auth_manager.extract_token_from_headers(None, None) is None
        assert auth_manager.extract_token_from_headers("", "") is None

    def test_path_exemptions(self):
        auth_manager = AuthManager(AuthConfig(enabled=True, exempt_paths=["/health", "/docs"]))

        assert auth_manager.is_path_exempt("/health")
        assert auth_manager.is_path_exempt("/docs")
        assert not auth_manager.is_path_exempt("/api/vacancies/search")

    def test_disabled_manager_lets_everything_through(self):
        auth_manager = AuthManager(AuthConfig(enabled=False))
        auth_manager.authenticate_request(None, None, "/api/user/applications")

    def test_missing_key_raises_401(self):
        auth_manager = AuthManager(AuthConfig(enabled=True, api_key="k"))

        with pytest.raises(HTTPException) as exc_info:
            auth_manager.authenticate_request(None, None, "/api/user/applications")

        assert exc_info.value.status_code == 401


class TestAuthenticationMiddleware:
    def test_missing_key_is_rejected(self, protected_client):
        response = protected_client.get("/api/user/applications", params={"userId": "u1"})

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_wrong_key_is_rejected(self, protected_client):
        response = protected_client.get(
            "/api/user/applications", params={"userId": "u1"}, headers={"x-api-key": "nope"},
        )

        assert response.status_code == 401
        assert response.json()["description"] == "Invalid API key."

    def test_x_api_key_header(self, protected_client):
        response = protected_client.get(
            "/api/user/applications", params={"userId": "u1"}, headers={"x-api-key": "secret-key-123"},
        )

        assert response.status_code == 200
        assert response.json()["applications"] == []

    def test_bearer_header(self, protected_client):
        response = protected_client.get(
            "/api/user/applications",
            params={"userId": "u1"},
            headers={"Authorization": "Bearer secret-key-123"},
        )

        assert response.status_code == 200

    def test_health_is_exempt(self, protected_client):
        response = protected_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
