"""Tests for settings loading and credential configuration."""

import pytest

from hh_apply.config import (
    CLIENT_ID_ENV,
    CLIENT_SECRET_ENV,
    DEFAULT_EXEMPT_PATHS,
    REDIRECT_URI_ENV,
    OAuthCredentials,
    Settings,
)
from hh_apply.errors import ConfigurationError
from hh_apply.main import create_app, parse_args


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestSettings:
    def test_defaults_without_file(self):
        settings = Settings(config_path=None)

        assert settings.port == 8000
        assert settings.hh_api_base_url == "https://api.hh.ru"
        assert settings.oauth_token_url == "https://hh.ru/oauth/token"
        assert settings.auth_enabled is False
        assert settings.auth_exempt_paths == DEFAULT_EXEMPT_PATHS
        assert settings.config_path is None

    def test_missing_file_keeps_defaults(self, tmp_path, capsys):
        settings = Settings(str(tmp_path / "absent.yaml"))

        assert settings.port == 8000
        assert "not found" in capsys.readouterr().err

    def test_yaml_sections(self, tmp_path):
        path = write_config(tmp_path, """
settings:
  port: 9100
  log_level: DEBUG
  request_timeout: 12.5
  database_url: "sqlite+aiosqlite:///./other.db"
  auth:
    enabled: true
    api_key: "k-123"
    exempt_paths: ["/health"]
  oauth:
    token_url: "https://hh.example/oauth/token"
  hh:
    api_base_url: "https://api.hh.example/"
    user_agent: "my-app/2.0 (me@example.com)"
""")

        settings = Settings(path)

        assert settings.port == 9100
        assert settings.log_level == "DEBUG"
        assert settings.request_timeout == 12.5
        assert settings.database_url == "sqlite+aiosqlite:///./other.db"
        assert settings.auth_enabled is True
        assert settings.auth_api_key == "k-123"
        assert settings.auth_exempt_paths == ["/health"]
        assert settings.oauth_token_url == "https://hh.example/oauth/token"
        assert settings.oauth_authorize_url == "https://hh.ru/oauth/authorize"
        assert settings.hh_api_base_url == "https://api.hh.example"
        assert settings.hh_user_agent == "my-app/2.0 (me@example.com)"

    def test_auth_enabled_without_key_is_rejected(self, tmp_path):
        path = write_config(tmp_path, "settings:\n  auth:\n    enabled: true\n")

        with pytest.raises(ConfigurationError):
            Settings(path)

    def test_invalid_yaml_is_rejected(self, tmp_path):
        path = write_config(tmp_path, "settings: [unclosed\n")

        with pytest.raises(ConfigurationError):
            Settings(path)

    def test_log_file_path_is_resolved(self, tmp_path):
        path = write_config(tmp_path, "settings:\n  log_file_path: logs/app.jsonl\n")

        settings = Settings(path)

        assert settings.log_file_path.endswith("logs/app.jsonl")
        assert settings.log_file_path.startswith("/")


class TestOAuthCredentials:
    def test_from_mapping(self):
        credentials = OAuthCredentials.from_env({
            CLIENT_ID_ENV: "id", CLIENT_SECRET_ENV: "secret", REDIRECT_URI_ENV: "http://localhost/cb",
        })

        assert credentials == OAuthCredentials("id", "secret", "http://localhost/cb")

    def test_missing_variables_are_named(self):
        with pytest.raises(ConfigurationError) as exc_info:
            OAuthCredentials.from_env({CLIENT_ID_ENV: "id"})

        message = str(exc_info.value)
        assert CLIENT_SECRET_ENV in message
        assert REDIRECT_URI_ENV in message
        assert CLIENT_ID_ENV not in message

    def test_server_refuses_to_start_without_credentials(self, settings, monkeypatch):
        for name in (CLIENT_ID_ENV, CLIENT_SECRET_ENV, REDIRECT_URI_ENV):
            monkeypatch.delenv(name, raising=False)

        with pytest.raises(ConfigurationError):
            create_app(settings=settings)


class TestServerArgs:
    def test_overrides(self):
        args = parse_args(["--config", "other.yaml", "--port", "9000", "--host", "0.0.0.0"])

        assert args.config == "other.yaml"
        assert args.port == 9000
        assert args.host == "0.0.0.0"
