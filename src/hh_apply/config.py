"""
Configuration for hh-apply.

Non-secret settings come from ``config.yaml`` (``settings:`` section); client
credentials come from the environment or a ``.env`` file.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

import yaml
from dotenv import load_dotenv

from hh_apply.errors import ConfigurationError

DEFAULT_EXEMPT_PATHS = ["/", "/health", "/docs", "/redoc", "/openapi.json"]

CLIENT_ID_ENV = "HH_CLIENT_ID"
CLIENT_SECRET_ENV = "HH_CLIENT_SECRET"
REDIRECT_URI_ENV = "HH_REDIRECT_URI"


@dataclass
class OAuthCredentials:
    """Registered application credentials for the provider's OAuth endpoints."""
    client_id: str
    client_secret: str
    redirect_uri: str

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OAuthCredentials":
        """Read credentials from the environment, failing loudly when any is missing."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        missing = [
            name for name in (CLIENT_ID_ENV, CLIENT_SECRET_ENV, REDIRECT_URI_ENV)
            if not environ.get(name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        return cls(
            client_id=environ[CLIENT_ID_ENV],
            client_secret=environ[CLIENT_SECRET_ENV],
            redirect_uri=environ[REDIRECT_URI_ENV],
        )


class Settings:
    """Application settings loaded from config.yaml on top of defaults."""

    def __init__(self, config_path: Optional[str] = "config.yaml"):
        # Default values
        self.app_name: str = "hh-apply"
        self.app_version: str = "0.1.0"
        self.log_level: str = "INFO"
        self.log_file_path: str = ""
        self.log_color: bool = True
        self.host: str = "127.0.0.1"
        self.port: int = 8000
        self.database_url: str = "sqlite+aiosqlite:///./hh_apply.db"
        self.request_timeout: float = 30.0
        self.apply_delay_seconds: float = 1.0
        self.keyring_service: str = "hh-apply"

        # Authentication settings
        self.auth_enabled: bool = False
        self.auth_api_key: str = ""
        self.auth_exempt_paths: List[str] = list(DEFAULT_EXEMPT_PATHS)

        # Provider endpoints
        self.oauth_authorize_url: str = "https://hh.ru/oauth/authorize"
        self.oauth_token_url: str = "https://hh.ru/oauth/token"
        self.hh_api_base_url: str = "https://api.hh.ru"
        self.hh_user_agent: str = "hh-apply/0.1.0"

        self.config_path: Optional[Path] = None
        if config_path:
            self.load_from_config(config_path)

    @staticmethod
    def resolve_path(path: str) -> Path:
        resolved = Path(path)
        if resolved.is_absolute():
            return resolved
        return Path.cwd() / resolved

    def load_from_config(self, config_path: str) -> None:
        """Load settings from configuration file."""
        path = self.resolve_path(config_path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            print(f"Warning: config file {path} not found, using default settings.", file=sys.stderr)
            return
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}", description=str(e)) from e

        self.config_path = path
        self.apply_dict(config.get("settings") or {})

    def apply_dict(self, settings_config: dict) -> None:
        """Apply a ``settings:`` mapping; nested sections map onto prefixed attributes."""
        for key, value in settings_config.items():
            if key in ("auth", "oauth", "hh"):
                continue
            if hasattr(self, key):
                if key == "log_file_path" and value:
                    value = str(self.resolve_path(value))
                setattr(self, key, value)

        auth_config = settings_config.get("auth") or {}
        if auth_config:
            self.auth_enabled = auth_config.get("enabled", False)
            self.auth_api_key = auth_config.get("api_key", "")
            self.auth_exempt_paths = auth_config.get("exempt_paths", self.auth_exempt_paths)

        oauth_config = settings_config.get("oauth") or {}
        self.oauth_authorize_url = oauth_config.get("authorize_url", self.oauth_authorize_url)
        self.oauth_token_url = oauth_config.get("token_url", self.oauth_token_url)

        hh_config = settings_config.get("hh") or {}
        self.hh_api_base_url = hh_config.get("api_base_url", self.hh_api_base_url).rstrip("/")
        self.hh_user_agent = hh_config.get("user_agent", self.hh_user_agent)

        if self.auth_enabled and not self.auth_api_key:
            raise ConfigurationError("settings.auth.enabled is true but no api_key is configured")
