"""
OAuth module.

Server-side half of the hh.ru authorization-code flow:
- Token Store (one token pair per user, transparent refresh)
- Token Refresh Service (refresh-token grant)
- Authorization-Code Exchange Service (code -> tokens -> local user)
"""

from dataclasses import dataclass
from typing import Callable

from hh_apply.config import OAuthCredentials
from hh_apply.core.provider_client import ProviderClient
from hh_apply.db import Database, UserRepository
from hh_apply.utils import now_ms

from .token_store import TokenStore
from .refresh import RefreshOutcome, TokenRefreshService
from .exchange import CodeExchangeService, ExchangeResult


@dataclass
class OAuthServices:
    token_store: TokenStore
    refresh_service: TokenRefreshService
    exchange_service: CodeExchangeService


def build_oauth_services(
    db: Database,
    credentials: OAuthCredentials,
    provider: ProviderClient,
    token_url: str,
    users: UserRepository,
    clock: Callable[[], int] = now_ms,
) -> OAuthServices:
    """Wire the store and the refresh service to each other."""
    token_store = TokenStore(db, clock=clock)
    refresh_service = TokenRefreshService(token_store, credentials, provider, token_url)
    token_store.set_refresh_service(refresh_service)
    exchange_service = CodeExchangeService(credentials, provider, token_store, users, token_url)
    return OAuthServices(token_store, refresh_service, exchange_service)


__all__ = [
    "TokenStore",
    "TokenRefreshService", "RefreshOutcome",
    "CodeExchangeService", "ExchangeResult",
    "OAuthServices", "build_oauth_services",
]
