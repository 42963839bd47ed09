"""Server-side component wiring."""

from dataclasses import dataclass
from typing import Callable, Optional

from hh_apply.config import OAuthCredentials, Settings
from hh_apply.core import HHApiProxy, ProviderClient
from hh_apply.core.applications import ApplicationService
from hh_apply.db import ApplicationRepository, Database, UserRepository
from hh_apply.oauth import (
    CodeExchangeService,
    TokenRefreshService,
    TokenStore,
    build_oauth_services,
)
from hh_apply.utils import now_ms


@dataclass
class AppServices:
    settings: Settings
    db: Database
    provider: ProviderClient
    users: UserRepository
    applications: ApplicationRepository
    token_store: TokenStore
    refresh_service: TokenRefreshService
    exchange_service: CodeExchangeService
    proxy: HHApiProxy
    application_service: ApplicationService


def build_services(
    settings: Settings,
    credentials: OAuthCredentials,
    db: Optional[Database] = None,
    clock: Callable[[], int] = now_ms,
) -> AppServices:
    db = db or Database(settings.database_url)
    provider = ProviderClient(
        settings.hh_api_base_url,
        settings.hh_user_agent,
        timeout=settings.request_timeout,
    )
    users = UserRepository(db, clock=clock)
    applications = ApplicationRepository(db, clock=clock)
    oauth = build_oauth_services(
        db, credentials, provider, settings.oauth_token_url, users, clock=clock,
    )
    proxy = HHApiProxy(provider)
    application_service = ApplicationService(oauth.token_store, proxy, applications, clock=clock)

    return AppServices(
        settings=settings,
        db=db,
        provider=provider,
        users=users,
        applications=applications,
        token_store=oauth.token_store,
        refresh_service=oauth.refresh_service,
        exchange_service=oauth.exchange_service,
        proxy=proxy,
        application_service=application_service,
    )
