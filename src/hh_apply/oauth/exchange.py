"""Authorization-code exchange: code -> token pair -> profile -> local user."""

from dataclasses import dataclass
from typing import Any, Dict

import httpx

from hh_apply.config import OAuthCredentials
from hh_apply.core.provider_client import ProviderClient, parse_provider_error
from hh_apply.db import UserRepository
from hh_apply.errors import ProfileFetchError, ProviderAuthError
from hh_apply.oauth.token_store import TokenStore
from hh_apply.utils import LogEvent, LogRecord, error, info


@dataclass
class ExchangeResult:
    access_token: str
    refresh_token: str
    expires_at: int
    user: Dict[str, Any]

    def to_response(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expirationTimestamp": self.expires_at,
            "user": self.user,
        }


class CodeExchangeService:
    def __init__(
        self,
        credentials: OAuthCredentials,
        provider: ProviderClient,
        token_store: TokenStore,
        users: UserRepository,
        token_url: str,
    ):
        self.credentials = credentials
        self.provider = provider
        self.token_store = token_store
        self.users = users
        self.token_url = token_url

    async def exchange_code(self, code: str) -> ExchangeResult:
        """
        Trade a single-use authorization code for tokens and a local user.

        Never retried: the provider burns the code on first use.

        Raises:
            ProviderAuthError: the token endpoint refused, was unreachable or
                answered with something other than a token pair.
            ProfileFetchError: tokens were issued but ``/me`` failed.
        """
        info(LogRecord(
            event=LogEvent.OAUTH_EXCHANGE_START.value,
            message="Exchanging authorization code for tokens",
        ))

        token_data = await self._request_tokens(code)
        profile = await self._fetch_profile(token_data["access_token"])

        user, _ = await self.users.upsert_from_profile(profile)
        record = await self.token_store.save_token(
            user.id,
            token_data["access_token"],
            token_data["refresh_token"],
            token_data["expires_in"],
        )

        info(LogRecord(
            event=LogEvent.OAUTH_EXCHANGE_SUCCESS.value,
            message=f"Authorization completed for user {user.id}",
            data={"user_id": user.id, "expires_at": record.expires_at},
        ))
        return ExchangeResult(
            access_token=record.access_token,
            refresh_token=record.refresh_token,
            expires_at=record.expires_at,
            user=user.projection(),
        )

    async def _request_tokens(self, code: str) -> Dict[str, Any]:
        try:
            response = await self.provider.request(
                "POST",
                self.token_url,
                data={
                    "grant_type": "authorization_code",
                    "client_id": self.credentials.client_id,
                    "client_secret": self.credentials.client_secret,
                    "redirect_uri": self.credentials.redirect_uri,
                    "code": code,
                },
            )
        except httpx.HTTPError as e:
            error(LogRecord(
                event=LogEvent.OAUTH_TOKEN_EXCHANGE_FAILED.value,
                message="Could not reach the token endpoint",
            ), exc=e)
            raise ProviderAuthError(502, "token_endpoint_unreachable", str(e) or None) from e

        if not response.is_success:
            parsed = parse_provider_error(response)
            error(LogRecord(
                event=LogEvent.OAUTH_TOKEN_EXCHANGE_FAILED.value,
                message=f"Token exchange failed: {parsed['error']}",
                data={"status_code": response.status_code, "description": parsed["description"]},
            ))
            raise ProviderAuthError(response.status_code, parsed["error"], parsed["description"])

        try:
            token_data = response.json()
            for field in ("access_token", "refresh_token", "expires_in"):
                if field not in token_data:
                    raise KeyError(field)
        except (ValueError, KeyError, TypeError) as e:
            error(LogRecord(
                event=LogEvent.OAUTH_TOKEN_EXCHANGE_FAILED.value,
                message="Token endpoint returned an unusable body",
                data={"status_code": response.status_code},
            ), exc=e)
            raise ProviderAuthError(502, "invalid_token_response", "Invalid response from HH.ru") from e
        return token_data

    async def _fetch_profile(self, access_token: str) -> Dict[str, Any]:
        try:
            response = await self.provider.request("GET", "/me", token=access_token)
            response.raise_for_status()
            profile = response.json()
            if not isinstance(profile, dict) or "id" not in profile:
                raise ValueError("profile has no id")
        except (httpx.HTTPError, ValueError) as e:
            error(LogRecord(
                event=LogEvent.OAUTH_PROFILE_FETCH_FAILED.value,
                message="Failed to fetch user data",
            ), exc=e)
            raise ProfileFetchError("Failed to fetch user data", description=str(e)) from e
        return profile
