"""Refresh-token grant against the provider's token endpoint."""

from dataclasses import dataclass
from typing import Optional

import httpx

from hh_apply.config import OAuthCredentials
from hh_apply.core.provider_client import ProviderClient, parse_provider_error
from hh_apply.db import TokenRecord
from hh_apply.oauth.token_store import TokenStore
from hh_apply.utils import LogEvent, LogRecord, debug, error, info, warning

# Provider errors meaning the refresh token itself is dead
REAUTH_ERRORS = {"invalid_grant", "invalid_request"}


@dataclass
class RefreshOutcome:
    success: bool
    require_reauth: bool = False
    error: Optional[str] = None
    description: Optional[str] = None
    expires_in: Optional[int] = None
    status_code: Optional[int] = None


class TokenRefreshService:
    def __init__(
        self,
        token_store: TokenStore,
        credentials: OAuthCredentials,
        provider: ProviderClient,
        token_url: str,
    ):
        self.token_store = token_store
        self.credentials = credentials
        self.provider = provider
        self.token_url = token_url

    async def refresh(self, record: TokenRecord) -> bool:
        outcome = await self.refresh_with_details(record)
        return outcome.success

    async def refresh_with_details(self, record: TokenRecord) -> RefreshOutcome:
        """
        Exchange the stored refresh token for a new pair.

        On success the new pair is saved. A 400 with ``invalid_grant`` or
        ``invalid_request`` deletes the record; every other failure leaves it
        in place.
        """
        user_id = record.user_id
        debug(LogRecord(
            event=LogEvent.OAUTH_REFRESH_REQUEST.value,
            message=f"Refreshing token for user {user_id}",
            data={"user_id": user_id},
        ))

        try:
            response = await self.provider.request(
                "POST",
                self.token_url,
                data={
                    "grant_type": "refresh_token",
                    "client_id": self.credentials.client_id,
                    "client_secret": self.credentials.client_secret,
                    "refresh_token": record.refresh_token,
                },
            )
        except httpx.HTTPError as e:
            error(LogRecord(
                event=LogEvent.OAUTH_REFRESH_ERROR.value,
                message=f"Network error refreshing token for user {user_id}",
                data={"user_id": user_id},
            ), exc=e)
            return RefreshOutcome(
                success=False,
                error="Failed to refresh token",
                description=str(e) or "Could not reach hh.ru",
                status_code=502,
            )

        if not response.is_success:
            parsed = parse_provider_error(response)
            if response.status_code == 400 and parsed["error"] in REAUTH_ERRORS:
                await self.token_store.delete_token(user_id)
                warning(LogRecord(
                    event=LogEvent.OAUTH_REFRESH_INVALID_GRANT.value,
                    message=f"Refresh token for user {user_id} rejected ({parsed['error']}), token deleted",
                    data={"user_id": user_id, "status_code": 400},
                ))
                return RefreshOutcome(
                    success=False,
                    require_reauth=True,
                    error=parsed["error"],
                    description=parsed["description"],
                    status_code=400,
                )

            error(LogRecord(
                event=LogEvent.OAUTH_REFRESH_FAILED.value,
                message=f"Token refresh failed for user {user_id}: {parsed['error']}",
                data={"user_id": user_id, "status_code": response.status_code},
            ))
            return RefreshOutcome(
                success=False,
                error=parsed["error"],
                description=parsed["description"],
                status_code=response.status_code,
            )

        try:
            payload = response.json()
            access_token = payload["access_token"]
            expires_in = int(payload["expires_in"])
        except (ValueError, KeyError, TypeError) as e:
            error(LogRecord(
                event=LogEvent.OAUTH_REFRESH_FAILED.value,
                message=f"Invalid refresh response from hh.ru for user {user_id}",
                data={"user_id": user_id, "status_code": response.status_code},
            ), exc=e)
            return RefreshOutcome(
                success=False,
                error="Invalid response from HH.ru",
                status_code=500,
            )

        # hh.ru may keep the old refresh token
        refresh_token = payload.get("refresh_token") or record.refresh_token
        await self.token_store.save_token(user_id, access_token, refresh_token, expires_in)

        info(LogRecord(
            event=LogEvent.OAUTH_TOKEN_REFRESHED.value,
            message=f"Refreshed token for user {user_id}",
            data={"user_id": user_id, "expires_in": expires_in},
        ))
        return RefreshOutcome(success=True, expires_in=expires_in, status_code=200)
