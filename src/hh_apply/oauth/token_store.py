"""Per-user OAuth token persistence with transparent refresh."""

import asyncio
import weakref
from typing import TYPE_CHECKING, Callable, Optional

from sqlalchemy import delete

from hh_apply.db import Database, TokenRecord
from hh_apply.utils import LogEvent, LogRecord, debug, info, mask_token, now_ms

if TYPE_CHECKING:
    from hh_apply.oauth.refresh import RefreshOutcome, TokenRefreshService


class TokenStore:
    """
    Owns the ``tokens`` table: exactly one row per user, written by upsert.

    ``get_latest_token`` refreshes expired records inline. Refresh is
    single-flight per user: callers queue on a per-user lock and whoever gets
    it second re-reads the row before deciding to refresh again.
    """

    def __init__(
        self,
        db: Database,
        clock: Callable[[], int] = now_ms,
        refresh_service: Optional["TokenRefreshService"] = None,
    ):
        self.db = db
        self.clock = clock
        self.refresh_service = refresh_service
        # Entries vanish once no caller holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def set_refresh_service(self, refresh_service: "TokenRefreshService") -> None:
        self.refresh_service = refresh_service

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def save_token(
        self,
        user_id: str,
        access_token: str,
        refresh_token: str,
        expires_in_seconds: int,
    ) -> TokenRecord:
        expires_at = self.clock() + int(expires_in_seconds) * 1000
        values = {
            "user_id": user_id,
            "access_token": access_token,
            "refresh_token": refresh_token,
            "expires_at": expires_at,
        }

        stmt = self.db.upsert(TokenRecord).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                "access_token": stmt.excluded.access_token,
                "refresh_token": stmt.excluded.refresh_token,
                "expires_at": stmt.excluded.expires_at,
            },
        )
        async with self.db.session() as session:
            await session.execute(stmt)
            await session.commit()

        info(LogRecord(
            event=LogEvent.TOKEN_SAVED.value,
            message=f"Saved token {mask_token(access_token)} for user {user_id}",
            data={"user_id": user_id, "expires_at": expires_at},
        ))
        return TokenRecord(**values)

    async def find_by_user_id(self, user_id: str) -> Optional[TokenRecord]:
        """Raw lookup, no refresh."""
        async with self.db.session() as session:
            return await session.get(TokenRecord, user_id)

    async def delete_token(self, user_id: str) -> bool:
        async with self.db.session() as session:
            result = await session.execute(delete(TokenRecord).where(TokenRecord.user_id == user_id))
            await session.commit()
        removed = bool(result.rowcount)
        info(LogRecord(
            event=LogEvent.TOKEN_DELETED.value,
            message=f"Deleted token for user {user_id}" if removed else f"No token to delete for user {user_id}",
            data={"user_id": user_id, "removed": removed},
        ))
        return removed

    async def get_latest_token(self, user_id: str) -> Optional[TokenRecord]:
        """Return a non-expired record for the user, refreshing if needed, else ``None``."""
        record = await self.find_by_user_id(user_id)
        if record is None:
            return None
        if not record.is_expired(self.clock()):
            return record

        async with self._lock_for(user_id):
            record = await self.find_by_user_id(user_id)
            if record is None:
                return None
            if not record.is_expired(self.clock()):
                debug(LogRecord(
                    event=LogEvent.TOKEN_REFRESHED_ELSEWHERE.value,
                    message=f"Token for user {user_id} was refreshed by a concurrent caller",
                    data={"user_id": user_id},
                ))
                return record

            info(LogRecord(
                event=LogEvent.TOKEN_EXPIRED.value,
                message=f"Token for user {user_id} expired, refreshing",
                data={"user_id": user_id, "expires_at": record.expires_at},
            ))
            if self.refresh_service is None or not await self.refresh_service.refresh(record):
                return None

            fresh = await self.find_by_user_id(user_id)
            if fresh is None or fresh.is_expired(self.clock()):
                return None
            return fresh

    async def force_refresh(self, user_id: str) -> Optional["RefreshOutcome"]:
        """Refresh regardless of expiry; ``None`` when the user has no token."""
        async with self._lock_for(user_id):
            record = await self.find_by_user_id(user_id)
            if record is None:
                return None
            return await self.refresh_service.refresh_with_details(record)
