"""User and application repositories."""

from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from hh_apply.db.database import Database
from hh_apply.db.models import ApplicationRecord, ApplicationStatus, User
from hh_apply.errors import NotFound
from hh_apply.utils import LogEvent, LogRecord, info, now_ms


def fallback_username(profile: Dict[str, Any]) -> str:
    """Username for a provider profile: the email, or ``hh_<id>`` without one."""
    return profile.get("email") or f"hh_{profile['id']}"


class UserRepository:
    def __init__(self, db: Database, clock: Callable[[], int] = now_ms):
        self.db = db
        self.clock = clock

    async def find_by_external_id(self, external_id: str) -> Optional[User]:
        async with self.db.session() as session:
            result = await session.execute(select(User).where(User.external_id == external_id))
            return result.scalar_one_or_none()

    async def find_by_username(self, username: str) -> Optional[User]:
        async with self.db.session() as session:
            result = await session.execute(select(User).where(User.username == username))
            return result.scalar_one_or_none()

    @staticmethod
    async def _resolve(session, external_id: str, username: str) -> Optional[User]:
        result = await session.execute(select(User).where(User.external_id == external_id))
        user = result.scalar_one_or_none()
        if user is None:
            result = await session.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()
        return user

    @staticmethod
    def _apply_profile(user: User, external_id: str, profile: Dict[str, Any], now: int) -> None:
        if not user.external_id:
            user.external_id = external_id
        user.email = profile.get("email") or user.email
        user.first_name = profile.get("first_name") or user.first_name
        user.last_name = profile.get("last_name") or user.last_name
        user.last_login_at = now

    async def upsert_from_profile(self, profile: Dict[str, Any]) -> Tuple[User, bool]:
        """
        Resolve the local user for a provider ``/me`` profile.

        Lookup order is provider id, then fallback username; a miss on both
        creates the user. A concurrent login that inserts the same user first
        trips the unique constraints, in which case the winner's row is
        resolved again and updated. Returns ``(user, created)``.
        """
        external_id = str(profile["id"])
        username = fallback_username(profile)
        now = self.clock()

        async with self.db.session() as session:
            user = await self._resolve(session, external_id, username)
            created = user is None
            if created:
                user = User(
                    username=username,
                    external_id=external_id,
                    email=profile.get("email"),
                    first_name=profile.get("first_name"),
                    last_name=profile.get("last_name"),
                    created_at=now,
                    last_login_at=now,
                )
            else:
                self._apply_profile(user, external_id, profile, now)

            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                if not created:
                    raise
                await session.rollback()
                session.expunge_all()
                user = await self._resolve(session, external_id, username)
                if user is None:
                    raise
                created = False
                self._apply_profile(user, external_id, profile, now)
                session.add(user)
                await session.commit()
            await session.refresh(user)

        info(LogRecord(
            event=(LogEvent.OAUTH_USER_CREATED if created else LogEvent.OAUTH_USER_UPDATED).value,
            message=f"{'Created' if created else 'Updated'} user {user.id}",
            data={"user_id": user.id, "external_id": external_id},
        ))
        return user, created


class ApplicationRepository:
    def __init__(self, db: Database, clock: Callable[[], int] = now_ms):
        self.db = db
        self.clock = clock

    async def find(self, user_id: str, vacancy_id: str) -> Optional[ApplicationRecord]:
        async with self.db.session() as session:
            result = await session.execute(
                select(ApplicationRecord).where(
                    ApplicationRecord.user_id == user_id,
                    ApplicationRecord.vacancy_id == vacancy_id,
                )
            )
            return result.scalar_one_or_none()

    async def save(self, record: ApplicationRecord) -> Tuple[ApplicationRecord, bool]:
        """
        Insert a new application.

        A concurrent insert for the same ``(user_id, vacancy_id)`` trips the
        unique constraint; the existing row is returned with ``created=False``.
        """
        if not record.applied_at:
            record.applied_at = self.clock()

        async with self.db.session() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                existing = await self.find(record.user_id, record.vacancy_id)
                if existing is None:
                    raise
                return existing, False
            await session.refresh(record)

        info(LogRecord(
            event=LogEvent.APPLICATION_SAVED.value,
            message=f"Saved application to vacancy {record.vacancy_id}",
            data={"user_id": record.user_id, "vacancy_id": record.vacancy_id},
        ))
        return record, True

    async def list_for_user(self, user_id: str) -> List[ApplicationRecord]:
        async with self.db.session() as session:
            result = await session.execute(
                select(ApplicationRecord)
                .where(ApplicationRecord.user_id == user_id)
                .order_by(ApplicationRecord.applied_at.desc())
            )
            return list(result.scalars().all())

    async def update_status(
        self,
        application_id: str,
        status: ApplicationStatus,
        user_id: str,
    ) -> ApplicationRecord:
        """Only the owning user may change a record; anyone else gets ``NotFound``."""
        async with self.db.session() as session:
            record = await session.get(ApplicationRecord, application_id)
            if record is None or record.user_id != user_id:
                raise NotFound(f"Application {application_id} not found")
            record.status = ApplicationStatus(status).value
            session.add(record)
            await session.commit()
            await session.refresh(record)

        info(LogRecord(
            event=LogEvent.APPLICATION_STATUS_UPDATED.value,
            message=f"Application {application_id} is now {record.status}",
            data={"user_id": record.user_id, "vacancy_id": record.vacancy_id},
        ))
        return record

    async def stats(self, user_id: str) -> Dict[str, int]:
        applications = await self.list_for_user(user_id)
        counts = {status.value: 0 for status in ApplicationStatus}
        for application in applications:
            if application.status in counts:
                counts[application.status] += 1
        return {"total": len(applications), **counts}
