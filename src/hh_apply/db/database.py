"""Async engine and session factory."""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from hh_apply.errors import ConfigurationError
from hh_apply.utils import LogEvent, LogRecord, info

# Imported for table registration on SQLModel.metadata
from hh_apply.db import models  # noqa: F401


class Database:
    """Owns the async engine; every repository borrows sessions from here."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_async_engine(url, echo=echo)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        info(LogRecord(
            event=LogEvent.DATABASE_READY.value,
            message=f"Database ready ({self.dialect})",
        ))

    def session(self) -> AsyncSession:
        return self.session_factory()

    def upsert(self, model):
        """Dialect-specific INSERT that supports ``on_conflict_do_update``."""
        if self.dialect == "sqlite":
            return sqlite.insert(model.__table__)
        if self.dialect == "postgresql":
            return postgresql.insert(model.__table__)
        raise ConfigurationError(f"Unsupported database dialect for upsert: {self.dialect}")

    async def dispose(self) -> None:
        await self.engine.dispose()
