"""Async engine and unit-of-work sessions for the account session table."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from tinytune.db.base import Base
from tinytune.db.config import DatabaseSettings


class DatabaseManager:
    """Owns the async engine; every ``session()`` block is one transaction.

    ``SessionStore`` receives the bound ``session`` method as its session
    factory, so each read or conditional write runs in its own short-lived
    transaction and concurrent refreshes never share a connection.
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self._settings = settings
        is_sqlite = settings.database_url.startswith("sqlite")
        self._engine = create_async_engine(
            settings.database_url,
            echo=settings.echo,
            poolclass=NullPool if settings.use_null_pool else None,
            pool_pre_ping=settings.pool_pre_ping and not is_sqlite,
        )
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False, autoflush=False)

    @classmethod
    def from_env(cls) -> Self:
        return cls(DatabaseSettings())

    async def create_tables(self) -> None:
        """Create missing tables directly from the ORM metadata (tests and local SQLite)."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Yield a session that commits on success and rolls back on any exception."""
        async with self._session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            await session.commit()

    async def dispose(self) -> None:
        await self._engine.dispose()
