"""Shared test configuration and fixtures."""

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from cryptography.fernet import Fernet
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import BigInteger
from sqlalchemy.ext.compiler import compiles

from tinytune.crypto import TokenEncryptor
from tinytune.db import DatabaseManager, DatabaseSettings
from tinytune.db.base import utc_now
from tinytune.dependencies import build_services
from tinytune.sessions import SessionRecord, SessionStore
from tinytune.settings import AppSettings

TEST_FERNET_KEY = Fernet.generate_key().decode()


# Register a compilation rule so BigInteger renders as INTEGER on SQLite,
# which enables autoincrement on primary key columns during tests.
@compiles(BigInteger, "sqlite")  # type: ignore[misc]
def _compile_big_integer_sqlite(type_: BigInteger, compiler: object, **kw: object) -> str:
    return "INTEGER"


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        SPOTIFY_CLIENT_ID="test-client-id",
        SPOTIFY_CLIENT_SECRET="test-client-secret",
        SPOTIFY_REDIRECT_URI="http://localhost:8000/auth/callback",
        TOKEN_ENCRYPTION_KEY=TEST_FERNET_KEY,
        PUBLIC_BASE_URL="http://widget.test",
        UPSTREAM_TIMEOUT_SECONDS=2.0,
        RETRY_AFTER_SECONDS=30,
    )


@pytest.fixture
async def db_manager(tmp_path: Path) -> AsyncGenerator[DatabaseManager]:
    """File-backed SQLite database; every session opens its own connection."""
    manager = DatabaseManager(
        DatabaseSettings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'tinytune-test.db'}", use_null_pool=True)
    )
    await manager.create_tables()
    yield manager
    await manager.dispose()


@pytest.fixture
def store(db_manager: DatabaseManager) -> SessionStore:
    return SessionStore(db_manager.session, TokenEncryptor(TEST_FERNET_KEY))


SeedSession = Callable[..., Awaitable[SessionRecord]]


@pytest.fixture
def seed_session(store: SessionStore) -> SeedSession:
    """Insert a session whose access token expires *expires_in* seconds from now."""

    async def _seed(
        account_id: str = "alice",
        *,
        access_token: str = "stored-access-token",
        refresh_token: str | None = "stored-refresh-token",
        expires_in: int = 3600,
        now: datetime | None = None,
    ) -> SessionRecord:
        ttl_seconds = 3600
        issued_at = (now or utc_now()) - timedelta(seconds=ttl_seconds - expires_in)
        return await store.upsert(
            account_id,
            display_name=account_id.title(),
            access_token=access_token,
            refresh_token=refresh_token,
            issued_at=issued_at,
            ttl_seconds=ttl_seconds,
        )

    return _seed


@pytest.fixture
def client(settings: AppSettings, db_manager: DatabaseManager) -> Generator[TestClient]:
    """TestClient with services built on the test database via an overridden lifespan."""
    from tinytune.main import app

    original_lifespan = app.router.lifespan_context

    @asynccontextmanager
    async def _test_lifespan(a: FastAPI) -> AsyncGenerator[None]:
        a.state.services = build_services(settings, db_manager.session)
        yield

    app.router.lifespan_context = _test_lifespan
    try:
        with TestClient(app, follow_redirects=False) as tc:
            yield tc
    finally:
        app.router.lifespan_context = original_lifespan
