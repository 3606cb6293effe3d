"""Tests for SessionStore."""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

import pytest
from cryptography.fernet import Fernet
from sqlalchemy import select

from tinytune.crypto import TokenEncryptor
from tinytune.db import AccountSession, DatabaseManager
from tinytune.sessions import SessionNotFound, SessionRecord, SessionStore

Seed = Callable[..., Awaitable[SessionRecord]]


async def test_get_unknown_account_raises(store: SessionStore) -> None:
    with pytest.raises(SessionNotFound) as exc_info:
        await store.get("nobody")
    assert exc_info.value.account_id == "nobody"


async def test_find_unknown_account_returns_none(store: SessionStore) -> None:
    assert await store.find("nobody") is None


async def test_upsert_creates_record(store: SessionStore) -> None:
    issued_at = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
    record = await store.upsert(
        "alice",
        display_name="Alice",
        access_token="access-1",
        refresh_token="refresh-1",
        issued_at=issued_at,
        ttl_seconds=3600,
    )
    assert record.account_id == "alice"
    assert record.access_token == "access-1"
    assert record.refresh_token == "refresh-1"
    assert record.expires_at == issued_at + timedelta(hours=1)

    loaded = await store.get("alice")
    assert loaded == record


async def test_upsert_updates_only_given_fields(store: SessionStore) -> None:
    first = await store.upsert("alice", display_name="Alice", access_token="a1", refresh_token="r1", ttl_seconds=60)
    second = await store.upsert("alice", access_token="a2")
    assert second.access_token == "a2"
    assert second.refresh_token == "r1"
    assert second.display_name == "Alice"
    assert second.version > first.version


async def test_upsert_rejects_unknown_fields(store: SessionStore) -> None:
    with pytest.raises(ValueError, match="Unknown session fields"):
        await store.upsert("alice", password="hunter2")


async def test_refresh_token_encrypted_at_rest(store: SessionStore, db_manager: DatabaseManager) -> None:
    await store.upsert("alice", access_token="a1", refresh_token="plain-refresh-token")
    async with db_manager.session() as session:
        row = (await session.execute(select(AccountSession))).scalar_one()
    assert row.encrypted_refresh_token is not None
    assert "plain-refresh-token" not in row.encrypted_refresh_token


async def test_undecryptable_refresh_token_reads_as_none(db_manager: DatabaseManager) -> None:
    writer = SessionStore(db_manager.session, TokenEncryptor(Fernet.generate_key().decode()))
    await writer.upsert("alice", access_token="a1", refresh_token="r1")

    reader = SessionStore(db_manager.session, TokenEncryptor(Fernet.generate_key().decode()))
    record = await reader.get("alice")
    assert record.refresh_token is None
    assert record.access_token == "a1"


async def test_issued_at_is_timezone_aware(store: SessionStore, seed_session: Seed) -> None:
    await seed_session("alice")
    record = await store.get("alice")
    assert record.issued_at is not None
    assert record.issued_at.tzinfo is not None


async def test_apply_refresh_matching_version(store: SessionStore, seed_session: Seed) -> None:
    seeded = await seed_session("alice", access_token="old", refresh_token="r1")
    issued_at = datetime.now(UTC)

    updated = await store.apply_refresh(
        "alice",
        expected_version=seeded.version,
        access_token="new",
        ttl_seconds=1800,
        issued_at=issued_at,
    )
    assert updated is not None
    assert updated.access_token == "new"
    assert updated.ttl_seconds == 1800
    assert updated.refresh_token == "r1"  # not rotated
    assert updated.version == seeded.version + 1


async def test_apply_refresh_rotates_refresh_token(store: SessionStore, seed_session: Seed) -> None:
    seeded = await seed_session("alice", refresh_token="r1")
    updated = await store.apply_refresh(
        "alice",
        expected_version=seeded.version,
        access_token="new",
        ttl_seconds=3600,
        issued_at=datetime.now(UTC),
        refresh_token="r2",
    )
    assert updated is not None
    assert updated.refresh_token == "r2"


async def test_apply_refresh_version_conflict(store: SessionStore, seed_session: Seed) -> None:
    seeded = await seed_session("alice", access_token="old")
    await store.clear("alice")

    updated = await store.apply_refresh(
        "alice",
        expected_version=seeded.version,
        access_token="new",
        ttl_seconds=3600,
        issued_at=datetime.now(UTC),
    )
    assert updated is None
    record = await store.get("alice")
    assert record.access_token is None


async def test_clear_unsets_token_fields_and_keeps_record(store: SessionStore, seed_session: Seed) -> None:
    await seed_session("alice")
    await store.clear("alice")

    record = await store.get("alice")
    assert record.access_token is None
    assert record.refresh_token is None
    assert record.issued_at is None
    assert record.ttl_seconds is None
    assert record.display_name == "Alice"


async def test_clear_twice_is_idempotent(store: SessionStore, seed_session: Seed) -> None:
    await seed_session("alice")
    await store.clear("alice")
    first = await store.get("alice")
    await store.clear("alice")
    second = await store.get("alice")

    assert (first.access_token, first.refresh_token, first.issued_at, first.ttl_seconds) == (
        second.access_token,
        second.refresh_token,
        second.issued_at,
        second.ttl_seconds,
    )


async def test_clear_unknown_account_is_noop(store: SessionStore) -> None:
    await store.clear("nobody")
    assert await store.find("nobody") is None


async def test_accounts_are_independent(store: SessionStore, seed_session: Seed) -> None:
    await seed_session("alice", access_token="alice-token")
    await seed_session("bob", access_token="bob-token")
    await store.clear("alice")

    assert (await store.get("alice")).access_token is None
    assert (await store.get("bob")).access_token == "bob-token"


async def test_apply_refresh_unknown_account_returns_none(store: SessionStore) -> None:
    updated = await store.apply_refresh(
        "nobody",
        expected_version=0,
        access_token="new",
        ttl_seconds=3600,
        issued_at=datetime.now(UTC),
    )
    assert updated is None
    assert await store.find("nobody") is None
