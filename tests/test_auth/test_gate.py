"""Tests for AuthGate — expiry checks and single-flight refresh."""

import asyncio
from collections.abc import Awaitable, Callable
from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from tinytune.auth.exceptions import AuthExpired, TemporarilyUnavailable
from tinytune.auth.gate import AuthGate
from tinytune.auth.refresher import TokenRefresher
from tinytune.sessions import SessionNotFound, SessionRecord, SessionStore
from tinytune.settings import AppSettings

TOKEN_URL = "https://accounts.spotify.com/api/token"

Seed = Callable[..., Awaitable[SessionRecord]]


def _gate(settings: AppSettings, store: SessionStore) -> AuthGate:
    return AuthGate(settings, store, TokenRefresher(settings, store))


def _slow_token_response(access_token: str, delay: float = 0.05) -> Callable[[httpx.Request], Awaitable[httpx.Response]]:
    async def _respond(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(delay)
        return httpx.Response(200, json={"access_token": access_token, "expires_in": 3600})

    return _respond


async def test_fresh_token_returned_without_refresh(
    settings: AppSettings, store: SessionStore, seed_session: Seed
) -> None:
    await seed_session("alice", access_token="fresh-token", expires_in=3600)
    with respx.mock(assert_all_called=False) as mock:
        route = mock.post(TOKEN_URL)
        token = await _gate(settings, store).get_valid_token("alice")
    assert token == "fresh-token"
    assert not route.called


async def test_unknown_account_raises_session_not_found(settings: AppSettings, store: SessionStore) -> None:
    with pytest.raises(SessionNotFound):
        await _gate(settings, store).get_valid_token("nobody")


@respx.mock
async def test_expired_token_is_refreshed(settings: AppSettings, store: SessionStore, seed_session: Seed) -> None:
    await seed_session("alice", access_token="expired-token", expires_in=-30)
    respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={"access_token": "new-token", "expires_in": 3600}))

    gate = _gate(settings, store)
    assert await gate.get_valid_token("alice") == "new-token"
    # The refreshed token is reused by the next request
    assert await gate.get_valid_token("alice") == "new-token"
    assert respx.calls.call_count == 1


@respx.mock
async def test_token_inside_expiry_buffer_is_refreshed(
    settings: AppSettings, store: SessionStore, seed_session: Seed
) -> None:
    await seed_session("alice", access_token="nearly-expired", expires_in=settings.TOKEN_EXPIRY_BUFFER_SECONDS // 2)
    respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={"access_token": "new-token", "expires_in": 3600}))

    assert await _gate(settings, store).get_valid_token("alice") == "new-token"


async def test_expired_without_refresh_token_fails_fast(
    settings: AppSettings, store: SessionStore, seed_session: Seed
) -> None:
    await seed_session("alice", refresh_token=None, expires_in=-30)
    with respx.mock(assert_all_called=False) as mock:
        route = mock.post(TOKEN_URL)
        with pytest.raises(AuthExpired):
            await _gate(settings, store).get_valid_token("alice")
    assert not route.called


async def test_inside_buffer_without_refresh_token_keeps_current_token(
    settings: AppSettings, store: SessionStore, seed_session: Seed
) -> None:
    await seed_session("alice", access_token="last-token", refresh_token=None, expires_in=10)
    assert await _gate(settings, store).get_valid_token("alice") == "last-token"


async def test_logged_out_session_requires_login(settings: AppSettings, store: SessionStore, seed_session: Seed) -> None:
    await seed_session("alice")
    await store.clear("alice")
    with pytest.raises(AuthExpired):
        await _gate(settings, store).get_valid_token("alice")


@respx.mock
async def test_concurrent_requests_share_one_refresh(
    settings: AppSettings, store: SessionStore, seed_session: Seed
) -> None:
    await seed_session("alice", access_token="expired-token", expires_in=-30)
    route = respx.post(TOKEN_URL).mock(side_effect=_slow_token_response("new-token"))
    gate = _gate(settings, store)

    tokens = await asyncio.gather(*(gate.get_valid_token("alice") for _ in range(8)))

    assert tokens == ["new-token"] * 8
    assert route.call_count == 1
    assert gate.refreshes_in_flight == 0


@respx.mock
async def test_concurrent_waiters_share_refresh_failure(
    settings: AppSettings, store: SessionStore, seed_session: Seed
) -> None:
    await seed_session("alice", expires_in=-30)

    async def _deny(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.05)
        return httpx.Response(400, json={"error": "invalid_grant"})

    route = respx.post(TOKEN_URL).mock(side_effect=_deny)
    gate = _gate(settings, store)

    results = await asyncio.gather(*(gate.get_valid_token("alice") for _ in range(4)), return_exceptions=True)

    assert all(isinstance(r, AuthExpired) for r in results)
    assert route.call_count == 1


@respx.mock
async def test_transient_refresh_failure_leaves_session_intact(
    settings: AppSettings, store: SessionStore, seed_session: Seed
) -> None:
    await seed_session("alice", access_token="expired-token", expires_in=-30)
    respx.post(TOKEN_URL).mock(
        side_effect=[
            httpx.Response(503),
            httpx.Response(200, json={"access_token": "new-token", "expires_in": 3600}),
        ]
    )
    gate = _gate(settings, store)

    with pytest.raises(TemporarilyUnavailable):
        await gate.get_valid_token("alice")
    stored = await store.get("alice")
    assert stored.refresh_token == "stored-refresh-token"

    # The next request retries the refresh
    assert await gate.get_valid_token("alice") == "new-token"


@respx.mock
async def test_accounts_refresh_independently(settings: AppSettings, store: SessionStore, seed_session: Seed) -> None:
    await seed_session("alice", refresh_token="alice-refresh", expires_in=-30)
    await seed_session("bob", refresh_token="bob-refresh", expires_in=-30)
    arrived: list[str] = []
    both_arrived = asyncio.Event()

    async def _respond(request: httpx.Request) -> httpx.Response:
        account = "alice" if b"alice-refresh" in request.content else "bob"
        arrived.append(account)
        if len(arrived) == 2:
            both_arrived.set()
        # Neither refresh can finish until the other has started.
        await asyncio.wait_for(both_arrived.wait(), timeout=2)
        return httpx.Response(200, json={"access_token": f"{account}-new", "expires_in": 3600})

    respx.post(TOKEN_URL).mock(side_effect=_respond)
    gate = _gate(settings, store)

    alice, bob = await asyncio.gather(gate.get_valid_token("alice"), gate.get_valid_token("bob"))

    assert (alice, bob) == ("alice-new", "bob-new")
    assert sorted(arrived) == ["alice", "bob"]


@respx.mock
async def test_cancelled_waiter_does_not_cancel_shared_refresh(
    settings: AppSettings, store: SessionStore, seed_session: Seed
) -> None:
    await seed_session("alice", expires_in=-30)
    route = respx.post(TOKEN_URL).mock(side_effect=_slow_token_response("new-token", delay=0.1))
    gate = _gate(settings, store)

    doomed = asyncio.create_task(gate.get_valid_token("alice"))
    survivor = asyncio.create_task(gate.get_valid_token("alice"))
    await asyncio.sleep(0.03)
    doomed.cancel()

    assert await survivor == "new-token"
    with pytest.raises(asyncio.CancelledError):
        await doomed
    assert route.call_count == 1


@respx.mock
async def test_refresh_rejected_replaces_token(settings: AppSettings, store: SessionStore, seed_session: Seed) -> None:
    await seed_session("alice", access_token="revoked-token", expires_in=3600)
    respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={"access_token": "new-token", "expires_in": 3600}))

    token = await _gate(settings, store).refresh_rejected("alice", "revoked-token")
    assert token == "new-token"


async def test_refresh_rejected_skips_when_token_already_replaced(
    settings: AppSettings, store: SessionStore, seed_session: Seed
) -> None:
    await seed_session("alice", access_token="current-token", expires_in=3600)
    with respx.mock(assert_all_called=False) as mock:
        route = mock.post(TOKEN_URL)
        token = await _gate(settings, store).refresh_rejected("alice", "older-token")
    assert token == "current-token"
    assert not route.called


async def test_refresh_without_access_token_raises_auth_expired(
    settings: AppSettings, store: SessionStore, seed_session: Seed
) -> None:
    await seed_session("alice", access_token="revoked-token", expires_in=3600)
    refresher = AsyncMock(spec=TokenRefresher)
    refresher.refresh.return_value = SessionRecord(account_id="alice")
    gate = AuthGate(settings, store, refresher)

    with pytest.raises(AuthExpired, match="no access token"):
        await gate.refresh_rejected("alice", "revoked-token")
    refresher.refresh.assert_awaited_once()
