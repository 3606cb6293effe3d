"""Auth gate — guarantees a usable access token before any upstream call."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from tinytune.auth.exceptions import AuthExpired, RefreshDenied, TemporarilyUnavailable, UpstreamUnavailable
from tinytune.auth.refresher import TokenRefresher
from tinytune.db.base import utc_now
from tinytune.sessions import SessionRecord, SessionStore
from tinytune.settings import AppSettings

logger = logging.getLogger(__name__)


class AuthGate:
    """Per-request guard that hands out non-expired access tokens.

    Refreshing is single-flight per account: the first request that finds a
    stale token starts a refresh task, and every other request for the same
    account awaits that task's outcome instead of calling Spotify again.
    Accounts never wait on each other. The refresh task re-reads the record
    before calling upstream, so a request that observed a stale token just
    before another refresh finished does not trigger a second exchange.
    """

    def __init__(
        self,
        settings: AppSettings,
        store: SessionStore,
        refresher: TokenRefresher,
        *,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._buffer_seconds = settings.TOKEN_EXPIRY_BUFFER_SECONDS
        self._store = store
        self._refresher = refresher
        self._now = now
        self._inflight: dict[str, asyncio.Task[SessionRecord]] = {}

    async def get_valid_session(self, account_id: str) -> SessionRecord:
        """Return the account's session with an access token valid for the immediate call.

        Raises:
            SessionNotFound: If the account has no session record.
            AuthExpired: If the token is expired and cannot be refreshed.
            TemporarilyUnavailable: If the refresh failed transiently.
        """
        record = await self._store.get(account_id)
        now = self._now()
        if not record.needs_refresh(now, self._buffer_seconds):
            return record

        if not record.can_refresh:
            if record.is_expired(now):
                logger.info(
                    "Session for account %s is expired and has no refresh token",
                    account_id,
                    extra={"account_id": account_id},
                )
                raise AuthExpired(account_id, "no refresh token stored")
            # Inside the expiry buffer but still valid; nothing better is available.
            return record

        return await self._refresh(account_id)

    async def get_valid_token(self, account_id: str) -> str:
        """Shortcut for :meth:`get_valid_session` returning only the access token."""
        return _access_token(await self.get_valid_session(account_id))

    async def refresh_rejected(self, account_id: str, rejected_token: str) -> str:
        """Replace a token Spotify answered 401 to, unless it was already replaced.

        Goes through the same single-flight section as expiry-driven refreshes.
        """
        return _access_token(await self._refresh(account_id, rejected_token=rejected_token))

    @property
    def refreshes_in_flight(self) -> int:
        return len(self._inflight)

    # ------------------------------------------------------------------
    # Single-flight refresh
    # ------------------------------------------------------------------

    async def _refresh(self, account_id: str, rejected_token: str | None = None) -> SessionRecord:
        task = self._inflight.get(account_id)
        if task is None:
            task = asyncio.create_task(
                self._run_refresh(account_id, rejected_token),
                name=f"token-refresh:{account_id}",
            )
            self._inflight[account_id] = task
            task.add_done_callback(lambda done: self._release(account_id, done))
        else:
            logger.debug("Joining in-flight token refresh for account %s", account_id)

        try:
            # Shielded: a cancelled request must not cancel the refresh other requests await.
            return await asyncio.shield(task)
        except RefreshDenied as exc:
            raise AuthExpired(account_id, exc.detail) from exc
        except UpstreamUnavailable as exc:
            raise TemporarilyUnavailable(account_id, exc.detail) from exc

    async def _run_refresh(self, account_id: str, rejected_token: str | None) -> SessionRecord:
        record = await self._store.get(account_id)
        stale = record.needs_refresh(self._now(), self._buffer_seconds) or (
            rejected_token is not None and record.access_token == rejected_token
        )
        if not stale:
            logger.debug("Token for account %s was already refreshed", account_id)
            return record
        if not record.can_refresh:
            raise RefreshDenied(account_id, "no refresh token stored")
        return await self._refresher.refresh(record)

    def _release(self, account_id: str, task: asyncio.Task[SessionRecord]) -> None:
        if self._inflight.get(account_id) is task:
            del self._inflight[account_id]
        if not task.cancelled():
            # Mark the outcome retrieved even if every waiter was cancelled.
            task.exception()


def _access_token(record: SessionRecord) -> str:
    if record.access_token is None:
        raise AuthExpired(record.account_id, "no access token stored")
    return record.access_token
