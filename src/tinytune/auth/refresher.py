"""Token refresher — exchanges a refresh token for a new access token."""

import logging
from collections.abc import Callable
from datetime import datetime

import httpx

from tinytune.auth.exceptions import RefreshDenied, UpstreamUnavailable
from tinytune.auth.schemas import SpotifyTokenResponse
from tinytune.constants import SPOTIFY_TOKEN_URL
from tinytune.db.base import utc_now
from tinytune.sessions import SessionRecord, SessionStore
from tinytune.settings import AppSettings

logger = logging.getLogger(__name__)

# Token endpoint answers that mean the refresh token itself is no good
_DENIED_STATUSES = frozenset({400, 401, 403})


class TokenRefresher:
    """Performs the ``refresh_token`` grant and writes the result back to the store.

    The stored refresh token is replaced only when Spotify returns a new one;
    the write-back is conditional on the record's version so a concurrent
    logout or re-login is never overwritten.
    """

    def __init__(
        self,
        settings: AppSettings,
        store: SessionStore,
        *,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings
        self._store = store
        self._now = now

    async def refresh(self, record: SessionRecord) -> SessionRecord:
        """Refresh the access token for *record* and persist it.

        Raises:
            RefreshDenied: If there is no refresh token or Spotify rejects it.
            UpstreamUnavailable: On timeouts, transport errors, 429/5xx or a
                malformed token response.
        """
        account_id = record.account_id
        if not record.refresh_token:
            raise RefreshDenied(account_id, "no refresh token stored")

        token_data = await self._exchange(account_id, record.refresh_token)
        issued_at = self._now()
        ttl_seconds = token_data.expires_in or self._settings.DEFAULT_TOKEN_TTL_SECONDS

        updated = await self._store.apply_refresh(
            account_id,
            expected_version=record.version,
            access_token=token_data.access_token,
            ttl_seconds=ttl_seconds,
            issued_at=issued_at,
            refresh_token=token_data.refresh_token,
        )
        if updated is not None:
            logger.info(
                "Refreshed access token for account %s (expires in %ds, rotated=%s)",
                account_id,
                ttl_seconds,
                token_data.refresh_token is not None,
                extra={"account_id": account_id},
            )
            return updated

        # The record changed while we were talking to Spotify.
        current = await self._store.find(account_id)
        if current is not None and not current.is_expired(issued_at):
            logger.info(
                "Session for account %s was updated concurrently; using stored token",
                account_id,
                extra={"account_id": account_id},
            )
            return current
        raise RefreshDenied(account_id, "session was cleared during refresh")

    async def _exchange(self, account_id: str, refresh_token: str) -> SpotifyTokenResponse:
        try:
            async with httpx.AsyncClient(timeout=self._settings.UPSTREAM_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    SPOTIFY_TOKEN_URL,
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": refresh_token,
                        "client_id": self._settings.SPOTIFY_CLIENT_ID,
                        "client_secret": self._settings.SPOTIFY_CLIENT_SECRET,
                    },
                )
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailable(account_id, "token endpoint timed out") from exc
        except httpx.TransportError as exc:
            raise UpstreamUnavailable(account_id, f"token endpoint unreachable: {exc}") from exc

        self._check_response(account_id, response)

        try:
            return SpotifyTokenResponse.model_validate(response.json())
        except ValueError as exc:
            raise UpstreamUnavailable(account_id, "malformed token response") from exc

    @staticmethod
    def _check_response(account_id: str, response: httpx.Response) -> None:
        """Map non-2xx token endpoint answers onto the refresher's failure types."""
        status = response.status_code
        if 200 <= status < 300:
            return
        if status in _DENIED_STATUSES:
            detail = f"HTTP {status}"
            try:
                body = response.json()
                if isinstance(body, dict):
                    detail = body.get("error_description") or body.get("error") or detail
            except ValueError:
                pass
            logger.warning(
                "Spotify denied token refresh for account %s: %s", account_id, detail, extra={"account_id": account_id}
            )
            raise RefreshDenied(account_id, str(detail))
        logger.warning(
            "Token endpoint returned HTTP %d for account %s", status, account_id, extra={"account_id": account_id}
        )
        raise UpstreamUnavailable(account_id, f"token endpoint returned HTTP {status}")
