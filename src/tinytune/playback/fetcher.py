"""Playback fetcher — asks Spotify what an account is playing right now."""

import logging
from collections.abc import Callable
from datetime import datetime

from tinytune.auth.exceptions import AuthExpired, TemporarilyUnavailable
from tinytune.auth.gate import AuthGate
from tinytune.constants import EXTERNAL_LINK_KEY
from tinytune.db.base import utc_now
from tinytune.playback.exceptions import MalformedUpstreamResponse
from tinytune.playback.models import NothingPlaying, PlaybackResult, TrackSnapshot
from tinytune.settings import AppSettings
from tinytune.spotify import SpotifyAuthError, SpotifyClient, SpotifyClientError
from tinytune.spotify.models import CurrentlyPlayingResponse

logger = logging.getLogger(__name__)


class PlaybackFetcher:
    """Fetches and normalizes the currently-playing state for one account.

    Outcomes are a :class:`TrackSnapshot`, :class:`NothingPlaying`, or a typed
    exception. Fetch failures never touch the session record, and nothing is
    retried here.
    """

    def __init__(
        self,
        settings: AppSettings,
        gate: AuthGate,
        *,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings
        self._gate = gate
        self._now = now

    async def fetch(self, account_id: str) -> PlaybackResult:
        """Return the account's current playback state.

        Raises:
            SessionNotFound: If the account is unknown.
            AuthExpired: If the account must log in again.
            TemporarilyUnavailable: On upstream failures (including
                :class:`MalformedUpstreamResponse`).
        """
        access_token = await self._gate.get_valid_token(account_id)

        async def _on_token_expired(rejected_token: str) -> str:
            return await self._gate.refresh_rejected(account_id, rejected_token)

        client = SpotifyClient(
            access_token,
            on_token_expired=_on_token_expired,
            request_timeout=self._settings.UPSTREAM_TIMEOUT_SECONDS,
        )

        try:
            response = await client.get_currently_playing()
        except SpotifyAuthError as exc:
            raise AuthExpired(account_id, "Spotify rejected a freshly refreshed token") from exc
        except SpotifyClientError as exc:
            logger.warning("Currently-playing request failed for account %s: %s", account_id, exc)
            raise TemporarilyUnavailable(account_id, str(exc)) from exc
        except ValueError as exc:
            logger.warning("Malformed currently-playing response for account %s: %s", account_id, exc)
            raise MalformedUpstreamResponse(account_id, "unexpected currently-playing payload") from exc

        return self._normalize(response, self._now())

    @staticmethod
    def _normalize(response: CurrentlyPlayingResponse | None, fetched_at: datetime) -> PlaybackResult:
        if response is None or response.item is None:
            return NothingPlaying(fetched_at=fetched_at)

        item = response.item
        images = item.album.images if item.album else []
        return TrackSnapshot(
            track_id=item.id,
            title=item.name,
            artist=item.artists[0].name if item.artists else None,
            artwork_url=images[0].url if images else None,
            external_link=item.external_urls.get(EXTERNAL_LINK_KEY),
            duration_ms=item.duration_ms,
            progress_ms=response.progress_ms or 0,
            is_playing=response.is_playing,
            fetched_at=fetched_at,
        )
