"""Spotify Web API async client for playback state."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from tinytune.constants import CURRENTLY_PLAYING_URL, DEFAULT_UPSTREAM_TIMEOUT_SECONDS
from tinytune.spotify.exceptions import (
    SpotifyAuthError,
    SpotifyRateLimitError,
    SpotifyRequestError,
    SpotifyServerError,
    SpotifyUnavailableError,
)
from tinytune.spotify.models import CurrentlyPlayingResponse

logger = logging.getLogger(__name__)


class SpotifyClient:
    """Async Spotify Web API client.

    Takes an access_token per-instance (stateless re: auth). Every request is
    bounded by *request_timeout* and is attempted once; retry policy belongs
    to the caller. The optional on_token_expired async callback is invoked at
    most once per request when Spotify answers 401, and the request is
    repeated with the token it returns.
    """

    def __init__(
        self,
        access_token: str,
        *,
        on_token_expired: Callable[[str], Awaitable[str]] | None = None,
        request_timeout: float = DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
    ) -> None:
        self._access_token = access_token
        self._on_token_expired = on_token_expired
        self._request_timeout = request_timeout

    @property
    def access_token(self) -> str:
        return self._access_token

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str | int] | None = None,
    ) -> httpx.Response:
        """Send an HTTP request with the bearer token, refreshing once on 401."""
        already_retried_401 = False

        while True:
            try:
                async with httpx.AsyncClient(timeout=self._request_timeout) as client:
                    response = await client.request(
                        method,
                        url,
                        params=params,
                        headers={"Authorization": f"Bearer {self._access_token}"},
                    )
            except httpx.TimeoutException as exc:
                raise SpotifyUnavailableError(f"Spotify did not answer within {self._request_timeout}s") from exc
            except httpx.TransportError as exc:
                raise SpotifyUnavailableError(f"Spotify unreachable: {exc}") from exc

            if 200 <= response.status_code < 300:
                return response

            # 401 Unauthorized — try token refresh once
            if response.status_code == 401:
                if self._on_token_expired and not already_retried_401:
                    already_retried_401 = True
                    logger.info("Spotify returned 401, attempting token refresh")
                    self._access_token = await self._on_token_expired(self._access_token)
                    continue
                raise SpotifyAuthError("Spotify returned 401 Unauthorized")

            if response.status_code == 429:
                retry_after_header = response.headers.get("Retry-After")
                raise SpotifyRateLimitError(retry_after=float(retry_after_header) if retry_after_header else None)

            if response.status_code >= 500:
                raise SpotifyServerError(status_code=response.status_code, detail=self._error_detail(response))

            raise SpotifyRequestError(status_code=response.status_code, detail=self._error_detail(response))

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        detail = f"HTTP {response.status_code}"
        try:
            error_body = response.json()
            detail = error_body.get("error", {}).get("message", detail)
        except (ValueError, AttributeError):
            if response.text:
                detail = response.text[:200]
        return str(detail)

    # -------------------------------------------------------------------
    # Public API methods
    # -------------------------------------------------------------------

    async def get_currently_playing(self, *, market: str | None = None) -> CurrentlyPlayingResponse | None:
        """GET /me/player/currently-playing.

        Returns ``None`` when Spotify reports no active playback (204 or an
        empty body). Raises pydantic's ``ValidationError`` on a body that does
        not match the expected shape.
        """
        params: dict[str, str | int] | None = {"market": market} if market else None
        response = await self._request("GET", CURRENTLY_PLAYING_URL, params=params)
        if response.status_code == 204 or not response.content.strip():
            return None

        payload: Any = response.json()
        if isinstance(payload, dict) and payload.get("currently_playing_type") not in (None, "track"):
            # Episodes and ads carry no track metadata worth showing.
            payload = {**payload, "item": None}
        return CurrentlyPlayingResponse.model_validate(payload)
