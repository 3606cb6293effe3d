"""API client for the widget — reads /now-playing from the tinytune server."""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import httpx
from pydantic import ValidationError

from tinytune.constants import DEFAULT_WIDGET_REQUEST_TIMEOUT, Routes
from tinytune.db.base import utc_now
from tinytune.playback.exceptions import MalformedUpstreamResponse
from tinytune.playback.models import NothingPlaying, PlaybackResult
from tinytune.playback.schemas import NowPlayingResponse


class WidgetApiError(Exception):
    """Raised when the server returns an error response or cannot be reached."""

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"API error {status_code}: {detail}")


def parse_now_playing(account_id: str, payload: Any, fetched_at: datetime) -> PlaybackResult:
    """Turn a /now-playing body into a playback result stamped with *fetched_at*.

    Missing optional fields (artist, artwork, link) are tolerated; a body that
    is not an object, or a track without a name or duration, is malformed.
    """
    if payload is None:
        return NothingPlaying(fetched_at=fetched_at)
    if not isinstance(payload, dict):
        raise MalformedUpstreamResponse(account_id, f"expected an object, got {type(payload).__name__}")
    try:
        body = NowPlayingResponse.model_validate({**payload, "fetched_at": fetched_at})
        return body.to_result(fetched_at)
    except ValidationError as exc:
        raise MalformedUpstreamResponse(account_id, f"{exc.error_count()} invalid field(s)") from exc


class WidgetApiClient:
    """HTTP client that polls GET /now-playing for one account."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_WIDGET_REQUEST_TIMEOUT,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self._base_url, timeout=timeout)
        self._now = now

    async def close(self) -> None:
        """Close underlying HTTP client."""
        await self._client.aclose()

    async def get_now_playing(self, account_id: str) -> PlaybackResult:
        """GET /now-playing?user=<account_id>"""
        try:
            resp = await self._client.get(Routes.NOW_PLAYING, params={"user": account_id})
        except httpx.TransportError as exc:
            raise WidgetApiError(503, f"API unavailable: {exc}") from exc
        fetched_at = self._now()

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail", resp.text)
            except (ValueError, AttributeError):
                detail = resp.text
            raise WidgetApiError(resp.status_code, str(detail))

        if resp.status_code == 204 or not resp.content.strip():
            return NothingPlaying(fetched_at=fetched_at)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise MalformedUpstreamResponse(account_id, "response body is not JSON") from exc
        return parse_now_playing(account_id, payload, fetched_at)
