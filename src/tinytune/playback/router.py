"""GET /now-playing — the endpoint the widget polls."""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query

from tinytune.auth.exceptions import AuthExpired, TemporarilyUnavailable
from tinytune.constants import Routes
from tinytune.dependencies import AppServices
from tinytune.playback.schemas import NowPlayingResponse
from tinytune.sessions import SessionNotFound

logger = logging.getLogger(__name__)


class PlaybackRouter:
    """Class-based router exposing the account's current playback state."""

    def __init__(self) -> None:
        self.router = APIRouter()
        self.router.add_api_route(Routes.NOW_PLAYING, self.now_playing, methods=["GET"])

    async def now_playing(
        self,
        user: Annotated[str, Query(min_length=1, description="Spotify account id")],
        services: AppServices,
    ) -> NowPlayingResponse:
        """Return the track the account is playing, or ``item: null`` when idle."""
        try:
            result = await services.fetcher.fetch(user)
        except SessionNotFound as exc:
            raise HTTPException(status_code=404, detail="User not found") from exc
        except AuthExpired as exc:
            raise HTTPException(status_code=401, detail="Authorization expired; please log in again") from exc
        except TemporarilyUnavailable as exc:
            raise HTTPException(
                status_code=503,
                detail="Spotify is temporarily unavailable; try again later",
                headers={"Retry-After": str(services.settings.RETRY_AFTER_SECONDS)},
            ) from exc
        return NowPlayingResponse.from_result(result)


_instance = PlaybackRouter()
router = _instance.router
