"""Spotify OAuth HTTP endpoints — class-based router delegating to OAuthService."""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import RedirectResponse

from tinytune.auth.exceptions import InvalidStateError, SpotifyAPIError
from tinytune.auth.schemas import AuthCallbackResponse, LogoutResponse
from tinytune.dependencies import AppServices

logger = logging.getLogger(__name__)


class AuthRouter:
    """Class-based router for login, callback and logout."""

    def __init__(self) -> None:
        self.router = APIRouter()
        self.router.add_api_route("/login", self.login, methods=["GET"])
        self.router.add_api_route("/callback", self.callback, methods=["GET"])
        self.router.add_api_route("/logout", self.logout, methods=["GET", "POST"])

    async def login(self, services: AppServices) -> RedirectResponse:
        """Redirect the user to the Spotify authorization page."""
        return RedirectResponse(url=services.oauth.get_authorization_url())

    async def callback(
        self,
        code: Annotated[str, Query()],
        state: Annotated[str, Query()],
        services: AppServices,
    ) -> AuthCallbackResponse:
        """Handle the Spotify OAuth callback: exchange the code and store the session."""
        try:
            return await services.oauth.handle_callback(code, state)
        except InvalidStateError as exc:
            raise HTTPException(status_code=400, detail="Invalid or expired state parameter") from exc
        except SpotifyAPIError as exc:
            logger.warning("Authorization failed during %s: HTTP %d", exc.action, exc.spotify_status_code)
            raise HTTPException(status_code=502, detail=exc.detail) from exc

    async def logout(
        self,
        user: Annotated[str, Query(min_length=1, description="Spotify account id")],
        services: AppServices,
    ) -> LogoutResponse:
        """Clear the account's tokens. Repeating the call is harmless."""
        await services.oauth.logout(user)
        return LogoutResponse(message="Logged out", account_id=user)


_instance = AuthRouter()
router = _instance.router
