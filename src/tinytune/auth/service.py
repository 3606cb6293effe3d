"""OAuth service — business logic for the Spotify authorization flow."""

import logging
from urllib.parse import urlencode

import httpx

from tinytune.auth.exceptions import InvalidStateError, SpotifyAPIError
from tinytune.auth.schemas import AuthCallbackResponse, SpotifyProfile, SpotifyTokenResponse
from tinytune.auth.state import OAuthStateManager
from tinytune.constants import (
    SPOTIFY_AUTHORIZE_URL,
    SPOTIFY_ME_URL,
    SPOTIFY_SCOPES,
    SPOTIFY_TOKEN_URL,
    Routes,
)
from tinytune.db.base import utc_now
from tinytune.sessions import SessionStore
from tinytune.settings import AppSettings

logger = logging.getLogger(__name__)


class OAuthService:
    """Handles the Spotify OAuth authorization flow and logout.

    The callback exchanges the authorization code, looks up the Spotify
    profile and upserts the account's session record keyed by the Spotify
    user id.
    """

    def __init__(self, settings: AppSettings, store: SessionStore) -> None:
        self._settings = settings
        self._store = store
        self._state_manager = OAuthStateManager(
            key=settings.TOKEN_ENCRYPTION_KEY,
            ttl_seconds=settings.OAUTH_STATE_TTL_SECONDS,
        )

    def get_authorization_url(self) -> str:
        """Build the full Spotify authorization redirect URL."""
        params = {
            "client_id": self._settings.SPOTIFY_CLIENT_ID,
            "response_type": "code",
            "redirect_uri": self._settings.SPOTIFY_REDIRECT_URI,
            "scope": SPOTIFY_SCOPES,
            "state": self._state_manager.generate(),
        }
        return f"{SPOTIFY_AUTHORIZE_URL}?{urlencode(params)}"

    async def handle_callback(self, code: str, state: str) -> AuthCallbackResponse:
        """Process the OAuth callback: validate state, exchange code, upsert the session.

        Raises:
            InvalidStateError: If the state parameter is invalid or expired.
            SpotifyAPIError: If any Spotify API call fails.
        """
        if not self._state_manager.verify(state):
            raise InvalidStateError("Invalid or expired state parameter")

        issued_at = utc_now()
        token_response, profile = await self._exchange_and_fetch_profile(code)
        if token_response.refresh_token is None:
            raise SpotifyAPIError(
                action="token exchange",
                status_code=200,
                detail="Spotify did not return a refresh token.",
            )

        await self._store.upsert(
            profile.id,
            display_name=profile.display_name,
            email=profile.email,
            access_token=token_response.access_token,
            refresh_token=token_response.refresh_token,
            issued_at=issued_at,
            ttl_seconds=token_response.expires_in or self._settings.DEFAULT_TOKEN_TTL_SECONDS,
        )
        logger.info("Authorized account %s", profile.id)

        widget_query = urlencode({"user": profile.id})
        return AuthCallbackResponse(
            message="Authorization successful",
            account_id=profile.id,
            display_name=profile.display_name,
            widget_url=f"{self._settings.PUBLIC_BASE_URL.rstrip('/')}{Routes.NOW_PLAYING}?{widget_query}",
        )

    async def logout(self, account_id: str) -> None:
        """Clear the account's token material; safe to call repeatedly."""
        await self._store.clear(account_id)
        logger.info("Cleared session for account %s", account_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _exchange_and_fetch_profile(self, code: str) -> tuple[SpotifyTokenResponse, SpotifyProfile]:
        """Exchange the authorization code for tokens and fetch the user profile."""
        try:
            async with httpx.AsyncClient(timeout=self._settings.UPSTREAM_TIMEOUT_SECONDS) as client:
                token_resp = await client.post(
                    SPOTIFY_TOKEN_URL,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self._settings.SPOTIFY_REDIRECT_URI,
                        "client_id": self._settings.SPOTIFY_CLIENT_ID,
                        "client_secret": self._settings.SPOTIFY_CLIENT_SECRET,
                    },
                )
                self._check_spotify_response(token_resp, "exchange authorization code")
                token_data = SpotifyTokenResponse.model_validate(token_resp.json())

                profile_resp = await client.get(
                    SPOTIFY_ME_URL,
                    headers={"Authorization": f"Bearer {token_data.access_token}"},
                )
                self._check_spotify_response(profile_resp, "fetch user profile")
                profile = SpotifyProfile.model_validate(profile_resp.json())
        except httpx.TransportError as exc:
            raise SpotifyAPIError(action="authorize", status_code=503, detail=f"Spotify unreachable: {exc}") from exc

        return token_data, profile

    @staticmethod
    def _check_spotify_response(response: httpx.Response, action: str) -> None:
        """Raise SpotifyAPIError with a descriptive message if the response is not OK."""
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 429:
                detail = f"Rate limited by Spotify while trying to {action}. Please try again later."
            elif status >= 500:
                detail = f"Spotify server error while trying to {action}. This is likely a transient issue."
            elif status == 401:
                detail = f"Spotify authentication failed while trying to {action}. Check client credentials."
            elif status == 400:
                detail = f"Spotify rejected the request to {action}. The authorization code may have expired."
            else:
                detail = f"Spotify returned HTTP {status} while trying to {action}."
            raise SpotifyAPIError(action=action, status_code=status, detail=detail) from exc
