"""Pydantic schemas for Spotify auth responses and auth endpoint responses."""

from pydantic import BaseModel


class SpotifyTokenResponse(BaseModel):
    """Response from Spotify's /api/token endpoint."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    scope: str | None = None


class SpotifyProfile(BaseModel):
    """User profile from Spotify's /v1/me endpoint."""

    id: str
    display_name: str | None = None
    email: str | None = None


class AuthCallbackResponse(BaseModel):
    """Response returned from the OAuth callback endpoint."""

    message: str
    account_id: str
    display_name: str | None = None
    widget_url: str


class LogoutResponse(BaseModel):
    """Response returned from the logout endpoint."""

    message: str
    account_id: str
