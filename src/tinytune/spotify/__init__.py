"""Spotify Web API client for the currently-playing endpoint."""

from tinytune.spotify.client import SpotifyClient
from tinytune.spotify.exceptions import (
    SpotifyAuthError,
    SpotifyClientError,
    SpotifyRateLimitError,
    SpotifyRequestError,
    SpotifyServerError,
    SpotifyUnavailableError,
)

__all__ = [
    "SpotifyAuthError",
    "SpotifyClient",
    "SpotifyClientError",
    "SpotifyRateLimitError",
    "SpotifyRequestError",
    "SpotifyServerError",
    "SpotifyUnavailableError",
]
