"""Centralized constants for tinytune."""

import enum
from dataclasses import dataclass

# --- Service identity ---


class ServiceName(enum.StrEnum):
    """Service names used for logging and identification."""

    API = "api"
    WIDGET = "widget"


# --- Application metadata ---

APP_TITLE = "Tiny Tune"
APP_DESCRIPTION = "Spotify now-playing widget backend"
APP_VERSION = "0.1.0"


# --- Route configuration ---


@dataclass(frozen=True, slots=True)
class _Route:
    """A route prefix paired with its OpenAPI tag."""

    prefix: str
    tag: str


class Routes:
    """API route prefixes and tags — single source of truth."""

    AUTH = _Route("/auth", "auth")
    NOW_PLAYING = "/now-playing"
    HEALTH = "/healthz"


# --- Spotify ---

SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE = "https://api.spotify.com/v1"
SPOTIFY_ME_URL = f"{SPOTIFY_API_BASE}/me"
CURRENTLY_PLAYING_URL = f"{SPOTIFY_API_BASE}/me/player/currently-playing"

SPOTIFY_SCOPES = "user-read-playback-state user-read-currently-playing user-read-email user-read-private"

# Key under item.external_urls that holds the link shown on the widget
EXTERNAL_LINK_KEY = "spotify"

# Default configuration values
DEFAULT_SPOTIFY_REDIRECT_URI = "http://localhost:8000/auth/callback"
DEFAULT_PUBLIC_BASE_URL = "http://localhost:8000"
DEFAULT_OAUTH_STATE_TTL_SECONDS = 300  # 5 minutes
DEFAULT_TOKEN_EXPIRY_BUFFER_SECONDS = 60  # Refresh tokens this many seconds before expiry
DEFAULT_TOKEN_TTL_SECONDS = 3600  # Used when the token endpoint omits expires_in
DEFAULT_UPSTREAM_TIMEOUT_SECONDS = 10.0
DEFAULT_RETRY_AFTER_SECONDS = 30

# Widget client defaults
DEFAULT_POLL_INTERVAL_SECONDS = 60
DEFAULT_TICK_INTERVAL_SECONDS = 1.0
DEFAULT_WIDGET_REQUEST_TIMEOUT = 15.0
