"""Application settings loaded from environment variables."""

import functools

from pydantic_settings import BaseSettings

from tinytune.constants import (
    DEFAULT_OAUTH_STATE_TTL_SECONDS,
    DEFAULT_PUBLIC_BASE_URL,
    DEFAULT_RETRY_AFTER_SECONDS,
    DEFAULT_SPOTIFY_REDIRECT_URI,
    DEFAULT_TOKEN_EXPIRY_BUFFER_SECONDS,
    DEFAULT_TOKEN_TTL_SECONDS,
    DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
)


class AppSettings(BaseSettings):
    """API service configuration."""

    SPOTIFY_CLIENT_ID: str = ""
    SPOTIFY_CLIENT_SECRET: str = ""
    SPOTIFY_REDIRECT_URI: str = DEFAULT_SPOTIFY_REDIRECT_URI
    TOKEN_ENCRYPTION_KEY: str = ""
    OAUTH_STATE_TTL_SECONDS: int = DEFAULT_OAUTH_STATE_TTL_SECONDS

    # Token lifecycle
    TOKEN_EXPIRY_BUFFER_SECONDS: int = DEFAULT_TOKEN_EXPIRY_BUFFER_SECONDS
    DEFAULT_TOKEN_TTL_SECONDS: int = DEFAULT_TOKEN_TTL_SECONDS

    # Upstream calls (token endpoint and Web API)
    UPSTREAM_TIMEOUT_SECONDS: float = DEFAULT_UPSTREAM_TIMEOUT_SECONDS
    RETRY_AFTER_SECONDS: int = DEFAULT_RETRY_AFTER_SECONDS

    # Used to build the widget link returned after login
    PUBLIC_BASE_URL: str = DEFAULT_PUBLIC_BASE_URL

    # CORS
    CORS_ALLOWED_ORIGINS: str = "*"  # comma-separated origins

    model_config = {"env_prefix": ""}


@functools.lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return cached application settings singleton."""
    return AppSettings()
