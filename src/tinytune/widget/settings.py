"""Widget client configuration loaded from environment variables."""

from pydantic_settings import BaseSettings

from tinytune.constants import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_PUBLIC_BASE_URL,
    DEFAULT_TICK_INTERVAL_SECONDS,
    DEFAULT_WIDGET_REQUEST_TIMEOUT,
)


class WidgetSettings(BaseSettings):
    """Widget client configuration."""

    TINYTUNE_BASE_URL: str = DEFAULT_PUBLIC_BASE_URL
    TINYTUNE_USER: str = ""  # Spotify account id whose playback is shown

    POLL_INTERVAL_SECONDS: int = DEFAULT_POLL_INTERVAL_SECONDS
    TICK_INTERVAL_SECONDS: float = DEFAULT_TICK_INTERVAL_SECONDS
    REQUEST_TIMEOUT_SECONDS: float = DEFAULT_WIDGET_REQUEST_TIMEOUT

    model_config = {"env_prefix": ""}
