"""Track snapshot value objects shared by the server and the widget client."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class TrackSnapshot(BaseModel):
    """One authoritative sample of playback state for an active track.

    ``progress_ms`` is clamped into ``[0, duration_ms]`` on construction;
    upstream values outside that range are never trusted.
    """

    model_config = ConfigDict(frozen=True)

    track_id: str | None = None
    title: str
    artist: str | None = None
    artwork_url: str | None = None
    external_link: str | None = None
    duration_ms: int
    progress_ms: int
    is_playing: bool
    fetched_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _clamp_progress(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        duration = max(0, int(data.get("duration_ms") or 0))
        progress = min(max(0, int(data.get("progress_ms") or 0)), duration)
        return {**data, "duration_ms": duration, "progress_ms": progress}

    @property
    def label(self) -> str:
        """Human-facing "Artist – Title" label."""
        if self.artist:
            return f"{self.artist} – {self.title}"
        return self.title


class NothingPlaying(BaseModel):
    """Valid session, no active track. Not an error."""

    model_config = ConfigDict(frozen=True)

    fetched_at: datetime


PlaybackResult = TrackSnapshot | NothingPlaying
