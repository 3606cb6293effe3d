"""Pydantic models for the Spotify currently-playing response.

These are pure data models matching Spotify's JSON structure.
No DB or auth dependencies.
"""

from pydantic import BaseModel, Field


class SpotifyImage(BaseModel):
    """Image object returned by Spotify (album art)."""

    url: str
    height: int | None = None
    width: int | None = None


class SpotifyArtistSimplified(BaseModel):
    """Simplified artist object embedded in tracks."""

    id: str | None = None
    name: str


class SpotifyAlbumSimplified(BaseModel):
    """Simplified album object embedded in tracks."""

    id: str | None = None
    name: str | None = None
    images: list[SpotifyImage] = Field(default_factory=list)


class SpotifyTrack(BaseModel):
    """Track object as embedded in the currently-playing response."""

    id: str | None = None
    name: str
    duration_ms: int
    artists: list[SpotifyArtistSimplified] = Field(default_factory=list)
    album: SpotifyAlbumSimplified | None = None
    external_urls: dict[str, str] = Field(default_factory=dict)
    type: str = "track"


class CurrentlyPlayingResponse(BaseModel):
    """Response from GET /me/player/currently-playing.

    ``item`` is ``None`` for ads, unknown content, or private sessions;
    episodes are parsed as ``None`` too since only tracks are displayed.
    """

    is_playing: bool = False
    progress_ms: int | None = None
    timestamp: int | None = None
    currently_playing_type: str | None = None
    item: SpotifyTrack | None = None
