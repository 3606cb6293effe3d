"""Response schemas for GET /now-playing.

The body mirrors the fields of Spotify's currently-playing object that the
widget reads (``item.name``, ``item.artists[0].name``,
``item.album.images[0].url``, ``item.external_urls``, ``item.duration_ms``,
``progress_ms``, ``is_playing``), but carries already-normalized values.
"""

from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field

from tinytune.constants import EXTERNAL_LINK_KEY
from tinytune.playback.models import NothingPlaying, PlaybackResult, TrackSnapshot


class ArtistOut(BaseModel):
    name: str


class ImageOut(BaseModel):
    url: str


class AlbumOut(BaseModel):
    images: list[ImageOut] = Field(default_factory=list)


class NowPlayingItem(BaseModel):
    """Track metadata in the currently-playing shape."""

    id: str | None = None
    name: str
    duration_ms: int
    artists: list[ArtistOut] = Field(default_factory=list)
    album: AlbumOut = Field(default_factory=AlbumOut)
    external_urls: dict[str, str] = Field(default_factory=dict)


class NowPlayingResponse(BaseModel):
    """Body of GET /now-playing; ``item`` is null when nothing is playing."""

    is_playing: bool = False
    progress_ms: int = 0
    fetched_at: datetime
    item: NowPlayingItem | None = None

    @classmethod
    def from_result(cls, result: PlaybackResult) -> Self:
        if not isinstance(result, TrackSnapshot):
            return cls(fetched_at=result.fetched_at)
        return cls(
            is_playing=result.is_playing,
            progress_ms=result.progress_ms,
            fetched_at=result.fetched_at,
            item=NowPlayingItem(
                id=result.track_id,
                name=result.title,
                duration_ms=result.duration_ms,
                artists=[ArtistOut(name=result.artist)] if result.artist else [],
                album=AlbumOut(images=[ImageOut(url=result.artwork_url)] if result.artwork_url else []),
                external_urls={EXTERNAL_LINK_KEY: result.external_link} if result.external_link else {},
            ),
        )

    def to_result(self, fetched_at: datetime) -> PlaybackResult:
        """Rebuild a snapshot stamped with the receiver's own clock."""
        item = self.item
        if item is None:
            return NothingPlaying(fetched_at=fetched_at)
        return TrackSnapshot(
            track_id=item.id,
            title=item.name,
            artist=item.artists[0].name if item.artists else None,
            artwork_url=item.album.images[0].url if item.album.images else None,
            external_link=item.external_urls.get(EXTERNAL_LINK_KEY),
            duration_ms=item.duration_ms,
            progress_ms=self.progress_ms,
            is_playing=self.is_playing,
            fetched_at=fetched_at,
        )
