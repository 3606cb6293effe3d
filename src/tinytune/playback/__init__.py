"""Now-playing snapshots: upstream fetch, normalization and the HTTP endpoint."""

from tinytune.playback.exceptions import MalformedUpstreamResponse
from tinytune.playback.models import NothingPlaying, PlaybackResult, TrackSnapshot

__all__ = ["MalformedUpstreamResponse", "NothingPlaying", "PlaybackResult", "TrackSnapshot"]
