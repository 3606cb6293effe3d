"""Playback exceptions."""

from tinytune.auth.exceptions import TemporarilyUnavailable


class MalformedUpstreamResponse(TemporarilyUnavailable):
    """A now-playing payload lacked expected fields; handled like any transient failure."""
