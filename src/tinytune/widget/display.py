"""Display states produced by the progress reconciler."""

from dataclasses import dataclass
from datetime import datetime

from tinytune.playback.models import TrackSnapshot


def progress_percentage(position_ms: int, duration_ms: int) -> float:
    """Percentage of the track played, always within ``[0, 100]``."""
    if duration_ms <= 0:
        return 0.0
    return min(100.0, max(0.0, position_ms / duration_ms * 100))


def format_clock(ms: int) -> str:
    """Format milliseconds as ``m:ss``."""
    total_seconds = max(0, ms) // 1000
    return f"{total_seconds // 60}:{total_seconds % 60:02d}"


@dataclass(frozen=True, slots=True)
class Loading:
    """Nothing known yet; a fetch is in flight."""


@dataclass(frozen=True, slots=True)
class Idle:
    """Nothing playing and no track cached."""


@dataclass(frozen=True, slots=True)
class Playing:
    """Locally simulated playback since the last authoritative snapshot."""

    snapshot: TrackSnapshot
    elapsed_ms: int = 0

    @property
    def position_ms(self) -> int:
        return min(self.snapshot.progress_ms + max(0, self.elapsed_ms), self.snapshot.duration_ms)

    @property
    def percentage(self) -> float:
        return progress_percentage(self.position_ms, self.snapshot.duration_ms)


@dataclass(frozen=True, slots=True)
class Paused:
    """Frozen display of a paused or last-played track.

    ``last_playing_at`` is the wall-clock time the track was last known to
    be playing, or ``None`` if it was never seen playing.
    """

    snapshot: TrackSnapshot
    last_playing_at: datetime | None = None

    @property
    def position_ms(self) -> int:
        return self.snapshot.progress_ms

    @property
    def percentage(self) -> float:
        return progress_percentage(self.position_ms, self.snapshot.duration_ms)


@dataclass(frozen=True, slots=True)
class Ended:
    """The simulated position reached the end of the track (or the track changed)."""

    last_snapshot: TrackSnapshot
    ended_at: datetime

    @property
    def position_ms(self) -> int:
        return self.last_snapshot.duration_ms

    @property
    def percentage(self) -> float:
        return 100.0 if self.last_snapshot.duration_ms > 0 else 0.0


DisplayState = Loading | Idle | Playing | Paused | Ended


def displayed_percentage(state: DisplayState) -> float:
    """Progress bar fill for any display state; 0 when no track is shown."""
    if isinstance(state, (Playing, Paused, Ended)):
        return state.percentage
    return 0.0
