"""Terminal renderer for widget display states."""

import sys
from datetime import datetime
from typing import TextIO

from tinytune.widget.display import DisplayState, Ended, Idle, Loading, Paused, Playing, format_clock

BAR_WIDTH = 20


def progress_bar(percentage: float, width: int = BAR_WIDTH) -> str:
    filled = round(width * max(0.0, min(100.0, percentage)) / 100)
    return "[" + "#" * filled + "-" * (width - filled) + "]"


def _format_timestamp(value: datetime) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def describe(state: DisplayState) -> str:
    """One-line, human-facing description of a display state."""
    match state:
        case Loading():
            return "Loading…"
        case Idle():
            return "Nothing playing"
        case Playing(snapshot=snapshot):
            return (
                f"▶ {snapshot.label} {progress_bar(state.percentage)} "
                f"{format_clock(state.position_ms)} / {format_clock(snapshot.duration_ms)}"
            )
        case Paused(snapshot=snapshot, last_playing_at=last_playing_at):
            line = (
                f"⏸ {snapshot.label} {progress_bar(state.percentage)} "
                f"{format_clock(state.position_ms)} / {format_clock(snapshot.duration_ms)}"
            )
            if last_playing_at is not None:
                line += f" (last played {_format_timestamp(last_playing_at)})"
            return line
        case Ended(last_snapshot=snapshot):
            return f"■ {snapshot.label} {progress_bar(state.percentage)} ended"
    raise TypeError(f"Unknown display state: {state!r}")


class TerminalRenderer:
    """Writes one line per display state change.

    Consecutive ``Playing`` states of the same track are coalesced to one
    line per whole second of position so a fast ticker does not flood the
    stream.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._last_line: str | None = None

    def __call__(self, state: DisplayState) -> None:
        self.render(state)

    def render(self, state: DisplayState) -> None:
        line = describe(state)
        if line == self._last_line:
            return
        self._last_line = line
        self._stream.write(line + "\n")
        self._stream.flush()
