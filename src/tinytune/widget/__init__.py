"""Now-playing widget client: polling, progress reconciliation and rendering."""

from tinytune.widget.display import DisplayState, Ended, Idle, Loading, Paused, Playing, displayed_percentage
from tinytune.widget.reconciler import ProgressReconciler

__all__ = [
    "DisplayState",
    "Ended",
    "Idle",
    "Loading",
    "Paused",
    "Playing",
    "ProgressReconciler",
    "displayed_percentage",
]
