"""Progress reconciler — smooth local progress between coarse authoritative snapshots."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime

from tinytune.constants import DEFAULT_TICK_INTERVAL_SECONDS
from tinytune.db.base import utc_now
from tinytune.playback.models import NothingPlaying, PlaybackResult, TrackSnapshot
from tinytune.widget.display import DisplayState, Ended, Idle, Loading, Paused, Playing

logger = logging.getLogger(__name__)

FetchFn = Callable[[], Awaitable[PlaybackResult]]
StateListener = Callable[[DisplayState], None]


class ProgressReconciler:
    """Turns a sequence of playback snapshots into a continuously advancing display state.

    While a track plays, a ticker task advances a simulated position once per
    *tick_interval*. Every new snapshot replaces the simulated position
    outright, so drift never accumulates across polling cycles. When the
    simulated position reaches the end of the track the reconciler moves to
    :class:`Ended` and immediately fetches again instead of waiting for the
    next coarse poll.

    Exactly one ticker task exists at a time; it is cancelled before a new
    one starts and before any fetch is issued. Fetches are numbered and only
    the most recently issued one may change state.

    Must be driven from a running event loop.
    """

    def __init__(
        self,
        fetch: FetchFn,
        *,
        on_change: StateListener | None = None,
        tick_interval: float = DEFAULT_TICK_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._fetch = fetch
        self._on_change = on_change
        self._tick_interval = tick_interval
        self._clock = clock
        self._wall_clock = wall_clock

        self._state: DisplayState = Loading()
        self._snapshot: TrackSnapshot | None = None
        self._snapshot_clock = 0.0
        self._last_playing_at: datetime | None = None

        self._ticker: asyncio.Task[None] | None = None
        self._fetch_tasks: set[asyncio.Task[None]] = set()
        self._issued = 0

    @property
    def state(self) -> DisplayState:
        return self._state

    @property
    def cached_snapshot(self) -> TrackSnapshot | None:
        """Last track snapshot seen, kept so the display never goes blank."""
        return self._snapshot

    @property
    def ticking(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def apply(self, result: PlaybackResult) -> DisplayState:
        """Reconcile with a new authoritative result and return the new state."""
        self._cancel_ticker()

        if isinstance(result, NothingPlaying):
            self._freeze()
            return self._state

        previous = self._snapshot
        if previous is not None and not isinstance(self._state, Ended) and previous.track_id != result.track_id:
            ended_at = self._wall_clock()
            if isinstance(self._state, Playing):
                self._last_playing_at = ended_at
            self._set_state(Ended(previous, ended_at))

        self._snapshot = result
        self._snapshot_clock = self._clock()

        if result.is_playing:
            self._last_playing_at = result.fetched_at
            self._set_state(Playing(result, 0))
            self._start_ticker()
        else:
            self._set_state(Paused(result, self._last_playing_at))
        return self._state

    def tick(self) -> DisplayState:
        """Advance the simulated position; on reaching the end, move to Ended and re-fetch."""
        state = self._state
        if not isinstance(state, Playing):
            return state

        snapshot = state.snapshot
        elapsed_ms = round((self._clock() - self._snapshot_clock) * 1000)
        if snapshot.progress_ms + elapsed_ms >= snapshot.duration_ms:
            ended_at = self._wall_clock()
            self._last_playing_at = ended_at
            self._set_state(Ended(snapshot, ended_at))
            logger.debug("Track %s reached its end, fetching early", snapshot.track_id)
            self.request_refetch()
        else:
            self._set_state(Playing(snapshot, elapsed_ms))
        return self._state

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def request_refetch(self) -> asyncio.Task[None]:
        """Schedule :meth:`refetch` without waiting for it."""
        task = asyncio.create_task(self.refetch(), name="now-playing-refetch")
        self._fetch_tasks.add(task)
        task.add_done_callback(self._fetch_tasks.discard)
        return task

    async def refetch(self) -> None:
        """Fetch a fresh snapshot and reconcile with it.

        Never raises on fetch failures: the display degrades instead.
        """
        self._cancel_ticker()
        self._issued += 1
        seq = self._issued

        try:
            result = await self._fetch()
        except Exception:
            if seq != self._issued:
                return
            logger.warning("Now-playing fetch failed; keeping last known display", exc_info=True)
            self._degrade()
            return

        if seq != self._issued:
            logger.debug("Discarding stale now-playing response #%d (latest is #%d)", seq, self._issued)
            return
        self.apply(result)

    async def aclose(self) -> None:
        """Cancel the ticker and any pending fetches."""
        self._cancel_ticker()
        pending = list(self._fetch_tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _degrade(self) -> None:
        if isinstance(self._state, Playing):
            # Keep simulating from the last snapshot; the next poll reconciles.
            self._start_ticker()
        else:
            self._freeze()

    def _freeze(self) -> None:
        """Stop at the position currently on screen, or go Idle when no track was ever seen."""
        state = self._state
        if isinstance(state, Paused):
            return
        if isinstance(state, Playing):
            frozen = state.snapshot.model_copy(update={"progress_ms": state.position_ms})
        elif isinstance(state, Ended):
            frozen = state.last_snapshot.model_copy(update={"progress_ms": state.last_snapshot.duration_ms})
        elif self._snapshot is not None:
            frozen = self._snapshot
        else:
            self._set_state(Idle())
            return
        self._set_state(Paused(frozen, self._last_playing_at))

    def _start_ticker(self) -> None:
        self._cancel_ticker()
        self._ticker = asyncio.create_task(self._run_ticker(), name="progress-ticker")

    def _cancel_ticker(self) -> None:
        if self._ticker is not None and not self._ticker.done() and self._ticker is not asyncio.current_task():
            self._ticker.cancel()
        self._ticker = None

    async def _run_ticker(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            if not isinstance(self.tick(), Playing):
                return

    def _set_state(self, state: DisplayState) -> None:
        if state == self._state:
            return
        self._state = state
        if self._on_change is not None:
            try:
                self._on_change(state)
            except Exception:
                logger.exception("Display listener failed")
