"""Per-episode return tracking on background threads."""
from __future__ import annotations

from threading import Event, Lock, Thread
from typing import Callable, Dict, List, Optional, Tuple
import logging
import time

from splash.config import (
    BASE_TOLERANCE,
    RETURN_POLL_INTERVAL_MS,
    RETURN_WARMUP_TICKS,
    TOLERANCE_SCALE,
)
from splash.errors import PersistenceError, RecordNotFound
from splash.events.evaluator import max_change
from splash.events.notifier import SplashEvent, Status
from splash.state.store import StateStore
from splash.state.ticker_state import Snapshot, TickerState

logger = logging.getLogger(__name__)

TrackerKey = Tuple[str, int]

# absorbs float noise so a deviation exactly at the tolerance counts as returned
TOLERANCE_EPSILON = 1e-12


def dynamic_tolerance(
    level: float,
    base: float = BASE_TOLERANCE,
    scale: float = TOLERANCE_SCALE,
) -> float:
    """Allowed residual deviation for a return; wider for deeper splashes."""
    return base + level * scale


class ReturnTracker:
    """
    Watches one open episode until price returns or its window runs out.

    The tracker is bound to ``(symbol, record_id)``. It stops on its own
    once the store no longer shows that record open, so a superseded
    tracker can never resolve a newer episode.
    """

    def __init__(
        self,
        symbol: str,
        record_id: int,
        ref: Snapshot,
        store: StateStore,
        repository,
        notifier,
        poll_seconds: float = RETURN_POLL_INTERVAL_MS / 1000.0,
        warmup_ticks: int = RETURN_WARMUP_TICKS,
        base_tolerance: float = BASE_TOLERANCE,
        tolerance_scale: float = TOLERANCE_SCALE,
        clock: Callable[[], float] = time.time,
        on_exit: Optional[Callable[["ReturnTracker"], None]] = None,
    ):
        self.symbol = symbol
        self.record_id = record_id
        self.ref = ref
        self.store = store
        self.repository = repository
        self.notifier = notifier
        self.poll_seconds = poll_seconds
        self.warmup_ticks = warmup_ticks
        self.base_tolerance = base_tolerance
        self.tolerance_scale = tolerance_scale

        self.max_deviation = 0.0
        self.outcome: Optional[Status] = None

        self._clock = clock
        self._on_exit = on_exit
        self._ticks = 0
        self._stop = Event()
        self._thread: Optional[Thread] = None

    @property
    def key(self) -> TrackerKey:
        return (self.symbol, self.record_id)

    def start(self) -> None:
        self._thread = Thread(
            target=self.run,
            name=f"return-{self.symbol}-{self.record_id}",
            daemon=True,
        )
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> None:
        """Poll until the episode is resolved, superseded or cancelled."""
        try:
            while not self._stop.wait(self.poll_seconds):
                try:
                    if not self.step(self._clock()):
                        break
                except Exception as exc:
                    logger.error(
                        "Return tracker tick failed for %s #%d: %s",
                        self.symbol,
                        self.record_id,
                        exc,
                        exc_info=True,
                    )
        finally:
            if self._on_exit is not None:
                self._on_exit(self)

    def step(self, now: float) -> bool:
        """
        Run one tracking tick.

        Returns:
            True if the tracker should keep polling
        """
        if self._ticks < self.warmup_ticks:
            self._ticks += 1
            return True

        state = self.store.get(self.symbol)
        if state is None or not state.is_open(self.record_id):
            logger.debug("Stale tracker for %s #%d exiting", self.symbol, self.record_id)
            return False

        current = state.latest_snapshot
        deviation = None
        if current.is_priced():
            deviation = max_change(self.ref, current)
            self.max_deviation = max(self.max_deviation, deviation)

        elapsed = now - state.trigger_time
        if elapsed > state.current_window_seconds:
            self._finalize(Status.TIMEOUT, elapsed)
            return False

        if deviation is None:
            return True

        tolerance = dynamic_tolerance(
            state.last_triggered_level, self.base_tolerance, self.tolerance_scale
        )
        if deviation <= tolerance + TOLERANCE_EPSILON:
            self._finalize(Status.RETURNED, elapsed)
            return False

        return True

    def _finalize(self, status: Status, elapsed: float) -> bool:
        closed = self.store.close(self.symbol, self.record_id)
        if closed is None:
            logger.debug("Episode %s #%d already resolved", self.symbol, self.record_id)
            return False

        self.outcome = status
        returned = status is Status.RETURNED
        self._persist_resolution(returned, elapsed)
        self.notifier.emit(self._build_event(status, closed, elapsed))
        return True

    def _persist_resolution(self, returned: bool, elapsed: float) -> None:
        try:
            self.repository.get_record_by_id(self.record_id)
        except RecordNotFound as exc:
            logger.warning("Error saving return back info for record ID %d: %s", self.record_id, exc)
            return
        except PersistenceError as exc:
            logger.error("Lookup failed for record ID %d: %s", self.record_id, exc)
            return

        try:
            self.repository.update_record_resolution(
                self.record_id, returned, elapsed, self.max_deviation
            )
        except PersistenceError as exc:
            logger.error("Error updating splash record ID %d: %s", self.record_id, exc)

    def _build_event(self, status: Status, closed: TickerState, elapsed: float) -> SplashEvent:
        current = closed.latest_snapshot
        return SplashEvent(
            symbol=self.symbol,
            status=status,
            direction=closed.direction.value,
            level=int(round(closed.last_triggered_level * 100)),
            window=closed.current_window,
            ref_last=self.ref.last_price,
            ref_fair=self.ref.fair_price,
            last_price=current.last_price,
            fair_price=current.fair_price,
            volume=current.volume_24h,
            return_time=elapsed,
            max_deviation=self.max_deviation,
        )


class TrackerSupervisor:
    """Owns the live ReturnTrackers, keyed by (symbol, record_id)."""

    def __init__(
        self,
        store: StateStore,
        repository,
        notifier,
        poll_seconds: float = RETURN_POLL_INTERVAL_MS / 1000.0,
        warmup_ticks: int = RETURN_WARMUP_TICKS,
        base_tolerance: float = BASE_TOLERANCE,
        tolerance_scale: float = TOLERANCE_SCALE,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.repository = repository
        self.notifier = notifier
        self.poll_seconds = poll_seconds
        self.warmup_ticks = warmup_ticks
        self.base_tolerance = base_tolerance
        self.tolerance_scale = tolerance_scale
        self._clock = clock
        self._trackers: Dict[TrackerKey, ReturnTracker] = {}
        self._lock = Lock()

    def spawn(self, symbol: str, record_id: int, ref: Snapshot) -> ReturnTracker:
        """Start tracking a new episode, cancelling any older tracker for symbol."""
        superseded = self.cancel(symbol)
        if superseded:
            logger.info("Cancelled %d superseded tracker(s) for %s", superseded, symbol)

        tracker = ReturnTracker(
            symbol,
            record_id,
            ref,
            self.store,
            self.repository,
            self.notifier,
            poll_seconds=self.poll_seconds,
            warmup_ticks=self.warmup_ticks,
            base_tolerance=self.base_tolerance,
            tolerance_scale=self.tolerance_scale,
            clock=self._clock,
            on_exit=self._discard,
        )
        with self._lock:
            self._trackers[tracker.key] = tracker
        tracker.start()
        return tracker

    def cancel(self, symbol: str) -> int:
        with self._lock:
            keys = [k for k in self._trackers if k[0] == symbol]
            trackers = [self._trackers.pop(k) for k in keys]
        for tracker in trackers:
            tracker.cancel()
        return len(trackers)

    def active(self) -> List[TrackerKey]:
        with self._lock:
            return sorted(self._trackers)

    def shutdown(self, timeout: float = 2.0) -> None:
        with self._lock:
            trackers = list(self._trackers.values())
            self._trackers.clear()
        for tracker in trackers:
            tracker.cancel()
        for tracker in trackers:
            tracker.join(timeout)
        logger.info("Tracker supervisor stopped (%d trackers cancelled)", len(trackers))

    def _discard(self, tracker: ReturnTracker) -> None:
        with self._lock:
            if self._trackers.get(tracker.key) is tracker:
                del self._trackers[tracker.key]
