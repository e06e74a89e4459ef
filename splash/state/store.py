"""Lock-guarded symbol -> TickerState map shared by the poll loop and trackers."""
from dataclasses import replace
from threading import Lock
from typing import Dict, List, Optional
import logging

from .ticker_state import Direction, Snapshot, TickerState
from .window import roll_window

logger = logging.getLogger(__name__)


class StateStore:
    """
    Single source of truth for per-symbol trigger state.

    Every method is one atomic read-then-conditionally-update step under the
    store lock. States are immutable; callers get values they can read
    freely outside the lock.
    """

    def __init__(self, window_duration: float):
        self._states: Dict[str, TickerState] = {}
        self._window_duration = float(window_duration)
        self._lock = Lock()

    def observe(self, snapshot: Snapshot, now: float) -> TickerState:
        """Record a feed snapshot, rolling the reference window if due."""
        with self._lock:
            state = roll_window(
                self._states.get(snapshot.symbol), snapshot, now, self._window_duration
            )
            self._states[snapshot.symbol] = state
            return state

    def get(self, symbol: str) -> Optional[TickerState]:
        with self._lock:
            return self._states.get(symbol)

    def activate(
        self,
        symbol: str,
        record_id: int,
        level: float,
        direction: Direction,
        window: int,
        trigger_time: float,
    ) -> bool:
        """
        Open an episode for symbol.

        Returns:
            False if the symbol is unknown or already has an open episode
        """
        with self._lock:
            state = self._states.get(symbol)
            if state is None or state.triggered:
                return False
            self._states[symbol] = replace(
                state,
                triggered=True,
                trigger_time=trigger_time,
                direction=direction,
                record_id=record_id,
                last_triggered_level=level,
                current_window=window,
            )
            return True

    def progress(self, symbol: str, record_id: int, level: float, window: int) -> bool:
        """
        Raise the level of the open episode bound to record_id.

        Returns:
            False if the episode is gone or level does not exceed the current one
        """
        with self._lock:
            state = self._states.get(symbol)
            if state is None or not state.is_open(record_id):
                return False
            if level <= state.last_triggered_level:
                logger.debug(
                    "Ignoring non-increasing level for %s: %.4f <= %.4f",
                    symbol,
                    level,
                    state.last_triggered_level,
                )
                return False
            self._states[symbol] = replace(
                state, last_triggered_level=level, current_window=window
            )
            return True

    def close(self, symbol: str, record_id: int) -> Optional[TickerState]:
        """
        Close the episode bound to record_id.

        Only one caller can win for a given record; the others get None.

        Returns:
            The state as it was just before closing, or None
        """
        with self._lock:
            state = self._states.get(symbol)
            if state is None or not state.is_open(record_id):
                return None
            self._states[symbol] = replace(
                state,
                triggered=False,
                trigger_time=0.0,
                direction=Direction.NONE,
                last_triggered_level=0.0,
                record_id=0,
                current_window=0,
            )
            return state

    def open_episodes(self) -> List[TickerState]:
        with self._lock:
            return [s for s in self._states.values() if s.triggered]

    def symbols(self) -> List[str]:
        with self._lock:
            return sorted(self._states)

    def size(self) -> int:
        with self._lock:
            return len(self._states)
