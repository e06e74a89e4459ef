"""Rolling reference window for per-symbol splash detection."""
from dataclasses import replace
from typing import Optional

from .ticker_state import Snapshot, TickerState


def roll_window(
    state: Optional[TickerState],
    snapshot: Snapshot,
    now: float,
    window_duration: float,
) -> TickerState:
    """
    Apply one feed snapshot to a symbol's state.

    A new symbol starts with the snapshot as its reference. An idle symbol
    whose reference is older than ``window_duration`` seconds gets the
    snapshot as a fresh reference and its level cleared. The reference is
    never moved while an episode is open.

    Args:
        state: Current state, or None if the symbol was never seen
        snapshot: Latest feed snapshot for the symbol
        now: Current time (epoch seconds)
        window_duration: Reference lifetime in seconds

    Returns:
        The new TickerState
    """
    if state is None:
        return TickerState(
            window_start_ref=snapshot,
            latest_snapshot=snapshot,
            last_window_update=now,
        )

    if not state.triggered and now - state.last_window_update >= window_duration:
        return replace(
            state,
            window_start_ref=snapshot,
            latest_snapshot=snapshot,
            last_window_update=now,
            last_triggered_level=0.0,
        )

    return replace(state, latest_snapshot=snapshot)
