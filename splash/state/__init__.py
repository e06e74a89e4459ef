"""
In-memory SPLASH state tracking (per-symbol trigger state, window, tiers).
"""

from .ticker_state import Direction, Snapshot, TickerState
from .tiers import Tier, TierConfig, parse_tiers
from .window import roll_window
from .store import StateStore

__all__ = [
    "Direction",
    "Snapshot",
    "TickerState",

    # Tiers
    "Tier",
    "TierConfig",
    "parse_tiers",

    # Store
    "roll_window",
    "StateStore",
]
