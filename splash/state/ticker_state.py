"""Immutable feed snapshot and per-symbol trigger state."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Direction(Enum):
    UP = "UP"
    DOWN = "DOWN"
    NONE = "NONE"


@dataclass(frozen=True)
class Snapshot:
    symbol: str
    last_price: float
    fair_price: float
    volume_24h: int

    def is_priced(self) -> bool:
        """True if both prices are usable as a division base."""
        return self.last_price > 0 and self.fair_price > 0


@dataclass(frozen=True)
class TickerState:
    """
    Per-symbol view held by the StateStore.

    ``last_triggered_level`` is a fraction (0.05 for the 5% tier) and
    ``current_window`` is the open episode's return window in minutes.
    """

    window_start_ref: Snapshot
    latest_snapshot: Snapshot
    last_window_update: float

    last_triggered_level: float = 0.0
    triggered: bool = False
    trigger_time: float = 0.0
    direction: Direction = Direction.NONE
    record_id: int = 0
    current_window: int = 0

    @property
    def symbol(self) -> str:
        return self.latest_snapshot.symbol

    @property
    def current_window_seconds(self) -> float:
        return float(self.current_window) * 60.0

    def is_open(self, record_id: Optional[int] = None) -> bool:
        """True while an episode is open (and bound to record_id, if given)."""
        if not self.triggered:
            return False
        return record_id is None or self.record_id == record_id
