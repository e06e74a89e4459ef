"""Persisted splash record and the win-probability helpers around it."""
from dataclasses import dataclass, field
from typing import Optional, Tuple
import math

PROBABILITY_UNKNOWN = -1.0


@dataclass
class SplashRecord:
    symbol: str
    direction: str
    trigger_level: int
    ref_last_price: float
    ref_fair_price: float
    trigger_last_price: float
    trigger_fair_price: float
    trigger_time: float
    volume_24h: int

    basis_gap: float = 0.0
    trigger_speed_sec: float = 0.0
    time_window: int = 0
    win_probability: float = PROBABILITY_UNKNOWN

    returned: bool = False
    return_time: float = 0.0
    max_deviation: float = 0.0
    resolved_at: Optional[float] = None

    id: int = field(default=0)


def basis_gap(last_price: float, fair_price: float) -> float:
    """Percent divergence between traded and fair price."""
    return abs(last_price - fair_price) / fair_price * 100.0


def win_probability(total: int, wins: int, min_sample: int = 3) -> float:
    """
    Contextual win rate in percent.

    Returns -1 when fewer than ``min_sample`` prior outcomes exist.
    """
    if total < min_sample or total <= 0:
        return PROBABILITY_UNKNOWN
    # round half up (1 of 8 -> 13)
    return float(math.floor(wins / total * 100 + 0.5))


def volume_band(volume: int, low: float = 0.5, high: float = 2.0) -> Tuple[int, int]:
    return int(volume * low), int(volume * high)


def basis_gap_band(gap: float, width: float = 0.5) -> Tuple[float, float]:
    return gap - width, gap + width
