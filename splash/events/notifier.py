"""Status events for display and the sinks that receive them."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Iterable, List, Optional
import logging
import time

logger = logging.getLogger(__name__)


class Status(Enum):
    ACTIVE = "ACTIVE"
    RETURNED = "RETURNED"
    TIMEOUT = "TIMEOUT"


@dataclass(frozen=True)
class SplashEvent:
    symbol: str
    status: Status
    direction: str = ""
    level: int = 0
    window: int = 0
    probability: Optional[float] = None
    ref_last: float = 0.0
    ref_fair: float = 0.0
    last_price: float = 0.0
    fair_price: float = 0.0
    basis_gap: float = 0.0
    speed_seconds: float = 0.0
    volume: int = 0
    return_time: Optional[float] = None
    max_deviation: Optional[float] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "exchange": "MEXC",
            "status": self.status.value,
            "direction": self.direction,
            "level": self.level,
            "activeWindow": self.window,
            "prob": self.probability,
            "refLast": self.ref_last,
            "refFair": self.ref_fair,
            "lastPrice": self.last_price,
            "fairPrice": self.fair_price,
            "gap": round(self.basis_gap, 2),
            "speed": round(self.speed_seconds, 1),
            "volume": self.volume,
            "returnTime": self.return_time,
            "maxDeviation": self.max_deviation,
            "timestamp": self.timestamp,
        }


class EventBuffer:
    """Bounded append-only buffer of emitted SplashEvents."""

    def __init__(self, maxlen: int = 2000):
        self._buffer: deque[SplashEvent] = deque(maxlen=maxlen)
        self._maxlen = maxlen
        self._lock = Lock()

    def emit(self, event: SplashEvent) -> None:
        with self._lock:
            self._buffer.append(event)

    def latest(self) -> Optional[SplashEvent]:
        with self._lock:
            return self._buffer[-1] if self._buffer else None

    def history(self, n: Optional[int] = None) -> List[SplashEvent]:
        """Return a copy of the last n events (oldest→newest)."""
        with self._lock:
            if not self._buffer:
                return []
            if n is None:
                return list(self._buffer)
            if n <= 0:
                return []
            return list(self._buffer)[-n:]

    def size(self) -> int:
        with self._lock:
            return len(self._buffer)

    @property
    def maxlen(self) -> int:
        return self._maxlen


class LoggingNotifier:
    """Writes every event to the log."""

    def emit(self, event: SplashEvent) -> None:
        if event.status is Status.ACTIVE:
            logger.info(
                "SPLASH %s %s level=%d%% window=%dm prob=%s gap=%.2f%% speed=%.1fs",
                event.symbol,
                event.direction,
                event.level,
                event.window,
                event.probability,
                event.basis_gap,
                event.speed_seconds,
            )
        elif event.status is Status.RETURNED:
            logger.info(
                "PRICE RETURNED: %s | LEVEL: %d%% | %.2fs",
                event.symbol,
                event.level,
                event.return_time or 0.0,
            )
        else:
            logger.info(
                "TIMEOUT: %s exceeded window of %d min",
                event.symbol,
                event.window,
            )


class FanoutNotifier:
    """Forwards each event to several sinks; one failing sink does not stop the rest."""

    def __init__(self, sinks: Iterable):
        self._sinks = list(sinks)

    def emit(self, event: SplashEvent) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event)
            except Exception as exc:
                logger.error("Notifier %s failed: %s", type(sink).__name__, exc)
