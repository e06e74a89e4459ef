"""Severity tier definitions and the hot-replaceable tier set."""
from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Dict, Iterable, List, Tuple
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tier:
    level: float          # percent, e.g. 3.0 for a 3% move
    window: int           # minutes allowed for the return
    is_forced_pin: bool = False

    @property
    def rate(self) -> float:
        return self.level / 100.0

    @property
    def level_int(self) -> int:
        return int(round(self.level))

    def to_dict(self) -> Dict:
        return {"level": self.level, "window": self.window, "isForcedPin": self.is_forced_pin}


def parse_tiers(raw: Iterable[Dict]) -> List[Tier]:
    """
    Build an ascending tier list from JSON-style dicts.

    Accepts both ``isForcedPin`` and ``is_forced_pin`` keys.

    Raises:
        ValueError: If an entry is missing a field or has a non-positive window
    """
    tiers = []
    for i, item in enumerate(raw):
        try:
            level = float(item["level"])
            window = int(item["window"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"tier #{i} is invalid: {item!r}") from exc
        if window <= 0:
            raise ValueError(f"tier #{i} window must be positive, got {window}")
        pinned = bool(item.get("isForcedPin", item.get("is_forced_pin", False)))
        tiers.append(Tier(level=level, window=window, is_forced_pin=pinned))
    return sorted(tiers, key=lambda t: t.level)


class TierConfig:
    """Lock-guarded tier set; replacement only affects later evaluations."""

    def __init__(self, tiers: Iterable[Tier] = ()):
        self._lock = Lock()
        self._tiers: Tuple[Tier, ...] = tuple(sorted(tiers, key=lambda t: t.level))

    @classmethod
    def from_dicts(cls, raw: Iterable[Dict]) -> "TierConfig":
        return cls(parse_tiers(raw))

    def current(self) -> Tuple[Tier, ...]:
        with self._lock:
            return self._tiers

    def replace(self, tiers: Iterable[Tier]) -> None:
        ordered = tuple(sorted(tiers, key=lambda t: t.level))
        with self._lock:
            self._tiers = ordered
        logger.info("Config successfully updated, %d levels updated", len(ordered))
