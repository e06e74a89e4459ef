"""Deterministic tier evaluation over a symbol's reference window."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from splash.state.ticker_state import Direction, Snapshot, TickerState
from splash.state.tiers import Tier


class DecisionKind(Enum):
    NONE = "none"
    NEW_TRIGGER = "new_trigger"
    PROGRESSION = "progression"


@dataclass(frozen=True)
class Decision:
    kind: DecisionKind
    tier: Optional[Tier] = None
    direction: Direction = Direction.NONE
    change: float = 0.0


NO_DECISION = Decision(DecisionKind.NONE)


def max_change(ref: Snapshot, current: Snapshot) -> float:
    """Largest relative move of last or fair price away from the reference."""
    last_change = abs(current.last_price - ref.last_price) / ref.last_price
    fair_change = abs(current.fair_price - ref.fair_price) / ref.fair_price
    return max(last_change, fair_change)


def select_tier(change: float, last_level: float, tiers: Iterable[Tier]) -> Optional[Tier]:
    """
    Pick the deepest tier crossed by ``change`` above ``last_level``.

    Several tiers may be skipped in one step; non-positive levels are ignored.
    """
    selected = None
    for tier in tiers:
        if tier.level <= 0:
            continue
        if tier.rate > last_level and change >= tier.rate:
            if selected is None or tier.level > selected.level:
                selected = tier
    return selected


def splash_direction(ref: Snapshot, current: Snapshot) -> Direction:
    return Direction.DOWN if current.last_price < ref.last_price else Direction.UP


def evaluate(tiers: Iterable[Tier], state: TickerState, snapshot: Snapshot) -> Decision:
    """
    Decide whether a snapshot opens a new episode or progresses the open one.

    An open episode only progresses in its locked direction and only to a
    strictly higher integer level.
    """
    ref = state.window_start_ref
    if not ref.is_priced() or not snapshot.is_priced():
        return NO_DECISION

    change = max_change(ref, snapshot)
    tier = select_tier(change, state.last_triggered_level, tiers)
    if tier is None:
        return NO_DECISION

    direction = splash_direction(ref, snapshot)

    if not state.triggered:
        return Decision(DecisionKind.NEW_TRIGGER, tier, direction, change)

    if direction != state.direction:
        return NO_DECISION

    if tier.level_int > int(round(state.last_triggered_level * 100)):
        return Decision(DecisionKind.PROGRESSION, tier, state.direction, change)

    return NO_DECISION
