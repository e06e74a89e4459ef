from dataclasses import replace

import pytest

from splash.events.evaluator import DecisionKind, evaluate, max_change, select_tier
from splash.state.ticker_state import Direction, Snapshot
from splash.state.tiers import Tier, TierConfig, parse_tiers
from splash.state.window import roll_window

TIERS = [Tier(level=3, window=10), Tier(level=5, window=15)]


def snap(last, fair=None, symbol="AAA_USDT", volume=1_000_000):
    return Snapshot(symbol, last, last if fair is None else fair, volume)


def test_max_change_uses_larger_of_last_and_fair():
    ref = snap(100.0, 200.0)
    assert max_change(ref, snap(103.0, 200.0)) == pytest.approx(0.03)
    assert max_change(ref, snap(100.0, 190.0)) == pytest.approx(0.05)


def test_select_tier_skips_to_deepest_crossed():
    tier = select_tier(0.05, 0.0, TIERS)
    assert tier is not None
    assert tier.level == 5
    assert tier.window == 15


def test_select_tier_requires_level_above_last():
    assert select_tier(0.04, 0.03, TIERS) is None
    assert select_tier(0.05, 0.03, TIERS).level == 5
    assert select_tier(0.08, 0.05, TIERS) is None


def test_select_tier_below_threshold():
    assert select_tier(0.0299, 0.0, TIERS) is None


def test_select_tier_ignores_non_positive_levels():
    tiers = [Tier(level=0, window=5), Tier(level=-2, window=5), Tier(level=3, window=10)]
    assert select_tier(0.5, 0.0, tiers).level == 3
    assert select_tier(0.01, 0.0, tiers) is None


def test_select_tier_is_deterministic():
    results = {select_tier(0.051, 0.0, TIERS) for _ in range(20)}
    assert len(results) == 1


def test_evaluate_new_trigger_up():
    state = roll_window(None, snap(100.0), 0.0, 300.0)
    decision = evaluate(TIERS, state, snap(103.0))
    assert decision.kind is DecisionKind.NEW_TRIGGER
    assert decision.tier.level == 3
    assert decision.direction is Direction.UP
    assert decision.change == pytest.approx(0.03)


def test_evaluate_new_trigger_down():
    state = roll_window(None, snap(100.0), 0.0, 300.0)
    decision = evaluate(TIERS, state, snap(96.0))
    assert decision.kind is DecisionKind.NEW_TRIGGER
    assert decision.direction is Direction.DOWN


def test_evaluate_unpriced_snapshot_is_ignored():
    state = roll_window(None, snap(100.0), 0.0, 300.0)
    assert evaluate(TIERS, state, snap(0.0, 103.0)).kind is DecisionKind.NONE

    zero_ref = roll_window(None, snap(0.0, 100.0), 0.0, 300.0)
    assert evaluate(TIERS, zero_ref, snap(110.0)).kind is DecisionKind.NONE


def _open(state, level, direction):
    return replace(
        state,
        triggered=True,
        trigger_time=1.0,
        direction=direction,
        record_id=7,
        last_triggered_level=level,
        current_window=10,
    )


def test_evaluate_progression_same_direction():
    state = _open(roll_window(None, snap(100.0), 0.0, 300.0), 0.03, Direction.UP)
    decision = evaluate(TIERS, state, snap(105.5))
    assert decision.kind is DecisionKind.PROGRESSION
    assert decision.tier.level == 5
    assert decision.direction is Direction.UP


def test_evaluate_direction_reversal_is_noop():
    state = _open(roll_window(None, snap(100.0), 0.0, 300.0), 0.03, Direction.UP)
    assert evaluate(TIERS, state, snap(94.0)).kind is DecisionKind.NONE


def test_evaluate_same_level_while_open_is_noop():
    state = _open(roll_window(None, snap(100.0), 0.0, 300.0), 0.03, Direction.UP)
    assert evaluate(TIERS, state, snap(103.5)).kind is DecisionKind.NONE


def test_parse_tiers_sorts_and_reads_pin_flag():
    tiers = parse_tiers([
        {"level": 5, "window": 15, "isForcedPin": True},
        {"level": 3, "window": 10},
    ])
    assert [t.level for t in tiers] == [3.0, 5.0]
    assert tiers[1].is_forced_pin is True
    assert tiers[0].is_forced_pin is False


@pytest.mark.parametrize("raw", [
    [{"level": 3}],
    [{"window": 10}],
    [{"level": "x", "window": 10}],
    [{"level": 3, "window": 0}],
])
def test_parse_tiers_rejects_invalid(raw):
    with pytest.raises(ValueError):
        parse_tiers(raw)


def test_tier_config_replace_affects_later_reads():
    config = TierConfig(TIERS)
    before = config.current()
    config.replace([Tier(level=10, window=30), Tier(level=2, window=5)])
    assert [t.level for t in before] == [3, 5]
    assert [t.level for t in config.current()] == [2, 10]
