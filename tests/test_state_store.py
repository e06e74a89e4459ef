from splash.state.store import StateStore
from splash.state.ticker_state import Direction, Snapshot


def snap(last, symbol="AAA_USDT"):
    return Snapshot(symbol, last, last, 1_000_000)


def test_first_observation_sets_reference():
    store = StateStore(window_duration=300.0)
    state = store.observe(snap(100.0), now=10.0)
    assert state.window_start_ref == snap(100.0)
    assert state.latest_snapshot == snap(100.0)
    assert state.last_window_update == 10.0
    assert not state.triggered


def test_reference_rolls_only_after_window_duration():
    store = StateStore(window_duration=300.0)
    store.observe(snap(100.0), now=0.0)

    state = store.observe(snap(101.0), now=299.0)
    assert state.window_start_ref.last_price == 100.0
    assert state.latest_snapshot.last_price == 101.0

    state = store.observe(snap(102.0), now=300.0)
    assert state.window_start_ref.last_price == 102.0
    assert state.last_window_update == 300.0
    assert state.last_triggered_level == 0.0


def test_reference_is_frozen_while_triggered():
    store = StateStore(window_duration=300.0)
    store.observe(snap(100.0), now=0.0)
    assert store.activate("AAA_USDT", 1, 0.03, Direction.UP, 10, trigger_time=5.0)

    state = store.observe(snap(104.0), now=1000.0)
    assert state.window_start_ref.last_price == 100.0
    assert state.latest_snapshot.last_price == 104.0
    assert state.last_triggered_level == 0.03


def test_activate_requires_known_idle_symbol():
    store = StateStore(window_duration=300.0)
    assert not store.activate("NOPE", 1, 0.03, Direction.UP, 10, 0.0)

    store.observe(snap(100.0), now=0.0)
    assert store.activate("AAA_USDT", 1, 0.03, Direction.UP, 10, 0.0)
    assert not store.activate("AAA_USDT", 2, 0.05, Direction.DOWN, 15, 0.0)

    state = store.get("AAA_USDT")
    assert state.record_id == 1
    assert state.direction is Direction.UP


def test_progress_is_monotonic_and_bound_to_record():
    store = StateStore(window_duration=300.0)
    store.observe(snap(100.0), now=0.0)
    store.activate("AAA_USDT", 1, 0.03, Direction.UP, 10, 0.0)

    assert not store.progress("AAA_USDT", 2, 0.05, 15)
    assert not store.progress("AAA_USDT", 1, 0.03, 15)
    assert store.progress("AAA_USDT", 1, 0.05, 15)
    assert not store.progress("AAA_USDT", 1, 0.04, 15)

    state = store.get("AAA_USDT")
    assert state.last_triggered_level == 0.05
    assert state.current_window == 15
    assert state.direction is Direction.UP


def test_close_resets_episode_once():
    store = StateStore(window_duration=300.0)
    store.observe(snap(100.0), now=0.0)
    store.activate("AAA_USDT", 1, 0.05, Direction.DOWN, 15, 3.0)

    assert store.close("AAA_USDT", 2) is None

    closed = store.close("AAA_USDT", 1)
    assert closed is not None
    assert closed.record_id == 1
    assert closed.last_triggered_level == 0.05

    state = store.get("AAA_USDT")
    assert not state.triggered
    assert state.record_id == 0
    assert state.trigger_time == 0.0
    assert state.direction is Direction.NONE
    assert state.last_triggered_level == 0.0

    assert store.close("AAA_USDT", 1) is None


def test_open_episodes_lists_only_triggered():
    store = StateStore(window_duration=300.0)
    store.observe(snap(100.0, "AAA_USDT"), now=0.0)
    store.observe(snap(50.0, "BBB_USDT"), now=0.0)
    store.activate("BBB_USDT", 4, 0.03, Direction.UP, 10, 0.0)

    assert [s.symbol for s in store.open_episodes()] == ["BBB_USDT"]
    assert store.symbols() == ["AAA_USDT", "BBB_USDT"]
    assert store.size() == 2
