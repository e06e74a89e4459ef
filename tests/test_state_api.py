import pytest
from fastapi.testclient import TestClient

from app import create_app
from splash.events.notifier import EventBuffer, SplashEvent, Status
from splash.state.store import StateStore
from splash.state.ticker_state import Direction, Snapshot
from splash.state.tiers import Tier, TierConfig


@pytest.fixture
def containers():
    store = StateStore(window_duration=300.0)
    tiers = TierConfig([Tier(level=3, window=10), Tier(level=5, window=15)])
    events = EventBuffer(maxlen=10)
    return store, tiers, events


@pytest.fixture
def client(containers):
    store, tiers, events = containers
    return TestClient(create_app(store=store, tiers=tiers, events=events))


def test_latest_state_unknown_symbol(client):
    resp = client.get("/splash/state/latest", params={"symbol": "NOPE_USDT"})
    assert resp.status_code == 404


def test_latest_state_for_observed_symbol(client, containers):
    store, _, _ = containers
    store.observe(Snapshot("BTC_USDT", 100.0, 100.5, 10), 5.0)
    store.activate("BTC_USDT", 3, 0.03, Direction.DOWN, 10, 6.0)

    resp = client.get("/splash/state/latest", params={"symbol": "btc_usdt"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["symbol"] == "BTC_USDT"
    assert body["refFair"] == 100.5
    assert body["triggered"] is True
    assert body["direction"] == "DOWN"
    assert body["recordId"] == 3
    assert body["currentWindow"] == 10


def test_open_episodes(client, containers):
    store, _, _ = containers
    store.observe(Snapshot("A_USDT", 1.0, 1.0, 10), 0.0)
    store.observe(Snapshot("B_USDT", 2.0, 2.0, 10), 0.0)
    store.activate("B_USDT", 1, 0.05, Direction.UP, 15, 1.0)

    resp = client.get("/splash/state/open")

    assert resp.status_code == 200
    assert [s["symbol"] for s in resp.json()] == ["B_USDT"]


def test_get_tiers(client):
    resp = client.get("/splash/tiers")
    assert resp.status_code == 200
    assert resp.json() == {
        "tiers": [
            {"level": 3.0, "window": 10, "isForcedPin": False},
            {"level": 5.0, "window": 15, "isForcedPin": False},
        ]
    }


def test_put_tiers_replaces_and_sorts(client, containers):
    _, tiers, _ = containers
    resp = client.put("/splash/tiers", json={"tiers": [
        {"level": 8, "window": 30},
        {"level": 2, "window": 5, "isForcedPin": True},
    ]})

    assert resp.status_code == 200
    assert [t["level"] for t in resp.json()["tiers"]] == [2.0, 8.0]
    assert [t.level for t in tiers.current()] == [2.0, 8.0]
    assert tiers.current()[0].is_forced_pin is True


@pytest.mark.parametrize("body", [
    {"tiers": [{"level": 3}]},
    {"tiers": [{"level": 3, "window": -1}]},
    {"levels": []},
])
def test_put_tiers_rejects_invalid(client, containers, body):
    _, tiers, _ = containers
    resp = client.put("/splash/tiers", json=body)
    assert resp.status_code == 422
    assert [t.level for t in tiers.current()] == [3.0, 5.0]


def test_event_history(client, containers):
    _, _, events = containers
    for i in range(3):
        events.emit(SplashEvent(symbol=f"S{i}_USDT", status=Status.ACTIVE, level=3, window=10))
    events.emit(SplashEvent(symbol="S0_USDT", status=Status.RETURNED, return_time=4.2))

    resp = client.get("/splash/events/history", params={"limit": 2})

    assert resp.status_code == 200
    body = resp.json()
    assert [e["symbol"] for e in body] == ["S2_USDT", "S0_USDT"]
    assert body[-1]["status"] == "RETURNED"
    assert body[-1]["returnTime"] == 4.2
    assert body[-1]["exchange"] == "MEXC"


def test_event_history_limit_bounds(client):
    assert client.get("/splash/events/history", params={"limit": 0}).status_code == 422
    assert client.get("/splash/events/history", params={"limit": 5000}).status_code == 422
