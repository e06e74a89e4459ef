"""Read-only state/event endpoints and tier hot-replacement (FastAPI adapters)."""
from typing import Any, Dict, Optional
import logging

try:
    from fastapi import APIRouter, Body, HTTPException, Query
except ImportError as exc:  # pragma: no cover - optional dependency
    raise ImportError(
        "FastAPI is required for splash.state.state_api; install fastapi to use these endpoints"
    ) from exc

from splash.events.notifier import EventBuffer
from .store import StateStore
from .ticker_state import TickerState
from .tiers import TierConfig, parse_tiers

logger = logging.getLogger(__name__)

_STORE: Optional[StateStore] = None
_TIERS: Optional[TierConfig] = None
_EVENTS: Optional[EventBuffer] = None

router = APIRouter()


def register_store(store: StateStore) -> None:
    global _STORE
    _STORE = store
    logger.info("Registered state store")


def register_tier_config(tiers: TierConfig) -> None:
    global _TIERS
    _TIERS = tiers
    logger.info("Registered tier config (%d tiers)", len(tiers.current()))


def register_event_buffer(events: EventBuffer) -> None:
    global _EVENTS
    _EVENTS = events
    logger.info("Registered event buffer")


def state_to_dict(state: TickerState) -> Dict[str, Any]:
    ref = state.window_start_ref
    latest = state.latest_snapshot
    return {
        "symbol": state.symbol,
        "refLast": ref.last_price,
        "refFair": ref.fair_price,
        "lastPrice": latest.last_price,
        "fairPrice": latest.fair_price,
        "volume": latest.volume_24h,
        "lastWindowUpdate": state.last_window_update,
        "lastTriggeredLevel": state.last_triggered_level,
        "triggered": state.triggered,
        "triggerTime": state.trigger_time,
        "direction": state.direction.value,
        "recordId": state.record_id,
        "currentWindow": state.current_window,
    }


def _require(value, name: str):
    if value is None:
        raise HTTPException(status_code=503, detail=f"No {name} registered")
    return value


@router.get("/splash/state/latest")
def get_latest_state(symbol: str = Query(..., description="Ticker symbol")):
    store = _require(_STORE, "state store")
    state = store.get(symbol.upper())
    if state is None:
        raise HTTPException(status_code=404, detail="No state for symbol")
    return state_to_dict(state)


@router.get("/splash/state/open")
def get_open_episodes():
    store = _require(_STORE, "state store")
    return [state_to_dict(s) for s in store.open_episodes()]


@router.get("/splash/tiers")
def get_tiers():
    tiers = _require(_TIERS, "tier config")
    return {"tiers": [t.to_dict() for t in tiers.current()]}


@router.put("/splash/tiers")
def replace_tiers(payload: Dict[str, Any] = Body(...)):
    tiers = _require(_TIERS, "tier config")
    raw = payload.get("tiers")
    if not isinstance(raw, list):
        raise HTTPException(status_code=422, detail="Body must contain a 'tiers' list")
    try:
        parsed = parse_tiers(raw)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    tiers.replace(parsed)
    return {"tiers": [t.to_dict() for t in tiers.current()]}


@router.get("/splash/events/history")
def get_event_history(limit: int = Query(200, ge=1, le=2000)):
    events = _require(_EVENTS, "event buffer")
    return [e.to_dict() for e in events.history(limit)]


def attach_to_app(app) -> None:
    """Include splash routes on an existing FastAPI app."""
    app.include_router(router)
