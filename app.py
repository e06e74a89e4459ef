"""FastAPI bootstrap wiring the in-memory SPLASH state, tiers and events."""
from typing import Optional

from fastapi import FastAPI

from splash.config import SPLASH_TIERS, WINDOW_DURATION_SEC
from splash.events.notifier import EventBuffer
from splash.state import state_api
from splash.state.store import StateStore
from splash.state.tiers import TierConfig


def create_app(
    store: Optional[StateStore] = None,
    tiers: Optional[TierConfig] = None,
    events: Optional[EventBuffer] = None,
) -> FastAPI:
    app = FastAPI(title="SPLASH State API", version="0.1.0")

    # Standalone runs get fresh containers; run_live passes the engine's own
    state_api.register_store(store or StateStore(WINDOW_DURATION_SEC))
    state_api.register_tier_config(tiers or TierConfig.from_dicts(SPLASH_TIERS))
    state_api.register_event_buffer(events or EventBuffer())

    state_api.attach_to_app(app)

    return app


app = create_app()
