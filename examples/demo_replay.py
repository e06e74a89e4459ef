#!/usr/bin/env python3
"""
SPLASH Demo: offline detection run

Drives the full pipeline (mock feed -> state store -> trigger controller ->
return trackers) with in-memory persistence, then prints the recorded
episodes. Short windows and a fast poll keep the run under a minute.
"""

import argparse
import logging
import threading
import time

from splash.db.memory import InMemoryRepository
from splash.engine import SplashEngine
from splash.events.controller import TriggerController
from splash.events.notifier import EventBuffer, FanoutNotifier, LoggingNotifier
from splash.events.return_tracker import TrackerSupervisor
from splash.ingestion.ticker_feed import MockTickerFeed
from splash.state.store import StateStore
from splash.state.tiers import Tier, TierConfig

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def demo_replay(seconds: float, seed: int) -> None:
    store = StateStore(window_duration=5.0)
    tiers = TierConfig([Tier(level=3, window=1), Tier(level=5, window=1)])
    events = EventBuffer()
    notifier = FanoutNotifier([LoggingNotifier(), events])
    repository = InMemoryRepository()
    supervisor = TrackerSupervisor(store, repository, notifier, poll_seconds=0.02)
    controller = TriggerController(store, tiers, repository, notifier, supervisor)

    feed = MockTickerFeed(
        symbols=[f"DEMO{i}_USDT" for i in range(10)],
        seed=seed,
        jump_probability=0.01,
    )
    engine = SplashEngine(feed, store, controller, poll_seconds=0.05)

    stop = threading.Event()
    timer = threading.Timer(seconds, stop.set)
    timer.start()
    started = time.time()
    try:
        engine.run(stop_event=stop)
    finally:
        timer.cancel()
        supervisor.shutdown()

    logger.info("=" * 80)
    logger.info(f"Ran {time.time() - started:.1f}s, {events.size()} events emitted")
    for record in repository.records():
        outcome = 'RETURNED' if record.returned else ('TIMEOUT' if record.resolved_at else 'OPEN')
        logger.info(
            f"  #{record.id} {record.symbol:<12} {record.direction:<4} "
            f"{record.trigger_level}% prob={record.win_probability:.0f} "
            f"{outcome} in {record.return_time:.2f}s maxdev={record.max_deviation:.4f}"
        )


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Offline SPLASH detection demo")
    parser.add_argument("--seconds", type=float, default=30.0)
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args()
    demo_replay(args.seconds, args.seed)
