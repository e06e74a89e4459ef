"""CLI entrypoint to run the live SPLASH detection engine."""
import argparse
import logging
import threading

from splash import config
from splash.engine import SplashEngine
from splash.events.controller import TriggerController
from splash.events.notifier import EventBuffer, FanoutNotifier, LoggingNotifier
from splash.events.return_tracker import TrackerSupervisor
from splash.state.store import StateStore
from splash.state.tiers import TierConfig

logger = logging.getLogger(__name__)


def build_repository(mock: bool):
    if mock:
        from splash.db.memory import InMemoryRepository

        logger.info("Using in-memory persistence")
        return InMemoryRepository()

    from splash.db.connection import init_pool
    from splash.db.repository import PostgresRepository

    init_pool(config.DB_CONFIG, config.DB_MIN_CONNECTIONS, config.DB_MAX_CONNECTIONS)
    return PostgresRepository()


def build_feed(mock: bool, seed: int):
    from splash.ingestion.ticker_feed import MexcTickerFeed, MockTickerFeed

    if mock:
        return MockTickerFeed(seed=seed)
    return MexcTickerFeed()


def serve_api(store: StateStore, tiers: TierConfig, events: EventBuffer, port: int) -> threading.Thread:
    import uvicorn

    from app import create_app

    api = create_app(store=store, tiers=tiers, events=events)
    thread = threading.Thread(
        target=uvicorn.run,
        args=(api,),
        kwargs={"host": config.API_HOST, "port": port, "log_level": "warning"},
        daemon=True,
    )
    thread.start()
    logger.info("State API listening on %s:%d", config.API_HOST, port)
    return thread


def main() -> None:
    parser = argparse.ArgumentParser(description="Run live SPLASH detection engine")
    parser.add_argument(
        "--poll-ms",
        type=int,
        default=config.POLL_INTERVAL_MS,
        help="Feed polling interval in milliseconds",
    )
    parser.add_argument(
        "--mock-feed",
        action="store_true",
        default=config.MOCK_FEED_DATA,
        help="Use the seeded mock ticker feed instead of MEXC",
    )
    parser.add_argument(
        "--mock-db",
        action="store_true",
        default=config.MOCK_PERSISTENCE,
        help="Keep splash records in memory instead of Postgres",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=config.MOCK_DATA_SEED,
        help="Seed for the mock ticker feed",
    )
    parser.add_argument(
        "--api-port",
        type=int,
        default=config.API_PORT,
        help="Serve the state API on this port (0 disables it)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)",
    )
    args = parser.parse_args()

    config.setup_logging(args.log_level)

    store = StateStore(config.WINDOW_DURATION_SEC)
    tiers = TierConfig.from_dicts(config.SPLASH_TIERS)
    events = EventBuffer()
    notifier = FanoutNotifier([LoggingNotifier(), events])
    repository = build_repository(args.mock_db)
    supervisor = TrackerSupervisor(store, repository, notifier)
    controller = TriggerController(store, tiers, repository, notifier, supervisor)
    engine = SplashEngine(
        build_feed(args.mock_feed, args.seed),
        store,
        controller,
        poll_seconds=args.poll_ms / 1000.0,
    )

    if args.api_port:
        serve_api(store, tiers, events, args.api_port)

    try:
        engine.run()
    finally:
        logger.info("Shutting down live splash engine...")
        supervisor.shutdown()
        if not args.mock_db:
            from splash.db.connection import close_pool

            close_pool()


if __name__ == "__main__":  # pragma: no cover
    main()
