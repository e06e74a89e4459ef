"""Main polling loop: feed -> window manager -> trigger controller."""
from __future__ import annotations

from threading import Event
from typing import Callable, Optional
import logging
import time

from splash.config import POLL_INTERVAL_MS
from splash.errors import FeedError
from splash.events.controller import TriggerController
from splash.state.store import StateStore

logger = logging.getLogger(__name__)


class SplashEngine:
    """
    Poll the feed on a fixed cadence and push every snapshot through the
    state store and trigger controller.
    """

    def __init__(
        self,
        feed,
        store: StateStore,
        controller: TriggerController,
        poll_seconds: float = POLL_INTERVAL_MS / 1000.0,
        clock: Callable[[], float] = time.time,
    ):
        self.feed = feed
        self.store = store
        self.controller = controller
        self.poll_seconds = poll_seconds
        self._clock = clock
        self._stop = Event()

    def run(self, stop_event: Optional[Event] = None) -> None:
        """Run the poll loop until stopped."""
        if stop_event is not None:
            self._stop = stop_event
        logger.info("Starting SplashEngine (poll=%.3fs)", self.poll_seconds)
        try:
            while not self._stop.is_set():
                try:
                    self.step()
                except Exception as exc:  # pragma: no cover - resilience path
                    logger.error("Engine step failed: %s", exc, exc_info=True)
                self._stop.wait(self.poll_seconds)
        except KeyboardInterrupt:
            logger.info("SplashEngine stopped by user")

    def stop(self) -> None:
        self._stop.set()

    def step(self) -> int:
        """
        Poll once and process every snapshot.

        Returns:
            Number of snapshots processed (0 when the poll failed)
        """
        now = self._clock()
        try:
            snapshots = self.feed.poll_tickers()
        except FeedError as exc:
            logger.warning("Polling failed: %s", exc)
            return 0

        for snapshot in snapshots:
            self.store.observe(snapshot, now)

        for snapshot in snapshots:
            try:
                self.controller.process(snapshot, now)
            except Exception as exc:
                logger.error("Processing %s failed: %s", snapshot.symbol, exc, exc_info=True)

        logger.debug("Polling successful. Checked %d symbols.", len(snapshots))
        return len(snapshots)
