"""Trigger state machine: opens and progresses splash episodes."""
from __future__ import annotations

from typing import Tuple
import logging

from splash.config import BASIS_GAP_BAND, MIN_SAMPLE_SIZE, VOLUME_BAND_HIGH, VOLUME_BAND_LOW
from splash.errors import PersistenceError, RecordNotFound
from splash.events.evaluator import Decision, DecisionKind, NO_DECISION, evaluate
from splash.events.notifier import SplashEvent, Status
from splash.events.records import (
    PROBABILITY_UNKNOWN,
    SplashRecord,
    basis_gap,
    basis_gap_band,
    volume_band,
    win_probability,
)
from splash.state.store import StateStore
from splash.state.ticker_state import Direction, Snapshot, TickerState
from splash.state.tiers import Tier, TierConfig

logger = logging.getLogger(__name__)


class TriggerController:
    """
    Turns tier decisions into episode lifecycle changes.

    New episodes are persisted first and only then activated in the store;
    a failed save leaves the symbol idle so the next qualifying tick retries.
    Resolution is left to the episode's ReturnTracker.
    """

    def __init__(
        self,
        store: StateStore,
        tiers: TierConfig,
        repository,
        notifier,
        supervisor,
        min_sample: int = MIN_SAMPLE_SIZE,
        volume_band_limits: Tuple[float, float] = (VOLUME_BAND_LOW, VOLUME_BAND_HIGH),
        basis_gap_width: float = BASIS_GAP_BAND,
    ):
        self.store = store
        self.tiers = tiers
        self.repository = repository
        self.notifier = notifier
        self.supervisor = supervisor
        self.min_sample = min_sample
        self.volume_band_limits = volume_band_limits
        self.basis_gap_width = basis_gap_width

    def process(self, snapshot: Snapshot, now: float) -> Decision:
        """Evaluate one snapshot against the symbol's state and act on it."""
        state = self.store.get(snapshot.symbol)
        if state is None:
            return NO_DECISION

        decision = evaluate(self.tiers.current(), state, snapshot)
        if decision.kind is DecisionKind.NEW_TRIGGER:
            self._activate(state, snapshot, decision, now)
        elif decision.kind is DecisionKind.PROGRESSION:
            self._progress(state, snapshot, decision, now)
        return decision

    def _activate(self, state: TickerState, snapshot: Snapshot, decision: Decision, now: float) -> None:
        tier = decision.tier
        ref = state.window_start_ref
        gap = basis_gap(snapshot.last_price, snapshot.fair_price)
        speed = now - state.last_window_update
        probability = self._probability(decision.direction, tier, snapshot.volume_24h, gap)

        record = SplashRecord(
            symbol=snapshot.symbol,
            direction=decision.direction.value,
            trigger_level=tier.level_int,
            ref_last_price=ref.last_price,
            ref_fair_price=ref.fair_price,
            trigger_last_price=snapshot.last_price,
            trigger_fair_price=snapshot.fair_price,
            trigger_time=now,
            volume_24h=snapshot.volume_24h,
            basis_gap=gap,
            trigger_speed_sec=speed,
            time_window=tier.window,
            win_probability=probability,
        )
        try:
            record_id = self.repository.save_record(record)
        except PersistenceError as exc:
            logger.error("Failed to save splash for %s, activation aborted: %s", snapshot.symbol, exc)
            return

        activated = self.store.activate(
            snapshot.symbol,
            record_id,
            tier.level_int / 100.0,
            decision.direction,
            tier.window,
            now,
        )
        if not activated:
            logger.warning(
                "Episode already open for %s; record %d will stay unresolved",
                snapshot.symbol,
                record_id,
            )
            return

        logger.info(
            "SPLASH DETECTED: %s | Level: %d%% %s | change=%.2f%% | record=%d",
            snapshot.symbol,
            tier.level_int,
            decision.direction.value,
            decision.change * 100,
            record_id,
        )
        self.notifier.emit(self._active_event(snapshot, ref, decision.direction, tier, probability, gap, speed))
        self.supervisor.spawn(snapshot.symbol, record_id, ref)

    def _progress(self, state: TickerState, snapshot: Snapshot, decision: Decision, now: float) -> None:
        tier = decision.tier
        if not self.store.progress(snapshot.symbol, state.record_id, tier.level_int / 100.0, tier.window):
            logger.debug("Episode for %s closed before progression", snapshot.symbol)
            return

        gap = basis_gap(snapshot.last_price, snapshot.fair_price)
        speed = now - state.trigger_time
        probability = self._probability(state.direction, tier, snapshot.volume_24h, gap)
        try:
            self.repository.update_record_level(
                state.record_id,
                tier.level_int,
                snapshot.last_price,
                snapshot.fair_price,
                snapshot.volume_24h,
                probability,
                tier.window,
            )
        except RecordNotFound:
            logger.info("Record %d already resolved, level update skipped", state.record_id)
        except PersistenceError as exc:
            logger.error("Failed to update level for record %d: %s", state.record_id, exc)

        current = self.store.get(snapshot.symbol)
        if current is None or not current.is_open(state.record_id):
            logger.debug("Episode for %s resolved during progression", snapshot.symbol)
            return

        logger.info(
            "SPLASH PROGRESSED: %s | Level: %d%% -> %d%% %s | record=%d",
            snapshot.symbol,
            int(round(state.last_triggered_level * 100)),
            tier.level_int,
            state.direction.value,
            state.record_id,
        )
        self.notifier.emit(
            self._active_event(snapshot, state.window_start_ref, state.direction, tier, probability, gap, speed)
        )

    def _probability(self, direction: Direction, tier: Tier, volume: int, gap: float) -> float:
        try:
            total, wins = self.repository.get_context_stats(
                direction.value,
                tier.level_int,
                volume_band(volume, *self.volume_band_limits),
                basis_gap_band(gap, self.basis_gap_width),
                tier.window,
            )
        except PersistenceError as exc:
            logger.warning("Context stats unavailable: %s", exc)
            return PROBABILITY_UNKNOWN
        return win_probability(total, wins, self.min_sample)

    @staticmethod
    def _active_event(
        snapshot: Snapshot,
        ref: Snapshot,
        direction: Direction,
        tier: Tier,
        probability: float,
        gap: float,
        speed: float,
    ) -> SplashEvent:
        return SplashEvent(
            symbol=snapshot.symbol,
            status=Status.ACTIVE,
            direction=direction.value,
            level=tier.level_int,
            window=tier.window,
            probability=probability,
            ref_last=ref.last_price,
            ref_fair=ref.fair_price,
            last_price=snapshot.last_price,
            fair_price=snapshot.fair_price,
            basis_gap=gap,
            speed_seconds=speed,
            volume=snapshot.volume_24h,
        )
