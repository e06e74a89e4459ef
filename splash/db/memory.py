"""In-memory splash record repository for mock mode and tests."""
from dataclasses import replace
from threading import Lock
from typing import Callable, Dict, List, Tuple
import logging
import time

from splash.errors import PersistenceError, RecordNotFound
from splash.events.records import SplashRecord

logger = logging.getLogger(__name__)


class InMemoryRepository:
    """
    Same contract as PostgresRepository, held in a dict.

    ``clock`` decides which unresolved records are old enough to count in
    context stats.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._records: Dict[int, SplashRecord] = {}
        self._next_id = 1
        self._clock = clock
        self._lock = Lock()

    def save_record(self, record: SplashRecord) -> int:
        with self._lock:
            record_id = self._next_id
            self._next_id += 1
            self._records[record_id] = replace(record, id=record_id)
        logger.info("Splash record saved successfully ID: %d", record_id)
        return record_id

    def update_record_level(
        self,
        record_id: int,
        level: int,
        last_price: float,
        fair_price: float,
        volume: int,
        probability: float,
        window: int,
    ) -> None:
        with self._lock:
            record = self._require(record_id)
            if record.resolved_at is not None:
                raise RecordNotFound(record_id)
            self._records[record_id] = replace(
                record,
                trigger_level=level,
                trigger_last_price=last_price,
                trigger_fair_price=fair_price,
                volume_24h=volume,
                win_probability=probability,
                time_window=window,
            )

    def update_record_resolution(
        self,
        record_id: int,
        returned: bool,
        return_time: float,
        max_deviation: float,
    ) -> None:
        with self._lock:
            record = self._require(record_id)
            self._records[record_id] = replace(
                record,
                returned=returned,
                return_time=return_time,
                max_deviation=max_deviation,
                resolved_at=self._clock(),
            )

    def get_record_by_id(self, record_id: int) -> SplashRecord:
        with self._lock:
            return self._require(record_id)

    def get_context_stats(
        self,
        direction: str,
        level: int,
        volume_range: Tuple[int, int],
        basis_gap_range: Tuple[float, float],
        window: int,
    ) -> Tuple[int, int]:
        now = self._clock()
        total = wins = 0
        with self._lock:
            for r in self._records.values():
                if r.direction != direction or r.trigger_level != level or r.time_window != window:
                    continue
                if not (volume_range[0] <= r.volume_24h <= volume_range[1]):
                    continue
                if not (basis_gap_range[0] <= r.basis_gap <= basis_gap_range[1]):
                    continue
                aged = r.trigger_time < now - r.time_window * 60.0
                if r.resolved_at is None and not aged:
                    continue
                total += 1
                wins += int(r.returned)
        return total, wins

    def records(self) -> List[SplashRecord]:
        with self._lock:
            return [self._records[k] for k in sorted(self._records)]

    def _require(self, record_id: int) -> SplashRecord:
        if record_id == 0:
            raise PersistenceError("cannot update splash record with ID 0")
        record = self._records.get(record_id)
        if record is None:
            raise RecordNotFound(record_id)
        return record
