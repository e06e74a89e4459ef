"""Postgres-backed splash record repository."""
from datetime import datetime, timezone
from functools import wraps
from typing import Dict, Optional, Tuple
import logging

import psycopg2

from splash.db import queries
from splash.errors import PersistenceError, RecordNotFound
from splash.events.records import SplashRecord

logger = logging.getLogger(__name__)


def _wrap_db_errors(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except psycopg2.Error as exc:
            raise PersistenceError(f"{func.__name__} failed: {exc}") from exc
    return wrapper


def _to_datetime(ts: float) -> datetime:
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)


def _to_timestamp(value) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.timestamp()
    return float(value)


def record_from_row(row: Dict) -> SplashRecord:
    return SplashRecord(
        id=int(row['id']),
        symbol=row['symbol'],
        direction=row['direction'],
        trigger_level=int(row['trigger_level']),
        ref_last_price=float(row['ref_last_price']),
        ref_fair_price=float(row['ref_fair_price']),
        trigger_last_price=float(row['trigger_last_price']),
        trigger_fair_price=float(row['trigger_fair_price']),
        trigger_time=_to_timestamp(row['trigger_time']),
        volume_24h=int(row['volume_24h']),
        basis_gap=float(row.get('basis_gap') or 0.0),
        trigger_speed_sec=float(row.get('trigger_speed_sec') or 0.0),
        time_window=int(row.get('time_window') or 0),
        win_probability=float(row['prob_win']),
        returned=bool(row['returned']),
        return_time=float(row.get('return_time') or 0.0),
        max_deviation=float(row.get('max_deviation') or 0.0),
        resolved_at=_to_timestamp(row.get('resolved_at')),
    )


class PostgresRepository:
    """Splash record persistence over the shared psycopg2 pool."""

    @_wrap_db_errors
    def save_record(self, record: SplashRecord) -> int:
        return queries.insert_splash_record({
            'symbol': record.symbol,
            'direction': record.direction,
            'trigger_level': record.trigger_level,
            'trigger_time': _to_datetime(record.trigger_time),
            'ref_last_price': record.ref_last_price,
            'ref_fair_price': record.ref_fair_price,
            'trigger_last_price': record.trigger_last_price,
            'trigger_fair_price': record.trigger_fair_price,
            'basis_gap': record.basis_gap,
            'trigger_speed_sec': record.trigger_speed_sec,
            'volume_24h': record.volume_24h,
            'time_window': record.time_window,
            'prob_win': record.win_probability,
        })

    @_wrap_db_errors
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
        """Raises RecordNotFound if the record is missing or already resolved."""
        if record_id == 0:
            raise PersistenceError("cannot update splash record with ID 0")
        updated = queries.update_splash_level({
            'id': record_id,
            'trigger_level': level,
            'trigger_last_price': last_price,
            'trigger_fair_price': fair_price,
            'volume_24h': volume,
            'prob_win': probability,
            'time_window': window,
        })
        if not updated:
            raise RecordNotFound(record_id)

    @_wrap_db_errors
    def update_record_resolution(
        self,
        record_id: int,
        returned: bool,
        return_time: float,
        max_deviation: float,
    ) -> None:
        if record_id == 0:
            raise PersistenceError("cannot update splash record with ID 0")
        updated = queries.update_splash_resolution({
            'id': record_id,
            'returned': returned,
            'return_time': return_time,
            'max_deviation': max_deviation,
        })
        if not updated:
            raise RecordNotFound(record_id)

    @_wrap_db_errors
    def get_record_by_id(self, record_id: int) -> SplashRecord:
        row = queries.get_splash_record(record_id)
        if row is None:
            raise RecordNotFound(record_id)
        return record_from_row(row)

    @_wrap_db_errors
    def get_context_stats(
        self,
        direction: str,
        level: int,
        volume_range: Tuple[int, int],
        basis_gap_range: Tuple[float, float],
        window: int,
    ) -> Tuple[int, int]:
        return queries.get_context_stats(direction, level, volume_range, basis_gap_range, window)
