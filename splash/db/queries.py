"""Database query functions for SPLASH."""
from typing import Dict, Optional, Tuple
import logging

from splash.db.connection import get_cursor

logger = logging.getLogger(__name__)

# ============================================================================
# WRITE OPERATIONS
# ============================================================================

def insert_splash_record(data: Dict) -> int:
    """
    Insert a new splash episode.

    Args:
        data: {
            'symbol': str,
            'direction': str,
            'trigger_level': int,
            'trigger_time': datetime,
            'ref_last_price': float,
            'ref_fair_price': float,
            'trigger_last_price': float,
            'trigger_fair_price': float,
            'basis_gap': float,
            'trigger_speed_sec': float,
            'volume_24h': int,
            'time_window': int,
            'prob_win': float
        }

    Returns:
        Id of the new row
    """
    query = """
        INSERT INTO splash_records
        (symbol, direction, trigger_level, trigger_time,
         ref_last_price, ref_fair_price, trigger_last_price, trigger_fair_price,
         basis_gap, trigger_speed_sec, volume_24h, time_window, prob_win)
        VALUES (%(symbol)s, %(direction)s, %(trigger_level)s, %(trigger_time)s,
                %(ref_last_price)s, %(ref_fair_price)s, %(trigger_last_price)s,
                %(trigger_fair_price)s, %(basis_gap)s, %(trigger_speed_sec)s,
                %(volume_24h)s, %(time_window)s, %(prob_win)s)
        RETURNING id;
    """
    with get_cursor() as cursor:
        cursor.execute(query, data)
        record_id = cursor.fetchone()['id']
    logger.info(f"DB: Splash record saved successfully ID: {record_id}")
    return record_id


def update_splash_level(data: Dict) -> int:
    """
    Move an open episode to a deeper tier. Resolved rows are left untouched.

    Returns:
        Number of rows updated (0 if missing or already resolved)
    """
    query = """
        UPDATE splash_records
        SET trigger_level = %(trigger_level)s,
            trigger_last_price = %(trigger_last_price)s,
            trigger_fair_price = %(trigger_fair_price)s,
            volume_24h = %(volume_24h)s,
            prob_win = %(prob_win)s,
            time_window = %(time_window)s
        WHERE id = %(id)s
          AND resolved_at IS NULL;
    """
    with get_cursor() as cursor:
        cursor.execute(query, data)
        updated = cursor.rowcount
    logger.debug(f"DB: Splash record ID {data['id']} moved to level {data['trigger_level']}")
    return updated


def update_splash_resolution(data: Dict) -> int:
    """
    Write the outcome of an episode.

    Args:
        data: {'id': int, 'returned': bool, 'return_time': float (seconds),
               'max_deviation': float}

    Returns:
        Number of rows updated
    """
    query = """
        UPDATE splash_records
        SET returned = %(returned)s,
            return_time = %(return_time)s,
            max_deviation = %(max_deviation)s,
            resolved_at = NOW()
        WHERE id = %(id)s;
    """
    with get_cursor() as cursor:
        cursor.execute(query, data)
        updated = cursor.rowcount
    logger.info(f"DB: Splash record ID {data['id']} updated successfully")
    return updated


# ============================================================================
# READ OPERATIONS
# ============================================================================

def get_splash_record(record_id: int) -> Optional[Dict]:
    """Get a single splash record by id."""
    query = """
        SELECT id, symbol, direction, trigger_level,
               ref_last_price, ref_fair_price,
               trigger_last_price, trigger_fair_price,
               trigger_time, volume_24h, basis_gap, trigger_speed_sec,
               time_window, returned, return_time, max_deviation,
               prob_win, resolved_at
        FROM splash_records
        WHERE id = %s;
    """
    with get_cursor() as cursor:
        cursor.execute(query, (record_id,))
        return cursor.fetchone()


def get_context_stats(
    direction: str,
    level: int,
    volume_range: Tuple[int, int],
    basis_gap_range: Tuple[float, float],
    window: int,
) -> Tuple[int, int]:
    """
    Count prior outcomes in the same context.

    Only resolved episodes and episodes older than their own window count,
    so still-running episodes never dilute the sample.

    Returns:
        (total, wins)
    """
    query = """
        SELECT
            COUNT(*) AS total,
            COALESCE(SUM(CASE WHEN returned = TRUE THEN 1 ELSE 0 END), 0) AS wins
        FROM splash_records
        WHERE direction = %(direction)s
          AND trigger_level = %(level)s
          AND time_window = %(window)s
          AND volume_24h BETWEEN %(vol_min)s AND %(vol_max)s
          AND basis_gap BETWEEN %(gap_min)s AND %(gap_max)s
          AND (resolved_at IS NOT NULL
               OR trigger_time < NOW() - (time_window * INTERVAL '1 minute'));
    """
    params = {
        'direction': direction,
        'level': level,
        'window': window,
        'vol_min': volume_range[0],
        'vol_max': volume_range[1],
        'gap_min': basis_gap_range[0],
        'gap_max': basis_gap_range[1],
    }
    with get_cursor() as cursor:
        cursor.execute(query, params)
        row = cursor.fetchone()
    if not row:
        return 0, 0
    return int(row['total']), int(row['wins'])
