"""Pooled Postgres connections for the splash record store."""
from contextlib import contextmanager
from typing import Dict, Optional
import logging

from psycopg2.extras import RealDictCursor
from psycopg2.pool import PoolError, ThreadedConnectionPool

from splash.config import DB_CONFIG, DB_MAX_CONNECTIONS, DB_MIN_CONNECTIONS
from splash.errors import PersistenceError

logger = logging.getLogger(__name__)

_pool: Optional[ThreadedConnectionPool] = None


def init_pool(
    db_config: Optional[Dict] = None,
    minconn: int = DB_MIN_CONNECTIONS,
    maxconn: int = DB_MAX_CONNECTIONS,
) -> None:
    """
    Open the shared pool.

    The poll loop and every return tracker thread draw from it, so the
    pool is the thread-safe variant.

    Args:
        db_config: host/port/database/user/password (default: DB_CONFIG)
        minconn: Connections opened up front
        maxconn: Upper bound on concurrent connections
    """
    global _pool
    if _pool is not None:
        logger.warning("Connection pool already initialized")
        return

    params = dict(db_config or DB_CONFIG)
    _pool = ThreadedConnectionPool(minconn=minconn, maxconn=maxconn, **params)
    logger.info(
        f"Database connection pool initialized: "
        f"{params.get('user')}@{params.get('host')}:{params.get('port')}/{params.get('database')} "
        f"({minconn}-{maxconn} connections)"
    )


def close_pool() -> None:
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("Database connection pool closed")


def pool_initialized() -> bool:
    return _pool is not None


@contextmanager
def get_connection():
    """
    Borrow a connection; commit on success, roll back on error.

    Raises:
        PersistenceError: If the pool is not initialized or exhausted
    """
    if _pool is None:
        raise PersistenceError("Connection pool not initialized. Call init_pool() first.")

    try:
        conn = _pool.getconn()
    except PoolError as exc:
        raise PersistenceError(f"no database connection available: {exc}") from exc

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        _pool.putconn(conn)


@contextmanager
def get_cursor(cursor_factory=RealDictCursor):
    """
    Cursor on a pooled connection; rows come back as dicts by default.

    Example:
        >>> with get_cursor() as cursor:
        ...     cursor.execute("SELECT id, returned FROM splash_records LIMIT 1")
        ...     row = cursor.fetchone()
    """
    with get_connection() as conn:
        cursor = conn.cursor(cursor_factory=cursor_factory)
        try:
            yield cursor
        finally:
            cursor.close()
