"""Database connection and record persistence for SPLASH."""

from splash.db.connection import init_pool, close_pool, pool_initialized, get_connection, get_cursor
from splash.db.repository import PostgresRepository
from splash.db.memory import InMemoryRepository

__all__ = [
    'init_pool',
    'close_pool',
    'pool_initialized',
    'get_connection',
    'get_cursor',
    'PostgresRepository',
    'InMemoryRepository',
]
