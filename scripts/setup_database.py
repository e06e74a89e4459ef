#!/usr/bin/env python3
"""
SPLASH Database Setup Script

Creates the splash database if needed and applies every schema file in
sql/ in name order. Safe to re-run: all statements are IF NOT EXISTS.
"""

import argparse
import sys
from pathlib import Path

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
import logging

from splash.config import DB_CONFIG

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SQL_DIR = Path(__file__).parent.parent / 'sql'
EXPECTED_TABLES = ['splash_records']


def connect(database=None):
    """Open a connection to the splash database, or to another one by name."""
    params = dict(DB_CONFIG)
    if database is not None:
        params['database'] = database
    return psycopg2.connect(**params)


def ensure_database() -> bool:
    """Create the splash database through the maintenance DB if it is missing."""
    name = DB_CONFIG['database']
    try:
        conn = connect('postgres')
    except psycopg2.Error as e:
        logger.error(f"Cannot connect to PostgreSQL: {e}")
        return False

    try:
        conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
        with conn.cursor() as cursor:
            cursor.execute("SELECT 1 FROM pg_database WHERE datname = %s", (name,))
            if cursor.fetchone():
                logger.info(f"Database '{name}' already exists")
            else:
                cursor.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(name)))
                logger.info(f"Created database '{name}'")
        return True
    except psycopg2.Error as e:
        logger.error(f"Error creating database '{name}': {e}")
        return False
    finally:
        conn.close()


def apply_schema(sql_dir: Path = SQL_DIR) -> bool:
    """Run each sql/*.sql file in its own transaction; stop at the first failure."""
    schema_files = sorted(sql_dir.glob('*.sql'))
    if not schema_files:
        logger.error(f"No schema files found in {sql_dir}")
        return False

    for filepath in schema_files:
        logger.info(f"Running {filepath.name}...")
        try:
            conn = connect()
            try:
                with conn, conn.cursor() as cursor:
                    cursor.execute(filepath.read_text())
            finally:
                conn.close()
        except psycopg2.Error as e:
            logger.error(f"Error running {filepath.name}: {e}")
            return False
        logger.info(f"✓ {filepath.name} completed")

    return True


def verify_tables() -> bool:
    """Check that every expected table exists in the public schema."""
    try:
        conn = connect()
        try:
            with conn.cursor() as cursor:
                cursor.execute("""
                    SELECT table_name
                    FROM information_schema.tables
                    WHERE table_schema = 'public'
                    AND table_type = 'BASE TABLE';
                """)
                present = {row[0] for row in cursor.fetchall()}
        finally:
            conn.close()
    except psycopg2.Error as e:
        logger.error(f"Error verifying setup: {e}")
        return False

    missing = [t for t in EXPECTED_TABLES if t not in present]
    for table in EXPECTED_TABLES:
        logger.info(f"  {'✗' if table in missing else '✓'} {table}")
    return not missing


def main():
    parser = argparse.ArgumentParser(description="Create the SPLASH database schema")
    parser.add_argument(
        "--verify-only",
        action="store_true",
        help="Only check that the expected tables exist",
    )
    args = parser.parse_args()

    logger.info("=" * 60)
    logger.info("SPLASH Database Setup")
    logger.info("=" * 60)
    logger.info(f"  Target: {DB_CONFIG['user']}@{DB_CONFIG['host']}:{DB_CONFIG['port']}/{DB_CONFIG['database']}")

    if not args.verify_only:
        if not ensure_database():
            logger.error("Check that PostgreSQL is running and the .env credentials are correct")
            sys.exit(1)
        if not apply_schema():
            sys.exit(1)

    if not verify_tables():
        logger.error("Setup verification failed")
        sys.exit(1)

    logger.info("Database setup completed successfully!")


if __name__ == '__main__':
    main()
