#!/usr/bin/env python3
"""
Database Manager for the economic calendar store
Handles PostgreSQL connections, UPSERT of events and session-window queries
"""

import logging
import os
from contextlib import contextmanager
import psycopg2
from psycopg2 import pool, extras

from .config import describe_db_target
from .models import Event

logger = logging.getLogger(__name__)

EVENTS_TABLE = "economic_events"

SCHEMA_SQL = f"""
    CREATE TABLE IF NOT EXISTS {EVENTS_TABLE} (
        id VARCHAR(20) PRIMARY KEY,
        currency VARCHAR(3) NOT NULL,
        event TEXT NOT NULL,
        impact VARCHAR(10) NOT NULL,
        time_utc TIMESTAMPTZ NOT NULL,
        event_date DATE NOT NULL,
        actual VARCHAR(32),
        forecast VARCHAR(32),
        previous VARCHAR(32),
        actual_result_type VARCHAR(10),
        country VARCHAR(64),
        flag_code VARCHAR(8),
        flag_url TEXT,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        last_updated TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    );
    CREATE INDEX IF NOT EXISTS idx_{EVENTS_TABLE}_time_utc ON {EVENTS_TABLE} (time_utc);
    CREATE INDEX IF NOT EXISTS idx_{EVENTS_TABLE}_currency_impact ON {EVENTS_TABLE} (currency, impact);
"""

EVENT_COLUMNS = (
    "id, currency, event, impact, time_utc, event_date, actual, forecast, previous, "
    "actual_result_type, country, flag_code, flag_url"
)


class DatabaseManager:
    """PostgreSQL event store with connection pooling and UPSERT support"""

    def __init__(self, host, port, database, user, password, pool_size=5):
        """Initialize database connection pool"""
        try:
            self.pool = psycopg2.pool.SimpleConnectionPool(
                1, pool_size,
                host=host,
                port=port,
                database=database,
                user=user,
                password=password
            )
            logger.info(
                f"Database connection pool created: "
                f"{describe_db_target(host, port, database, user)}"
            )
        except Exception as e:
            logger.error(f"Failed to create connection pool: {e}")
            raise

    @contextmanager
    def get_connection(self):
        """Get a connection from the pool"""
        conn = self.pool.getconn()
        try:
            yield conn
        finally:
            self.pool.putconn(conn)

    @contextmanager
    def get_cursor(self):
        """Get a dict cursor; the transaction is committed when the block exits cleanly"""
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cursor:
                yield cursor
                conn.commit()

    def close_all(self):
        """Close all connections in the pool"""
        self.pool.closeall()
        logger.info("All database connections closed")

    def ensure_schema(self):
        """Create the events table and its indexes if they do not exist"""
        try:
            with self.get_cursor() as cursor:
                cursor.execute(SCHEMA_SQL)
            logger.info(f"Schema ready: {EVENTS_TABLE}")
        except Exception as e:
            logger.error(f"Error creating schema: {e}")
            raise

    # ===== EVENTS TABLE OPERATIONS (WITH UPSERT) =====

    def upsert_events(self, events):
        """
        UPSERT Event records keyed by their content-hash id

        Existing rows only have their indicator fields refreshed, and only when
        one of them changed.

        Args:
            events: Iterable of Event

        Returns:
            Tuple: (inserted, updated, processed)
        """
        inserted = 0
        updated = 0
        processed = 0

        query = f"""
            INSERT INTO {EVENTS_TABLE} (
                {EVENT_COLUMNS}, created_at, last_updated
            )
            VALUES (
                %(id)s, %(currency)s, %(event)s, %(impact)s, %(time_utc)s, %(event_date)s,
                %(actual)s, %(forecast)s, %(previous)s, %(actual_result_type)s,
                %(country)s, %(flag_code)s, %(flag_url)s,
                CURRENT_TIMESTAMP, CURRENT_TIMESTAMP
            )
            ON CONFLICT (id) DO UPDATE SET
                actual = EXCLUDED.actual,
                forecast = EXCLUDED.forecast,
                previous = EXCLUDED.previous,
                actual_result_type = EXCLUDED.actual_result_type,
                last_updated = CURRENT_TIMESTAMP
            WHERE (
                EXCLUDED.actual IS DISTINCT FROM {EVENTS_TABLE}.actual OR
                EXCLUDED.forecast IS DISTINCT FROM {EVENTS_TABLE}.forecast OR
                EXCLUDED.previous IS DISTINCT FROM {EVENTS_TABLE}.previous OR
                EXCLUDED.actual_result_type IS DISTINCT FROM {EVENTS_TABLE}.actual_result_type
            )
            RETURNING (xmax = 0) AS inserted
        """

        try:
            with self.get_connection() as conn:
                with conn.cursor() as cursor:
                    for event in events:
                        # Clean empty strings to NULL
                        row = {k: (v if v and str(v).strip() else None) for k, v in event.to_dict().items()}
                        row['time_utc'] = event.time_utc

                        cursor.execute(query, row)
                        processed += 1

                        result = cursor.fetchone()
                        if result is None:
                            continue  # conflict with no changed values
                        if result[0]:
                            inserted += 1
                        else:
                            updated += 1

                conn.commit()
                logger.info(
                    f"UPSERTED {processed} events: {inserted} inserted, {updated} updated, "
                    f"{processed - inserted - updated} unchanged"
                )

        except Exception as e:
            logger.error(f"Error upserting events: {e}")
            raise

        return inserted, updated, processed

    def get_events_in_window(self, start, end, currencies=None, impacts=None):
        """
        Get events whose time_utc lies in the closed interval [start, end]

        Args:
            start: Aware UTC datetime
            end: Aware UTC datetime
            currencies: Currency codes to keep, or None for all
            impacts: Impact levels to keep, or None for all

        Returns:
            List of Event ordered by time_utc
        """
        query = f"""
            SELECT {EVENT_COLUMNS}
            FROM {EVENTS_TABLE}
            WHERE time_utc >= %(start)s AND time_utc <= %(end)s
        """
        params = {'start': start, 'end': end}

        if currencies:
            query += " AND currency = ANY(%(currencies)s)"
            params['currencies'] = list(currencies)

        if impacts:
            query += " AND impact = ANY(%(impacts)s)"
            params['impacts'] = list(impacts)

        query += " ORDER BY time_utc, id"

        try:
            with self.get_cursor() as cursor:
                cursor.execute(query, params)
                return [Event.from_row(dict(row)) for row in cursor.fetchall()]
        except Exception as e:
            logger.error(f"Error fetching events: {e}")
            raise

    def count_events(self):
        """Get total count of events in database"""
        query = f"SELECT COUNT(*) as count FROM {EVENTS_TABLE}"

        try:
            with self.get_cursor() as cursor:
                cursor.execute(query)
                result = cursor.fetchone()
                return result['count'] if result else 0
        except Exception as e:
            logger.error(f"Error counting events: {e}")
            raise

    def event_source(self, window, currencies, impacts):
        """Candidate pool for correlate_trades()"""
        return self.get_events_in_window(window.start, window.end, currencies, impacts)


def get_db_manager(config_dict=None):
    """
    Factory function to create DatabaseManager from config dict or environment

    Args:
        config_dict: Optional dict with keys: host, port, database, user, password, pool_size

    Returns:
        DatabaseManager instance
    """
    if config_dict is None:
        config_dict = {}

    db_config = {
        'host': config_dict.get('host') or os.getenv('POSTGRES_HOST', 'localhost'),
        'port': int(config_dict.get('port') or os.getenv('POSTGRES_PORT', 5432)),
        'database': config_dict.get('database') or os.getenv('POSTGRES_DB', 'econcal'),
        'user': config_dict.get('user') or os.getenv('POSTGRES_USER', 'postgres'),
        'password': config_dict.get('password') or os.getenv('POSTGRES_PASSWORD', 'postgres'),
        'pool_size': int(config_dict.get('pool_size') or os.getenv('POSTGRES_POOL_SIZE', 5))
    }

    return DatabaseManager(**db_config)
