"""
Database adapter that supports both SQLite and PostgreSQL.

Uses DATABASE_URL environment variable to determine which backend to use:
- If DATABASE_URL starts with "postgres://", use PostgreSQL
- Otherwise, use SQLite (default behavior)
"""

import os
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Union

from loguru import logger

# Connection of the write transaction open on this thread, if any
_active = threading.local()


def get_database_url() -> Optional[str]:
    """Get DATABASE_URL from environment."""
    return os.environ.get("DATABASE_URL")


def is_postgres() -> bool:
    """Check if using PostgreSQL."""
    url = get_database_url()
    return url is not None and url.startswith(("postgres://", "postgresql://"))


def _convert_query_placeholders(query: str) -> str:
    """Convert SQLite ? placeholders to PostgreSQL %s placeholders."""
    # Simple conversion - doesn't handle ? inside strings
    return query.replace("?", "%s")


class PostgresCursor:
    """Wrapper around psycopg2 cursor to provide dict-like row access."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self._columns: Optional[list[str]] = None

    def execute(self, query: str, params: tuple = ()) -> "PostgresCursor":
        pg_query = _convert_query_placeholders(query)
        self._cursor.execute(pg_query, params)
        if self._cursor.description:
            self._columns = [desc[0] for desc in self._cursor.description]
        return self

    def fetchone(self) -> Optional[dict[str, Any]]:
        row = self._cursor.fetchone()
        if row is None or self._columns is None:
            return None
        return dict(zip(self._columns, row))

    def fetchall(self) -> list[dict[str, Any]]:
        rows = self._cursor.fetchall()
        if not self._columns:
            return []
        return [dict(zip(self._columns, row)) for row in rows]

    @property
    def lastrowid(self) -> Optional[int]:
        # PostgreSQL has no lastrowid; inserts use RETURNING id instead
        return None

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    def close(self) -> None:
        self._cursor.close()


class PostgresConnection:
    """Wrapper around psycopg2 connection."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    def execute(self, query: str, params: tuple = ()) -> PostgresCursor:
        cursor = PostgresCursor(self._conn.cursor())
        cursor.execute(query, params)
        return cursor

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


DbConnection = Union[sqlite3.Connection, PostgresConnection]


@contextmanager
def get_requests_db_connection() -> Iterator[DbConnection]:
    """
    Get a database connection for the request queue.

    Uses DATABASE_URL if set (PostgreSQL), otherwise falls back to SQLite.
    """
    if is_postgres():
        import psycopg2

        logger.debug("Connecting to PostgreSQL")

        conn = psycopg2.connect(get_database_url())
        wrapped = PostgresConnection(conn)
        try:
            yield wrapped
        finally:
            wrapped.close()
    else:
        from .database import get_db_connection

        with get_db_connection() as conn:
            yield conn


def begin_write(conn: DbConnection) -> None:
    """Open a transaction that holds the request-queue write lock until commit.

    SQLite takes the database RESERVED lock up front; PostgreSQL locks the
    station_requests table against concurrent writers (readers still proceed).
    """
    if isinstance(conn, PostgresConnection):
        conn.execute("LOCK TABLE station_requests IN SHARE ROW EXCLUSIVE MODE")
    else:
        conn.execute("BEGIN IMMEDIATE")


@contextmanager
def write_transaction() -> Iterator[DbConnection]:
    """Hold the request-queue write lock until the block exits.

    Commits on success, rolls back on any exception. Nested use, and any
    ``write_connection`` call on the same thread, joins the open transaction.
    """
    conn = getattr(_active, "conn", None)
    if conn is not None:
        yield conn
        return

    with get_requests_db_connection() as conn:
        begin_write(conn)
        _active.conn = conn
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        else:
            conn.commit()
        finally:
            _active.conn = None


@contextmanager
def write_connection() -> Iterator[DbConnection]:
    """Join the open write transaction, or run the block as its own commit."""
    conn = getattr(_active, "conn", None)
    if conn is not None:
        yield conn
        return

    with get_requests_db_connection() as conn:
        yield conn
        conn.commit()


def insert_returning_id(conn: DbConnection, query: str, params: tuple) -> int:
    """Run an INSERT and return the new row id on either backend."""
    if isinstance(conn, PostgresConnection):
        cursor = conn.execute(f"{query} RETURNING id", params)
        row = cursor.fetchone()
        return int(row["id"])
    cursor = conn.execute(query, params)
    return int(cursor.lastrowid)


def init_postgres_schema() -> None:
    """Initialize PostgreSQL schema for request tables."""
    if not is_postgres():
        logger.debug("Not using PostgreSQL, skipping schema init")
        return

    import psycopg2

    logger.info("Initializing PostgreSQL schema for station requests...")

    conn = psycopg2.connect(get_database_url())
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS stations (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            enable_requests BOOLEAN NOT NULL DEFAULT FALSE,
            request_threshold INTEGER,
            request_delay INTEGER,
            timezone TEXT NOT NULL DEFAULT 'UTC',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS tracks (
            id SERIAL PRIMARY KEY,
            station_id INTEGER NOT NULL REFERENCES stations(id) ON DELETE CASCADE,
            unique_id TEXT NOT NULL,
            title TEXT,
            artist TEXT,
            is_requestable BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (station_id, unique_id)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS station_requests (
            id SERIAL PRIMARY KEY,
            station_id INTEGER NOT NULL REFERENCES stations(id) ON DELETE CASCADE,
            track_id INTEGER NOT NULL REFERENCES tracks(id) ON DELETE CASCADE,
            ip TEXT NOT NULL,
            timestamp BIGINT NOT NULL,
            played_at BIGINT NOT NULL DEFAULT 0,
            skip_delay INTEGER NOT NULL DEFAULT 0
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS song_history (
            id SERIAL PRIMARY KEY,
            station_id INTEGER NOT NULL REFERENCES stations(id) ON DELETE CASCADE,
            title TEXT,
            artist TEXT,
            timestamp_start BIGINT NOT NULL
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_requests_station_pending ON station_requests(station_id, played_at)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_requests_track ON station_requests(track_id, station_id, timestamp)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_requests_ip ON station_requests(ip, timestamp)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_song_history_station ON song_history(station_id, timestamp_start DESC)")

    conn.commit()
    cursor.close()
    conn.close()

    logger.info("PostgreSQL schema initialized")
