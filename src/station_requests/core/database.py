"""
SQLite database operations for station-requests
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import get_data_dir


# Database schema version for migrations
SCHEMA_VERSION = 1

_database_path_override: Optional[Path] = None


def set_database_path(path: Optional[Path]) -> None:
    """Point the SQLite backend at a specific file (None restores the default)."""
    global _database_path_override
    _database_path_override = Path(path) if path else None


def get_database_path() -> Path:
    """Get the path to the SQLite database file."""
    if _database_path_override is not None:
        return _database_path_override
    return get_data_dir() / "station_requests.db"


@contextmanager
def get_db_connection():
    """Get a database connection with proper cleanup and concurrency support."""
    db_path = get_database_path()
    # Busy timeout covers writers queued behind an admission transaction
    conn = sqlite3.connect(db_path, timeout=30.0)
    conn.row_factory = sqlite3.Row  # Enable dict-like access

    # WAL lets schedulers read while a submission holds the write lock
    conn.execute("PRAGMA journal_mode=WAL")

    try:
        yield conn
    finally:
        conn.close()


def init_database() -> None:
    """Initialize the database with required tables."""
    db_path = get_database_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS stations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                enable_requests BOOLEAN NOT NULL DEFAULT FALSE,
                request_threshold INTEGER, -- minutes, NULL = per-check default
                request_delay INTEGER, -- minutes a normal request waits
                timezone TEXT NOT NULL DEFAULT 'UTC',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS tracks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                station_id INTEGER NOT NULL,
                unique_id TEXT NOT NULL, -- identifier listeners request by
                title TEXT,
                artist TEXT,
                is_requestable BOOLEAN NOT NULL DEFAULT TRUE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (station_id) REFERENCES stations (id) ON DELETE CASCADE,
                UNIQUE (station_id, unique_id)
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS station_requests (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                station_id INTEGER NOT NULL,
                track_id INTEGER NOT NULL,
                ip TEXT NOT NULL,
                timestamp INTEGER NOT NULL, -- epoch seconds
                played_at INTEGER NOT NULL DEFAULT 0, -- 0 = still pending
                skip_delay INTEGER NOT NULL DEFAULT 0,
                FOREIGN KEY (station_id) REFERENCES stations (id) ON DELETE CASCADE,
                FOREIGN KEY (track_id) REFERENCES tracks (id) ON DELETE CASCADE
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS song_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                station_id INTEGER NOT NULL,
                title TEXT,
                artist TEXT,
                timestamp_start INTEGER NOT NULL, -- epoch seconds
                FOREIGN KEY (station_id) REFERENCES stations (id) ON DELETE CASCADE
            )
        """)

        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_tracks_station_unique ON tracks (station_id, unique_id)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_requests_station_pending ON station_requests (station_id, played_at)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_requests_track ON station_requests (track_id, station_id, timestamp)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_requests_ip ON station_requests (ip, timestamp)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_song_history_station ON song_history (station_id, timestamp_start)"
        )

        cursor = conn.execute("SELECT MAX(version) as version FROM schema_version")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] else 0

        if current_version < SCHEMA_VERSION:
            logger.info(f"Database schema {current_version} -> {SCHEMA_VERSION}")
            conn.execute("DELETE FROM schema_version")
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )

        conn.commit()
