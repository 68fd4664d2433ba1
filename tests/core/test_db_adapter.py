"""Tests for the database adapter."""

import pytest

from station_requests.core import db_adapter
from station_requests.core.db_adapter import (
    get_requests_db_connection,
    insert_returning_id,
    is_postgres,
    write_connection,
    write_transaction,
)


def _count(table: str) -> int:
    with get_requests_db_connection() as conn:
        return conn.execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()["n"]


def _insert_history(conn) -> int:
    return insert_returning_id(
        conn,
        "INSERT INTO song_history (station_id, title, artist, timestamp_start) VALUES (?, ?, ?, ?)",
        (1, "Blue Monday", "New Order", 0),
    )


class TestBackendSelection:
    def test_sqlite_without_url(self, monkeypatch):
        """Test SQLite is used when DATABASE_URL is unset."""
        monkeypatch.delenv("DATABASE_URL", raising=False)
        assert not is_postgres()

    def test_postgres_url(self, monkeypatch):
        """Test postgres:// and postgresql:// URLs select PostgreSQL."""
        monkeypatch.setenv("DATABASE_URL", "postgresql://radio@localhost/radio")
        assert is_postgres()


class TestWriteTransaction:
    """Tests for write_transaction and write_connection."""

    def test_connection_joins_transaction(self, test_db):
        """Test write_connection reuses the open transaction's connection."""
        with write_transaction() as outer:
            with write_connection() as inner:
                assert inner is outer
            with write_transaction() as nested:
                assert nested is outer

        assert getattr(db_adapter._active, "conn", None) is None

    def test_rollback_discards_joined_writes(self, test_db):
        """Test writes made through write_connection roll back with the transaction."""
        with pytest.raises(RuntimeError):
            with write_transaction():
                with write_connection() as conn:
                    _insert_history(conn)
                raise RuntimeError("abort")

        assert _count("song_history") == 0

    def test_standalone_connection_commits(self, test_db):
        """Test write_connection outside a transaction commits on exit."""
        with write_connection() as conn:
            _insert_history(conn)

        assert _count("song_history") == 1
