"""
Station play history queries.

Provides the recent-play window used by the duplicate checks and the append
used by the playback committer.
"""

from typing import Optional

from loguru import logger

from station_requests.core.db_adapter import (
    get_requests_db_connection,
    insert_returning_id,
    write_connection,
)

from .models import PlayHistoryEntry


class SqlPlayHistory:
    """PlayHistoryStore backed by the song_history table."""

    def recent_entries(self, station_id: int, since: int) -> list[PlayHistoryEntry]:
        """Get history entries that started at or after ``since``, newest first.

        Args:
            station_id: Station ID
            since: Epoch seconds lower bound (inclusive)
        """
        with get_requests_db_connection() as conn:
            cursor = conn.execute(
                """
                SELECT id, station_id, title, artist, timestamp_start
                FROM song_history
                WHERE station_id = ?
                  AND timestamp_start >= ?
                ORDER BY timestamp_start DESC
                """,
                (station_id, since),
            )
            rows = cursor.fetchall()

        entries = [
            PlayHistoryEntry(
                id=row["id"],
                station_id=row["station_id"],
                title=row["title"] or "",
                artist=row["artist"] or "",
                started_at=row["timestamp_start"],
            )
            for row in rows
        ]
        logger.debug(
            f"Retrieved {len(entries)} history entries (station={station_id}, since={since})"
        )
        return entries

    def record(
        self,
        station_id: int,
        title: Optional[str],
        artist: Optional[str],
        started_at: int,
    ) -> int:
        """Append a played track to the station history.

        Joins an open request-queue transaction so the entry commits or rolls
        back together with the request it belongs to.
        """
        with write_connection() as conn:
            entry_id = insert_returning_id(
                conn,
                """
                INSERT INTO song_history (station_id, title, artist, timestamp_start)
                VALUES (?, ?, ?, ?)
                """,
                (station_id, title, artist, started_at),
            )

        logger.debug(f"Recorded history: station={station_id}, {artist} - {title}")
        return entry_id
