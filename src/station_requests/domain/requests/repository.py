"""
Request queue persistence.

SqlRequestStore keeps listener requests in the station_requests table. Calls
made inside ``transaction()`` share one connection holding the queue write
lock, so admission can re-check and append atomically. Other stores writing
through ``write_connection`` on the same thread join that transaction.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from loguru import logger

from station_requests.core.db_adapter import (
    insert_returning_id,
    write_connection,
    write_transaction,
)

from .models import PendingRequest


def _row_to_request(row: dict[str, Any]) -> PendingRequest:
    """Convert database row to PendingRequest dataclass."""
    return PendingRequest(
        id=row["id"],
        station_id=row["station_id"],
        track_id=row["track_id"],
        ip=row["ip"],
        submitted_at=row["timestamp"],
        played_at=row["played_at"] or 0,
        skip_delay=row["skip_delay"] or 0,
    )


class SqlRequestStore:
    """RequestStore backed by the station_requests table."""

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Hold the request-queue write lock for the enclosed calls.

        Commits on success, rolls back on any exception. Nested use joins the
        outer transaction.
        """
        with write_transaction():
            yield

    def append(self, request: PendingRequest) -> int:
        """Insert a new pending request and return its id."""
        with write_connection() as conn:
            request_id = insert_returning_id(
                conn,
                """
                INSERT INTO station_requests (station_id, track_id, ip, timestamp, played_at, skip_delay)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    request.station_id,
                    request.track_id,
                    request.ip,
                    request.submitted_at,
                    request.played_at,
                    request.skip_delay,
                ),
            )

        logger.debug(
            f"Queued request {request_id}: station={request.station_id}, track={request.track_id}"
        )
        return request_id

    def most_recent_pending(
        self, station_id: int, track_id: int, since: int
    ) -> Optional[int]:
        """Get the newest request timestamp for a track that is recent or unplayed.

        Returns:
            Epoch seconds of the matching request, or None if there is none
        """
        with write_connection() as conn:
            cursor = conn.execute(
                """
                SELECT timestamp
                FROM station_requests
                WHERE track_id = ?
                  AND station_id = ?
                  AND (timestamp >= ? OR played_at = 0)
                ORDER BY timestamp DESC
                LIMIT 1
                """,
                (track_id, station_id, since),
            )
            row = cursor.fetchone()
        return row["timestamp"] if row else None

    def count_by_ip_since(self, ip: str, since: int) -> int:
        """Count requests from an IP on any station since ``since``."""
        with write_connection() as conn:
            cursor = conn.execute(
                """
                SELECT COUNT(*) AS request_count
                FROM station_requests
                WHERE ip = ?
                  AND timestamp >= ?
                """,
                (ip, since),
            )
            row = cursor.fetchone()
        return int(row["request_count"]) if row else 0

    def pending_for_station(self, station_id: int) -> list[PendingRequest]:
        """Get unplayed requests, highest skip_delay first, then oldest."""
        with write_connection() as conn:
            cursor = conn.execute(
                """
                SELECT *
                FROM station_requests
                WHERE played_at = 0
                  AND station_id = ?
                ORDER BY skip_delay DESC, id ASC
                """,
                (station_id,),
            )
            return [_row_to_request(dict(row)) for row in cursor.fetchall()]

    def get(self, request_id: int) -> Optional[PendingRequest]:
        """Get a request by id."""
        with write_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM station_requests WHERE id = ?",
                (request_id,),
            )
            row = cursor.fetchone()
        return _row_to_request(dict(row)) if row else None

    def mark_played(self, request_id: int, played_at: int) -> bool:
        """Mark a request played if it is still pending.

        Returns:
            True if this call flipped played_at from 0, False if the request
            was already played (or does not exist)
        """
        with write_connection() as conn:
            cursor = conn.execute(
                """
                UPDATE station_requests
                SET played_at = ?
                WHERE id = ?
                  AND played_at = 0
                """,
                (played_at, request_id),
            )
            won = cursor.rowcount > 0

        if won:
            logger.info(f"Request {request_id} marked played at {played_at}")
        else:
            logger.warning(f"Request {request_id} was already played or missing")
        return won

    def set_skip_delay(self, request_id: int, skip_delay: int) -> bool:
        """Change a pending request's priority.

        Returns:
            True if the request exists and is still pending
        """
        with write_connection() as conn:
            cursor = conn.execute(
                "UPDATE station_requests SET skip_delay = ? WHERE id = ? AND played_at = 0",
                (skip_delay, request_id),
            )
            return cursor.rowcount > 0
