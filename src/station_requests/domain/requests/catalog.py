"""
Track catalog lookups for request admission.
"""

import threading
from typing import Any, Optional

from loguru import logger

from station_requests.core.db_adapter import get_requests_db_connection, insert_returning_id

from .models import Track
from .stores import CatalogLookup


def _row_to_track(row: dict[str, Any]) -> Track:
    """Convert database row to Track dataclass."""
    return Track(
        id=row["id"],
        unique_id=row["unique_id"],
        station_id=row["station_id"],
        title=row["title"] or "",
        artist=row["artist"] or "",
        is_requestable=bool(row["is_requestable"]),
    )


def add_track(
    station_id: int,
    unique_id: str,
    title: str,
    artist: str,
    is_requestable: bool = True,
) -> Track:
    """Add a track to a station's catalog.

    Raises:
        ValueError: If the unique_id is already used on this station
    """
    with get_requests_db_connection() as conn:
        try:
            track_id = insert_returning_id(
                conn,
                """
                INSERT INTO tracks (station_id, unique_id, title, artist, is_requestable)
                VALUES (?, ?, ?, ?, ?)
                """,
                (station_id, unique_id, title, artist, is_requestable),
            )
            conn.commit()
        except Exception as e:
            if "UNIQUE constraint failed" in str(e) or "duplicate key" in str(e):
                raise ValueError(f"Track '{unique_id}' already exists on station {station_id}")
            raise

    logger.debug(f"Added track {track_id} ({artist} - {title}) to station {station_id}")
    return Track(
        id=track_id,
        unique_id=unique_id,
        station_id=station_id,
        title=title,
        artist=artist,
        is_requestable=is_requestable,
    )


class SqlCatalog:
    """CatalogLookup backed by the tracks table."""

    def find_track(self, station_id: int, unique_id: str) -> Optional[Track]:
        with get_requests_db_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM tracks WHERE station_id = ? AND unique_id = ?",
                (station_id, unique_id),
            )
            row = cursor.fetchone()
            return _row_to_track(dict(row)) if row else None

    def get_track(self, track_id: int) -> Optional[Track]:
        with get_requests_db_connection() as conn:
            cursor = conn.execute("SELECT * FROM tracks WHERE id = ?", (track_id,))
            row = cursor.fetchone()
            return _row_to_track(dict(row)) if row else None

    def is_requestable(self, track: Track) -> bool:
        return track.is_requestable


class CachedCatalog:
    """Read-through cache in front of another catalog.

    Entries live until ``invalidate`` is called, e.g. after a library rescan.
    Misses are not cached so newly added tracks show up immediately.
    """

    def __init__(self, inner: CatalogLookup) -> None:
        self.inner = inner
        self._lock = threading.Lock()
        self._by_unique_id: dict[tuple[int, str], Track] = {}
        self._by_id: dict[int, Track] = {}

    def find_track(self, station_id: int, unique_id: str) -> Optional[Track]:
        key = (station_id, unique_id)
        with self._lock:
            cached = self._by_unique_id.get(key)
        if cached is not None:
            return cached

        track = self.inner.find_track(station_id, unique_id)
        if track is not None:
            self._store(track)
        return track

    def get_track(self, track_id: int) -> Optional[Track]:
        with self._lock:
            cached = self._by_id.get(track_id)
        if cached is not None:
            return cached

        track = self.inner.get_track(track_id)
        if track is not None:
            self._store(track)
        return track

    def is_requestable(self, track: Track) -> bool:
        return self.inner.is_requestable(track)

    def invalidate(self, station_id: Optional[int] = None) -> int:
        """Drop cached tracks for one station, or everything.

        Returns:
            Number of tracks evicted
        """
        with self._lock:
            if station_id is None:
                evicted = len(self._by_id)
                self._by_unique_id.clear()
                self._by_id.clear()
            else:
                stale = [t for t in self._by_id.values() if t.station_id == station_id]
                for track in stale:
                    self._by_id.pop(track.id, None)
                    self._by_unique_id.pop((track.station_id, track.unique_id), None)
                evicted = len(stale)

        logger.debug(f"Catalog cache invalidated (station={station_id}, evicted={evicted})")
        return evicted

    def _store(self, track: Track) -> None:
        with self._lock:
            self._by_id[track.id] = track
            self._by_unique_id[(track.station_id, track.unique_id)] = track
