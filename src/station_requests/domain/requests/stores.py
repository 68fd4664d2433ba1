"""
Collaborator interfaces consumed by admission and scheduling.

The SQL implementations live in ``catalog``, ``history``, ``repository`` and
``stations``; tests substitute mocks.
"""

from typing import ContextManager, Optional, Protocol

from .models import PendingRequest, PlayHistoryEntry, StationRequestConfig, Track


class CatalogLookup(Protocol):
    """Resolves request identifiers to catalog tracks."""

    def find_track(self, station_id: int, unique_id: str) -> Optional[Track]: ...
    def get_track(self, track_id: int) -> Optional[Track]: ...
    def is_requestable(self, track: Track) -> bool: ...


class PlayHistoryStore(Protocol):
    """Append-only log of what went to air."""

    def recent_entries(self, station_id: int, since: int) -> list[PlayHistoryEntry]: ...
    def record(self, station_id: int, title: str, artist: str, started_at: int) -> int: ...


class RequestStore(Protocol):
    """Durable log of listener requests."""

    def transaction(self) -> ContextManager[None]: ...
    def append(self, request: PendingRequest) -> int: ...
    def most_recent_pending(
        self, station_id: int, track_id: int, since: int
    ) -> Optional[int]: ...
    def count_by_ip_since(self, ip: str, since: int) -> int: ...
    def pending_for_station(self, station_id: int) -> list[PendingRequest]: ...
    def mark_played(self, request_id: int, played_at: int) -> bool: ...


class StationConfig(Protocol):
    """Station request policy lookup."""

    def get(self, station_id: int) -> Optional[StationRequestConfig]: ...
