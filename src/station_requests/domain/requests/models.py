"""
Request queue domain models.

Contains data structures for stations, catalog tracks, listener requests and
play history.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Track:
    """A catalog track that listeners can ask for.

    ``unique_id`` is the identifier listeners submit; ``id`` is the internal
    row id that requests and history point at.
    """

    id: int
    unique_id: str
    station_id: int
    title: str
    artist: str
    is_requestable: bool = True


@dataclass(frozen=True)
class StationRequestConfig:
    """Request policy for a single station.

    ``request_threshold_minutes`` is shared by the recent-play window and the
    per-IP rate limit. ``None`` lets each use apply its own default.
    """

    station_id: int
    name: str
    enable_requests: bool
    request_threshold_minutes: Optional[int] = None
    request_delay_minutes: Optional[int] = None
    timezone: str = "UTC"


@dataclass(frozen=True)
class PendingRequest:
    """A listener request in the station queue.

    ``played_at`` stays 0 until the playback committer marks it played.
    """

    station_id: int
    track_id: int
    ip: str
    submitted_at: int  # epoch seconds
    played_at: int = 0  # epoch seconds, 0 = pending
    skip_delay: int = 0  # higher plays first
    id: Optional[int] = None

    @property
    def is_pending(self) -> bool:
        return self.played_at == 0


@dataclass(frozen=True)
class PlayHistoryEntry:
    """A track that went to air on a station."""

    id: int
    station_id: int
    title: str
    artist: str
    started_at: int  # epoch seconds
