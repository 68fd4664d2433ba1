"""
Duplicate and recency checks for listener requests.

A requested track is held back when the same song or artist went to air within
the station's request threshold, or when the same track is already waiting in
the queue.
"""

import time
from typing import Callable, Iterable, Mapping, Optional, Sequence, Union

from loguru import logger

from .exceptions import DuplicateOutstandingRequest, DuplicateRecentPlay
from .models import PlayHistoryEntry, StationRequestConfig, Track
from .stores import PlayHistoryStore, RequestStore

# Minutes of history checked when the station sets no threshold
DEFAULT_RECENT_PLAY_THRESHOLD_MINUTES = 15

# Queue entries younger than this block the same track regardless of station config
PENDING_REQUEST_WINDOW_SECONDS = 10 * 60

SongLike = Union[Track, PlayHistoryEntry, Mapping[str, Optional[str]]]


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


def _title_artist(song: SongLike) -> tuple[str, str]:
    if isinstance(song, Mapping):
        return _normalize(song.get("title")), _normalize(song.get("artist"))
    return _normalize(song.title), _normalize(song.artist)


def is_distinct(candidate: SongLike, recent_plays: Iterable[SongLike]) -> bool:
    """Check that a song shares neither title nor artist with any recent play.

    Blank values compare like any other string, so two untagged songs clash.
    """
    title, artist = _title_artist(candidate)

    for recent in recent_plays:
        recent_title, recent_artist = _title_artist(recent)
        if title == recent_title:
            return False
        if artist == recent_artist:
            return False

    return True


def get_distinct_track(
    eligible: Sequence[SongLike], recent_plays: Sequence[SongLike]
) -> Optional[SongLike]:
    """Return the first eligible song distinct from every recent play, or None."""
    for candidate in eligible:
        if is_distinct(candidate, recent_plays):
            return candidate
    return None


def is_duplicate_of_recent_play(
    candidate: SongLike, recent_plays: Sequence[SongLike]
) -> bool:
    """Check if a candidate repeats the title or artist of a recent play."""
    return get_distinct_track([candidate], recent_plays) is None


class DuplicateChecker:
    """Runs the recent-play and outstanding-request checks for a station."""

    def __init__(
        self,
        history: PlayHistoryStore,
        requests: RequestStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.history = history
        self.requests = requests
        self.clock = clock

    def check_recent_play(self, track: Track, station: StationRequestConfig) -> None:
        """Reject a track whose title or artist aired within the threshold.

        Raises:
            DuplicateRecentPlay: If the song or artist played too recently
        """
        threshold_mins = station.request_threshold_minutes
        if threshold_mins is None:
            threshold_mins = DEFAULT_RECENT_PLAY_THRESHOLD_MINUTES

        if threshold_mins == 0:
            return

        since = int(self.clock()) - threshold_mins * 60
        recent_plays = self.history.recent_entries(station.station_id, since)

        if is_duplicate_of_recent_play(track, recent_plays):
            logger.debug(
                f"Track {track.id} ({track.artist} - {track.title}) aired within "
                f"{threshold_mins}m on station {station.station_id}"
            )
            raise DuplicateRecentPlay()

    def check_pending_request(
        self, track: Track, station: StationRequestConfig
    ) -> None:
        """Reject a track that is already waiting in the station queue.

        A lookup that cannot be evaluated is treated as a duplicate so a
        failing store cannot be used to flood the queue.

        Raises:
            DuplicateOutstandingRequest: If the track is queued, or the lookup failed
        """
        since = int(self.clock()) - PENDING_REQUEST_WINDOW_SECONDS

        try:
            pending_timestamp = self.requests.most_recent_pending(
                station.station_id, track.id, since
            )
        except Exception as e:
            logger.warning(
                f"Pending request lookup failed for track {track.id} on "
                f"station {station.station_id}, rejecting: {e}"
            )
            raise DuplicateOutstandingRequest() from e

        if pending_timestamp is not None and pending_timestamp > 0:
            raise DuplicateOutstandingRequest()
