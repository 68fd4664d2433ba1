"""
Request scheduler: pick the next listener request that may go to air.

Selection is read-only. Marking the winner played is the playback
committer's job (``RequestStore.mark_played``).
"""

from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from loguru import logger

from .duplicates import DuplicateChecker
from .exceptions import DuplicateRecentPlay
from .models import PendingRequest, StationRequestConfig
from .policies import ShouldPlayNow, delay_policy
from .stores import CatalogLookup, RequestStore


def scheduling_order(request: PendingRequest) -> tuple[int, int]:
    """Sort key: highest skip_delay first, then oldest id."""
    return (-request.skip_delay, request.id or 0)


class RequestScheduler:
    """Scans a station's pending requests for the first playable one."""

    def __init__(
        self,
        requests: RequestStore,
        catalog: CatalogLookup,
        checker: DuplicateChecker,
        policy_factory: Callable[[StationRequestConfig], ShouldPlayNow] = delay_policy,
    ) -> None:
        self.requests = requests
        self.catalog = catalog
        self.checker = checker
        self.policy_factory = policy_factory

    def get_next_playable_request(
        self,
        station: StationRequestConfig,
        now: Optional[datetime] = None,
    ) -> Optional[PendingRequest]:
        """Get the next pending request that should play now.

        Args:
            station: Station to schedule for
            now: Reference time (default: current time in the station timezone)

        Returns:
            First eligible request whose track did not air too recently,
            or None if nothing qualifies
        """
        if now is None:
            now = datetime.now(ZoneInfo(station.timezone))

        should_play_now = self.policy_factory(station)
        pending = sorted(
            self.requests.pending_for_station(station.station_id),
            key=scheduling_order,
        )

        for request in pending:
            if not should_play_now(request, now):
                continue

            track = self.catalog.get_track(request.track_id)
            if track is None:
                logger.warning(
                    f"Request {request.id} points at missing track {request.track_id}, skipping"
                )
                continue

            try:
                self.checker.check_recent_play(track, station)
            except DuplicateRecentPlay:
                logger.debug(f"Request {request.id} held back: {track.artist} aired recently")
                continue

            logger.info(
                f"Next request for station {station.station_id}: #{request.id} "
                f"{track.artist} - {track.title}"
            )
            return request

        logger.debug(
            f"No playable request for station {station.station_id} ({len(pending)} pending)"
        )
        return None
