"""
Request admission: validate a listener submission and enqueue it.
"""

import time
from typing import Callable, Iterable, Optional

from loguru import logger

from .crawler import is_crawler
from .duplicates import DuplicateChecker
from .exceptions import (
    AutomatedTrafficRejected,
    RateLimited,
    RequestError,
    RequestsDisabled,
    TrackNotFound,
    TrackNotRequestable,
)
from .models import PendingRequest, StationRequestConfig
from .stores import CatalogLookup, RequestStore

# Minutes between anonymous requests from one IP when the station sets no threshold
DEFAULT_RATE_LIMIT_THRESHOLD_MINUTES = 5

# Thresholds under a minute collapse to this flood floor
MIN_RATE_LIMIT_SECONDS = 15


def rate_limit_seconds(station: StationRequestConfig) -> int:
    """Get the per-IP wait between anonymous requests for a station.

    Examples:
        threshold None -> 300
        threshold 10   -> 600
        threshold 0    -> 15
    """
    threshold_mins = station.request_threshold_minutes
    if threshold_mins is None:
        threshold_mins = DEFAULT_RATE_LIMIT_THRESHOLD_MINUTES

    threshold_seconds = threshold_mins * 60
    if threshold_seconds < 60:
        threshold_seconds = MIN_RATE_LIMIT_SECONDS
    return threshold_seconds


class RequestAdmission:
    """Validates listener requests and appends accepted ones to the queue."""

    def __init__(
        self,
        catalog: CatalogLookup,
        requests: RequestStore,
        checker: DuplicateChecker,
        clock: Callable[[], float] = time.time,
        crawler_patterns: Iterable[str] = (),
    ) -> None:
        self.catalog = catalog
        self.requests = requests
        self.checker = checker
        self.clock = clock
        self.crawler_patterns = tuple(crawler_patterns)

    def submit(
        self,
        station: StationRequestConfig,
        track_id: str,
        is_authenticated: bool,
        ip: str,
        user_agent: Optional[str] = None,
    ) -> int:
        """Submit a listener request for a track.

        Args:
            station: Station being requested on
            track_id: Catalog identifier the listener picked
            is_authenticated: Logged-in users skip the per-IP rate limit
            ip: Submitter address
            user_agent: Raw User-Agent header, if known

        Returns:
            Id of the new pending request

        Raises:
            RequestError: The first failed check, nothing is written
        """
        try:
            request_id = self._submit(station, track_id, is_authenticated, ip, user_agent)
        except RequestError as e:
            logger.info(
                f"Rejected request for '{track_id}' on station {station.station_id} "
                f"from {ip}: {type(e).__name__}"
            )
            raise

        logger.info(
            f"Accepted request {request_id} for '{track_id}' on station "
            f"{station.station_id} from {ip}"
        )
        return request_id

    def _submit(
        self,
        station: StationRequestConfig,
        track_id: str,
        is_authenticated: bool,
        ip: str,
        user_agent: Optional[str],
    ) -> int:
        if is_crawler(user_agent, self.crawler_patterns):
            raise AutomatedTrafficRejected()

        if not station.enable_requests:
            raise RequestsDisabled()

        track = self.catalog.find_track(station.station_id, track_id)
        if track is None:
            raise TrackNotFound()

        if not self.catalog.is_requestable(track):
            raise TrackNotRequestable()

        # Checks and append share one write transaction so concurrent
        # submissions cannot both pass and double-enqueue.
        with self.requests.transaction():
            self.checker.check_pending_request(track, station)
            self.checker.check_recent_play(track, station)

            now = int(self.clock())

            if not is_authenticated:
                since = now - rate_limit_seconds(station)
                if self.requests.count_by_ip_since(ip, since) > 0:
                    raise RateLimited()

            return self.requests.append(
                PendingRequest(
                    station_id=station.station_id,
                    track_id=track.id,
                    ip=ip,
                    submitted_at=now,
                )
            )
