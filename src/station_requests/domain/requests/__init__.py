"""
Listener request domain module.

Provides request admission (crawler, duplicate, recency and rate-limit
checks), pending-request scheduling, and SQL-backed collaborator stores.
"""

from .admission import RequestAdmission, rate_limit_seconds
from .catalog import CachedCatalog, SqlCatalog, add_track
from .crawler import is_crawler
from .duplicates import (
    DuplicateChecker,
    get_distinct_track,
    is_distinct,
    is_duplicate_of_recent_play,
)
from .exceptions import (
    AutomatedTrafficRejected,
    DuplicateOutstandingRequest,
    DuplicateRecentPlay,
    RateLimited,
    RequestError,
    RequestsDisabled,
    TrackNotFound,
    TrackNotRequestable,
)
from .history import SqlPlayHistory
from .models import PendingRequest, PlayHistoryEntry, StationRequestConfig, Track
from .policies import (
    all_of,
    delay_policy,
    immediate_policy,
    time_in_range,
    time_window_policy,
)
from .repository import SqlRequestStore
from .scheduler import RequestScheduler
from .stations import (
    SqlStationConfig,
    create_station,
    get_all_stations,
    get_station,
    get_station_by_name,
    update_station,
)

__all__ = [
    # Models
    "Track",
    "StationRequestConfig",
    "PendingRequest",
    "PlayHistoryEntry",
    # Errors
    "RequestError",
    "AutomatedTrafficRejected",
    "RequestsDisabled",
    "TrackNotFound",
    "TrackNotRequestable",
    "DuplicateOutstandingRequest",
    "DuplicateRecentPlay",
    "RateLimited",
    # Checks
    "DuplicateChecker",
    "get_distinct_track",
    "is_distinct",
    "is_duplicate_of_recent_play",
    "is_crawler",
    # Admission and scheduling
    "RequestAdmission",
    "rate_limit_seconds",
    "RequestScheduler",
    "immediate_policy",
    "delay_policy",
    "time_window_policy",
    "time_in_range",
    "all_of",
    # Stores
    "SqlCatalog",
    "CachedCatalog",
    "add_track",
    "SqlPlayHistory",
    "SqlRequestStore",
    "SqlStationConfig",
    "create_station",
    "get_station",
    "get_station_by_name",
    "get_all_stations",
    "update_station",
]
