"""
"Should play now" strategies for the request scheduler.

A policy is any callable ``(PendingRequest, datetime) -> bool``.
"""

import random
from datetime import datetime, time, timedelta
from typing import Callable, Optional

from .models import PendingRequest, StationRequestConfig

ShouldPlayNow = Callable[[PendingRequest, datetime], bool]


def immediate_policy(request: PendingRequest, now: datetime) -> bool:
    """Every pending request may play right away."""
    return True


def delay_policy(
    station: StationRequestConfig,
    rng: Optional[random.Random] = None,
    jitter: bool = True,
) -> ShouldPlayNow:
    """Hold normal requests back for the station's request delay.

    Requests with a skip_delay play at once. Otherwise a request becomes
    eligible once it has waited ``delay + randint(0, delay)`` minutes, which
    spreads a burst of requests out instead of airing them back to back.

    Args:
        station: Station whose request_delay_minutes applies
        rng: Random source for the jitter (module random by default)
        jitter: Disable to wait exactly the configured delay
    """
    randint = rng.randint if rng else random.randint
    delay_mins = station.request_delay_minutes or 0

    def should_play_now(request: PendingRequest, now: datetime) -> bool:
        if request.skip_delay > 0:
            return True
        if delay_mins <= 0:
            return True

        wait_mins = delay_mins
        if jitter:
            wait_mins += randint(0, delay_mins)

        cued_at = datetime.fromtimestamp(request.submitted_at, tz=now.tzinfo)
        return now - timedelta(minutes=wait_mins) > cued_at

    return should_play_now


def time_in_range(start: str, end: str, check_time: time) -> bool:
    """Check if a time falls within a range, handling midnight wrap.

    Args:
        start: Start time in "HH:MM" format
        end: End time in "HH:MM" format
        check_time: Time to check

    Returns:
        True if check_time is within [start, end)

    Examples:
        time_in_range("09:00", "17:00", time(12, 0))  # True
        time_in_range("22:00", "06:00", time(23, 30))  # True (overnight)
        time_in_range("09:00", "17:00", time(17, 0))  # False (end is exclusive)
    """
    start_time = _parse_time(start)
    end_time = _parse_time(end)

    if start_time <= end_time:
        return start_time <= check_time < end_time
    return check_time >= start_time or check_time < end_time


def _parse_time(time_str: str) -> time:
    """Parse "HH:MM" string to time object."""
    parts = time_str.split(":")
    return time(int(parts[0]), int(parts[1]))


def time_window_policy(start: str, end: str) -> ShouldPlayNow:
    """Only let requests play while the station's local time is in [start, end)."""
    # Fail on a malformed window at construction rather than mid-scan
    _parse_time(start)
    _parse_time(end)

    def should_play_now(request: PendingRequest, now: datetime) -> bool:
        return time_in_range(start, end, now.time().replace(tzinfo=None))

    return should_play_now


def all_of(*policies: ShouldPlayNow) -> ShouldPlayNow:
    """Combine policies; a request must satisfy every one of them."""

    def should_play_now(request: PendingRequest, now: datetime) -> bool:
        return all(policy(request, now) for policy in policies)

    return should_play_now
