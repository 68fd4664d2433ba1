"""
Station management for listener requests.

CRUD operations for stations and their request policy.
"""

from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

from station_requests.core.db_adapter import get_requests_db_connection, insert_returning_id

from .models import StationRequestConfig


def _row_to_station(row: dict[str, Any]) -> StationRequestConfig:
    """Convert database row to StationRequestConfig dataclass."""
    return StationRequestConfig(
        station_id=row["id"],
        name=row["name"],
        enable_requests=bool(row["enable_requests"]),
        request_threshold_minutes=row["request_threshold"],
        request_delay_minutes=row["request_delay"],
        timezone=row["timezone"] or "UTC",
    )


def _validate_timezone(timezone: str) -> None:
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {timezone!r}")


def create_station(
    name: str,
    enable_requests: bool = True,
    request_threshold_minutes: Optional[int] = None,
    request_delay_minutes: Optional[int] = None,
    timezone: str = "UTC",
) -> StationRequestConfig:
    """Create a new station.

    Args:
        name: Unique station name
        enable_requests: Whether listeners may submit requests
        request_threshold_minutes: Recent-play / rate-limit threshold (None = defaults)
        request_delay_minutes: Minutes a normal request waits before airing
        timezone: IANA timezone name

    Returns:
        The created station

    Raises:
        ValueError: If name already exists, a threshold is negative or the
            timezone is unknown
    """
    _validate_timezone(timezone)
    for label, value in (
        ("request threshold", request_threshold_minutes),
        ("request delay", request_delay_minutes),
    ):
        if value is not None and value < 0:
            raise ValueError(f"Invalid {label}: {value}. Must be >= 0")

    with get_requests_db_connection() as conn:
        try:
            station_id = insert_returning_id(
                conn,
                """
                INSERT INTO stations (name, enable_requests, request_threshold, request_delay, timezone)
                VALUES (?, ?, ?, ?, ?)
                """,
                (name, enable_requests, request_threshold_minutes, request_delay_minutes, timezone),
            )
            conn.commit()
        except Exception as e:
            if "UNIQUE constraint failed" in str(e) or "duplicate key" in str(e):
                raise ValueError(f"Station '{name}' already exists")
            raise

    logger.info(f"Created station '{name}' with id {station_id}")
    return StationRequestConfig(
        station_id=station_id,
        name=name,
        enable_requests=enable_requests,
        request_threshold_minutes=request_threshold_minutes,
        request_delay_minutes=request_delay_minutes,
        timezone=timezone,
    )


def get_station(station_id: int) -> Optional[StationRequestConfig]:
    """Get a station by ID.

    Args:
        station_id: Station ID

    Returns:
        Station or None if not found
    """
    with get_requests_db_connection() as conn:
        cursor = conn.execute(
            "SELECT * FROM stations WHERE id = ?",
            (station_id,),
        )
        row = cursor.fetchone()
        return _row_to_station(dict(row)) if row else None


def get_station_by_name(name: str) -> Optional[StationRequestConfig]:
    """Get a station by name."""
    with get_requests_db_connection() as conn:
        cursor = conn.execute(
            "SELECT * FROM stations WHERE name = ?",
            (name,),
        )
        row = cursor.fetchone()
        return _row_to_station(dict(row)) if row else None


def get_all_stations() -> list[StationRequestConfig]:
    """Get all stations, ordered by name."""
    with get_requests_db_connection() as conn:
        cursor = conn.execute("SELECT * FROM stations ORDER BY name")
        return [_row_to_station(dict(row)) for row in cursor.fetchall()]


def update_station(
    station_id: int,
    enable_requests: Optional[bool] = None,
    request_threshold_minutes: Optional[int] = None,
    request_delay_minutes: Optional[int] = None,
    timezone: Optional[str] = None,
) -> bool:
    """Update a station's request policy.

    Thresholds use -1 to clear back to NULL (per-check defaults).

    Returns:
        True if updated successfully, False if station not found

    Raises:
        ValueError: If a threshold is below -1 or the timezone is unknown
    """
    if timezone is not None:
        _validate_timezone(timezone)
    for label, value in (
        ("request threshold", request_threshold_minutes),
        ("request delay", request_delay_minutes),
    ):
        if value is not None and value < -1:
            raise ValueError(f"Invalid {label}: {value}. Must be >= 0, or -1 to clear")

    updates: list[str] = []
    params: list[Any] = []

    if enable_requests is not None:
        updates.append("enable_requests = ?")
        params.append(enable_requests)
    if request_threshold_minutes is not None:
        updates.append("request_threshold = ?")
        params.append(None if request_threshold_minutes == -1 else request_threshold_minutes)
    if request_delay_minutes is not None:
        updates.append("request_delay = ?")
        params.append(None if request_delay_minutes == -1 else request_delay_minutes)
    if timezone is not None:
        updates.append("timezone = ?")
        params.append(timezone)

    if not updates:
        return True  # Nothing to update

    updates.append("updated_at = CURRENT_TIMESTAMP")
    params.append(station_id)

    with get_requests_db_connection() as conn:
        cursor = conn.execute(
            f"UPDATE stations SET {', '.join(updates)} WHERE id = ?",
            tuple(params),
        )
        conn.commit()
        updated = cursor.rowcount > 0
        if updated:
            logger.info(f"Updated station {station_id}")
        return updated


class SqlStationConfig:
    """StationConfig backed by the stations table."""

    def get(self, station_id: int) -> Optional[StationRequestConfig]:
        return get_station(station_id)
