"""Shared fixtures for station-requests tests."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

import station_requests.core.database as db_module
from station_requests.core.database import init_database
from station_requests.domain.requests.models import StationRequestConfig, Track


@pytest.fixture
def test_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary SQLite database with the full schema."""
    monkeypatch.delenv("DATABASE_URL", raising=False)
    db_path = tmp_path / "station_requests.db"
    monkeypatch.setattr(db_module, "_database_path_override", db_path)

    init_database()
    return db_path


@pytest.fixture
def station() -> StationRequestConfig:
    """A station accepting requests with a 5 minute threshold."""
    return StationRequestConfig(
        station_id=1,
        name="Test Station",
        enable_requests=True,
        request_threshold_minutes=5,
        timezone="UTC",
    )


@pytest.fixture
def track() -> Track:
    """A requestable catalog track."""
    return Track(
        id=42,
        unique_id="abc123",
        station_id=1,
        title="Blue Monday",
        artist="New Order",
    )


@pytest.fixture
def history_store() -> MagicMock:
    """Play history with nothing aired recently."""
    store = MagicMock()
    store.recent_entries.return_value = []
    return store


@pytest.fixture
def request_store() -> MagicMock:
    """Request store with an empty queue."""
    store = MagicMock()
    store.most_recent_pending.return_value = None
    store.count_by_ip_since.return_value = 0
    store.pending_for_station.return_value = []
    store.append.return_value = 101
    return store


@pytest.fixture
def catalog(track: Track) -> MagicMock:
    """Catalog that knows exactly one track."""
    catalog = MagicMock()
    catalog.find_track.side_effect = (
        lambda station_id, unique_id: track if unique_id == track.unique_id else None
    )
    catalog.get_track.side_effect = lambda track_id: track if track_id == track.id else None
    catalog.is_requestable.side_effect = lambda t: t.is_requestable
    return catalog
