"""Tests for catalog lookups and the catalog cache."""

from unittest.mock import MagicMock

import pytest

from station_requests.domain.requests.catalog import CachedCatalog, SqlCatalog, add_track
from station_requests.domain.requests.models import Track
from station_requests.domain.requests.stations import create_station


def _track(track_id: int, station_id: int = 1) -> Track:
    return Track(
        id=track_id,
        unique_id=f"u{track_id}",
        station_id=station_id,
        title=f"Song {track_id}",
        artist="Artist",
    )


@pytest.fixture
def inner() -> MagicMock:
    tracks = {t.id: t for t in (_track(1), _track(2), _track(3, station_id=2))}
    inner = MagicMock()
    inner.get_track.side_effect = tracks.get
    inner.find_track.side_effect = lambda station_id, unique_id: next(
        (t for t in tracks.values() if t.station_id == station_id and t.unique_id == unique_id),
        None,
    )
    return inner


class TestCachedCatalog:
    """Tests for CachedCatalog."""

    def test_repeat_lookup_hits_cache(self, inner):
        """Test the inner catalog is asked once per track."""
        cache = CachedCatalog(inner)

        assert cache.find_track(1, "u1") == _track(1)
        assert cache.find_track(1, "u1") == _track(1)

        assert inner.find_track.call_count == 1

    def test_find_populates_get(self, inner):
        """Test both indexes are filled from either lookup."""
        cache = CachedCatalog(inner)
        cache.find_track(1, "u1")

        assert cache.get_track(1) == _track(1)
        inner.get_track.assert_not_called()

    def test_misses_are_not_cached(self, inner):
        """Test an unknown track is looked up again next time."""
        cache = CachedCatalog(inner)

        assert cache.get_track(99) is None
        assert cache.get_track(99) is None
        assert inner.get_track.call_count == 2

    def test_invalidate_station(self, inner):
        """Test invalidation only drops the given station's tracks."""
        cache = CachedCatalog(inner)
        for track_id in (1, 2, 3):
            cache.get_track(track_id)

        assert cache.invalidate(1) == 2

        cache.get_track(3)
        cache.get_track(1)
        assert inner.get_track.call_count == 4

    def test_invalidate_all(self, inner):
        """Test invalidation without a station clears everything."""
        cache = CachedCatalog(inner)
        cache.get_track(1)
        cache.get_track(3)

        assert cache.invalidate() == 2

        cache.find_track(1, "u1")
        inner.find_track.assert_called_once_with(1, "u1")

    def test_is_requestable_delegates(self, inner):
        """Test requestability comes from the inner catalog."""
        inner.is_requestable.return_value = False
        assert not CachedCatalog(inner).is_requestable(_track(1))


class TestSqlCatalog:
    """Tests for the tracks table catalog."""

    def test_add_and_find(self, test_db):
        """Test an added track is found by station and unique id."""
        station = create_station("Catalog Station")
        added = add_track(station.station_id, "abc", "Blue Monday", "New Order")

        catalog = SqlCatalog()
        assert catalog.find_track(station.station_id, "abc") == added
        assert catalog.get_track(added.id) == added
        assert catalog.find_track(station.station_id, "missing") is None

    def test_unique_id_scoped_to_station(self, test_db):
        """Test the same unique id may exist on two stations."""
        first = create_station("First")
        second = create_station("Second")
        add_track(first.station_id, "abc", "A", "B")
        add_track(second.station_id, "abc", "A", "B")

        with pytest.raises(ValueError):
            add_track(first.station_id, "abc", "Other", "Other")

    def test_requestable_flag(self, test_db):
        """Test the is_requestable column round-trips."""
        station = create_station("Flags")
        track = add_track(station.station_id, "x", "T", "A", is_requestable=False)

        stored = SqlCatalog().get_track(track.id)
        assert stored.is_requestable is False
        assert not SqlCatalog().is_requestable(stored)
