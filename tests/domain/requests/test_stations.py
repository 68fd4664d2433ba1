"""Tests for station management."""

import pytest

from station_requests.domain.requests.stations import (
    SqlStationConfig,
    create_station,
    get_all_stations,
    get_station,
    get_station_by_name,
    update_station,
)


class TestCreateStation:
    """Tests for create_station."""

    def test_create_and_get(self, test_db):
        """Test a created station can be read back."""
        station = create_station(
            "Late Night",
            request_threshold_minutes=5,
            request_delay_minutes=2,
            timezone="Europe/Berlin",
        )

        assert get_station(station.station_id) == station
        assert get_station_by_name("Late Night") == station
        assert SqlStationConfig().get(station.station_id) == station

    def test_defaults(self, test_db):
        """Test unset thresholds stay None."""
        station = get_station(create_station("Plain").station_id)

        assert station.enable_requests is True
        assert station.request_threshold_minutes is None
        assert station.request_delay_minutes is None
        assert station.timezone == "UTC"

    def test_duplicate_name(self, test_db):
        """Test station names are unique."""
        create_station("Main")

        with pytest.raises(ValueError, match="already exists"):
            create_station("Main")

    def test_negative_threshold(self, test_db):
        """Test negative thresholds are refused."""
        with pytest.raises(ValueError, match="Invalid request threshold"):
            create_station("Bad", request_threshold_minutes=-1)

    def test_unknown_timezone(self, test_db):
        """Test an unloadable timezone is refused and nothing is stored."""
        with pytest.raises(ValueError, match="Unknown timezone"):
            create_station("Nowhere", timezone="Mars/Olympus")

        assert get_station_by_name("Nowhere") is None

    def test_missing_station(self, test_db):
        """Test an unknown id returns None."""
        assert get_station(404) is None
        assert SqlStationConfig().get(404) is None

    def test_all_sorted_by_name(self, test_db):
        """Test listing orders by name."""
        create_station("Zulu")
        create_station("Alpha")

        assert [s.name for s in get_all_stations()] == ["Alpha", "Zulu"]


class TestUpdateStation:
    """Tests for update_station."""

    def test_update_fields(self, test_db):
        """Test policy fields are updated."""
        station = create_station("Main", request_threshold_minutes=5)

        assert update_station(station.station_id, enable_requests=False, request_delay_minutes=3)

        updated = get_station(station.station_id)
        assert updated.enable_requests is False
        assert updated.request_delay_minutes == 3
        assert updated.request_threshold_minutes == 5

    def test_clear_threshold(self, test_db):
        """Test -1 clears a threshold back to the defaults."""
        station = create_station("Main", request_threshold_minutes=5)

        update_station(station.station_id, request_threshold_minutes=-1)

        assert get_station(station.station_id).request_threshold_minutes is None

    def test_missing_station(self, test_db):
        """Test updating an unknown station reports failure."""
        assert update_station(404, enable_requests=True) is False

    def test_rejects_below_minus_one(self, test_db):
        """Test only -1 is accepted as a negative value."""
        station = create_station("Main")

        with pytest.raises(ValueError, match="Invalid request delay"):
            update_station(station.station_id, request_delay_minutes=-5)

    def test_rejects_unknown_timezone(self, test_db):
        """Test a station cannot be moved to a timezone the scheduler cannot load."""
        station = create_station("Main")

        with pytest.raises(ValueError, match="Unknown timezone"):
            update_station(station.station_id, timezone="Mars/Olympus")

        assert get_station(station.station_id).timezone == "UTC"
