"""Tests for request admission."""

from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from station_requests.domain.requests.admission import RequestAdmission, rate_limit_seconds
from station_requests.domain.requests.exceptions import (
    AutomatedTrafficRejected,
    DuplicateOutstandingRequest,
    DuplicateRecentPlay,
    RateLimited,
    RequestError,
    RequestsDisabled,
    TrackNotFound,
    TrackNotRequestable,
)
from station_requests.domain.requests.models import PendingRequest

NOW = 1_700_000_000
BROWSER_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"


@pytest.fixture
def checker() -> MagicMock:
    """Duplicate checker that passes everything."""
    return MagicMock()


@pytest.fixture
def admission(catalog, request_store, checker) -> RequestAdmission:
    return RequestAdmission(catalog, request_store, checker, clock=lambda: NOW)


class TestRateLimitSeconds:
    """Tests for the per-IP rate limit window."""

    @pytest.mark.parametrize(
        "threshold,expected",
        [
            (None, 300),
            (10, 600),
            (1, 60),
            (0, 15),
        ],
    )
    def test_window(self, station, threshold, expected):
        """Test threshold minutes map to seconds with a 15s floor."""
        station = replace(station, request_threshold_minutes=threshold)
        assert rate_limit_seconds(station) == expected


class TestSubmitAccepted:
    """Tests for successful submissions."""

    def test_returns_new_id(self, admission, request_store, station):
        """Test an accepted request is appended and its id returned."""
        assert admission.submit(station, "abc123", False, "10.0.0.1", BROWSER_UA) == 101

        request_store.append.assert_called_once_with(
            PendingRequest(station_id=1, track_id=42, ip="10.0.0.1", submitted_at=NOW)
        )

    def test_appends_inside_transaction(self, admission, request_store, checker, station):
        """Test checks and append run while the queue transaction is open."""
        calls = []
        transaction = request_store.transaction.return_value
        transaction.__enter__.side_effect = lambda: calls.append("begin")
        transaction.__exit__.side_effect = lambda *exc: calls.append("end")
        checker.check_pending_request.side_effect = lambda *a: calls.append("pending")
        request_store.append.side_effect = lambda r: calls.append("append") or 7

        assert admission.submit(station, "abc123", False, "10.0.0.1") == 7
        assert calls == ["begin", "pending", "append", "end"]

    def test_missing_user_agent_is_allowed(self, admission, station):
        """Test an unknown user agent is not treated as a crawler."""
        assert admission.submit(station, "abc123", False, "10.0.0.1", None) == 101

    def test_authenticated_skips_rate_limit(self, admission, request_store, station):
        """Test logged-in users are never rate limited."""
        request_store.count_by_ip_since.return_value = 3

        assert admission.submit(station, "abc123", True, "10.0.0.1") == 101
        request_store.count_by_ip_since.assert_not_called()

    def test_rate_limit_window_from_station(self, admission, request_store, station):
        """Test the IP count starts threshold minutes ago."""
        admission.submit(station, "abc123", False, "10.0.0.1")

        request_store.count_by_ip_since.assert_called_once_with("10.0.0.1", NOW - 300)


class TestSubmitRejected:
    """Tests for each rejection path."""

    def test_crawler(self, admission, catalog, request_store, station):
        """Test crawlers are rejected before any lookup."""
        with pytest.raises(AutomatedTrafficRejected):
            admission.submit(station, "abc123", False, "10.0.0.1", "Googlebot/2.1")

        catalog.find_track.assert_not_called()
        request_store.append.assert_not_called()

    def test_crawler_beats_disabled_station(self, admission, station):
        """Test the crawler check runs first."""
        station = replace(station, enable_requests=False)

        with pytest.raises(AutomatedTrafficRejected):
            admission.submit(station, "abc123", False, "10.0.0.1", "curl/8.4.0")

    def test_extra_crawler_patterns(self, catalog, request_store, checker, station):
        """Test configured patterns extend the built-in list."""
        admission = RequestAdmission(
            catalog, request_store, checker, clock=lambda: NOW, crawler_patterns=["kiosk"]
        )

        with pytest.raises(AutomatedTrafficRejected):
            admission.submit(station, "abc123", False, "10.0.0.1", "StoreKiosk/1.0")

    def test_requests_disabled(self, admission, catalog, station):
        """Test a station with requests off rejects everything."""
        station = replace(station, enable_requests=False)

        with pytest.raises(RequestsDisabled):
            admission.submit(station, "abc123", False, "10.0.0.1")

        catalog.find_track.assert_not_called()

    def test_unknown_track(self, admission, request_store, station):
        """Test an unknown track id is rejected."""
        with pytest.raises(TrackNotFound):
            admission.submit(station, "nope", False, "10.0.0.1")

        request_store.transaction.assert_not_called()

    def test_not_requestable(self, admission, catalog, request_store, track, station):
        """Test tracks excluded from requests are rejected."""
        catalog.find_track.side_effect = None
        catalog.find_track.return_value = replace(track, is_requestable=False)

        with pytest.raises(TrackNotRequestable):
            admission.submit(station, "abc123", False, "10.0.0.1")

        request_store.append.assert_not_called()

    def test_outstanding_request(self, admission, request_store, checker, station):
        """Test an already queued track is rejected."""
        checker.check_pending_request.side_effect = DuplicateOutstandingRequest()

        with pytest.raises(DuplicateOutstandingRequest):
            admission.submit(station, "abc123", False, "10.0.0.1")

        checker.check_recent_play.assert_not_called()
        request_store.append.assert_not_called()

    def test_recent_play(self, admission, request_store, checker, station):
        """Test a song or artist that aired recently is rejected."""
        checker.check_recent_play.side_effect = DuplicateRecentPlay()

        with pytest.raises(DuplicateRecentPlay):
            admission.submit(station, "abc123", False, "10.0.0.1")

        request_store.count_by_ip_since.assert_not_called()
        request_store.append.assert_not_called()

    def test_rate_limited(self, admission, request_store, station):
        """Test a second anonymous request inside the window is rejected."""
        request_store.count_by_ip_since.return_value = 1

        with pytest.raises(RateLimited):
            admission.submit(station, "abc123", False, "10.0.0.1")

        request_store.append.assert_not_called()

    def test_rejection_propagates_through_transaction(
        self, admission, request_store, checker, station
    ):
        """Test the transaction sees the error so it can roll back."""
        checker.check_recent_play.side_effect = DuplicateRecentPlay()

        with pytest.raises(DuplicateRecentPlay):
            admission.submit(station, "abc123", False, "10.0.0.1")

        exit_args = request_store.transaction.return_value.__exit__.call_args[0]
        assert exit_args[0] is DuplicateRecentPlay

    def test_errors_share_base_class(self, admission, station):
        """Test callers can catch every rejection as RequestError."""
        with pytest.raises(RequestError) as exc_info:
            admission.submit(station, "nope", False, "10.0.0.1")

        assert "could not be found" in str(exc_info.value)
