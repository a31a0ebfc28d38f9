"""
Tests for FlightLookupService

Tests cover:
- Format validation before any I/O
- Live vs scheduled endpoint routing
- IATA -> ICAO retry
- Already-landed detection
- Cache TTLs and what is never cached
- Upstream error classification
- Airport pickup search (destination support, proximity warnings)
"""

from datetime import datetime, timedelta, timezone

import pytest

from flightwatch.errors import (
    FlightAlreadyLandedError,
    FlightNotFoundError,
    InvalidFlightNumberError,
    InvalidPickupDateError,
    UpstreamApiError,
    UpstreamAuthError,
    UpstreamRateLimitError,
)
from flightwatch.services.flight_lookup_service import FlightLookupService, format_local_time
from flightwatch.services.validation_cache import ValidationCache

LOS = {"code": "DNMM", "code_iata": "LOS", "name": "Murtala Muhammed Int'l", "city": "Lagos"}
LHR = {"code": "EGLL", "code_iata": "LHR", "name": "London Heathrow", "city": "London"}


def _leg(arrival="2026-01-15T14:00:00Z", destination=None, **extra):
    leg = {
        "ident": "BAW74",
        "fa_flight_id": "BAW74-1768400000-airline-0123",
        "origin": LHR,
        "destination": destination or LOS,
        "scheduled_off": "2026-01-15T07:30:00Z",
        "scheduled_on": arrival,
        "status": "Scheduled",
        "aircraft_type": "B789",
    }
    leg.update(extra)
    return leg


@pytest.fixture
def service(aero, clock):
    return FlightLookupService(
        client=aero.client(),
        cache=ValidationCache(ttl_seconds=86400, not_found_ttl_seconds=3600, clock=clock),
        clock=clock,
        reference_timezone="Africa/Lagos",
        supported_destinations={"LOS", "DNMM"},
        live_horizon_days=2,
        pickup_min_lead_minutes=60,
    )


class TestInputValidation:

    def test_invalid_number_rejected_without_io(self, service, aero):
        with pytest.raises(InvalidFlightNumberError):
            service.validate_flight("BA-74", "2026-01-15")
        assert aero.requests == []

    def test_invalid_date_rejected_without_io(self, service, aero):
        with pytest.raises(InvalidPickupDateError):
            service.validate_flight("BA74", "15/01/2026")
        assert aero.requests == []

    def test_lowercase_number_is_normalized(self, service, aero):
        aero.add("GET", "/flights/BA74", body={"flights": [_leg()]})

        flight = service.validate_flight("ba74", "2026-01-15")

        assert flight.flight_number == "BA74"


class TestSourceRouting:

    def test_near_date_uses_live_endpoint(self, service, aero):
        aero.add("GET", "/flights/BA74", body={"flights": [_leg()]})

        flight = service.validate_flight("BA74", "2026-01-15")

        assert flight.is_live is True
        assert len(aero.calls("GET", "/flights/")) == 1
        assert aero.calls("GET", "/schedules/") == []
        request = aero.calls("GET", "/flights/")[0]
        assert request.url.params["start"] == "2026-01-14T12:00:00Z"
        assert request.url.params["end"] == "2026-01-16T12:00:00Z"

    def test_live_window_end_capped_at_horizon(self, service, aero, clock):
        clock.now = datetime(2026, 1, 14, 6, 0, tzinfo=timezone.utc)
        aero.add("GET", "/flights/BA74", body={"flights": [_leg("2026-01-16T10:00:00Z")]})

        service.validate_flight("BA74", "2026-01-16")

        request = aero.calls("GET", "/flights/")[0]
        assert request.url.params["end"] == "2026-01-16T06:00:00Z"

    def test_far_date_uses_schedules_endpoint(self, service, aero):
        aero.add("GET", "/schedules/2026-01-19/2026-01-21", body={"scheduled": [{
            "ident": "BAW74",
            "ident_iata": "BA74",
            "fa_flight_id": "BAW74-1768900000-schedule-0001",
            "origin": "EGLL",
            "origin_iata": "LHR",
            "destination": "DNMM",
            "destination_iata": "LOS",
            "scheduled_out": "2026-01-20T07:30:00Z",
            "scheduled_in": "2026-01-20T15:10:00Z",
            "aircraft_type": "B789",
        }]})
        aero.add("GET", "/airports/DNMM", body={"name": "Murtala Muhammed Int'l", "city": "Lagos"})
        aero.add("GET", "/airports/EGLL", status=500, body={"title": "boom"})

        flight = service.validate_flight("BA74", "2026-01-20")

        assert aero.calls("GET", "/flights/") == []
        request = aero.calls("GET", "/schedules/")[0]
        assert request.url.params["airline"] == "BA"
        assert request.url.params["flight_number"] == "74"

        assert flight.is_live is False
        assert flight.status == "Scheduled"
        assert flight.flight_id == "BAW74-1768900000-schedule-0001"
        assert flight.scheduled_arrival == datetime(2026, 1, 20, 15, 10, tzinfo=timezone.utc)
        assert flight.destination_name == "Murtala Muhammed Int'l"
        assert flight.destination_city == "Lagos"
        # Airport lookup failure is swallowed
        assert flight.origin_name is None


class TestLivePath:

    def test_live_result_fields(self, service, aero):
        aero.add("GET", "/flights/BA74", body={"flights": [_leg(
            estimated_in="2026-01-15T14:20:00Z",
            delay=15,
        )]})

        flight = service.validate_flight("BA74", "2026-01-15")

        assert flight.flight_id == "BAW74-1768400000-airline-0123"
        assert flight.origin == "EGLL"
        assert flight.origin_iata == "LHR"
        assert flight.destination == "DNMM"
        assert flight.destination_iata == "LOS"
        assert flight.scheduled_arrival == datetime(2026, 1, 15, 14, 0, tzinfo=timezone.utc)
        assert flight.estimated_arrival == datetime(2026, 1, 15, 14, 20, tzinfo=timezone.utc)
        assert flight.aircraft_type == "B789"
        assert flight.delay == 15

    def test_arrival_date_is_local_to_reference_timezone(self, service, aero):
        # 23:30Z on the 14th is 00:30 on the 15th in Lagos
        aero.add("GET", "/flights/BA74", body={"flights": [_leg("2026-01-14T23:30:00Z")]})

        flight = service.validate_flight("BA74", "2026-01-15")

        assert flight.scheduled_arrival == datetime(2026, 1, 14, 23, 30, tzinfo=timezone.utc)

    def test_first_future_same_day_leg_wins(self, service, aero):
        aero.add("GET", "/flights/BA74", body={"flights": [
            _leg("2026-01-14T09:00:00Z", fa_flight_id="yesterday"),
            _leg("2026-01-15T09:00:00Z", fa_flight_id="first"),
            _leg("2026-01-15T20:00:00Z", fa_flight_id="second"),
        ]})

        assert service.validate_flight("BA74", "2026-01-15").flight_id == "first"

    def test_icao_retry_when_iata_finds_nothing(self, service, aero):
        aero.add("GET", "/flights/BA74", body={"flights": []})
        aero.add("GET", "/flights/BAW74", body={"flights": [_leg()]})

        flight = service.validate_flight("BA74", "2026-01-15")

        assert flight.flight_number == "BA74"
        assert [r.url.path for r in aero.calls("GET", "/flights/")] == [
            "/aeroapi/flights/BA74", "/aeroapi/flights/BAW74",
        ]

    def test_no_retry_without_icao_mapping(self, service, aero):
        aero.add("GET", "/flights/XY123", body={"flights": []})

        with pytest.raises(FlightNotFoundError):
            service.validate_flight("XY123", "2026-01-15")

        assert len(aero.requests) == 1

    def test_not_found_after_both_attempts(self, service, aero):
        with pytest.raises(FlightNotFoundError) as exc_info:
            service.validate_flight("BA74", "2026-01-15")

        assert len(aero.requests) == 2
        assert exc_info.value.status_code == 404


class TestAlreadyLanded:

    def test_landed_at_supported_destination(self, service, aero, clock):
        clock.now = datetime(2026, 1, 15, 18, 0, tzinfo=timezone.utc)
        aero.add("GET", "/flights/BA74", body={"flights": [
            _leg("2026-01-15T14:00:00Z", actual_on="2026-01-15T14:05:00Z"),
            _leg("2026-01-16T14:00:00Z"),
        ]})

        with pytest.raises(FlightAlreadyLandedError) as exc_info:
            service.validate_flight("BA74", "2026-01-15")

        error = exc_info.value
        assert error.landed_time == "3:05 PM"
        assert error.next_flight_date == "2026-01-16"
        assert error.requested_date == "2026-01-15"
        assert "has already landed at 3:05 PM" in error.detail

    def test_icao_destination_code_is_supported(self, service, aero, clock):
        clock.now = datetime(2026, 1, 15, 18, 0, tzinfo=timezone.utc)
        aero.add("GET", "/flights/BA74", body={"flights": [
            _leg("2026-01-15T14:00:00Z", destination={"code": "DNMM"}),
        ]})

        with pytest.raises(FlightAlreadyLandedError) as exc_info:
            service.validate_flight("BA74", "2026-01-15")

        assert exc_info.value.next_flight_date is None

    def test_landed_elsewhere_is_not_found(self, service, aero, clock):
        clock.now = datetime(2026, 1, 15, 18, 0, tzinfo=timezone.utc)
        aero.add("GET", "/flights/BA74", body={"flights": [
            _leg("2026-01-15T14:00:00Z", destination=LHR),
        ]})

        with pytest.raises(FlightNotFoundError):
            service.validate_flight("BA74", "2026-01-15")

    def test_already_landed_is_never_cached(self, service, aero, clock):
        clock.now = datetime(2026, 1, 15, 18, 0, tzinfo=timezone.utc)
        aero.add("GET", "/flights/BA74", body={"flights": [_leg("2026-01-15T14:00:00Z")]})

        for _ in range(2):
            with pytest.raises(FlightAlreadyLandedError):
                service.validate_flight("BA74", "2026-01-15")

        assert len(aero.requests) == 2

    def test_format_local_time(self):
        from zoneinfo import ZoneInfo
        tz = ZoneInfo("Africa/Lagos")
        assert format_local_time(datetime(2026, 1, 15, 11, 0, tzinfo=timezone.utc), tz) == "12:00 PM"
        assert format_local_time(datetime(2026, 1, 14, 23, 9, tzinfo=timezone.utc), tz) == "12:09 AM"


class TestScheduledPath:

    def _schedules(self, aero, entries):
        aero.add("GET", "/schedules/2026-01-19/2026-01-21", body={"scheduled": entries})

    def test_exact_identifier_match_preferred(self, service, aero):
        self._schedules(aero, [
            {"ident": "KLM1234", "ident_iata": "KL1234", "origin": "EHAM", "destination": "DNMM",
             "scheduled_in": "2026-01-20T18:00:00Z", "fa_flight_id": "codeshare"},
            {"ident": "BAW74", "actual_ident_iata": "BA74", "origin": "EGLL", "destination": "DNMM",
             "scheduled_in": "2026-01-20T15:10:00Z", "fa_flight_id": "exact"},
        ])

        assert service.validate_flight("BA74", "2026-01-20").flight_id == "exact"

    def test_falls_back_to_first_entry(self, service, aero):
        self._schedules(aero, [
            {"ident": "KLM1234", "origin": "EHAM", "destination": "DNMM",
             "scheduled_in": "2026-01-20T18:00:00Z", "fa_flight_id": "first"},
        ])

        assert service.validate_flight("BA74", "2026-01-20").flight_id == "first"

    def test_fallback_flight_id(self, service, aero):
        self._schedules(aero, [
            {"ident": "BAW74", "origin": "EGLL", "destination": "DNMM",
             "scheduled_in": "2026-01-20T15:10:00Z"},
        ])

        assert service.validate_flight("BA74", "2026-01-20").flight_id == "BA74-scheduled"

    def test_arrival_prefers_estimated_in(self, service, aero):
        self._schedules(aero, [
            {"ident": "BAW74", "origin": "EGLL", "destination": "DNMM",
             "estimated_in": "2026-01-20T15:40:00Z", "scheduled_in": "2026-01-20T15:10:00Z"},
        ])

        flight = service.validate_flight("BA74", "2026-01-20")

        assert flight.scheduled_arrival == datetime(2026, 1, 20, 15, 40, tzinfo=timezone.utc)

    def test_entry_without_arrival_is_not_found(self, service, aero):
        self._schedules(aero, [{"ident": "BAW74", "origin": "EGLL", "destination": "DNMM"}])

        with pytest.raises(FlightNotFoundError):
            service.validate_flight("BA74", "2026-01-20")

    def test_icao_retry(self, service, aero):
        self._schedules(aero, [])

        with pytest.raises(FlightNotFoundError):
            service.validate_flight("BA74", "2026-01-20")

        airlines = [r.url.params["airline"] for r in aero.calls("GET", "/schedules/")]
        assert airlines == ["BA", "BAW"]


class TestCaching:

    def test_success_served_from_cache_for_24h(self, service, aero, clock):
        aero.add("GET", "/flights/BA74", body={"flights": [_leg()]})

        service.validate_flight("BA74", "2026-01-15")
        clock.advance(hours=23)
        service.validate_flight("BA74", "2026-01-15")
        assert len(aero.requests) == 1

        clock.advance(hours=1, minutes=1)
        service.validate_flight("BA74", "2026-01-15")
        assert len(aero.requests) == 2

    def test_not_found_served_from_cache_for_1h(self, service, aero, clock):
        for _ in range(2):
            with pytest.raises(FlightNotFoundError):
                service.validate_flight("BA74", "2026-01-15")
        assert len(aero.requests) == 2

        clock.advance(minutes=61)
        with pytest.raises(FlightNotFoundError):
            service.validate_flight("BA74", "2026-01-15")
        assert len(aero.requests) == 4

    def test_date_and_timestamp_share_cache_entry(self, service, aero):
        aero.add("GET", "/flights/BA74", body={"flights": [_leg()]})

        service.validate_flight("BA74", "2026-01-15")
        service.validate_flight("BA74", "2026-01-15T09:00:00Z")

        assert len(aero.requests) == 1

    def test_datetime_pickup_date_is_truncated_to_utc_day(self, service, aero):
        aero.add("GET", "/flights/BA74", body={"flights": [_leg()]})

        flight = service.validate_flight("BA74", datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc))

        assert flight.flight_id == "BAW74-1768400000-airline-0123"
        assert service.cache.get("flight:BA74:2026-01-15").is_hit

    def test_datetime_with_offset_uses_utc_day(self, service, aero):
        aero.add("GET", "/flights/BA74", body={"flights": [_leg()]})
        # 2026-01-16 00:30 at +01:00 is still 2026-01-15 in UTC
        pickup = datetime(2026, 1, 16, 0, 30, tzinfo=timezone(timedelta(hours=1)))

        service.validate_flight("BA74", pickup)
        service.validate_flight("BA74", "2026-01-15")

        assert len(aero.requests) == 1


class TestUpstreamErrors:

    @pytest.mark.parametrize("status, error_type", [
        (401, UpstreamAuthError),
        (429, UpstreamRateLimitError),
        (500, UpstreamApiError),
        (503, UpstreamApiError),
    ])
    def test_classification(self, service, aero, status, error_type):
        aero.add("GET", "/flights/BA74", status=status, body={"title": "nope"})

        with pytest.raises(error_type) as exc_info:
            service.validate_flight("BA74", "2026-01-15")

        assert exc_info.value.upstream_status == status
        # No ICAO retry on a hard error
        assert len(aero.requests) == 1

    def test_upstream_errors_are_not_cached(self, service, aero):
        aero.add("GET", "/flights/BA74", status=500, body={"title": "boom"})

        for _ in range(2):
            with pytest.raises(UpstreamApiError):
                service.validate_flight("BA74", "2026-01-15")

        assert len(aero.requests) == 2
        assert len(service.cache) == 0


class TestAirportPickupSearch:

    def test_supported_destination_without_warning(self, service, aero):
        aero.add("GET", "/flights/BA74", body={"flights": [_leg()]})

        result = service.search_airport_pickup_flight("BA74", "2026-01-15")

        assert result.flight is not None
        assert result.message is None
        assert result.warning is None

    def test_unsupported_destination_returns_message(self, service, aero):
        aero.add("GET", "/flights/BA74", body={"flights": [_leg(destination=LHR)]})

        result = service.search_airport_pickup_flight("BA74", "2026-01-15")

        assert result.flight is None
        assert "LHR" in result.message

    def test_lead_time_warning(self, service, aero, clock):
        clock.now = datetime(2026, 1, 15, 13, 30, tzinfo=timezone.utc)
        aero.add("GET", "/flights/BA74", body={"flights": [_leg()]})

        result = service.search_airport_pickup_flight("BA74", "2026-01-15")

        assert result.flight is not None
        assert result.warning == "Airport pickup bookings require at least 1 hour advance notice"

    def test_landed_warning_for_cached_flight(self, service, aero, clock):
        aero.add("GET", "/flights/BA74", body={"flights": [_leg("2026-01-15T06:00:00Z")]})
        service.validate_flight("BA74", "2026-01-15")

        # Still inside the 24h cache TTL, but past the arrival
        clock.now = datetime(2026, 1, 15, 7, 0, tzinfo=timezone.utc)
        result = service.search_airport_pickup_flight("BA74", "2026-01-15")

        assert result.flight is not None
        assert "already landed" in result.warning
        assert len(aero.requests) == 1
