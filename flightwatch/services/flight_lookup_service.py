"""
Flight Lookup Service

Validates a flight number + pickup date against FlightAware AeroAPI:

1. Format check (no I/O for malformed numbers)
2. Validation cache (success 24h, not-found 1h)
3. Search window [day - 12h, day + 1 day + 12h]
4. Near-term searches use live /flights, later ones /schedules
5. One retry with the ICAO airline designator when nothing was found

Already-landed and upstream errors are never cached.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from ..config import settings
from ..errors import (
    FlightAlreadyLandedError,
    FlightNotFoundError,
    InvalidFlightNumberError,
)
from ..schemas.flight import SearchFlightResult, ValidatedFlight
from ..utils.airline_codes import (
    convert_iata_to_icao,
    is_valid_flight_number,
    normalize_flight_number,
    split_flight_number,
)
from ..utils.datetime_utils import as_aware_utc, parse_iso_datetime, utc_now
from ..utils.search_window import (
    SearchWindow,
    compute_search_window,
    parse_pickup_date,
    should_use_live_source,
)
from .flightaware_client import FlightAwareClient, FlightAwareResponse, get_flightaware_client, upstream_error_for
from .validation_cache import ValidationCache, cache_key

logger = logging.getLogger(__name__)


def format_local_time(value: datetime, tz: ZoneInfo) -> str:
    """2025-12-25T14:05Z in Africa/Lagos -> '3:05 PM'"""
    local = value.astimezone(tz)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {meridiem}"


def _format_lead_time(minutes: int) -> str:
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


def _pickup_day(value: Union[str, date]) -> date:
    """UTC calendar day of a pickup date; timestamps are truncated after conversion"""
    if isinstance(value, datetime):
        return as_aware_utc(value).date()
    if isinstance(value, date):
        return value
    return parse_pickup_date(value)


def _as_int(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


class FlightLookupService:
    """
    Flight number validation for airport pickup bookings.

    All collaborators are injectable; defaults come from settings.
    """

    def __init__(
        self,
        client: Optional[FlightAwareClient] = None,
        cache: Optional[ValidationCache] = None,
        clock: Callable[[], datetime] = utc_now,
        reference_timezone: Optional[str] = None,
        supported_destinations: Optional[Iterable[str]] = None,
        live_horizon_days: Optional[int] = None,
        pickup_min_lead_minutes: Optional[int] = None,
    ):
        self.client = client or get_flightaware_client()
        self.cache = cache if cache is not None else ValidationCache(clock=clock)
        self.clock = clock
        self.tz = ZoneInfo(reference_timezone or settings.reference_timezone)
        if supported_destinations is None:
            supported_destinations = settings.supported_destination_codes
        self.supported_destinations = {code.upper() for code in supported_destinations}
        self.live_horizon_days = (
            live_horizon_days if live_horizon_days is not None else settings.live_horizon_days
        )
        self.pickup_min_lead_minutes = (
            pickup_min_lead_minutes if pickup_min_lead_minutes is not None
            else settings.pickup_min_lead_minutes
        )

    # ==================
    # Public API
    # ==================

    def validate_flight(self, flight_number: str, pickup_date: Union[str, date]) -> ValidatedFlight:
        """
        Resolve a flight for a pickup date.

        Raises InvalidFlightNumberError, InvalidPickupDateError,
        FlightNotFoundError, FlightAlreadyLandedError or UpstreamApiError
        (incl. UpstreamAuthError / UpstreamRateLimitError).
        """
        candidate = (flight_number or "").strip()
        if not is_valid_flight_number(candidate):
            raise InvalidFlightNumberError(flight_number)

        normalized = normalize_flight_number(candidate)
        day = _pickup_day(pickup_date)
        key = cache_key(normalized, day)

        lookup = self.cache.get(key)
        if lookup.is_hit:
            logger.debug(f"Flight cache HIT {key}")
            return lookup.value
        if lookup.is_not_found:
            logger.debug(f"Flight cache HIT (not found) {key}")
            raise FlightNotFoundError(normalized, day.isoformat())

        logger.debug(f"Flight cache MISS {key} - calling FlightAware")

        window = compute_search_window(day)
        now = self.clock()

        if should_use_live_source(window, now, self.live_horizon_days):
            flight = self._fetch_live_flight(
                normalized, window.capped(now, self.live_horizon_days), day, now
            )
        else:
            flight = self._fetch_scheduled_flight(normalized, window)

        if flight is None:
            self.cache.set_not_found(key)
            logger.info(f"Flight {normalized} not found for {day}")
            raise FlightNotFoundError(normalized, day.isoformat())

        self.cache.set(key, flight)
        logger.info(
            f"Flight {normalized} validated for {day} "
            f"({'live' if flight.is_live else 'scheduled'}, arrives {flight.scheduled_arrival.isoformat()})"
        )
        return flight

    def search_airport_pickup_flight(
        self,
        flight_number: str,
        pickup_date: Union[str, date],
    ) -> SearchFlightResult:
        """validate_flight plus destination support and arrival proximity checks"""
        flight = self.validate_flight(flight_number, pickup_date)

        if not flight.serves_destination(self.supported_destinations):
            destination = flight.destination_iata or flight.destination
            supported = ", ".join(sorted(self.supported_destinations))
            return SearchFlightResult(
                flight=None,
                message=(
                    f"Flight {flight.flight_number} arrives at {destination}. "
                    f"Airport pickups are currently only available at {supported}."
                ),
            )

        now = self.clock()
        arrival = flight.best_arrival()
        warning = None

        if arrival <= now:
            warning = (
                f"Flight {flight.flight_number} has already landed at "
                f"{format_local_time(arrival, self.tz)}."
            )
        elif arrival - now < timedelta(minutes=self.pickup_min_lead_minutes):
            warning = (
                f"Airport pickup bookings require at least "
                f"{_format_lead_time(self.pickup_min_lead_minutes)} advance notice"
            )

        return SearchFlightResult(flight=flight, warning=warning)

    # ==================
    # Live path
    # ==================

    def _fetch_live_flight(
        self,
        flight_number: str,
        window: SearchWindow,
        day: date,
        now: datetime,
    ) -> Optional[ValidatedFlight]:
        flight = self._try_live_flight(flight_number, flight_number, window, day, now)
        if flight:
            return flight

        icao_flight_number = convert_iata_to_icao(flight_number)
        if icao_flight_number:
            logger.debug(f"Retrying live lookup for {flight_number} as {icao_flight_number}")
            return self._try_live_flight(icao_flight_number, flight_number, window, day, now)

        return None

    def _try_live_flight(
        self,
        ident: str,
        flight_number: str,
        window: SearchWindow,
        day: date,
        now: datetime,
    ) -> Optional[ValidatedFlight]:
        response = self.client.get_flights(
            ident,
            window.start.isoformat().replace("+00:00", "Z"),
            window.end.isoformat().replace("+00:00", "Z"),
        )
        if not self._check_response(response, ident, "fetchLiveFlight"):
            return None

        legs = (response.data or {}).get("flights") or []
        matching, landed, next_date = self._find_matching_leg(legs, day, now)

        if matching:
            return self._build_live_flight(matching, flight_number)

        if landed and self._leg_serves_supported_destination(landed):
            landed_at = self._leg_arrival(landed)
            raise FlightAlreadyLandedError(
                flight_number,
                day.isoformat(),
                format_local_time(landed_at, self.tz),
                next_date.isoformat() if next_date else None,
            )

        return None

    def _leg_arrival(self, leg: Dict) -> Optional[datetime]:
        return parse_iso_datetime(
            leg.get("actual_on") or leg.get("estimated_on") or leg.get("scheduled_on")
        )

    def _find_matching_leg(
        self,
        legs: List[Dict],
        day: date,
        now: datetime,
    ) -> Tuple[Optional[Dict], Optional[Dict], Optional[date]]:
        """
        Returns (future leg arriving on `day`, past leg that arrived on `day`,
        first other date the flight arrives in the future).

        Dates are local to the reference timezone. The first future leg on
        `day` wins.
        """
        matching = None
        landed = None
        next_date = None

        for leg in legs:
            arrival = self._leg_arrival(leg)
            if arrival is None:
                continue
            local_date = arrival.astimezone(self.tz).date()

            if local_date == day:
                if arrival < now:
                    landed = leg
                else:
                    matching = leg
                    break
            elif arrival > now and next_date is None:
                next_date = local_date

        return matching, landed, next_date

    def _leg_serves_supported_destination(self, leg: Dict) -> bool:
        destination = leg.get("destination") or {}
        codes = {
            str(code).upper()
            for code in (destination.get("code"), destination.get("code_iata"))
            if code
        }
        return bool(codes & self.supported_destinations)

    def _build_live_flight(self, leg: Dict, flight_number: str) -> ValidatedFlight:
        origin = leg.get("origin") or {}
        destination = leg.get("destination") or {}
        scheduled_arrival = parse_iso_datetime(leg.get("scheduled_on")) or self._leg_arrival(leg)

        return ValidatedFlight(
            flight_number=flight_number,
            flight_id=leg.get("fa_flight_id") or f"{flight_number}-live",
            origin=origin.get("code") or "",
            origin_iata=origin.get("code_iata"),
            origin_name=origin.get("name"),
            origin_city=origin.get("city"),
            destination=destination.get("code") or "",
            destination_iata=destination.get("code_iata"),
            destination_name=destination.get("name"),
            destination_city=destination.get("city"),
            scheduled_arrival=scheduled_arrival,
            estimated_arrival=parse_iso_datetime(leg.get("estimated_in")),
            actual_arrival=parse_iso_datetime(leg.get("actual_on")),
            status=leg.get("status"),
            aircraft_type=leg.get("aircraft_type"),
            delay=_as_int(leg.get("delay")),
            is_live=True,
        )

    # ==================
    # Scheduled path
    # ==================

    def _fetch_scheduled_flight(self, flight_number: str, window: SearchWindow) -> Optional[ValidatedFlight]:
        flight = self._try_scheduled_flight(flight_number, flight_number, window)
        if flight:
            return flight

        icao_flight_number = convert_iata_to_icao(flight_number)
        if icao_flight_number:
            logger.debug(f"Retrying schedules lookup for {flight_number} as {icao_flight_number}")
            return self._try_scheduled_flight(icao_flight_number, flight_number, window)

        return None

    def _try_scheduled_flight(
        self,
        ident: str,
        flight_number: str,
        window: SearchWindow,
    ) -> Optional[ValidatedFlight]:
        parts = split_flight_number(ident)
        if not parts:
            return None
        airline, digits = parts

        date_start, date_end = window.date_range()
        response = self.client.get_schedules(date_start, date_end, airline, digits)
        if not self._check_response(response, ident, "fetchScheduledFlight"):
            return None

        scheduled = (response.data or {}).get("scheduled") or []
        if not scheduled:
            return None

        entry = self._find_scheduled_entry(scheduled, ident)
        scheduled_arrival = parse_iso_datetime(
            entry.get("estimated_in")
            or entry.get("scheduled_in")
            or entry.get("actual_in")
            or entry.get("scheduled_on")
        )
        if scheduled_arrival is None:
            return None

        origin_code = entry.get("origin") or ""
        destination_code = entry.get("destination") or ""
        origin_info = self._airport_info(origin_code)
        destination_info = self._airport_info(destination_code)

        return ValidatedFlight(
            flight_number=flight_number,
            flight_id=entry.get("fa_flight_id") or f"{flight_number}-scheduled",
            origin=origin_code,
            origin_iata=entry.get("origin_iata"),
            origin_name=origin_info.get("name"),
            origin_city=origin_info.get("city"),
            destination=destination_code,
            destination_iata=entry.get("destination_iata"),
            destination_name=destination_info.get("name"),
            destination_city=destination_info.get("city"),
            scheduled_arrival=scheduled_arrival,
            status="Scheduled",
            aircraft_type=entry.get("aircraft_type"),
            is_live=False,
        )

    @staticmethod
    def _find_scheduled_entry(scheduled: List[Dict], ident: str) -> Dict:
        """
        Exact identifier match, else the first entry.

        The fallback can pick an unrelated flight when the provider returns
        codeshares only.
        """
        target = ident.upper()
        for entry in scheduled:
            for field in ("ident_iata", "actual_ident_iata", "ident"):
                value = entry.get(field)
                if value and str(value).upper() == target:
                    return entry
        return scheduled[0]

    def _airport_info(self, code: str) -> Dict[str, str]:
        """Best-effort airport name/city; never fails the lookup"""
        if not code:
            return {}
        try:
            response = self.client.get_airport(code)
        except Exception as e:
            logger.debug(f"Airport lookup for {code} failed: {e}")
            return {}

        if not response.success or not isinstance(response.data, dict):
            logger.debug(f"Airport lookup for {code} failed: {response.status_code} {response.error}")
            return {}
        return {
            "name": response.data.get("name"),
            "city": response.data.get("city"),
        }

    # ==================
    # Errors
    # ==================

    def _check_response(self, response: FlightAwareResponse, ident: str, operation: str) -> bool:
        """
        True for a usable response, False for "not found".
        Raises the typed upstream error for everything else.
        """
        if response.success:
            return True
        if response.not_found:
            return False

        logger.warning(f"FlightAware API error during {operation} for {ident}: status={response.status_code}")
        raise upstream_error_for(response, operation)
