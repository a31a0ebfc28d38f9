"""
Flight tracking errors

Every error carries a machine-readable code, an HTTP status and a title so the
API layer can render it as problem-details JSON without knowing the type.
"""

from typing import Optional


class FlightErrorCode:
    INVALID_FLIGHT_NUMBER = "INVALID_FLIGHT_NUMBER"
    INVALID_PICKUP_DATE = "INVALID_PICKUP_DATE"
    FLIGHT_NOT_FOUND = "FLIGHT_NOT_FOUND"
    FLIGHT_ALREADY_LANDED = "FLIGHT_ALREADY_LANDED"
    API_ERROR = "FLIGHTAWARE_API_ERROR"
    API_AUTH_ERROR = "FLIGHTAWARE_AUTH_ERROR"
    API_RATE_LIMITED = "FLIGHTAWARE_RATE_LIMITED"
    FLIGHT_RECORD_NOT_FOUND = "FLIGHT_RECORD_NOT_FOUND"


class FlightTrackingError(Exception):
    """Base class for flight lookup, alert and webhook errors"""

    error_code = FlightErrorCode.API_ERROR
    status_code = 500
    title = "Flight Tracking Error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_problem(self) -> dict:
        return {
            "type": self.error_code,
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
        }


class InvalidFlightNumberError(FlightTrackingError):
    error_code = FlightErrorCode.INVALID_FLIGHT_NUMBER
    status_code = 400
    title = "Invalid Flight Number"

    def __init__(self, flight_number: str):
        super().__init__(
            f"Invalid flight number format: {flight_number}. Expected format: "
            f"2-3 alphanumeric airline code + 1-5 digits (e.g., BA74, AA123, P47579)"
        )
        self.flight_number = flight_number


class InvalidPickupDateError(FlightTrackingError):
    error_code = FlightErrorCode.INVALID_PICKUP_DATE
    status_code = 400
    title = "Invalid Pickup Date"

    def __init__(self, value: str, reason: Optional[str] = None):
        super().__init__(
            reason or f"Invalid date format: {value}. Expected ISO date string (e.g., 2025-12-25)"
        )
        self.value = value


class FlightNotFoundError(FlightTrackingError):
    error_code = FlightErrorCode.FLIGHT_NOT_FOUND
    status_code = 404
    title = "Flight Not Found"

    def __init__(self, flight_number: str, pickup_date: str):
        super().__init__(
            f"Flight {flight_number} not found for {pickup_date}. "
            f"Please verify the flight number and date."
        )
        self.flight_number = flight_number
        self.pickup_date = pickup_date


class FlightAlreadyLandedError(FlightTrackingError):
    error_code = FlightErrorCode.FLIGHT_ALREADY_LANDED
    status_code = 409
    title = "Flight Already Landed"

    def __init__(
        self,
        flight_number: str,
        requested_date: str,
        landed_time: str,
        next_flight_date: Optional[str] = None
    ):
        if next_flight_date:
            detail = (
                f"Flight {flight_number} has already landed at {landed_time}. "
                f"The next flight is on {next_flight_date}."
            )
        else:
            detail = f"Flight {flight_number} has already landed at {landed_time}."
        super().__init__(detail)
        self.flight_number = flight_number
        self.requested_date = requested_date
        self.landed_time = landed_time
        self.next_flight_date = next_flight_date


class UpstreamApiError(FlightTrackingError):
    """FlightAware failed; retryable by the caller, never cached"""

    error_code = FlightErrorCode.API_ERROR
    status_code = 502
    title = "FlightAware API Error"

    def __init__(self, detail: str, upstream_status: int = 0):
        super().__init__(detail)
        self.upstream_status = upstream_status


class UpstreamAuthError(UpstreamApiError):
    error_code = FlightErrorCode.API_AUTH_ERROR

    def __init__(self, upstream_status: int = 401):
        super().__init__("FlightAware API authentication failed", upstream_status)


class UpstreamRateLimitError(UpstreamApiError):
    error_code = FlightErrorCode.API_RATE_LIMITED

    def __init__(self, upstream_status: int = 429):
        super().__init__("FlightAware API rate limit exceeded", upstream_status)


class FlightRecordNotFoundError(FlightTrackingError):
    error_code = FlightErrorCode.FLIGHT_RECORD_NOT_FOUND
    status_code = 404
    title = "Flight Record Not Found"

    def __init__(self, identifier: str, field: str = "id"):
        super().__init__(f"Flight with {field} {identifier} was not found in the database.")
        self.identifier = identifier
