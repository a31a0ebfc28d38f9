"""
FlightAware AeroAPI Client

Thin wrapper around the AeroAPI v4 endpoints flight tracking needs:
- Authentication via x-apikey header
- Bounded request timeout
- Structured error mapping (no retries; callers own retry policy)

AeroAPI Documentation: https://www.flightaware.com/aeroapi/portal/documentation
"""

import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

import httpx

from ..config import settings
from ..errors import UpstreamApiError, UpstreamAuthError, UpstreamRateLimitError
from ..utils.logging_config import request_id_var

logger = logging.getLogger(__name__)


@dataclass
class FlightAwareResponse:
    """Wrapper for AeroAPI responses with structured error info"""
    success: bool
    status_code: int
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    should_retry: bool = False

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


@dataclass
class FlightAwareError:
    """Structured error from AeroAPI"""
    code: str
    message: str
    status_code: int
    retryable: bool = False


# Error mapping for AeroAPI responses
ERROR_MAP = {
    400: FlightAwareError("bad_request", "Invalid request parameters", 400, False),
    401: FlightAwareError("unauthorized", "Invalid or missing API key", 401, False),
    403: FlightAwareError("forbidden", "Access denied to this resource", 403, False),
    404: FlightAwareError("not_found", "Resource not found", 404, False),
    429: FlightAwareError("rate_limited", "Too many requests", 429, True),
    500: FlightAwareError("server_error", "FlightAware server error", 500, True),
    502: FlightAwareError("bad_gateway", "FlightAware gateway error", 502, True),
    503: FlightAwareError("service_unavailable", "FlightAware service unavailable", 503, True),
}


def map_error(status_code: int) -> FlightAwareError:
    """Map HTTP status code to structured error"""
    if status_code in ERROR_MAP:
        return ERROR_MAP[status_code]

    if status_code >= 500:
        return FlightAwareError("server_error", f"Server error: {status_code}", status_code, True)

    return FlightAwareError("unknown", f"Unknown error: {status_code}", status_code, False)


def upstream_error_for(response: FlightAwareResponse, operation: str) -> UpstreamApiError:
    """
    Typed exception for a failed call.

    Only the status code is carried; upstream bodies stay in the logs.
    """
    if response.status_code == 401:
        return UpstreamAuthError(response.status_code)
    if response.status_code == 429:
        return UpstreamRateLimitError(response.status_code)
    if response.status_code == 0:
        return UpstreamApiError(f"FlightAware API unreachable during {operation}", 0)
    return UpstreamApiError(f"API error: {response.status_code}", response.status_code)


def _format_day(value: Union[date, str]) -> str:
    return value.isoformat() if isinstance(value, date) else value


class FlightAwareClient:
    """
    Client for the AeroAPI endpoints used by flight lookups and alerts.

    `transport` lets tests plug in httpx.MockTransport.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.flightaware_api_key
        self.base_url = (base_url or settings.flightaware_base_url).rstrip("/")
        self.timeout = timeout or settings.flightaware_timeout_seconds
        self.transport = transport

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "x-apikey": self.api_key,
            "Accept": "application/json",
        }
        request_id = request_id_var.get()
        if request_id:
            headers["X-Request-ID"] = request_id
        return headers

    def _make_request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Dict] = None,
        params: Optional[Dict] = None,
    ) -> FlightAwareResponse:
        url = f"{self.base_url}{endpoint}"
        start_time = time.time()

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.request(
                    method,
                    url,
                    headers=self._get_headers(),
                    json=payload,
                    params=params,
                )
        except httpx.HTTPError as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(f"FlightAware {method} {endpoint} failed after {duration_ms}ms: {e}")
            return FlightAwareResponse(
                success=False,
                status_code=0,
                error=str(e),
                error_code="transport_error",
                should_retry=True,
            )

        duration_ms = int((time.time() - start_time) * 1000)
        status_code = response.status_code

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = None

        if 200 <= status_code < 300:
            logger.debug(f"FlightAware {method} {endpoint} -> {status_code} ({duration_ms}ms)")
            return FlightAwareResponse(success=True, status_code=status_code, data=data)

        error = map_error(status_code)
        log = logger.debug if status_code == 404 else logger.warning
        log(
            f"FlightAware {method} {endpoint} -> {status_code} {error.code} "
            f"({duration_ms}ms): {str(data)[:500] if data else response.text[:500]}"
        )
        return FlightAwareResponse(
            success=False,
            status_code=status_code,
            data=data,
            error=error.message,
            error_code=error.code,
            should_retry=error.retryable,
        )

    # ==================
    # Flights
    # ==================

    def get_flights(self, ident: str, start: str, end: str) -> FlightAwareResponse:
        """Live flights for an ident over [start, end] (ISO-8601 timestamps)"""
        return self._make_request(
            "GET",
            f"/flights/{quote(ident, safe='')}",
            params={"start": start, "end": end},
        )

    def get_schedules(
        self,
        date_start: Union[date, str],
        date_end: Union[date, str],
        airline: str,
        flight_number: str,
    ) -> FlightAwareResponse:
        """Scheduled flights for airline + number between two days"""
        return self._make_request(
            "GET",
            f"/schedules/{_format_day(date_start)}/{_format_day(date_end)}",
            params={"airline": airline, "flight_number": flight_number},
        )

    def get_airport(self, code: str) -> FlightAwareResponse:
        return self._make_request("GET", f"/airports/{quote(code, safe='')}")

    # ==================
    # Alerts
    # ==================

    def create_alert(self, body: Dict[str, Any]) -> FlightAwareResponse:
        return self._make_request("POST", "/alerts", payload=body)

    def delete_alert(self, alert_id: str) -> FlightAwareResponse:
        return self._make_request("DELETE", f"/alerts/{quote(str(alert_id), safe='')}")


_client: Optional[FlightAwareClient] = None


def get_flightaware_client() -> FlightAwareClient:
    """Shared client configured from settings"""
    global _client
    if _client is None:
        _client = FlightAwareClient()
    return _client
