"""
Flights API Router

- GET  /api/search-flight        flight lookup for airport pickup bookings
- POST /api/webhooks/flightaware FlightAware alert deliveries

Security:
- Webhook authenticated by the ?secret= query parameter (constant-time check)
- Search endpoint rate limited per client IP
"""

import logging
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..errors import InvalidPickupDateError
from ..schemas.flight import FlightAwareWebhookPayload, SearchFlightResult, WebhookResponse
from ..services.flight_lookup_service import FlightLookupService
from ..services.flight_webhook_service import FlightWebhookService
from ..services.validation_cache import ValidationCache
from ..utils.datetime_utils import utc_now
from ..utils.rate_limiter import limiter
from ..utils.search_window import parse_pickup_date
from ..utils.security import timing_safe_secret_match

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Flights"])

# Shared across requests so the cache survives between lookups
flight_cache = ValidationCache()
_lookup_service: Optional[FlightLookupService] = None


def get_lookup_service() -> FlightLookupService:
    global _lookup_service
    if _lookup_service is None:
        _lookup_service = FlightLookupService(cache=flight_cache)
    return _lookup_service


def get_request_id(request: Request) -> str:
    """Get request_id from request state or generate one"""
    return getattr(request.state, 'request_id', str(uuid.uuid4())[:8])


def validate_search_date(value: str, today: Optional[date] = None) -> date:
    """Pickup date must be today or later, and at most one year ahead"""
    day = parse_pickup_date(value)
    today = today or utc_now().date()

    if day < today:
        raise InvalidPickupDateError(
            value, "Cannot search for flights in the past. Please select a future date."
        )

    try:
        one_year_ahead = today.replace(year=today.year + 1)
    except ValueError:
        # Feb 29
        one_year_ahead = today.replace(year=today.year + 1, day=28)

    if day > one_year_ahead:
        raise InvalidPickupDateError(
            value, "Cannot search for flights more than 1 year in the future"
        )
    return day


def verify_flightaware_secret(secret: Optional[str] = Query(None)) -> None:
    if not timing_safe_secret_match(secret, settings.flightaware_webhook_secret, settings.hmac_key):
        logger.warning("FlightAware webhook rejected: invalid secret")
        raise HTTPException(status_code=403, detail="Invalid webhook secret")


# ==================
# Flight search
# ==================

@router.get("/search-flight", response_model=SearchFlightResult)
@limiter.limit(settings.search_rate_limit)
def search_flight(
    request: Request,
    flight_number: str = Query(..., alias="flightNumber", min_length=1),
    pickup_date: str = Query(..., alias="date", min_length=1),
    service: FlightLookupService = Depends(get_lookup_service),
):
    """
    Look up a flight for an airport pickup.

    Unsupported destinations return a message instead of a flight; arrivals
    that are past or too close come back with a warning.
    """
    request_id = get_request_id(request)
    day = validate_search_date(pickup_date.strip())

    logger.info(f"[{request_id}] Flight search {flight_number.strip().upper()} on {day}")
    return service.search_airport_pickup_flight(flight_number, day)


# ==================
# FlightAware webhook
# ==================

@router.post(
    "/webhooks/flightaware",
    response_model=WebhookResponse,
    dependencies=[Depends(verify_flightaware_secret)],
)
def flightaware_webhook(
    request: Request,
    payload: FlightAwareWebhookPayload,
    db: Session = Depends(get_db),
):
    """
    Receive a FlightAware alert delivery.

    Processed synchronously; any error is returned as non-2xx so FlightAware
    redelivers, and the redelivery is deduplicated.
    """
    request_id = get_request_id(request)
    logger.info(
        f"[{request_id}] FlightAware webhook alert={payload.alert_id} "
        f"event={payload.event_type} at {payload.event_time.isoformat()}"
    )

    result = FlightWebhookService(db).handle_webhook(payload)
    return WebhookResponse(
        duplicate=result.duplicate,
        flight_id=result.flight_id,
        booking_count=result.booking_count,
        new_status=result.new_status,
    )
