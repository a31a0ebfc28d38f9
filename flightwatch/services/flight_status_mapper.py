"""
FlightAware event -> FlightStatus mapping.

Explicit event types win; the leg's free-text status is the fallback.
There is no forward-only guard: an unmapped event moves any flight back to
SCHEDULED.
"""

import logging
from datetime import datetime
from typing import Optional

from ..models.flight import FlightStatus

logger = logging.getLogger(__name__)


def _normalize_leg_status(flight_status: str) -> str:
    """'En Route' / 'en_route' / 'EN-ROUTE' -> 'enroute'"""
    normalized = flight_status.lower()
    for char in (" ", "\t", "\n", "_", "-"):
        normalized = normalized.replace(char, "")
    return normalized


def map_event_to_status(
    event_type: Optional[str],
    flight_status: Optional[str] = None,
    *,
    flight_id: Optional[str] = None,
    call_sign: Optional[str] = None,
    event_time: Optional[datetime] = None,
) -> FlightStatus:
    event = (event_type or "").lower()

    if "departure" in event or event == "departed":
        return FlightStatus.DEPARTED

    if "arrival" in event or event == "arrived":
        return FlightStatus.LANDED

    if "cancel" in event:
        return FlightStatus.CANCELLED

    if "divert" in event:
        return FlightStatus.DIVERTED

    if flight_status:
        leg_status = _normalize_leg_status(flight_status)

        if "enroute" in leg_status or "airborne" in leg_status or leg_status == "active":
            return FlightStatus.EN_ROUTE

        if "landed" in leg_status or "arrived" in leg_status:
            return FlightStatus.LANDED

    logger.warning(
        f"Unmapped FlightAware event type '{event_type}' "
        f"(status={flight_status!r}, fa_flight_id={flight_id}, "
        f"call_sign={call_sign}, event_time={event_time}), defaulting to SCHEDULED"
    )
    return FlightStatus.SCHEDULED
