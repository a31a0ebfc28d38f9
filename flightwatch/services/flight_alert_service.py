"""
Flight Alert Service

Manages FlightAware alert subscriptions (one active alert per flight).

get_or_create_flight_alert holds a per-flight lock across the re-read, the
paid POST /alerts call and the write, so concurrent callers for the same
flight make at most one create call and all get the same alert id.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..errors import FlightRecordNotFoundError, UpstreamApiError
from ..models.flight import Flight
from ..utils.datetime_utils import to_naive_utc, utc_now
from ..utils.db_helpers import advisory_lock_key, flight_lock
from .flightaware_client import FlightAwareClient, get_flightaware_client, upstream_error_for

logger = logging.getLogger(__name__)

DEFAULT_ALERT_EVENTS = ("arrival", "cancelled", "departure", "diverted")


@dataclass
class CreateAlertParams:
    flight_number: str
    flight_date: date
    destination_iata: Optional[str] = None
    events: List[str] = field(default_factory=lambda: list(DEFAULT_ALERT_EVENTS))


class FlightAlertService:
    def __init__(
        self,
        db: Session,
        client: Optional[FlightAwareClient] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.client = client or get_flightaware_client()
        self.clock = clock

    def create_flight_alert(self, params: CreateAlertParams) -> str:
        """POST /alerts for a single flight date; returns the alert id"""
        date_str = params.flight_date.isoformat()
        body = {
            "ident": params.flight_number.upper(),
            "date_start": date_str,
            "date_end": date_str,
            "enabled": True,
            "events": list(params.events),
        }
        if params.destination_iata:
            body["destination"] = params.destination_iata

        logger.info(f"Creating FlightAware alert for {body['ident']} on {date_str} events={body['events']}")

        response = self.client.create_alert(body)
        if not response.success:
            raise upstream_error_for(response, "createFlightAlert")

        alert_id = (response.data or {}).get("alert_id") if isinstance(response.data, dict) else None
        if not alert_id:
            raise UpstreamApiError("FlightAware alert response did not include an alert id", response.status_code)

        logger.info(f"FlightAware alert {alert_id} created for {body['ident']}")
        return str(alert_id)

    def get_or_create_flight_alert(self, flight_id: str, params: CreateAlertParams) -> str:
        """
        Return the flight's active alert id, creating one if needed.

        Raises FlightRecordNotFoundError (before any API call) when the flight
        does not exist.
        """
        logger.info(f"Getting or creating alert for flight {flight_id} ({params.flight_number})")

        try:
            with flight_lock(self.db, advisory_lock_key(flight_id)):
                flight = (
                    self.db.query(Flight)
                    .filter(Flight.id == flight_id)
                    .populate_existing()
                    .first()
                )

                if flight is None:
                    raise FlightRecordNotFoundError(flight_id)

                if flight.has_active_alert:
                    alert_id = flight.alert_id
                    self.db.commit()
                    logger.info(f"Flight {flight_id} already has active alert {alert_id}, reusing")
                    return alert_id

                alert_id = self.create_flight_alert(params)

                flight.alert_id = alert_id
                flight.alert_enabled = True
                flight.alert_created_at = to_naive_utc(self.clock())
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Flight {flight_id} subscribed with alert {alert_id}")
        return alert_id

    def disable_flight_alert(self, alert_id: str) -> None:
        """DELETE /alerts/{id}; an already-deleted alert counts as success"""
        logger.info(f"Disabling FlightAware alert {alert_id}")

        response = self.client.delete_alert(alert_id)
        if response.success:
            logger.info(f"FlightAware alert {alert_id} deleted")
            return

        if response.not_found:
            logger.info(f"FlightAware alert {alert_id} already deleted")
            return

        raise upstream_error_for(response, "disableFlightAlert")

    def cleanup_flight_alert(self, flight_id: str) -> None:
        """
        Disable the flight's alert (flight completed or all bookings gone).

        alert_id is kept as history; only alert_enabled flips.
        """
        flight = self.db.query(Flight).filter(Flight.id == flight_id).first()

        if flight is None or not flight.has_active_alert:
            logger.info(f"Flight {flight_id} has no active alert to clean up")
            return

        self.disable_flight_alert(flight.alert_id)

        flight.alert_enabled = False
        flight.alert_disabled_at = to_naive_utc(self.clock())
        self.db.commit()

        logger.info(f"Flight {flight_id} alert {flight.alert_id} cleaned up")
