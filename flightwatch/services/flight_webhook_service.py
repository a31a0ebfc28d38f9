"""
FlightAware Webhook Service

Reconciles at-least-once alert deliveries into Flight state.

Idempotency key: (flight_id, event_type, event_time), enforced by the
flight_status_events unique constraint. The event row is inserted inside a
SAVEPOINT; a unique violation means a redelivery:
- existing row processed   -> duplicate, Flight untouched
- existing row unprocessed -> a previous attempt died midway; finish it now
Both branches run in the same outer transaction and build the same Flight
update, so the result does not depend on which path ran.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import FlightRecordNotFoundError
from ..models.booking import Booking
from ..models.flight import Flight, FlightStatus
from ..models.flight_status_event import FlightStatusEvent
from ..schemas.flight import FlightAwareWebhookPayload, WebhookFlight
from ..utils.datetime_utils import to_naive_utc, utc_now
from ..utils.db_helpers import is_unique_violation
from .flight_status_mapper import map_event_to_status

logger = logging.getLogger(__name__)


@dataclass
class WebhookHandleResult:
    duplicate: bool
    flight_id: str
    new_status: FlightStatus
    booking_count: int = 0


def build_flight_update(leg: WebhookFlight, new_status: FlightStatus) -> Dict[str, Any]:
    """
    Column values for a Flight update. None means "leave the column as is".
    """
    return {
        "status": new_status.value,
        "scheduled_departure": to_naive_utc(leg.scheduled_off),
        "scheduled_arrival": to_naive_utc(leg.scheduled_in or leg.scheduled_on),
        "estimated_departure": to_naive_utc(leg.estimated_off),
        "estimated_arrival": to_naive_utc(leg.estimated_in or leg.estimated_on),
        "actual_departure": to_naive_utc(leg.actual_off),
        "actual_arrival": to_naive_utc(leg.actual_in or leg.actual_on),
        "delay_minutes": leg.delay_minutes,
        "arrival_gate": leg.gate_destination,
        "departure_gate": leg.gate_origin,
        "aircraft_type": leg.aircraft_type,
        "registration": leg.registration,
    }


class FlightWebhookService:
    def __init__(self, db: Session):
        self.db = db

    def handle_webhook(self, payload: FlightAwareWebhookPayload) -> WebhookHandleResult:
        """
        Apply one webhook delivery.

        Raises FlightRecordNotFoundError for an unknown alert id. Any other
        error rolls the transaction back so the delivery can be retried.
        """
        flight = self.db.query(Flight).filter(Flight.alert_id == payload.alert_id).first()
        if flight is None:
            logger.warning(f"FlightAware webhook for unknown alert {payload.alert_id}")
            raise FlightRecordNotFoundError(payload.alert_id, field="alert_id")

        leg = payload.flight
        new_status = map_event_to_status(
            payload.event_type,
            leg.status,
            flight_id=leg.fa_flight_id,
            call_sign=leg.ident,
            event_time=payload.event_time,
        )
        flight_id = flight.id
        old_status = flight.status
        event_time = to_naive_utc(payload.event_time)
        update_data = build_flight_update(leg, new_status)
        event_data = payload.model_dump(mode="json")

        try:
            result = self._record_event(
                flight, old_status, new_status, event_time, update_data, event_data,
                payload.event_type, leg.delay_minutes,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        booking_count = self._count_bookings(flight_id)
        result.booking_count = booking_count

        logger.info(
            f"Processed FlightAware webhook: flight={flight_id} event={payload.event_type} "
            f"{old_status} -> {result.new_status.value} duplicate={result.duplicate} "
            f"bookings={booking_count}"
        )
        return result

    def _record_event(
        self,
        flight: Flight,
        old_status: str,
        new_status: FlightStatus,
        event_time,
        update_data: Dict[str, Any],
        event_data: Dict[str, Any],
        event_type: str,
        delay_change: Optional[int],
    ) -> WebhookHandleResult:
        try:
            with self.db.begin_nested():
                event = FlightStatusEvent(
                    flight_id=flight.id,
                    event_type=event_type,
                    event_time=event_time,
                    event_data=event_data,
                    old_status=old_status,
                    new_status=new_status.value,
                    delay_change=delay_change,
                    processed=False,
                    notifications_sent=False,
                )
                self.db.add(event)
                self.db.flush()
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise

            existing = (
                self.db.query(FlightStatusEvent)
                .filter(
                    FlightStatusEvent.flight_id == flight.id,
                    FlightStatusEvent.event_type == event_type,
                    FlightStatusEvent.event_time == event_time,
                )
                .first()
            )
            if existing is None:
                raise

            if existing.processed:
                logger.info(
                    f"Duplicate FlightAware event {event_type}@{event_time} for flight {flight.id}"
                )
                resolved = existing.new_status or flight.status
                return WebhookHandleResult(
                    duplicate=True,
                    flight_id=flight.id,
                    new_status=FlightStatus(resolved),
                )

            logger.info(
                f"Completing unprocessed FlightAware event {event_type}@{event_time} for flight {flight.id}"
            )
            self._apply_flight_update(flight, update_data)
            existing.old_status = old_status
            existing.new_status = new_status.value
            existing.delay_change = delay_change
            existing.event_data = event_data
            existing.processed = True
            existing.notifications_sent = False
            self.db.flush()
            return WebhookHandleResult(duplicate=False, flight_id=flight.id, new_status=new_status)

        self._apply_flight_update(flight, update_data)
        event.processed = True
        self.db.flush()
        return WebhookHandleResult(duplicate=False, flight_id=flight.id, new_status=new_status)

    def _apply_flight_update(self, flight: Flight, update_data: Dict[str, Any]) -> None:
        for column, value in update_data.items():
            if value is not None:
                setattr(flight, column, value)
        flight.last_updated = to_naive_utc(utc_now())

    def _count_bookings(self, flight_id: str) -> int:
        """Non-deleted bookings riding on this flight (informational only)"""
        return (
            self.db.query(Booking)
            .filter(
                Booking.flight_id == flight_id,
                Booking.is_deleted == False,
                Booking.deleted_at.is_(None),
            )
            .count()
        )
