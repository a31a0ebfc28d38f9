"""
Flight alert job handler.

Entry point for queued "create-flight-alert" jobs. Errors are logged and
re-raised so the queue's retry policy applies.
"""

import logging
from datetime import date
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from ..database import SessionLocal
from .flight_alert_service import CreateAlertParams, FlightAlertService
from .flightaware_client import FlightAwareClient

logger = logging.getLogger(__name__)

CREATE_FLIGHT_ALERT_JOB = "create-flight-alert"


def _parse_flight_date(value) -> date:
    if isinstance(value, date):
        return value
    # Accept "2025-12-25" and full ISO timestamps
    return date.fromisoformat(str(value)[:10])


def process_flight_alert_job(
    job_name: str,
    data: Dict[str, Any],
    session_factory: Callable[[], Session] = SessionLocal,
    client: Optional[FlightAwareClient] = None,
) -> Dict[str, Any]:
    """
    data: {"flight_id", "flight_number", "flight_date", "destination_iata"?}
    """
    flight_id = data.get("flight_id")
    flight_number = data.get("flight_number")
    logger.info(f"Processing flight alert job {job_name} (flight={flight_id}, number={flight_number})")

    db = session_factory()
    try:
        if job_name != CREATE_FLIGHT_ALERT_JOB:
            raise ValueError(f"Unknown flight alert job type: {job_name}")

        service = FlightAlertService(db, client=client)
        alert_id = service.get_or_create_flight_alert(
            flight_id,
            CreateAlertParams(
                flight_number=flight_number,
                flight_date=_parse_flight_date(data.get("flight_date")),
                destination_iata=data.get("destination_iata"),
            ),
        )
        logger.info(f"Flight alert ready for flight {flight_id}: {alert_id}")
        return {"success": True, "alert_id": alert_id}
    except Exception as e:
        logger.error(f"Failed to process {job_name} job for flight {flight_id} ({flight_number}): {e}")
        raise
    finally:
        db.close()
