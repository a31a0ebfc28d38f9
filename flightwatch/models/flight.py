"""
Flight Model

One tracked real-world flight occurrence shared by one or more bookings.

Mutated only by:
- FlightWebhookService (status, timestamps, gates, aircraft)
- FlightAlertService (alert_id, alert_enabled)
"""

import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Date, DateTime, Integer, Boolean, Index, UniqueConstraint
from ..database import Base


class FlightStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    DEPARTED = "DEPARTED"
    EN_ROUTE = "EN_ROUTE"
    LANDED = "LANDED"
    CANCELLED = "CANCELLED"
    DIVERTED = "DIVERTED"
    UNKNOWN = "UNKNOWN"


class FlightDataSource(str, enum.Enum):
    FLIGHTAWARE = "FLIGHTAWARE"
    MANUAL = "MANUAL"
    CACHED = "CACHED"


class Flight(Base):
    __tablename__ = "flights"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    flight_number = Column(String(10), nullable=False)
    flight_date = Column(Date, nullable=False)
    fa_flight_id = Column(String(100), nullable=True)

    # Route (primary code is usually ICAO, plus IATA alias)
    origin_code = Column(String(10), nullable=False)
    origin_code_iata = Column(String(10), nullable=True)
    origin_name = Column(String(255), nullable=True)
    origin_city = Column(String(100), nullable=True)
    destination_code = Column(String(10), nullable=False)
    destination_code_iata = Column(String(10), nullable=True)
    destination_name = Column(String(255), nullable=True)
    destination_city = Column(String(100), nullable=True)

    # Times (naive UTC)
    scheduled_departure = Column(DateTime, nullable=True)
    scheduled_arrival = Column(DateTime, nullable=False)
    estimated_departure = Column(DateTime, nullable=True)
    estimated_arrival = Column(DateTime, nullable=True)
    actual_departure = Column(DateTime, nullable=True)
    actual_arrival = Column(DateTime, nullable=True)

    status = Column(String(20), default=FlightStatus.SCHEDULED.value, nullable=False)
    delay_minutes = Column(Integer, nullable=True)
    aircraft_type = Column(String(20), nullable=True)
    registration = Column(String(20), nullable=True)
    departure_gate = Column(String(20), nullable=True)
    arrival_gate = Column(String(20), nullable=True)

    # FlightAware alert subscription (at most one active per flight)
    alert_id = Column(String(100), nullable=True, unique=True)
    alert_enabled = Column(Boolean, default=False, nullable=False)
    alert_created_at = Column(DateTime, nullable=True)
    alert_disabled_at = Column(DateTime, nullable=True)

    data_source = Column(String(20), default=FlightDataSource.FLIGHTAWARE.value, nullable=False)
    is_live = Column(Boolean, default=False, nullable=False)

    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("flight_number", "flight_date", name="uq_flight_number_date"),
        Index("ix_flight_status", "status"),
        Index("ix_flight_destination_date", "destination_code_iata", "flight_date"),
        Index("ix_flight_scheduled_arrival", "scheduled_arrival"),
    )

    @property
    def has_active_alert(self) -> bool:
        return bool(self.alert_id and self.alert_enabled)

    def __repr__(self):
        return f"<Flight {self.flight_number} {self.flight_date} status={self.status}>"
