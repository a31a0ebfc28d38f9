"""
Flight Status Event Model

Audit + idempotency record for FlightAware webhook deliveries.

(flight_id, event_type, event_time) is UNIQUE: a redelivery of the same
logical event collides on insert and is resolved by FlightWebhookService.
Rows are never deleted.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Boolean, ForeignKey, Index, JSON, UniqueConstraint
from ..database import Base


class FlightStatusEvent(Base):
    __tablename__ = "flight_status_events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    flight_id = Column(String(36), ForeignKey("flights.id", ondelete="CASCADE"), nullable=False)

    # Idempotency key (with flight_id)
    event_type = Column(String(50), nullable=False)
    event_time = Column(DateTime, nullable=False)

    # Raw webhook payload
    event_data = Column(JSON, nullable=False)

    old_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=True)
    delay_change = Column(Integer, nullable=True)

    # False until the flight row has been updated for this event
    processed = Column(Boolean, default=False, nullable=False)
    notifications_sent = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("flight_id", "event_type", "event_time", name="uq_flight_status_event_key"),
        Index("ix_flight_status_event_flight_time", "flight_id", "event_time"),
        Index("ix_flight_status_event_processed", "processed"),
    )

    def __repr__(self):
        return f"<FlightStatusEvent {self.event_type} {self.event_time} processed={self.processed}>"
