import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Boolean
from ..database import Base
import enum


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Booking(Base):
    """Airport pickup booking; only the columns flight tracking reads."""
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    flight_id = Column(String(36), ForeignKey("flights.id", ondelete="SET NULL"), nullable=True)
    customer_name = Column(String(100), nullable=True)
    pickup_at = Column(DateTime, nullable=True)
    status = Column(String(30), default=BookingStatus.CONFIRMED.value)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Soft Delete
    is_deleted = Column(Boolean, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_booking_flight", "flight_id"),
    )

    def __repr__(self):
        return f"<Booking {self.id} flight={self.flight_id}>"
