# Models package
from .flight import Flight, FlightStatus, FlightDataSource
from .flight_status_event import FlightStatusEvent
from .booking import Booking, BookingStatus

__all__ = [
    "Flight", "FlightStatus", "FlightDataSource",
    "FlightStatusEvent",
    "Booking", "BookingStatus",
]
