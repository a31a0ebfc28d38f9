"""
Flight Tracking Schemas

Pydantic models for flight lookups and FlightAware webhook deliveries.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.flight import FlightStatus
from ..utils.datetime_utils import parse_iso_datetime


# ==================
# Flight lookup
# ==================

class ValidatedFlight(BaseModel):
    """Result of a successful flight lookup (not persisted)"""
    model_config = ConfigDict(populate_by_name=True)

    flight_number: str = Field(..., serialization_alias="flightNumber")
    flight_id: str = Field(..., serialization_alias="flightId")
    origin: str
    origin_iata: Optional[str] = Field(None, serialization_alias="originIATA")
    origin_name: Optional[str] = Field(None, serialization_alias="originName")
    origin_city: Optional[str] = Field(None, serialization_alias="originCity")
    destination: str
    destination_iata: Optional[str] = Field(None, serialization_alias="destinationIATA")
    destination_name: Optional[str] = Field(None, serialization_alias="destinationName")
    destination_city: Optional[str] = Field(None, serialization_alias="destinationCity")
    scheduled_arrival: datetime = Field(..., serialization_alias="scheduledArrival")
    estimated_arrival: Optional[datetime] = Field(None, serialization_alias="estimatedArrival")
    actual_arrival: Optional[datetime] = Field(None, serialization_alias="actualArrival")
    status: Optional[str] = None
    aircraft_type: Optional[str] = Field(None, serialization_alias="aircraftType")
    delay: Optional[int] = None
    # True when the data came from the live /flights endpoint
    is_live: bool = Field(False, serialization_alias="isLive")

    def best_arrival(self) -> datetime:
        """Actual, else estimated, else scheduled arrival"""
        return self.actual_arrival or self.estimated_arrival or self.scheduled_arrival

    def serves_destination(self, supported_codes) -> bool:
        """Destination matches on either the primary code or the IATA alias"""
        codes = {c.upper() for c in (self.destination, self.destination_iata) if c}
        return bool(codes & set(supported_codes))


class SearchFlightResult(BaseModel):
    """
    Pickup search response.

    Either a flight (optionally with a warning) or no flight and a message.
    """
    flight: Optional[ValidatedFlight] = None
    message: Optional[str] = None
    warning: Optional[str] = None


# ==================
# FlightAware webhook
# ==================

class WebhookAirport(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: str = Field(..., min_length=1)
    code_iata: Optional[str] = None
    name: Optional[str] = None
    city: Optional[str] = None

    @field_validator('code', 'code_iata', 'name', 'city', mode='before')
    @classmethod
    def strip_strings(cls, v):
        return v.strip() if isinstance(v, str) else v


class WebhookFlight(BaseModel):
    model_config = ConfigDict(extra="allow")

    ident: str = Field(..., min_length=1)
    fa_flight_id: str = Field(..., min_length=1)
    registration: Optional[str] = None
    aircraft_type: Optional[str] = None
    origin: WebhookAirport
    destination: WebhookAirport

    scheduled_off: Optional[datetime] = None
    scheduled_on: Optional[datetime] = None
    scheduled_in: Optional[datetime] = None
    estimated_off: Optional[datetime] = None
    estimated_on: Optional[datetime] = None
    estimated_in: Optional[datetime] = None
    actual_off: Optional[datetime] = None
    actual_on: Optional[datetime] = None
    actual_in: Optional[datetime] = None

    status: Optional[str] = None
    delay_minutes: Optional[int] = Field(None, ge=0, strict=True)
    gate_origin: Optional[str] = None
    gate_destination: Optional[str] = None

    @field_validator('ident', 'fa_flight_id', 'registration', 'aircraft_type',
                     'status', 'gate_origin', 'gate_destination', mode='before')
    @classmethod
    def strip_strings(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator('scheduled_off', 'scheduled_on', 'scheduled_in',
                     'estimated_off', 'estimated_on', 'estimated_in',
                     'actual_off', 'actual_on', 'actual_in', mode='before')
    @classmethod
    def parse_timestamp(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        parsed = parse_iso_datetime(v)
        if parsed is None:
            raise ValueError("Invalid datetime format")
        return parsed


class FlightAwareWebhookPayload(BaseModel):
    """Alert delivery POSTed by FlightAware"""
    # Undeclared provider fields are kept so the stored event_data is the full delivery
    model_config = ConfigDict(extra="allow")

    alert_id: str = Field(..., min_length=1)
    event_type: str = Field(..., min_length=1)
    event_time: datetime
    flight: WebhookFlight

    @field_validator('alert_id', 'event_type', mode='before')
    @classmethod
    def strip_strings(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator('event_time', mode='before')
    @classmethod
    def parse_event_time(cls, v):
        parsed = parse_iso_datetime(v)
        if parsed is None:
            raise ValueError("event_time must be a valid ISO datetime")
        return parsed


class WebhookResponse(BaseModel):
    duplicate: bool
    flight_id: str = Field(..., serialization_alias="flightId")
    booking_count: int = Field(..., serialization_alias="bookingCount")
    new_status: FlightStatus = Field(..., serialization_alias="newStatus")
