# Services package
from .flight_status_mapper import map_event_to_status
from .validation_cache import ValidationCache, CacheLookup, cache_key
from .flightaware_client import FlightAwareClient, FlightAwareResponse, get_flightaware_client
from .flight_lookup_service import FlightLookupService
from .flight_alert_service import FlightAlertService, CreateAlertParams
from .flight_alert_processor import process_flight_alert_job, CREATE_FLIGHT_ALERT_JOB
from .flight_webhook_service import FlightWebhookService, WebhookHandleResult

__all__ = [
    "map_event_to_status",
    "ValidationCache", "CacheLookup", "cache_key",
    "FlightAwareClient", "FlightAwareResponse", "get_flightaware_client",
    "FlightLookupService",
    "FlightAlertService", "CreateAlertParams",
    "process_flight_alert_job", "CREATE_FLIGHT_ALERT_JOB",
    "FlightWebhookService", "WebhookHandleResult",
]
