from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List, Set


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - PostgreSQL for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./flightwatch.db",
        alias="DATABASE_URL"
    )

    # CORS - Frontend URLs (comma-separated)
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        alias="ALLOWED_ORIGINS"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # ==============================================
    # FlightAware AeroAPI (Server-Side Only!)
    # ==============================================
    flightaware_api_key: str = Field(default="", alias="FLIGHTAWARE_API_KEY")
    flightaware_base_url: str = Field(
        default="https://aeroapi.flightaware.com/aeroapi",
        alias="FLIGHTAWARE_BASE_URL"
    )
    flightaware_timeout_seconds: float = Field(default=30, alias="FLIGHTAWARE_TIMEOUT_SECONDS")

    # Webhook secret passed by FlightAware as ?secret=...
    flightaware_webhook_secret: str = Field(default="", alias="FLIGHTAWARE_WEBHOOK_SECRET")
    # Key used to hash both secrets before the constant-time comparison
    hmac_key: str = Field(default="dev-hmac-key", alias="HMAC_KEY")

    # ==============================================
    # Flight lookup
    # ==============================================
    # Timezone the pickup date is expressed in
    reference_timezone: str = Field(default="Africa/Lagos", alias="REFERENCE_TIMEZONE")

    # Airports we do pickups at (IATA and/or ICAO, comma-separated)
    supported_destinations: str = Field(default="LOS,DNMM", alias="SUPPORTED_DESTINATIONS")

    # Below this many days the live /flights endpoint is used
    live_horizon_days: int = Field(default=2, alias="LIVE_HORIZON_DAYS")

    # Validation cache
    flight_cache_ttl_seconds: int = Field(default=24 * 60 * 60, alias="FLIGHT_CACHE_TTL_SECONDS")
    flight_cache_not_found_ttl_seconds: int = Field(default=60 * 60, alias="FLIGHT_CACHE_NOT_FOUND_TTL_SECONDS")
    flight_cache_sweep_interval_seconds: int = Field(default=60 * 60, alias="FLIGHT_CACHE_SWEEP_INTERVAL_SECONDS")

    # Airport pickups need this much notice before arrival
    pickup_min_lead_minutes: int = Field(default=60, alias="PICKUP_MIN_LEAD_MINUTES")

    # Search endpoint rate limit (slowapi syntax)
    search_rate_limit: str = Field(default="30/minute", alias="SEARCH_RATE_LIMIT")

    @field_validator('reference_timezone')
    @classmethod
    def validate_reference_timezone(cls, v: str) -> str:
        """Fail at startup rather than on the first lookup"""
        from zoneinfo import ZoneInfo
        ZoneInfo(v)
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def supported_destination_codes(self) -> Set[str]:
        """Parse supported destination airport codes (upper-cased)"""
        return {
            code.strip().upper()
            for code in self.supported_destinations.split(",")
            if code.strip()
        }

    @property
    def cors_origins(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        origins = []
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)
        return origins

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Initialize settings on module load
settings = get_settings()
