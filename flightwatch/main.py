import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from .config import settings
from .database import create_tables
from .errors import FlightTrackingError
from .routers import flights
from .utils.logging_config import request_id_var, setup_logging
from .utils.rate_limiter import limiter

setup_logging(settings.log_level, settings.log_json)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting flightwatch ({settings.environment})")
    logger.info(f"CORS origins: {settings.cors_origins}")
    logger.info(f"Supported destinations: {sorted(settings.supported_destination_codes)}")

    if not settings.flightaware_api_key:
        logger.warning("FLIGHTAWARE_API_KEY is not set; flight lookups will fail")
    if not settings.flightaware_webhook_secret:
        logger.warning("FLIGHTAWARE_WEBHOOK_SECRET is not set; all webhooks will be rejected")

    create_tables()
    flights.flight_cache.start()

    yield

    logger.info("Shutting down flightwatch...")
    flights.flight_cache.stop()


app = FastAPI(
    title="flightwatch",
    description="Flight tracking for airport pickup bookings",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiter state
app.state.limiter = limiter


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# Request ID Middleware
class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response


# Add other middleware AFTER CORS
app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


# Rate limit handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests, please try again later"}
    )


@app.exception_handler(FlightTrackingError)
async def flight_tracking_error_handler(request: Request, exc: FlightTrackingError):
    if exc.status_code >= 500:
        logger.error(f"[{getattr(request.state, 'request_id', '-')}] {exc.error_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_problem(),
        media_type="application/problem+json",
    )


# Include routers
app.include_router(flights.router)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "environment": settings.environment,
        "flight_cache_entries": len(flights.flight_cache),
        "flight_cache_sweep_running": flights.flight_cache.running,
    }
