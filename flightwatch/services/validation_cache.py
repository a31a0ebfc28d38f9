"""
Flight Validation Cache

Process-local TTL cache for flight lookups:
- Successful lookups: 24h
- "Not found" results: 1h (flights get added to schedules late)
- Expired entries are evicted on read and by an hourly APScheduler sweep

Cached values are derived data; concurrent writers race and the last write
wins.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Optional, Union

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import settings
from ..schemas.flight import ValidatedFlight
from ..utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "flight_validation_cache_sweep"


@dataclass
class _CacheEntry:
    value: Optional[ValidatedFlight]
    not_found: bool
    expires_at: datetime


@dataclass
class CacheLookup:
    """Three-way lookup result"""
    HIT = "hit"
    HIT_NOT_FOUND = "hit_not_found"
    MISS = "miss"

    kind: str
    value: Optional[ValidatedFlight] = None

    @property
    def is_hit(self) -> bool:
        return self.kind == self.HIT

    @property
    def is_not_found(self) -> bool:
        return self.kind == self.HIT_NOT_FOUND

    @property
    def is_miss(self) -> bool:
        return self.kind == self.MISS


def cache_key(flight_number: str, pickup_date: Union[date, str]) -> str:
    if isinstance(pickup_date, date):
        pickup_date = pickup_date.isoformat()
    return f"flight:{flight_number}:{pickup_date}"


class ValidationCache:
    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        not_found_ttl_seconds: Optional[int] = None,
        sweep_interval_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.ttl = timedelta(seconds=ttl_seconds or settings.flight_cache_ttl_seconds)
        self.not_found_ttl = timedelta(
            seconds=not_found_ttl_seconds or settings.flight_cache_not_found_ttl_seconds
        )
        self.sweep_interval_seconds = (
            sweep_interval_seconds or settings.flight_cache_sweep_interval_seconds
        )
        self.clock = clock
        self._entries: Dict[str, _CacheEntry] = {}
        self._scheduler: Optional[BackgroundScheduler] = None

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> CacheLookup:
        entry = self._entries.get(key)
        if entry is None:
            return CacheLookup(CacheLookup.MISS)

        if entry.expires_at <= self.clock():
            # pop() tolerates a concurrent sweep removing it first
            self._entries.pop(key, None)
            return CacheLookup(CacheLookup.MISS)

        if entry.not_found:
            return CacheLookup(CacheLookup.HIT_NOT_FOUND)
        return CacheLookup(CacheLookup.HIT, entry.value)

    def set(self, key: str, value: ValidatedFlight) -> None:
        self._entries[key] = _CacheEntry(value, False, self.clock() + self.ttl)

    def set_not_found(self, key: str) -> None:
        self._entries[key] = _CacheEntry(None, True, self.clock() + self.not_found_ttl)

    def sweep(self) -> int:
        """Remove every expired entry, return how many were removed"""
        now = self.clock()
        expired = [key for key, entry in list(self._entries.items()) if entry.expires_at <= now]
        for key in expired:
            self._entries.pop(key, None)

        if expired:
            logger.debug(f"Flight cache sweep removed {len(expired)} expired entries")
        return len(expired)

    # ==================
    # Background sweep
    # ==================

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            logger.warning("Flight cache sweep is already running")
            return

        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._scheduler.add_job(
            self.sweep,
            IntervalTrigger(seconds=self.sweep_interval_seconds),
            id=SWEEP_JOB_ID,
            name="Flight validation cache sweep",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.start()
        logger.info(f"Flight cache sweep started (every {self.sweep_interval_seconds}s)")

    def stop(self) -> None:
        if self._scheduler is None:
            return

        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Flight cache sweep stopped")
