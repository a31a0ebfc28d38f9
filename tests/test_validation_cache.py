"""
Tests for the flight validation cache (TTL, three-way lookup, sweep)
"""

from datetime import date, datetime, timezone

from flightwatch.schemas.flight import ValidatedFlight
from flightwatch.services.validation_cache import CacheLookup, ValidationCache, cache_key


def _flight():
    return ValidatedFlight(
        flight_number="BA74",
        flight_id="BAW74-1",
        origin="EGLL",
        destination="DNMM",
        destination_iata="LOS",
        scheduled_arrival=datetime(2026, 1, 15, 14, 0, tzinfo=timezone.utc),
        is_live=True,
    )


def _cache(clock):
    return ValidationCache(
        ttl_seconds=24 * 3600,
        not_found_ttl_seconds=3600,
        sweep_interval_seconds=3600,
        clock=clock,
    )


class TestCacheKey:

    def test_key_format(self):
        assert cache_key("BA74", date(2026, 1, 15)) == "flight:BA74:2026-01-15"
        assert cache_key("BA74", "2026-01-15") == "flight:BA74:2026-01-15"


class TestCacheLookup:

    def test_miss(self, clock):
        assert _cache(clock).get("flight:BA74:2026-01-15").kind == CacheLookup.MISS

    def test_hit_within_24h(self, clock):
        cache = _cache(clock)
        cache.set("k", _flight())

        clock.advance(hours=23, minutes=59)
        lookup = cache.get("k")

        assert lookup.is_hit
        assert lookup.value.flight_id == "BAW74-1"

    def test_success_expires_after_24h_and_is_evicted(self, clock):
        cache = _cache(clock)
        cache.set("k", _flight())

        clock.advance(hours=24)

        assert cache.get("k").is_miss
        assert len(cache) == 0

    def test_not_found_within_1h(self, clock):
        cache = _cache(clock)
        cache.set_not_found("k")

        clock.advance(minutes=59)
        lookup = cache.get("k")

        assert lookup.is_not_found
        assert lookup.value is None

    def test_not_found_expires_after_1h(self, clock):
        cache = _cache(clock)
        cache.set_not_found("k")

        clock.advance(hours=1, seconds=1)

        assert cache.get("k").is_miss

    def test_last_write_wins(self, clock):
        cache = _cache(clock)
        cache.set_not_found("k")
        cache.set("k", _flight())

        assert cache.get("k").is_hit


class TestSweep:

    def test_sweep_removes_only_expired(self, clock):
        cache = _cache(clock)
        cache.set_not_found("gone")
        cache.set("kept", _flight())

        clock.advance(hours=2)
        removed = cache.sweep()

        assert removed == 1
        assert len(cache) == 1
        assert cache.get("kept").is_hit

    def test_start_and_stop(self, clock):
        cache = _cache(clock)

        cache.start()
        try:
            assert cache.running is True
        finally:
            cache.stop()

        assert cache.running is False

    def test_stop_is_idempotent(self, clock):
        cache = _cache(clock)
        cache.stop()
        cache.start()
        cache.stop()
        cache.stop()
        assert cache.running is False
