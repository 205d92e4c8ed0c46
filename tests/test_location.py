"""
Tests for the periodic location sampler and its cached fallback
"""
import asyncio
from datetime import datetime, timezone

from silentaid.client.location import (
    GeolocationError,
    LocationSampler,
    Position,
    ReadingStatus,
)
from silentaid.client.storage import LocationSample

FIXED_NOW = datetime(2024, 5, 1, 10, 30, tzinfo=timezone.utc)


def denied():
    raise GeolocationError("User denied Geolocation")


def make_sampler(profiles, provider, **kwargs):
    return LocationSampler(profiles, provider, now=lambda: FIXED_NOW, **kwargs)


def seed(profiles):
    profiles.save_last_location(LocationSample(lat=1.5, lng=2.25, accuracy=30, updatedAt="earlier"))


class TestSample:
    def test_live_sample_is_stored(self, profiles):
        sampler = make_sampler(profiles, lambda: Position(12.9, 77.6, 10.4))

        reading = sampler.sample()

        assert reading.status is ReadingStatus.LIVE
        assert reading.text == "Lat: 12.9000, Lng: 77.6000 (±10 m)"
        stored = profiles.load_last_location()
        assert (stored.lat, stored.lng, stored.accuracy) == (12.9, 77.6, 10.4)
        assert stored.updatedAt == FIXED_NOW.isoformat()

    def test_new_sample_overwrites_old(self, profiles):
        seed(profiles)
        make_sampler(profiles, lambda: Position(3.0, 4.0)).sample()

        stored = profiles.load_last_location()
        assert (stored.lat, stored.lng, stored.accuracy) == (3.0, 4.0, None)

    def test_error_falls_back_to_cache(self, profiles):
        seed(profiles)

        reading = make_sampler(profiles, denied).sample()

        assert reading.status is ReadingStatus.CACHED
        assert reading.text == "Lat: 1.5000, Lng: 2.2500 (cached)"
        assert reading.sample.updatedAt == "earlier"

    def test_error_without_cache_is_denied(self, profiles):
        reading = make_sampler(profiles, denied).sample()

        assert reading.status is ReadingStatus.DENIED
        assert reading.sample is None
        assert reading.text == "Location permission denied"

    def test_unsupported_uses_saved_sample(self, profiles):
        seed(profiles)

        reading = make_sampler(profiles, None).sample()

        assert reading.status is ReadingStatus.CACHED
        assert reading.text == "Lat: 1.5000, Lng: 2.2500 (saved)"

    def test_unsupported_without_cache(self, profiles):
        reading = make_sampler(profiles, None).sample()

        assert reading.status is ReadingStatus.UNAVAILABLE
        assert reading.text == "Location not available"

    def test_on_reading_callback(self, profiles):
        seen = []
        make_sampler(profiles, denied, on_reading=seen.append).sample()

        assert [r.status for r in seen] == [ReadingStatus.DENIED]


def test_run_samples_immediately_and_periodically(profiles):
    readings = []

    async def scenario():
        stop = asyncio.Event()

        def record(reading):
            readings.append(reading)
            if len(readings) == 3:
                stop.set()

        sampler = make_sampler(profiles, lambda: Position(1.0, 2.0), on_reading=record)
        await asyncio.wait_for(sampler.run(interval=0.01, stop=stop), timeout=5)

    asyncio.run(scenario())

    assert len(readings) == 3
    assert all(r.status is ReadingStatus.LIVE for r in readings)


class TestProviderFailures:
    def test_timeout_falls_back_to_cache(self, profiles):
        seed(profiles)

        def timed_out():
            raise TimeoutError("geolocation timed out")

        reading = make_sampler(profiles, timed_out).sample()

        assert reading.status is ReadingStatus.CACHED
        assert reading.text == "Lat: 1.5000, Lng: 2.2500 (cached)"

    def test_os_error_without_cache(self, profiles):
        def broken():
            raise OSError("no gps device")

        reading = make_sampler(profiles, broken).sample()

        assert reading.status is ReadingStatus.DENIED
        assert reading.text == "Location permission denied"

    def test_run_survives_failed_ticks(self, profiles):
        calls = []
        readings = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise TimeoutError("geolocation timed out")
            return Position(5.0, 6.0)

        async def scenario():
            stop = asyncio.Event()

            def record(reading):
                readings.append(reading)
                if len(readings) == 4:
                    stop.set()

            sampler = make_sampler(profiles, flaky, on_reading=record)
            await asyncio.wait_for(sampler.run(interval=0.01, stop=stop), timeout=5)

        asyncio.run(scenario())

        assert len(calls) == 4
        assert [r.status for r in readings[:2]] == [ReadingStatus.DENIED, ReadingStatus.DENIED]
        assert readings[-1].status is ReadingStatus.LIVE
        assert profiles.load_last_location().lat == 5.0
