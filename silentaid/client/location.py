import asyncio
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, NamedTuple, Optional

import structlog

from silentaid.client.storage import LocationSample, ProfileStore

logger = structlog.get_logger(__name__)

DEFAULT_INTERVAL = 30.0


class Position(NamedTuple):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None


class GeolocationError(Exception):
    """The device refused or failed to report a position."""


class ReadingStatus(str, enum.Enum):
    LIVE = "LIVE"
    CACHED = "CACHED"
    UNAVAILABLE = "UNAVAILABLE"
    DENIED = "DENIED"


@dataclass
class LocationReading:
    status: ReadingStatus
    sample: Optional[LocationSample]
    text: str


def format_coords(sample: LocationSample) -> str:
    return f"Lat: {sample.lat:.4f}, Lng: {sample.lng:.4f}"


def format_sample(sample: LocationSample) -> str:
    text = format_coords(sample)
    if sample.accuracy is not None:
        text += f" (±{round(sample.accuracy)} m)"
    return text


class LocationSampler:
    """
    Polls a geolocation provider and keeps the last good sample.

    ``provider`` is a zero-argument callable returning a ``Position``; ``None``
    means the device has no geolocation at all. Any exception from the provider
    is a failed read, which falls back to the stored sample when one exists.
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        provider: Optional[Callable[[], Position]] = None,
        on_reading: Optional[Callable[[LocationReading], None]] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.profile_store = profile_store
        self.provider = provider
        self.on_reading = on_reading
        self.now = now

    def sample(self) -> LocationReading:
        if self.provider is None:
            reading = self._fallback("saved", ReadingStatus.UNAVAILABLE, "Location not available")
        else:
            try:
                position = self.provider()
            except GeolocationError as exc:
                logger.info("geolocation_failed", error=str(exc))
                reading = self._fallback("cached", ReadingStatus.DENIED, "Location permission denied")
            except Exception as exc:
                # timeouts and driver errors count as a failed read; the next tick retries
                logger.warning("geolocation_error", error=str(exc), error_type=type(exc).__name__)
                reading = self._fallback("cached", ReadingStatus.DENIED, "Location permission denied")
            else:
                sample = LocationSample(
                    lat=position.latitude,
                    lng=position.longitude,
                    accuracy=position.accuracy,
                    updatedAt=self.now().isoformat(),
                )
                self.profile_store.save_last_location(sample)
                reading = LocationReading(ReadingStatus.LIVE, sample, format_sample(sample))

        if self.on_reading:
            self.on_reading(reading)
        return reading

    def _fallback(self, label, empty_status, empty_text) -> LocationReading:
        last = self.profile_store.load_last_location()
        if last is None:
            return LocationReading(empty_status, None, empty_text)
        return LocationReading(ReadingStatus.CACHED, last, f"{format_coords(last)} ({label})")

    async def run(self, interval: float = DEFAULT_INTERVAL, stop: Optional[asyncio.Event] = None):
        """Sample now, then every ``interval`` seconds until ``stop`` is set."""
        stop = stop or asyncio.Event()
        while not stop.is_set():
            self.sample()
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
