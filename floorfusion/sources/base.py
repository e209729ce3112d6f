"""
Abstract interfaces for the external measurement collaborators.

The detection pipeline depends only on these interfaces, never on concrete
OS sensor or HTTP APIs. Every method is a coroutine; implementations may
raise on transient failures, and the pipeline converts such exceptions into
error-tagged results at each call site.
"""

from abc import ABC, abstractmethod
from typing import Optional

from floorfusion.sensors.types import LocationFix, WeatherReading


class BarometerSource(ABC):
    """Hardware pressure sensor."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Return True if the device has a usable pressure sensor."""

    @abstractmethod
    async def get_current_pressure_hpa(self) -> Optional[float]:
        """Return the latest pressure in hPa, or None if the read failed."""


class LocationSource(ABC):
    """GPS / fused location provider."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Return True if location services are enabled and permitted."""

    @abstractmethod
    async def get_current_location(self) -> Optional[LocationFix]:
        """Return the current fix, or None if no fix could be obtained."""


class WeatherProvider(ABC):
    """One weather-station pressure provider (e.g. a single HTTP API)."""

    name: str = "weather"

    @abstractmethod
    async def get_pressure(self, latitude: float, longitude: float) -> Optional[WeatherReading]:
        """
        Return the station pressure near the given position.

        Args:
            latitude: Latitude [deg].
            longitude: Longitude [deg].

        Returns:
            A WeatherReading, or None if the provider has no data.
        """
