"""
Measurement packets exchanged with the external sensor collaborators.

Packets are frozen dataclasses validated on construction. They are produced
per request by the barometer, location and weather sources and are never
persisted.

Pressure source tags:
    - "hardware-barometer": on-device pressure sensor
    - "OpenWeatherMap", "WeatherAPI", "Open-Meteo": weather-station providers
    - "default": ISA standard sea-level pressure used as a last resort
"""

import math
from dataclasses import dataclass
from typing import Optional


SOURCE_HARDWARE_BAROMETER = "hardware-barometer"
SOURCE_OPENWEATHERMAP = "OpenWeatherMap"
SOURCE_WEATHERAPI = "WeatherAPI"
SOURCE_OPEN_METEO = "Open-Meteo"
SOURCE_DEFAULT = "default"


def _check_pressure(name: str, pressure_hpa: float) -> None:
    if not isinstance(pressure_hpa, (int, float)):
        raise TypeError(f"{name} must be numeric, got {type(pressure_hpa)}")
    if not math.isfinite(pressure_hpa) or pressure_hpa <= 0:
        raise ValueError(f"{name} must be finite and positive, got {pressure_hpa}")


@dataclass(frozen=True)
class PressureReading:
    """
    A single atmospheric pressure sample.

    Attributes:
        pressure_hpa: Atmospheric pressure. Units: hPa.
        source: Provenance tag (see module docstring).
        timestamp: Sample time. Units: seconds since the epoch.
    """

    pressure_hpa: float
    source: str
    timestamp: float

    def __post_init__(self) -> None:
        _check_pressure("pressure_hpa", self.pressure_hpa)
        if not isinstance(self.source, str) or not self.source:
            raise ValueError(f"source must be a non-empty string, got {self.source!r}")


@dataclass(frozen=True)
class LocationFix:
    """
    A position fix from the GPS / location collaborator.

    Attributes:
        latitude: Geodetic latitude [deg] or None if unknown.
        longitude: Geodetic longitude [deg] or None if unknown.
        altitude_m: Altitude above sea level [m] or None if not reported.
        accuracy_m: Horizontal accuracy radius [m] or None if not reported.
        timestamp: Fix time [s since epoch].
    """

    latitude: Optional[float]
    longitude: Optional[float]
    altitude_m: Optional[float] = None
    accuracy_m: Optional[float] = None
    timestamp: float = 0.0

    def __post_init__(self) -> None:
        if self.latitude is not None and not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude must be in [-90, 90], got {self.latitude}")
        if self.longitude is not None and not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude must be in [-180, 180], got {self.longitude}")
        if self.accuracy_m is not None and self.accuracy_m < 0:
            raise ValueError(f"accuracy_m must be non-negative, got {self.accuracy_m}")

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_indoors(self) -> bool:
        """Heuristic: no accuracy or accuracy worse than 15 m."""
        return self.accuracy_m is None or self.accuracy_m > 15.0


@dataclass(frozen=True)
class WeatherReading:
    """
    Station pressure reported by a weather provider.

    Attributes:
        pressure_hpa: Reported pressure [hPa].
        source: Provider name, e.g. "OpenWeatherMap".
        timestamp: Observation time [s since epoch].
        temperature_c: Reported air temperature [°C], if any.
        station_name: Human-readable station identifier, if any.
    """

    pressure_hpa: float
    source: str
    timestamp: float
    temperature_c: Optional[float] = None
    station_name: Optional[str] = None

    def __post_init__(self) -> None:
        _check_pressure("pressure_hpa", self.pressure_hpa)
        if not isinstance(self.source, str) or not self.source:
            raise ValueError(f"source must be a non-empty string, got {self.source!r}")

    def as_pressure_reading(self) -> PressureReading:
        return PressureReading(
            pressure_hpa=self.pressure_hpa,
            source=self.source,
            timestamp=self.timestamp,
        )
