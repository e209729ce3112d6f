"""
Simulated measurement collaborators.

Ground truth is an altitude profile (e.g. an elevator ride). The simulated
barometer samples the ISA forward model at the current true altitude plus
Gaussian noise; the simulated GPS reports a noisier altitude with a fixed
horizontal accuracy; weather providers return a fixed station pressure.

Every collaborator counts its calls so tests can assert which sources a
detection pass actually touched. Noise is drawn from a seeded
``numpy.random.default_rng`` for reproducibility.
"""

import time
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from floorfusion.config import DEFAULT_FLOOR_HEIGHT_M, STANDARD_SEA_LEVEL_PRESSURE_HPA
from floorfusion.sensors.environment import standard_pressure_at_altitude
from floorfusion.sensors.types import SOURCE_OPEN_METEO, LocationFix, WeatherReading
from floorfusion.sources.base import BarometerSource, LocationSource, WeatherProvider


def elevator_trajectory(
    floors: Sequence[int] = (0, 5, 2, 0),
    floor_height_m: float = DEFAULT_FLOOR_HEIGHT_M,
    dwell_s: float = 10.0,
    speed_mps: float = 1.5,
    dt: float = 1.0,
    ground_altitude_m: float = 0.0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Altitude profile of an elevator visiting a sequence of floors.

    The car dwells ``dwell_s`` seconds at each floor and moves between
    floors at constant vertical speed.

    Args:
        floors: Floors visited, in order.
        floor_height_m: Floor-to-floor height [m].
        dwell_s: Stop duration at each floor [s].
        speed_mps: Vertical speed while moving [m/s].
        dt: Sample interval [s].
        ground_altitude_m: Altitude of floor 0 [m].

    Returns:
        Tuple (t, altitude): sample times [s] and true altitudes [m],
        both of shape (N,).

    Example:
        >>> t, h = elevator_trajectory(floors=(0, 2), dwell_s=2.0, dt=1.0)
        >>> float(h[0]), float(h[-1])
        (0.0, 7.0)
    """
    if not floors:
        raise ValueError("floors must not be empty")
    if speed_mps <= 0 or dt <= 0 or dwell_s < 0:
        raise ValueError("speed_mps and dt must be positive, dwell_s non-negative")

    waypoints_t = [0.0]
    waypoints_h = [ground_altitude_m + floors[0] * floor_height_m]
    for floor in floors[1:]:
        target = ground_altitude_m + floor * floor_height_m
        waypoints_t.append(waypoints_t[-1] + dwell_s)
        waypoints_h.append(waypoints_h[-1])
        waypoints_t.append(waypoints_t[-1] + abs(target - waypoints_h[-1]) / speed_mps)
        waypoints_h.append(target)
    waypoints_t.append(waypoints_t[-1] + dwell_s)
    waypoints_h.append(waypoints_h[-1])

    t = np.arange(0.0, waypoints_t[-1] + dt / 2, dt)
    altitude = np.interp(t, waypoints_t, waypoints_h)
    return t, altitude


class SimulatedBarometer(BarometerSource):
    """
    Barometer reading the ISA pressure at ``altitude_m`` plus noise.

    Attributes:
        altitude_m: Current true altitude [m]; set by the caller.
        available: Result of is_available().
        availability_calls: Number of is_available() calls.
        read_calls: Number of get_current_pressure_hpa() calls.
    """

    def __init__(
        self,
        altitude_m: float = 0.0,
        sea_level_pressure_hpa: float = STANDARD_SEA_LEVEL_PRESSURE_HPA,
        noise_std_hpa: float = 0.0,
        available: bool = True,
        raise_on_availability: bool = False,
        seed: Optional[int] = None,
    ):
        self.altitude_m = altitude_m
        self.sea_level_pressure_hpa = sea_level_pressure_hpa
        self.noise_std_hpa = noise_std_hpa
        self.available = available
        self.raise_on_availability = raise_on_availability
        self.rng = np.random.default_rng(seed)
        self.availability_calls = 0
        self.read_calls = 0

    async def is_available(self) -> bool:
        self.availability_calls += 1
        if self.raise_on_availability:
            raise RuntimeError("sensor service not reachable")
        return self.available

    async def get_current_pressure_hpa(self) -> Optional[float]:
        self.read_calls += 1
        if not self.available:
            return None
        pressure = standard_pressure_at_altitude(self.altitude_m, self.sea_level_pressure_hpa)
        if self.noise_std_hpa > 0:
            pressure += self.rng.normal(0.0, self.noise_std_hpa)
        return float(pressure)


class SimulatedLocation(LocationSource):
    """GPS fix at a fixed position with a noisy altitude."""

    def __init__(
        self,
        altitude_m: Optional[float] = 0.0,
        latitude: float = 22.3045,
        longitude: float = 114.1796,
        accuracy_m: Optional[float] = 8.0,
        altitude_noise_std_m: float = 0.0,
        available: bool = True,
        seed: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.altitude_m = altitude_m
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy_m = accuracy_m
        self.altitude_noise_std_m = altitude_noise_std_m
        self.available = available
        self.rng = np.random.default_rng(seed)
        self._clock = clock
        self.availability_calls = 0
        self.location_calls = 0

    async def is_available(self) -> bool:
        self.availability_calls += 1
        return self.available

    async def get_current_location(self) -> Optional[LocationFix]:
        self.location_calls += 1
        if not self.available:
            return None
        altitude = self.altitude_m
        if altitude is not None and self.altitude_noise_std_m > 0:
            altitude = float(altitude + self.rng.normal(0.0, self.altitude_noise_std_m))
        return LocationFix(
            latitude=self.latitude,
            longitude=self.longitude,
            altitude_m=altitude,
            accuracy_m=self.accuracy_m,
            timestamp=self._clock(),
        )


class StaticWeatherProvider(WeatherProvider):
    """Weather provider returning a constant pressure, ``age_s`` seconds old."""

    def __init__(
        self,
        pressure_hpa: float = STANDARD_SEA_LEVEL_PRESSURE_HPA,
        name: str = SOURCE_OPEN_METEO,
        age_s: float = 0.0,
        clock: Callable[[], float] = time.time,
    ):
        self.pressure_hpa = pressure_hpa
        self.name = name
        self.age_s = age_s
        self._clock = clock
        self.calls = 0

    async def get_pressure(self, latitude: float, longitude: float) -> Optional[WeatherReading]:
        self.calls += 1
        return WeatherReading(
            pressure_hpa=self.pressure_hpa,
            source=self.name,
            timestamp=self._clock() - self.age_s,
            station_name=f"sim@{latitude:.2f},{longitude:.2f}",
        )


class FailingProvider(WeatherProvider):
    """Weather provider whose every request raises."""

    def __init__(self, name: str = "failing", message: str = "service unavailable"):
        self.name = name
        self.message = message
        self.calls = 0

    async def get_pressure(self, latitude: float, longitude: float) -> Optional[WeatherReading]:
        self.calls += 1
        raise ConnectionError(f"{self.name}: {self.message}")
