"""Barometric altitude models and measurement types.

Provides:
- ISA pressure/altitude conversion and floor rounding
- PressureReading, LocationFix and WeatherReading packets

Calibration lives in ``floorfusion.sensors.calibration`` and barometer
validation in ``floorfusion.sensors.validation``.
"""

from floorfusion.sensors.environment import (
    altitude_to_floor,
    floor_description,
    pressure_to_altitude,
    round_half_away,
    sea_level_pressure_from_altitude,
    standard_pressure_at_altitude,
)
from floorfusion.sensors.types import LocationFix, PressureReading, WeatherReading

__all__ = [
    # Conversion
    "pressure_to_altitude",
    "altitude_to_floor",
    "round_half_away",
    "sea_level_pressure_from_altitude",
    "standard_pressure_at_altitude",
    "floor_description",
    # Types
    "PressureReading",
    "LocationFix",
    "WeatherReading",
]
