"""
Per-source floor estimators.

Each function turns one collaborator's measurement into a ``FloorEstimate``.
Failures (unavailable sensor, missing data, collaborator exceptions) are
returned as error-tagged estimates, never raised.

Confidence models:

    Barometer:  band on the raw pressure (nominal / unusual / faulty)
    GPS:        step function of the horizontal accuracy
    Weather:    0.7 base, adjusted for data age, pressure plausibility
                and provider reputation
"""

import logging
import time
from typing import Optional

import numpy as np

from floorfusion.config import BarometerConfidenceBands, DetectionConfig
from floorfusion.fusion.types import FloorEstimate
from floorfusion.sensors.environment import altitude_to_floor, pressure_to_altitude
from floorfusion.sensors.types import LocationFix, WeatherReading
from floorfusion.sources.base import BarometerSource
from floorfusion.sources.weather import WeatherPressureChain

logger = logging.getLogger(__name__)

BAROMETER_METHOD = "barometer (hardware)"
GPS_METHOD = "gps"
WEATHER_METHOD = "weather"

WEATHER_BASE_CONFIDENCE = 0.7
WEATHER_PLAUSIBLE_PRESSURE_HPA = (950.0, 1050.0)


def barometer_confidence(
    pressure_hpa: float,
    bands: Optional[BarometerConfidenceBands] = None,
) -> float:
    """
    Confidence of a hardware pressure reading.

    Example:
        >>> barometer_confidence(1013.25)
        0.9
        >>> barometer_confidence(750.0)
        0.3
    """
    bands = bands or BarometerConfidenceBands()
    low, high = bands.nominal_range_hpa
    if low <= pressure_hpa <= high:
        return bands.nominal_confidence
    low, high = bands.plausible_range_hpa
    if pressure_hpa < low or pressure_hpa > high:
        return bands.faulty_confidence
    return bands.unusual_confidence


async def detect_floor_from_barometer(
    barometer: BarometerSource,
    config: Optional[DetectionConfig] = None,
) -> FloorEstimate:
    """
    Floor from the hardware barometer alone.

    Always converts against the standard sea-level pressure; dynamic
    calibration is not applied on this path.
    """
    config = config or DetectionConfig()
    try:
        if not await barometer.is_available():
            return FloorEstimate.failure(BAROMETER_METHOD, "Barometer sensor not available")

        pressure = await barometer.get_current_pressure_hpa()
        if pressure is None:
            return FloorEstimate.failure(BAROMETER_METHOD, "Failed to read barometer pressure")

        altitude = pressure_to_altitude(
            pressure, config.standard_sea_level_pressure_hpa, config.temperature_c
        )
        return FloorEstimate(
            floor=altitude_to_floor(altitude, config.floor_height_m),
            altitude_m=altitude,
            confidence=barometer_confidence(pressure, config.barometer_bands),
            method=BAROMETER_METHOD,
        )
    except Exception as exc:
        logger.warning("Barometer detection failed: %s", exc)
        return FloorEstimate.failure(BAROMETER_METHOD, f"Barometer error: {exc}")


def gps_confidence(accuracy_m: Optional[float]) -> float:
    """Confidence of a GPS altitude from the reported horizontal accuracy [m]."""
    if accuracy_m is None:
        return 0.3
    if accuracy_m <= 5.0:
        return 0.8
    if accuracy_m <= 10.0:
        return 0.6
    if accuracy_m <= 20.0:
        return 0.4
    return 0.2


def detect_floor_from_gps(
    fix: Optional[LocationFix],
    config: Optional[DetectionConfig] = None,
) -> FloorEstimate:
    config = config or DetectionConfig()
    if fix is None:
        return FloorEstimate.failure(GPS_METHOD, "GPS location not available")
    if fix.altitude_m is None:
        return FloorEstimate.failure(GPS_METHOD, "GPS altitude not available")

    return FloorEstimate(
        floor=altitude_to_floor(fix.altitude_m, config.floor_height_m),
        altitude_m=float(fix.altitude_m),
        confidence=gps_confidence(fix.accuracy_m),
        method=GPS_METHOD,
    )


def weather_confidence(
    reading: WeatherReading,
    now: float,
    config: Optional[DetectionConfig] = None,
) -> float:
    """
    Confidence of a weather-station pressure.

    Args:
        reading: Provider reading.
        now: Current time [s since epoch], for the data age.
        config: Supplies the per-provider adjustment table.

    Returns:
        Confidence rounded to two decimals, clamped to [0, 1].
    """
    config = config or DetectionConfig()
    confidence = WEATHER_BASE_CONFIDENCE

    age_s = now - reading.timestamp
    if age_s < 15 * 60:
        confidence += 0.2
    elif age_s < 60 * 60:
        confidence += 0.1
    else:
        confidence -= 0.1

    low, high = WEATHER_PLAUSIBLE_PRESSURE_HPA
    if low <= reading.pressure_hpa <= high:
        confidence += 0.1
    else:
        confidence -= 0.2

    confidence += config.weather_source_adjustment.get(reading.source, 0.0)
    return float(np.clip(round(confidence, 2), 0.0, 1.0))


async def detect_floor_from_weather(
    weather: WeatherPressureChain,
    fix: Optional[LocationFix],
    sea_level_pressure_hpa: float,
    config: Optional[DetectionConfig] = None,
    now: Optional[float] = None,
) -> FloorEstimate:
    """
    Floor from the weather-station pressure near the current position.

    Args:
        weather: Provider chain.
        fix: Current location; required to query providers.
        sea_level_pressure_hpa: Calibrated P0 reference [hPa].
        config: Detection configuration.
        now: Current time [s since epoch]. Defaults to ``time.time()``.
    """
    config = config or DetectionConfig()
    if fix is None or not fix.has_position:
        return FloorEstimate.failure(WEATHER_METHOD, "Location required for weather data")

    try:
        reading = await weather.get_pressure(fix.latitude, fix.longitude)
        if reading is None:
            return FloorEstimate.failure(WEATHER_METHOD, "Weather pressure data not available")

        altitude = pressure_to_altitude(
            reading.pressure_hpa, sea_level_pressure_hpa, config.temperature_c
        )
        return FloorEstimate(
            floor=altitude_to_floor(altitude, config.floor_height_m),
            altitude_m=altitude,
            confidence=weather_confidence(reading, time.time() if now is None else now, config),
            method=WEATHER_METHOD,
        )
    except Exception as exc:
        logger.warning("Weather detection failed: %s", exc)
        return FloorEstimate.failure(WEATHER_METHOD, f"Weather error: {exc}")
