"""
Hardware barometer validation against weather-station pressure.

A healthy barometer reads close to the station pressure reported for the
same position. The absolute difference d = |p_baro - p_station| is graded:

    d <= 2 hPa     excellent   (valid)
    d <= 5 hPa     good        (valid)
    d <= 10 hPa    poor        (check calibration)
    d >  10 hPa    very poor   (sensor may be faulty)

The standard-pressure fallback of the weather chain is not a measurement and
is never used as the comparison reference.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from floorfusion.sensors.types import SOURCE_DEFAULT, LocationFix
from floorfusion.sources.base import BarometerSource, LocationSource
from floorfusion.sources.weather import WeatherPressureChain

logger = logging.getLogger(__name__)

EXCELLENT_MAX_DIFF_HPA = 2.0
GOOD_MAX_DIFF_HPA = 5.0
POOR_MAX_DIFF_HPA = 10.0

NO_BAROMETER_MESSAGE = "Hardware barometer not available"
NO_LOCATION_MESSAGE = "GPS location not available for weather comparison"
NO_WEATHER_MESSAGE = "Weather data not available for comparison"

# (upper bound of |difference| [hPa], grade)
_GRADES = ((1.0, "A+"), (2.0, "A"), (3.0, "B"), (5.0, "C"), (10.0, "D"))


@dataclass(frozen=True)
class BarometerValidation:
    """
    Outcome of one barometer / weather-station comparison.

    Attributes:
        is_valid: True if the difference is within the good band.
        message: Human-readable verdict.
        barometer_pressure_hpa: Hardware reading [hPa], if obtained.
        weather_pressure_hpa: Station reading [hPa], if obtained.
        difference_hpa: Absolute difference [hPa], if both were obtained.
        weather_source: Provider that supplied the station reading.
    """

    is_valid: bool
    message: str
    barometer_pressure_hpa: Optional[float] = None
    weather_pressure_hpa: Optional[float] = None
    difference_hpa: Optional[float] = None
    weather_source: Optional[str] = None

    @property
    def grade(self) -> str:
        if self.difference_hpa is None:
            return "N/A"
        for bound, grade in _GRADES:
            if self.difference_hpa <= bound:
                return grade
        return "F"

    def __str__(self) -> str:
        diff = "n/a" if self.difference_hpa is None else f"{self.difference_hpa:.1f} hPa"
        return f"BarometerValidation(valid: {self.is_valid}, message: {self.message}, diff: {diff})"


def classify_pressure_difference(difference_hpa: float) -> Tuple[bool, str]:
    """
    Grade an absolute barometer / station pressure difference.

    Returns:
        Tuple of (is_valid, message).
    """
    d = abs(difference_hpa)
    if d <= EXCELLENT_MAX_DIFF_HPA:
        return True, f"Excellent accuracy (±{d:.1f} hPa)"
    if d <= GOOD_MAX_DIFF_HPA:
        return True, f"Good accuracy (±{d:.1f} hPa)"
    if d <= POOR_MAX_DIFF_HPA:
        return False, f"Poor accuracy (±{d:.1f} hPa) - Check calibration"
    return False, f"Very poor accuracy (±{d:.1f} hPa) - Sensor may be faulty"


async def validate_barometer(
    barometer: Optional[BarometerSource],
    location: Optional[LocationSource],
    weather: Optional[WeatherPressureChain],
) -> BarometerValidation:
    """
    Compare the hardware barometer with the nearest weather station.

    Never raises; a missing or failing collaborator yields an invalid result
    carrying whatever readings were obtained before the failure.
    """
    if barometer is None:
        return BarometerValidation(False, NO_BAROMETER_MESSAGE)

    barometer_hpa = None
    try:
        barometer_hpa = await barometer.get_current_pressure_hpa()
        if barometer_hpa is None:
            return BarometerValidation(False, NO_BAROMETER_MESSAGE)

        fix: Optional[LocationFix] = None
        if location is not None:
            fix = await location.get_current_location()
        if fix is None or not fix.has_position:
            return BarometerValidation(False, NO_LOCATION_MESSAGE, barometer_hpa)

        reading = None
        if weather is not None:
            reading = await weather.get_pressure(fix.latitude, fix.longitude)
        if reading is None or reading.source == SOURCE_DEFAULT:
            return BarometerValidation(False, NO_WEATHER_MESSAGE, barometer_hpa)
    except Exception as exc:
        logger.error("Barometer validation failed: %s", exc)
        return BarometerValidation(False, f"Validation error: {exc}", barometer_hpa)

    difference = abs(barometer_hpa - reading.pressure_hpa)
    is_valid, message = classify_pressure_difference(difference)
    logger.info(
        "Barometer validation: hardware=%.1f hPa, weather=%.1f hPa (%s), diff=±%.1f hPa",
        barometer_hpa,
        reading.pressure_hpa,
        reading.source,
        difference,
    )
    return BarometerValidation(
        is_valid=is_valid,
        message=message,
        barometer_pressure_hpa=barometer_hpa,
        weather_pressure_hpa=reading.pressure_hpa,
        difference_hpa=difference,
        weather_source=reading.source,
    )


def validation_recommendations(result: BarometerValidation) -> List[str]:
    """Plain-text advice for improving a barometer comparison."""
    advice = []
    if not result.is_valid:
        advice.extend(
            [
                "Move to an open area away from buildings",
                "Ensure stable temperature (avoid direct sunlight)",
                "Avoid windy or turbulent areas",
                "Try recalibrating the sensor",
            ]
        )
    if result.difference_hpa is not None and result.difference_hpa > GOOD_MAX_DIFF_HPA:
        advice.append(
            "Large difference detected - check altitude differences to the station, "
            "local weather variations and sensor calibration"
        )
    advice.extend(
        [
            "Compare with multiple weather stations if possible",
            "Take multiple readings over time",
            "Consider local altitude differences",
        ]
    )
    return advice
