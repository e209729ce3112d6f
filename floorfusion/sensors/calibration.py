"""
Sea-level pressure calibration.

The barometric altitude formula needs the current sea-level reference P0,
which drifts with the weather by tens of hPa (hundreds of meters). The
calibrator recovers P0 either from a known altitude and a local pressure
sample (manual), or from a GPS altitude and the nearest weather-station
pressure (automatic). A calibration is considered stale after one hour.

Calibration state is owned by one PressureCalibrator instance; there is no
module-level state.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from floorfusion.config import STANDARD_SEA_LEVEL_PRESSURE_HPA, DetectionConfig
from floorfusion.sensors.environment import sea_level_pressure_from_altitude
from floorfusion.sources.base import LocationSource
from floorfusion.sources.weather import WeatherPressureChain

logger = logging.getLogger(__name__)

NO_LOCATION_MESSAGE = "GPS location not available for calibration"
NO_WEATHER_MESSAGE = "Weather pressure data not available"


@dataclass
class CalibrationState:
    """
    Mutable calibration record.

    Attributes:
        sea_level_pressure_hpa: Current P0 reference [hPa].
        last_calibration_time: Time of the last successful calibration
            [s since epoch], or None if never calibrated.
        calibrated_pressure_hpa: P0 produced by that calibration [hPa].
    """

    sea_level_pressure_hpa: float = STANDARD_SEA_LEVEL_PRESSURE_HPA
    last_calibration_time: Optional[float] = None
    calibrated_pressure_hpa: Optional[float] = None

    @property
    def is_calibrated(self) -> bool:
        return self.last_calibration_time is not None

    def age_s(self, now: float) -> Optional[float]:
        if self.last_calibration_time is None:
            return None
        return now - self.last_calibration_time

    def is_calibration_needed(self, now: float, max_age_s: float = 3600.0) -> bool:
        """True if never calibrated or the calibration is older than max_age_s."""
        age = self.age_s(now)
        return age is None or age > max_age_s


@dataclass(frozen=True)
class CalibrationResult:
    success: bool
    message: str
    sea_level_pressure_hpa: Optional[float] = None


def _format_age(age_s: float) -> str:
    if age_s < 3600:
        return f"{int(age_s // 60)}m"
    if age_s < 86400:
        return f"{int(age_s // 3600)}h"
    return f"{int(age_s // 86400)}d"


@dataclass(frozen=True)
class CalibrationStatus:
    """Read-only view of the calibration, as reported to users."""

    is_calibrated: bool
    last_calibration_time: Optional[float]
    calibrated_sea_level_pressure_hpa: Optional[float]
    is_calibration_needed: bool
    age_s: Optional[float]

    @property
    def status_message(self) -> str:
        if not self.is_calibrated or self.age_s is None:
            return (
                "Not calibrated - using standard pressure "
                f"({STANDARD_SEA_LEVEL_PRESSURE_HPA:.2f} hPa)"
            )
        return (
            f"Calibrated {_format_age(self.age_s)} ago "
            f"({self.calibrated_sea_level_pressure_hpa:.2f} hPa)"
        )


class PressureCalibrator:
    """
    Maintain the sea-level pressure reference used for altitude conversion.

    Attributes:
        location_source: GPS collaborator used by auto-calibration.
        weather: Weather pressure chain used by auto-calibration.
        config: Detection configuration (temperature, staleness, GPS floor).
        state: Current calibration record.
    """

    def __init__(
        self,
        location_source: Optional[LocationSource] = None,
        weather: Optional[WeatherPressureChain] = None,
        config: Optional[DetectionConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.location_source = location_source
        self.weather = weather
        self.config = config or DetectionConfig()
        self._clock = clock
        self.state = CalibrationState(
            sea_level_pressure_hpa=self.config.standard_sea_level_pressure_hpa
        )

    @property
    def sea_level_pressure_hpa(self) -> float:
        return self.state.sea_level_pressure_hpa

    def _apply(self, sea_level_pressure_hpa: float) -> None:
        now = self._clock()
        self.state.sea_level_pressure_hpa = sea_level_pressure_hpa
        self.state.calibrated_pressure_hpa = sea_level_pressure_hpa
        self.state.last_calibration_time = now

    def manual_calibrate(
        self,
        known_altitude_m: float,
        current_pressure_hpa: float,
        temperature_c: Optional[float] = None,
    ) -> CalibrationResult:
        """
        Calibrate from a known altitude and the pressure measured there.

        Args:
            known_altitude_m: True altitude of the device [m].
            current_pressure_hpa: Pressure measured at that altitude [hPa].
            temperature_c: Air temperature [°C]. Defaults to the configured one.

        Returns:
            CalibrationResult. On failure the state is left untouched.
        """
        if temperature_c is None:
            temperature_c = self.config.temperature_c
        if not math.isfinite(current_pressure_hpa) or current_pressure_hpa <= 0:
            return CalibrationResult(
                success=False,
                message=f"Invalid pressure: {current_pressure_hpa} hPa",
            )
        if not math.isfinite(known_altitude_m):
            return CalibrationResult(
                success=False,
                message=f"Invalid altitude: {known_altitude_m} m",
            )

        p0 = sea_level_pressure_from_altitude(known_altitude_m, current_pressure_hpa, temperature_c)
        self._apply(p0)
        logger.info(
            "Manual calibration at %.1fm: sea-level pressure %.2f hPa", known_altitude_m, p0
        )
        return CalibrationResult(
            success=True,
            message=f"Manually calibrated at {known_altitude_m:.1f}m altitude",
            sea_level_pressure_hpa=p0,
        )

    async def auto_calibrate(self) -> CalibrationResult:
        """
        Calibrate from the current GPS fix and the local weather pressure.

        If the fix carries a plausible altitude the sea-level pressure is
        recovered by inverting the ISA formula; otherwise the weather
        station pressure (already reduced to sea level by the provider) is
        used directly.
        """
        try:
            fix = None
            if self.location_source is not None:
                try:
                    fix = await self.location_source.get_current_location()
                except Exception as exc:
                    logger.warning("Location unavailable for calibration: %s", exc)
            if fix is None or not fix.has_position:
                return CalibrationResult(success=False, message=NO_LOCATION_MESSAGE)

            reading = None
            if self.weather is not None:
                reading = await self.weather.get_pressure(fix.latitude, fix.longitude)
            if reading is None:
                return CalibrationResult(success=False, message=NO_WEATHER_MESSAGE)

            if (
                fix.altitude_m is not None
                and fix.altitude_m > self.config.min_plausible_gps_altitude_m
            ):
                p0 = sea_level_pressure_from_altitude(
                    fix.altitude_m, reading.pressure_hpa, self.config.temperature_c
                )
                message = (
                    f"Auto-calibrated using GPS altitude {fix.altitude_m:.1f}m "
                    f"and {reading.source} pressure"
                )
            else:
                p0 = reading.pressure_hpa
                message = f"Auto-calibrated using {reading.source} sea-level pressure"
        except Exception as exc:
            logger.warning("Auto-calibration failed: %s", exc)
            return CalibrationResult(success=False, message=f"Calibration failed: {exc}")

        self._apply(p0)
        logger.info("%s: %.2f hPa", message, p0)
        return CalibrationResult(success=True, message=message, sea_level_pressure_hpa=p0)

    def is_calibration_needed(self) -> bool:
        return self.state.is_calibration_needed(self._clock(), self.config.calibration_max_age_s)

    def reset_calibration(self) -> None:
        """Return to the standard sea-level pressure and forget the last calibration."""
        self.state = CalibrationState(
            sea_level_pressure_hpa=self.config.standard_sea_level_pressure_hpa
        )
        logger.info("Calibration reset to standard pressure")

    def get_calibration_status(self) -> CalibrationStatus:
        now = self._clock()
        return CalibrationStatus(
            is_calibrated=self.state.is_calibrated,
            last_calibration_time=self.state.last_calibration_time,
            calibrated_sea_level_pressure_hpa=self.state.calibrated_pressure_hpa,
            is_calibration_needed=self.state.is_calibration_needed(
                now, self.config.calibration_max_age_s
            ),
            age_s=self.state.age_s(now),
        )
