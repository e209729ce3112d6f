"""
Floor detection session: source priority, fusion, smoothing and publishing.

One detection pass:

    CHECK_BAROMETER ──available──> BAROMETER_ONLY ──┐
          │                                         ├─> SMOOTH ─> EMIT
          └──unavailable──> FALLBACK_FUSION ────────┘

The hardware barometer, when present, is the only source consulted; GPS and
weather are used only as a fallback, fused after outlier rejection. Valid
results are smoothed by the altitude Kalman filter. Passes are serialized
with an asyncio.Lock and, in periodic mode, published to subscribers.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, Optional

from floorfusion.config import DetectionConfig
from floorfusion.detection.broadcast import ResultBroadcaster, Subscription
from floorfusion.detection.estimators import (
    detect_floor_from_barometer,
    detect_floor_from_gps,
    detect_floor_from_weather,
)
from floorfusion.estimators.kalman_filter import AltitudeKalmanFilter
from floorfusion.eval.accuracy import AccuracyMetrics, calculate_accuracy
from floorfusion.fusion.combine import filter_outliers, fuse_results
from floorfusion.fusion.types import FloorEstimate
from floorfusion.sensors.calibration import (
    CalibrationResult,
    CalibrationStatus,
    PressureCalibrator,
)
from floorfusion.sensors.environment import altitude_to_floor
from floorfusion.sensors.types import LocationFix
from floorfusion.sensors.validation import BarometerValidation, validate_barometer
from floorfusion.sources.base import BarometerSource, LocationSource
from floorfusion.sources.weather import WeatherPressureChain

logger = logging.getLogger(__name__)

COMBINED_METHOD = "combined"
FILTERED_SUFFIX = " (filtered)"
STOPPED_ERROR = "Detection stopped"


class DetectionSession:
    """
    Orchestrates floor detection over the external collaborators.

    Attributes:
        barometer: Hardware pressure sensor, or None if the device has none.
        location: GPS collaborator, or None.
        weather: Weather pressure chain, or None.
        config: Detection configuration.
        calibrator: Sea-level pressure calibration used by the weather path.
        kalman: Altitude smoothing filter.
        broadcaster: Fan-out of periodic results.

    Example:
        session = DetectionSession(barometer=SimulatedBarometer(...))
        estimate = await session.detect_floor()
        print(estimate)
    """

    def __init__(
        self,
        barometer: Optional[BarometerSource] = None,
        location: Optional[LocationSource] = None,
        weather: Optional[WeatherPressureChain] = None,
        config: Optional[DetectionConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.barometer = barometer
        self.location = location
        self.weather = weather
        self.config = config or DetectionConfig()
        self._clock = clock

        self.calibrator = PressureCalibrator(location, weather, self.config, clock=clock)
        self.kalman = AltitudeKalmanFilter(self.config.kalman, clock=clock)
        self.broadcaster = ResultBroadcaster()

        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._starting = False
        self._generation = 0
        self.last_estimate: Optional[FloorEstimate] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Single pass
    # ------------------------------------------------------------------

    async def detect_floor(self) -> FloorEstimate:
        """
        Run one detection pass.

        Never raises: collaborator failures come back as error estimates,
        and any unexpected exception becomes an error tagged "combined".
        """
        return await self._locked_pass(None)

    async def _locked_pass(self, generation: Optional[int]) -> FloorEstimate:
        async with self._lock:
            if generation is None:
                generation = self._generation
            elif generation != self._generation:
                return FloorEstimate.failure(COMBINED_METHOD, STOPPED_ERROR)
            try:
                estimate = await self._detect_raw()
            except Exception as exc:
                logger.exception("Detection pass failed")
                return FloorEstimate.failure(COMBINED_METHOD, str(exc))

            if generation != self._generation:
                logger.debug("Session stopped during pass, result not smoothed")
                return estimate

            estimate = self._smooth(estimate)
            self.last_estimate = estimate
            if estimate.is_valid:
                logger.info("Floor detected: %s", estimate)
            else:
                logger.warning("Floor detection failed (%s): %s", estimate.method, estimate.error)
            return estimate

    async def _detect_raw(self) -> FloorEstimate:
        if await self._barometer_available():
            return await detect_floor_from_barometer(self.barometer, self.config)
        return await self._detect_fallback()

    async def _barometer_available(self) -> bool:
        if self.barometer is None:
            return False
        try:
            return bool(await self.barometer.is_available())
        except Exception as exc:
            logger.warning("Barometer availability check failed: %s", exc)
            return False

    async def _location_available(self) -> bool:
        if self.location is None:
            return False
        try:
            return bool(await self.location.is_available())
        except Exception as exc:
            logger.warning("Location availability check failed: %s", exc)
            return False

    async def _current_location(self) -> Optional[LocationFix]:
        if self.location is None:
            return None
        try:
            return await self.location.get_current_location()
        except Exception as exc:
            logger.warning("Location fix failed: %s", exc)
            return None

    async def _gps_estimate(self, fix: Optional[LocationFix]) -> FloorEstimate:
        return detect_floor_from_gps(fix, self.config)

    async def _weather_estimate(self, fix: Optional[LocationFix]) -> FloorEstimate:
        if self.weather is None:
            return FloorEstimate.failure("weather", "Weather service not configured")
        return await detect_floor_from_weather(
            self.weather,
            fix,
            self.calibrator.sea_level_pressure_hpa,
            self.config,
            now=self._clock(),
        )

    async def _detect_fallback(self) -> FloorEstimate:
        fix = await self._current_location()
        estimates = await asyncio.gather(self._gps_estimate(fix), self._weather_estimate(fix))
        for estimate in estimates:
            if not estimate.is_valid:
                logger.info("Fallback source %s unavailable: %s", estimate.method, estimate.error)

        if self.config.outliers.enabled:
            candidates = filter_outliers(estimates, self.config.outliers)
        else:
            candidates = list(estimates)
        return fuse_results(candidates, self.config)

    def _smooth(self, estimate: FloorEstimate) -> FloorEstimate:
        if not estimate.is_valid:
            return estimate
        result = self.kalman.update(
            estimate.altitude_m, estimate.confidence, timestamp=self._clock()
        )
        return estimate.with_method_suffix(
            FILTERED_SUFFIX,
            floor=altitude_to_floor(result.filtered_altitude, self.config.floor_height_m),
            altitude_m=result.filtered_altitude,
            confidence=min(max(result.confidence, 0.0), 1.0),
        )

    # ------------------------------------------------------------------
    # Periodic detection
    # ------------------------------------------------------------------

    def subscribe(self, maxsize: int = 0) -> Subscription:
        """Receive every estimate published from now on."""
        return self.broadcaster.subscribe(maxsize=maxsize)

    async def start_detection(self, interval_s: Optional[float] = None) -> None:
        """
        Run one pass immediately, then keep detecting in the background.

        Does nothing if detection is already running or starting.

        Args:
            interval_s: Delay between passes [s]. Defaults to
                ``config.detection_interval_s``.
        """
        if self.is_running or self._starting:
            return
        interval = self.config.detection_interval_s if interval_s is None else interval_s
        if interval <= 0:
            raise ValueError(f"interval_s must be positive, got {interval}")

        self._starting = True
        try:
            generation = self._generation
            await self._publish_pass(generation)
            if generation != self._generation:
                return
            self._task = asyncio.create_task(self._run(interval, generation))
        finally:
            self._starting = False
        logger.info("Periodic detection started (every %.1fs)", interval)

    async def _publish_pass(self, generation: int) -> None:
        estimate = await self._locked_pass(generation)
        if generation == self._generation:
            self.broadcaster.publish(estimate)

    async def _run(self, interval: float, generation: int) -> None:
        while generation == self._generation:
            await asyncio.sleep(interval)
            if generation != self._generation:
                break
            await self._publish_pass(generation)

    async def stop_detection(self) -> None:
        """Stop periodic detection, discard any in-flight pass and reset smoothing."""
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.kalman.reset()
        logger.info("Periodic detection stopped")

    # ------------------------------------------------------------------
    # Calibration and diagnostics
    # ------------------------------------------------------------------

    def manual_calibrate(
        self,
        known_altitude_m: float,
        current_pressure_hpa: float,
        temperature_c: Optional[float] = None,
    ) -> CalibrationResult:
        return self.calibrator.manual_calibrate(
            known_altitude_m, current_pressure_hpa, temperature_c
        )

    async def auto_calibrate(self) -> CalibrationResult:
        return await self.calibrator.auto_calibrate()

    def reset_calibration(self) -> None:
        self.calibrator.reset_calibration()

    def get_calibration_status(self) -> CalibrationStatus:
        return self.calibrator.get_calibration_status()

    async def get_method_status(self) -> Dict[str, bool]:
        """Availability of each detection method."""
        return {
            "barometer": await self._barometer_available(),
            "gps": await self._location_available(),
            "weather": self.weather is not None and self.weather.is_configured,
        }

    async def validate_barometer(self) -> BarometerValidation:
        """Compare the hardware barometer with weather-station pressure."""
        return await validate_barometer(self.barometer, self.location, self.weather)

    def accuracy(self, estimate: FloorEstimate) -> AccuracyMetrics:
        return calculate_accuracy(estimate, self.get_calibration_status())
