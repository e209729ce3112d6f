"""
Unit tests for floorfusion/sensors/calibration.py.

Tests cover:
    - Manual calibration from a known altitude
    - Automatic calibration from GPS altitude and weather pressure
    - Failure paths leave the calibration untouched
    - Staleness and status messages

Run with: pytest tests/floorfusion/sensors/test_pressure_calibration.py -v
"""

import unittest

from floorfusion.config import WeatherCacheConfig
from floorfusion.sensors.calibration import (
    NO_LOCATION_MESSAGE,
    NO_WEATHER_MESSAGE,
    CalibrationState,
    PressureCalibrator,
)
from floorfusion.sensors.environment import pressure_to_altitude, sea_level_pressure_from_altitude
from floorfusion.sensors.types import LocationFix
from floorfusion.sim.sources import FailingProvider, SimulatedLocation, StaticWeatherProvider
from floorfusion.sources.base import LocationSource
from floorfusion.sources.weather import WeatherPressureChain


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class BrokenLocation(LocationSource):
    async def is_available(self) -> bool:
        return True

    async def get_current_location(self):
        raise PermissionError("location permission denied")


class FixedLocation(LocationSource):
    def __init__(self, fix):
        self.fix = fix

    async def is_available(self) -> bool:
        return True

    async def get_current_location(self):
        return self.fix


class BrokenWeather:
    async def get_pressure(self, latitude, longitude):
        raise RuntimeError("boom")


def make_chain(pressure_hpa=1013.25, clock=None):
    clock = clock or FakeClock()
    return WeatherPressureChain(
        [StaticWeatherProvider(pressure_hpa=pressure_hpa, clock=clock)], clock=clock
    )


class TestManualCalibration(unittest.TestCase):
    """Test suite for manual calibration."""

    def setUp(self) -> None:
        self.clock = FakeClock()
        self.calibrator = PressureCalibrator(clock=self.clock)

    def test_defaults_to_standard_pressure(self) -> None:
        self.assertEqual(self.calibrator.sea_level_pressure_hpa, 1013.25)
        self.assertTrue(self.calibrator.is_calibration_needed())

    def test_manual_calibration_at_120m(self) -> None:
        result = self.calibrator.manual_calibrate(120.0, 998.0)

        self.assertTrue(result.success)
        self.assertEqual(result.message, "Manually calibrated at 120.0m altitude")
        self.assertEqual(result.sea_level_pressure_hpa, self.calibrator.sea_level_pressure_hpa)
        altitude = pressure_to_altitude(998.0, self.calibrator.sea_level_pressure_hpa)
        self.assertAlmostEqual(altitude, 120.0, delta=1e-6)
        self.assertFalse(self.calibrator.is_calibration_needed())

    def test_invalid_pressure_leaves_state(self) -> None:
        for pressure in (0.0, -5.0, float("nan"), float("inf")):
            result = self.calibrator.manual_calibrate(120.0, pressure)
            self.assertFalse(result.success)
            self.assertIsNone(result.sea_level_pressure_hpa)
        self.assertEqual(self.calibrator.sea_level_pressure_hpa, 1013.25)
        self.assertFalse(self.calibrator.get_calibration_status().is_calibrated)

    def test_failure_keeps_previous_calibration(self) -> None:
        self.calibrator.manual_calibrate(120.0, 998.0)
        before = self.calibrator.sea_level_pressure_hpa
        self.calibrator.manual_calibrate(120.0, -1.0)
        self.assertEqual(self.calibrator.sea_level_pressure_hpa, before)

    def test_reset(self) -> None:
        self.calibrator.manual_calibrate(120.0, 998.0)
        self.calibrator.reset_calibration()
        self.assertEqual(self.calibrator.sea_level_pressure_hpa, 1013.25)
        self.assertFalse(self.calibrator.get_calibration_status().is_calibrated)


class TestCalibrationStatus(unittest.TestCase):
    """Test suite for staleness and status reporting."""

    def setUp(self) -> None:
        self.clock = FakeClock()
        self.calibrator = PressureCalibrator(clock=self.clock)

    def test_not_calibrated_message(self) -> None:
        status = self.calibrator.get_calibration_status()
        self.assertEqual(
            status.status_message, "Not calibrated - using standard pressure (1013.25 hPa)"
        )
        self.assertIsNone(status.age_s)
        self.assertTrue(status.is_calibration_needed)

    def test_stale_after_one_hour(self) -> None:
        self.calibrator.manual_calibrate(0.0, 1009.2)
        self.clock.now += 3600.0
        self.assertFalse(self.calibrator.is_calibration_needed())
        self.clock.now += 1.0
        self.assertTrue(self.calibrator.is_calibration_needed())

    def test_age_messages(self) -> None:
        self.calibrator.manual_calibrate(0.0, 1009.2)

        self.clock.now += 5 * 60
        self.assertEqual(
            self.calibrator.get_calibration_status().status_message,
            "Calibrated 5m ago (1009.20 hPa)",
        )
        self.clock.now += 2 * 3600
        self.assertTrue(
            self.calibrator.get_calibration_status().status_message.startswith("Calibrated 2h ago")
        )
        self.clock.now += 3 * 86400
        self.assertTrue(
            self.calibrator.get_calibration_status().status_message.startswith("Calibrated 3d ago")
        )

    def test_state_staleness(self) -> None:
        state = CalibrationState()
        self.assertTrue(state.is_calibration_needed(now=0.0))
        state.last_calibration_time = 100.0
        self.assertFalse(state.is_calibration_needed(now=200.0, max_age_s=3600.0))
        self.assertTrue(state.is_calibration_needed(now=200.0, max_age_s=50.0))


class TestAutoCalibration(unittest.IsolatedAsyncioTestCase):
    """Test suite for GPS + weather auto-calibration."""

    async def test_no_location_source(self) -> None:
        calibrator = PressureCalibrator(weather=make_chain())
        result = await calibrator.auto_calibrate()
        self.assertFalse(result.success)
        self.assertEqual(result.message, NO_LOCATION_MESSAGE)

    async def test_location_unavailable(self) -> None:
        calibrator = PressureCalibrator(SimulatedLocation(available=False), make_chain())
        result = await calibrator.auto_calibrate()
        self.assertEqual(result.message, NO_LOCATION_MESSAGE)

    async def test_location_without_position(self) -> None:
        fix = LocationFix(latitude=None, longitude=None, altitude_m=30.0)
        calibrator = PressureCalibrator(FixedLocation(fix), make_chain())
        result = await calibrator.auto_calibrate()
        self.assertEqual(result.message, NO_LOCATION_MESSAGE)

    async def test_location_exception(self) -> None:
        calibrator = PressureCalibrator(BrokenLocation(), make_chain())
        result = await calibrator.auto_calibrate()
        self.assertFalse(result.success)
        self.assertEqual(result.message, NO_LOCATION_MESSAGE)

    async def test_weather_unavailable(self) -> None:
        chain = WeatherPressureChain(
            [FailingProvider()], config=WeatherCacheConfig(use_standard_default=False)
        )
        calibrator = PressureCalibrator(SimulatedLocation(altitude_m=30.0), chain)
        result = await calibrator.auto_calibrate()
        self.assertFalse(result.success)
        self.assertEqual(result.message, NO_WEATHER_MESSAGE)
        self.assertFalse(calibrator.get_calibration_status().is_calibrated)

    async def test_no_weather_chain(self) -> None:
        calibrator = PressureCalibrator(SimulatedLocation(altitude_m=30.0))
        result = await calibrator.auto_calibrate()
        self.assertEqual(result.message, NO_WEATHER_MESSAGE)

    async def test_weather_exception(self) -> None:
        calibrator = PressureCalibrator(SimulatedLocation(altitude_m=30.0), BrokenWeather())
        result = await calibrator.auto_calibrate()
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Calibration failed: boom")
        self.assertEqual(calibrator.sea_level_pressure_hpa, 1013.25)

    async def test_gps_altitude_inversion(self) -> None:
        calibrator = PressureCalibrator(SimulatedLocation(altitude_m=50.0), make_chain(1005.0))
        result = await calibrator.auto_calibrate()

        self.assertTrue(result.success)
        expected = sea_level_pressure_from_altitude(50.0, 1005.0)
        self.assertAlmostEqual(result.sea_level_pressure_hpa, expected)
        self.assertAlmostEqual(calibrator.sea_level_pressure_hpa, expected)

    async def test_missing_gps_altitude_uses_weather_pressure(self) -> None:
        calibrator = PressureCalibrator(SimulatedLocation(altitude_m=None), make_chain(1009.0))
        result = await calibrator.auto_calibrate()
        self.assertTrue(result.success)
        self.assertEqual(calibrator.sea_level_pressure_hpa, 1009.0)

    async def test_implausible_gps_altitude_uses_weather_pressure(self) -> None:
        calibrator = PressureCalibrator(SimulatedLocation(altitude_m=-150.0), make_chain(1009.0))
        result = await calibrator.auto_calibrate()
        self.assertTrue(result.success)
        self.assertEqual(calibrator.sea_level_pressure_hpa, 1009.0)


if __name__ == "__main__":
    unittest.main()
