"""
Unit tests for floorfusion/sensors/environment.py and sensors/types.py.

Tests cover:
    - ISA pressure to altitude conversion
    - Sea-level pressure inversion and its round trip
    - Floor rounding (ties away from zero, monotonicity)
    - Measurement packet validation

Run with: pytest tests/floorfusion/sensors/test_environment_altitude.py -v
"""

import math
import unittest

import numpy as np
import pytest

from floorfusion.sensors.environment import (
    LINEAR_SCALE_HEIGHT_M,
    altitude_to_floor,
    floor_description,
    pressure_to_altitude,
    round_half_away,
    sea_level_pressure_from_altitude,
    standard_pressure_at_altitude,
)
from floorfusion.sensors.types import LocationFix, PressureReading, WeatherReading


class TestPressureToAltitude(unittest.TestCase):
    """Test suite for the ISA barometric formula."""

    def test_standard_pressure_is_sea_level(self) -> None:
        """Standard pressure maps to exactly 0 m."""
        self.assertEqual(pressure_to_altitude(1013.25), 0.0)

    def test_known_pressure_300m(self) -> None:
        """977.7 hPa is roughly 300 m above sea level (floor 86)."""
        altitude = pressure_to_altitude(977.7)
        self.assertAlmostEqual(altitude, 300.0, delta=5.0)
        self.assertEqual(altitude_to_floor(altitude), 86)

    def test_lower_pressure_is_higher(self) -> None:
        """Altitude decreases monotonically with pressure."""
        pressures = np.linspace(900.0, 1050.0, 50)
        altitudes = pressure_to_altitude(pressures)
        self.assertTrue(np.all(np.diff(altitudes) < 0))

    def test_array_input(self) -> None:
        """Array input returns an array of the same shape."""
        altitudes = pressure_to_altitude(np.array([1013.25, 977.7]))
        self.assertIsInstance(altitudes, np.ndarray)
        self.assertEqual(altitudes.shape, (2,))
        self.assertAlmostEqual(altitudes[0], 0.0, places=9)

    def test_scalar_returns_float(self) -> None:
        self.assertIsInstance(pressure_to_altitude(1000.0), float)

    def test_reference_pressure_shift(self) -> None:
        """A lower sea-level reference lowers the computed altitude."""
        standard = pressure_to_altitude(1000.0)
        low_p0 = pressure_to_altitude(1000.0, sea_level_pressure_hpa=1005.0)
        self.assertLess(low_p0, standard)

    def test_temperature_scales_altitude(self) -> None:
        """Warmer air gives a larger altitude for the same pressure ratio."""
        cold = pressure_to_altitude(977.7, temperature_c=0.0)
        warm = pressure_to_altitude(977.7, temperature_c=30.0)
        self.assertGreater(warm, cold)


class TestSeaLevelInversion(unittest.TestCase):
    """Test suite for sea-level pressure recovery."""

    def test_round_trip(self) -> None:
        """Inverting and converting back reproduces the altitude within 1e-6 m."""
        for altitude in np.linspace(-50.0, 3000.0, 62):
            for pressure in (700.0, 950.0, 1013.25, 1040.0):
                p0 = sea_level_pressure_from_altitude(altitude, pressure)
                recovered = pressure_to_altitude(pressure, sea_level_pressure_hpa=p0)
                self.assertAlmostEqual(recovered, altitude, delta=1e-6)

    def test_manual_calibration_scenario(self) -> None:
        """Calibrating at 120 m / 998.0 hPa gives 120 m back for 998.0 hPa."""
        p0 = sea_level_pressure_from_altitude(120.0, 998.0)
        self.assertGreater(p0, 998.0)
        self.assertAlmostEqual(pressure_to_altitude(998.0, p0), 120.0, delta=1e-6)

    def test_zero_altitude_returns_pressure(self) -> None:
        self.assertAlmostEqual(sea_level_pressure_from_altitude(0.0, 1009.3), 1009.3)

    def test_linear_fallback_above_model_ceiling(self) -> None:
        """Above ~44 km the ISA base is not positive and the linear model is used."""
        altitude = 50000.0
        p0 = sea_level_pressure_from_altitude(altitude, 1.0)
        self.assertAlmostEqual(p0, 1.0 + altitude / LINEAR_SCALE_HEIGHT_M)
        self.assertTrue(math.isfinite(p0))

    def test_forward_model_inverse(self) -> None:
        """standard_pressure_at_altitude is the inverse of pressure_to_altitude."""
        altitudes = np.array([-20.0, 0.0, 35.0, 300.0, 1500.0])
        pressures = standard_pressure_at_altitude(altitudes)
        np.testing.assert_allclose(pressure_to_altitude(pressures), altitudes, atol=1e-6)


class TestFloorRounding(unittest.TestCase):
    """Test suite for altitude to floor conversion."""

    def test_ground_floor(self) -> None:
        self.assertEqual(altitude_to_floor(0.0), 0)

    def test_half_floor_rounds_away_from_zero(self) -> None:
        """1.75 m is half a floor: rounds up above ground, down below."""
        self.assertEqual(altitude_to_floor(1.75), 1)
        self.assertEqual(altitude_to_floor(-1.75), -1)
        self.assertEqual(altitude_to_floor(5.25), 2)
        self.assertEqual(altitude_to_floor(-5.25), -2)

    def test_round_half_away(self) -> None:
        self.assertEqual(round_half_away(2.5), 3)
        self.assertEqual(round_half_away(-2.5), -3)
        self.assertEqual(round_half_away(0.4), 0)
        self.assertEqual(round_half_away(-0.4), 0)
        self.assertEqual(round_half_away(0.5), 1)

    def test_monotonic(self) -> None:
        """Floor is non-decreasing in altitude."""
        floors = [altitude_to_floor(h) for h in np.linspace(-30.0, 100.0, 1000)]
        self.assertTrue(all(b >= a for a, b in zip(floors, floors[1:])))

    def test_custom_floor_height(self) -> None:
        self.assertEqual(altitude_to_floor(12.0, floor_height_m=4.0), 3)

    def test_invalid_floor_height(self) -> None:
        with pytest.raises(ValueError):
            altitude_to_floor(10.0, floor_height_m=0.0)
        with pytest.raises(ValueError):
            altitude_to_floor(10.0, floor_height_m=-3.5)

    def test_floor_description(self) -> None:
        self.assertEqual(floor_description(0), "Ground Floor")
        self.assertEqual(floor_description(-2), "Basement Level 2")
        self.assertEqual(floor_description(3), "Floor 3")


class TestMeasurementTypes(unittest.TestCase):
    """Test suite for measurement packet validation."""

    def test_pressure_reading_valid(self) -> None:
        reading = PressureReading(pressure_hpa=1013.25, source="hardware-barometer", timestamp=0.0)
        self.assertEqual(reading.source, "hardware-barometer")

    def test_pressure_reading_rejects_non_positive(self) -> None:
        with pytest.raises(ValueError):
            PressureReading(pressure_hpa=0.0, source="default", timestamp=0.0)
        with pytest.raises(ValueError):
            PressureReading(pressure_hpa=float("nan"), source="default", timestamp=0.0)

    def test_pressure_reading_rejects_empty_source(self) -> None:
        with pytest.raises(ValueError):
            PressureReading(pressure_hpa=1000.0, source="", timestamp=0.0)

    def test_location_fix_bounds(self) -> None:
        with pytest.raises(ValueError):
            LocationFix(latitude=91.0, longitude=0.0)
        with pytest.raises(ValueError):
            LocationFix(latitude=0.0, longitude=0.0, accuracy_m=-1.0)

    def test_location_fix_flags(self) -> None:
        outdoor = LocationFix(latitude=22.3, longitude=114.2, accuracy_m=5.0)
        indoor = LocationFix(latitude=22.3, longitude=114.2, accuracy_m=30.0)
        no_position = LocationFix(latitude=None, longitude=114.2)
        self.assertTrue(outdoor.has_position)
        self.assertFalse(outdoor.is_indoors)
        self.assertTrue(indoor.is_indoors)
        self.assertFalse(no_position.has_position)

    def test_weather_reading_conversion(self) -> None:
        weather = WeatherReading(pressure_hpa=1008.0, source="WeatherAPI", timestamp=12.0)
        reading = weather.as_pressure_reading()
        self.assertEqual(reading.pressure_hpa, 1008.0)
        self.assertEqual(reading.source, "WeatherAPI")
        self.assertEqual(reading.timestamp, 12.0)


if __name__ == "__main__":
    unittest.main()
