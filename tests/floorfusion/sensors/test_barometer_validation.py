"""
Unit tests for floorfusion/sensors/validation.py.

Tests cover:
    - Difference bands (excellent / good / poor / very poor)
    - Grades
    - Missing and failing collaborators
    - Recommendations

Run with: pytest tests/floorfusion/sensors/test_barometer_validation.py -v
"""

import unittest

from floorfusion.sensors.validation import (
    NO_BAROMETER_MESSAGE,
    NO_LOCATION_MESSAGE,
    NO_WEATHER_MESSAGE,
    BarometerValidation,
    classify_pressure_difference,
    validate_barometer,
    validation_recommendations,
)
from floorfusion.sim.sources import (
    FailingProvider,
    SimulatedBarometer,
    SimulatedLocation,
    StaticWeatherProvider,
)
from floorfusion.sources.weather import WeatherPressureChain


class BrokenBarometer(SimulatedBarometer):
    async def get_current_pressure_hpa(self):
        raise OSError("sensor read timeout")


def station(pressure_hpa: float) -> WeatherPressureChain:
    return WeatherPressureChain([StaticWeatherProvider(pressure_hpa, name="WeatherAPI")])


class TestClassification(unittest.TestCase):
    """Test suite for the pressure difference bands."""

    def test_bands(self) -> None:
        self.assertEqual(classify_pressure_difference(2.0), (True, "Excellent accuracy (±2.0 hPa)"))
        self.assertEqual(classify_pressure_difference(-4.0), (True, "Good accuracy (±4.0 hPa)"))
        valid, message = classify_pressure_difference(10.0)
        self.assertFalse(valid)
        self.assertIn("Check calibration", message)
        valid, message = classify_pressure_difference(10.1)
        self.assertFalse(valid)
        self.assertIn("Sensor may be faulty", message)

    def test_grades(self) -> None:
        expected = {0.5: "A+", 1.5: "A", 2.5: "B", 4.0: "C", 9.0: "D", 12.0: "F"}
        for difference, grade in expected.items():
            result = BarometerValidation(True, "", difference_hpa=difference)
            self.assertEqual(result.grade, grade)
        self.assertEqual(BarometerValidation(False, "").grade, "N/A")


class TestValidateBarometer(unittest.IsolatedAsyncioTestCase):
    """Test suite for the barometer / weather-station comparison."""

    async def test_good_agreement(self) -> None:
        # Barometer at 0 m reads standard pressure 1013.25 hPa
        result = await validate_barometer(
            SimulatedBarometer(altitude_m=0.0), SimulatedLocation(), station(1010.0)
        )
        self.assertTrue(result.is_valid)
        self.assertAlmostEqual(result.difference_hpa, 3.25)
        self.assertEqual(result.weather_source, "WeatherAPI")
        self.assertEqual(result.grade, "C")
        self.assertTrue(result.message.startswith("Good accuracy"))

    async def test_faulty_sensor(self) -> None:
        result = await validate_barometer(
            SimulatedBarometer(altitude_m=0.0), SimulatedLocation(), station(1000.0)
        )
        self.assertFalse(result.is_valid)
        self.assertAlmostEqual(result.difference_hpa, 13.25)
        self.assertEqual(result.grade, "F")

    async def test_no_barometer(self) -> None:
        for barometer in (None, SimulatedBarometer(available=False)):
            result = await validate_barometer(barometer, SimulatedLocation(), station(1013.0))
            self.assertFalse(result.is_valid)
            self.assertEqual(result.message, NO_BAROMETER_MESSAGE)
            self.assertIsNone(result.difference_hpa)

    async def test_no_location(self) -> None:
        result = await validate_barometer(
            SimulatedBarometer(), SimulatedLocation(available=False), station(1013.0)
        )
        self.assertEqual(result.message, NO_LOCATION_MESSAGE)
        self.assertAlmostEqual(result.barometer_pressure_hpa, 1013.25)

    async def test_standard_default_is_not_a_reference(self) -> None:
        chain = WeatherPressureChain([FailingProvider()])
        result = await validate_barometer(SimulatedBarometer(), SimulatedLocation(), chain)
        self.assertFalse(result.is_valid)
        self.assertEqual(result.message, NO_WEATHER_MESSAGE)

    async def test_read_error_becomes_result(self) -> None:
        result = await validate_barometer(BrokenBarometer(), SimulatedLocation(), station(1013.0))
        self.assertFalse(result.is_valid)
        self.assertEqual(result.message, "Validation error: sensor read timeout")


class TestRecommendations(unittest.TestCase):
    def test_invalid_large_difference(self) -> None:
        advice = validation_recommendations(BarometerValidation(False, "", difference_hpa=8.0))
        self.assertIn("Try recalibrating the sensor", advice)
        self.assertTrue(any(a.startswith("Large difference detected") for a in advice))

    def test_valid_gets_general_advice_only(self) -> None:
        advice = validation_recommendations(BarometerValidation(True, "", difference_hpa=1.0))
        self.assertNotIn("Try recalibrating the sensor", advice)
        self.assertEqual(len(advice), 3)


if __name__ == "__main__":
    unittest.main()
