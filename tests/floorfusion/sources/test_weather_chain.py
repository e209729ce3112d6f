"""
Unit tests for floorfusion/sources/weather.py.

Tests cover:
    - Provider priority and fallback on failure
    - Per-location caching with TTL and size bound
    - Standard-pressure default when every provider fails

Run with: pytest tests/floorfusion/sources/test_weather_chain.py -v
"""

import unittest

from floorfusion.config import WeatherCacheConfig
from floorfusion.sensors.types import SOURCE_DEFAULT
from floorfusion.sim.sources import FailingProvider, StaticWeatherProvider
from floorfusion.sources.base import WeatherProvider
from floorfusion.sources.weather import WeatherPressureChain, cache_key


class FakeClock:
    def __init__(self, now: float = 500.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class EmptyProvider(WeatherProvider):
    name = "empty"

    def __init__(self):
        self.calls = 0

    async def get_pressure(self, latitude, longitude):
        self.calls += 1
        return None


class TestCacheKey(unittest.TestCase):
    def test_rounding(self) -> None:
        self.assertEqual(cache_key(22.30449, 114.17961), "22.30,114.18")
        self.assertEqual(cache_key(-1.0, 2.0), "-1.00,2.00")


class TestWeatherPressureChain(unittest.IsolatedAsyncioTestCase):
    """Test suite for the weather provider chain."""

    def setUp(self) -> None:
        self.clock = FakeClock()

    async def test_first_provider_wins(self) -> None:
        first = StaticWeatherProvider(1008.0, name="OpenWeatherMap", clock=self.clock)
        second = StaticWeatherProvider(1012.0, name="Open-Meteo", clock=self.clock)
        chain = WeatherPressureChain([first, second], clock=self.clock)

        reading = await chain.get_pressure(22.3, 114.2)

        self.assertEqual(reading.pressure_hpa, 1008.0)
        self.assertEqual(reading.source, "OpenWeatherMap")
        self.assertEqual(second.calls, 0)

    async def test_fallback_on_failure_and_none(self) -> None:
        failing = FailingProvider(name="OpenWeatherMap")
        empty = EmptyProvider()
        backup = StaticWeatherProvider(1012.0, name="Open-Meteo", clock=self.clock)
        chain = WeatherPressureChain([failing, empty, backup], clock=self.clock)

        reading = await chain.get_pressure(22.3, 114.2)

        self.assertEqual(reading.source, "Open-Meteo")
        self.assertEqual((failing.calls, empty.calls, backup.calls), (1, 1, 1))

    async def test_cache_hit_within_ttl(self) -> None:
        provider = StaticWeatherProvider(1010.0, clock=self.clock)
        chain = WeatherPressureChain([provider], clock=self.clock)

        await chain.get_pressure(22.3, 114.2)
        self.clock.now += 4.9
        # Same key after rounding to 0.01 deg
        await chain.get_pressure(22.301, 114.199)

        self.assertEqual(provider.calls, 1)

    async def test_cache_expires(self) -> None:
        provider = StaticWeatherProvider(1010.0, clock=self.clock)
        chain = WeatherPressureChain([provider], clock=self.clock)

        await chain.get_pressure(22.3, 114.2)
        self.clock.now += 5.0
        await chain.get_pressure(22.3, 114.2)

        self.assertEqual(provider.calls, 2)

    async def test_cache_size_bound(self) -> None:
        provider = StaticWeatherProvider(1010.0, clock=self.clock)
        chain = WeatherPressureChain(
            [provider], config=WeatherCacheConfig(max_entries=2), clock=self.clock
        )
        for lat in (10.0, 11.0, 12.0):
            await chain.get_pressure(lat, 0.0)

        status = chain.cache_status()
        self.assertEqual(status["cached_locations"], 2)
        self.assertEqual(status["valid_entries"], 2)

        # Oldest entry was evicted
        await chain.get_pressure(10.0, 0.0)
        self.assertEqual(provider.calls, 4)

    async def test_clear_cache(self) -> None:
        provider = StaticWeatherProvider(1010.0, clock=self.clock)
        chain = WeatherPressureChain([provider], clock=self.clock)
        await chain.get_pressure(1.0, 1.0)
        chain.clear_cache()
        await chain.get_pressure(1.0, 1.0)
        self.assertEqual(provider.calls, 2)

    async def test_default_when_all_fail(self) -> None:
        chain = WeatherPressureChain([FailingProvider()], clock=self.clock)
        reading = await chain.get_pressure(22.3, 114.2)

        self.assertEqual(reading.pressure_hpa, 1013.25)
        self.assertEqual(reading.source, SOURCE_DEFAULT)
        self.assertEqual(reading.timestamp, self.clock.now)

    async def test_default_not_cached(self) -> None:
        failing = FailingProvider()
        chain = WeatherPressureChain([failing], clock=self.clock)
        await chain.get_pressure(22.3, 114.2)
        await chain.get_pressure(22.3, 114.2)
        self.assertEqual(failing.calls, 2)

    async def test_none_when_default_disabled(self) -> None:
        chain = WeatherPressureChain(
            [FailingProvider()],
            config=WeatherCacheConfig(use_standard_default=False),
            clock=self.clock,
        )
        self.assertIsNone(await chain.get_pressure(22.3, 114.2))

    async def test_is_configured(self) -> None:
        self.assertFalse(WeatherPressureChain([]).is_configured)
        self.assertTrue(WeatherPressureChain([FailingProvider()]).is_configured)
        status = WeatherPressureChain([FailingProvider(name="WeatherAPI")]).cache_status()
        self.assertEqual(status["providers"], ["WeatherAPI"])


if __name__ == "__main__":
    unittest.main()
