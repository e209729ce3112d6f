"""
Weather-station pressure with provider fallback and short-lived caching.

Providers are tried in a fixed priority order (typically a paid API, then a
free API). The first reading returned wins and is cached per rounded
location. When every provider fails, the ISA standard sea-level pressure is
returned as a last resort, tagged with source "default".
"""

import logging
import time
from collections import OrderedDict
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from floorfusion.config import STANDARD_SEA_LEVEL_PRESSURE_HPA, WeatherCacheConfig
from floorfusion.sensors.types import SOURCE_DEFAULT, WeatherReading
from floorfusion.sources.base import WeatherProvider

logger = logging.getLogger(__name__)


def cache_key(latitude: float, longitude: float) -> str:
    """Cache key: position rounded to 0.01° (~1 km)."""
    return f"{latitude:.2f},{longitude:.2f}"


class WeatherPressureChain:
    """
    Query weather providers in priority order.

    Attributes:
        providers: Providers, highest priority first.
        config: Cache TTL, cache size and default-fallback policy.
    """

    def __init__(
        self,
        providers: Sequence[WeatherProvider],
        config: Optional[WeatherCacheConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.providers: List[WeatherProvider] = list(providers)
        self.config = config or WeatherCacheConfig()
        self._clock = clock
        self._cache: "OrderedDict[str, Tuple[float, WeatherReading]]" = OrderedDict()

    @property
    def is_configured(self) -> bool:
        return bool(self.providers)

    async def get_pressure(self, latitude: float, longitude: float) -> Optional[WeatherReading]:
        """
        Return the best available pressure near the given position.

        Returns:
            The cached or freshly fetched reading, the standard-pressure
            default when enabled, or None when every provider failed and
            the default is disabled.
        """
        key = cache_key(latitude, longitude)
        cached = self._get_cached(key)
        if cached is not None:
            logger.debug("Weather cache hit for %s (%s)", key, cached.source)
            return cached

        for provider in self.providers:
            name = getattr(provider, "name", type(provider).__name__)
            try:
                reading = await provider.get_pressure(latitude, longitude)
            except Exception as exc:
                logger.warning("Weather provider %s failed: %s", name, exc)
                continue
            if reading is None:
                logger.debug("Weather provider %s returned no data", name)
                continue
            self._store(key, reading)
            return reading

        if self.config.use_standard_default:
            logger.warning(
                "No weather provider available, using standard pressure %.2f hPa",
                STANDARD_SEA_LEVEL_PRESSURE_HPA,
            )
            return WeatherReading(
                pressure_hpa=STANDARD_SEA_LEVEL_PRESSURE_HPA,
                source=SOURCE_DEFAULT,
                timestamp=self._clock(),
            )
        return None

    def _get_cached(self, key: str) -> Optional[WeatherReading]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        stored_at, reading = entry
        if self._clock() - stored_at >= self.config.ttl_s:
            del self._cache[key]
            return None
        return reading

    def _store(self, key: str, reading: WeatherReading) -> None:
        self._cache[key] = (self._clock(), reading)
        self._cache.move_to_end(key)
        while len(self._cache) > self.config.max_entries:
            self._cache.popitem(last=False)

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_status(self) -> Dict[str, object]:
        now = self._clock()
        return {
            "cached_locations": len(self._cache),
            "valid_entries": sum(
                1 for stored_at, _ in self._cache.values() if now - stored_at < self.config.ttl_s
            ),
            "providers": [getattr(p, "name", type(p).__name__) for p in self.providers],
        }
