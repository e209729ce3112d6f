"""External measurement collaborators."""

from floorfusion.sources.base import BarometerSource, LocationSource, WeatherProvider
from floorfusion.sources.weather import WeatherPressureChain

__all__ = [
    "BarometerSource",
    "LocationSource",
    "WeatherProvider",
    "WeatherPressureChain",
]
