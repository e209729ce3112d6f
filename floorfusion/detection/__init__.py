"""Detection pipeline: per-source estimators, broadcast and session."""

from floorfusion.detection.broadcast import ResultBroadcaster, Subscription
from floorfusion.detection.estimators import (
    barometer_confidence,
    detect_floor_from_barometer,
    detect_floor_from_gps,
    detect_floor_from_weather,
    gps_confidence,
    weather_confidence,
)
from floorfusion.detection.session import DetectionSession

__all__ = [
    "barometer_confidence",
    "detect_floor_from_barometer",
    "gps_confidence",
    "detect_floor_from_gps",
    "weather_confidence",
    "detect_floor_from_weather",
    "ResultBroadcaster",
    "Subscription",
    "DetectionSession",
]
