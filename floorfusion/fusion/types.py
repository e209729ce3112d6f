"""Result record shared by every floor detection source and the fusion stage.

A ``FloorEstimate`` is produced independently by each measurement source
(barometer, GPS, weather, WiFi), combined by the fusion stage and smoothed by
the Kalman filter. Instances are immutable; new estimates are derived with
``dataclasses.replace`` or the helpers below.
"""

import math
from dataclasses import dataclass, replace
from typing import Optional

from floorfusion.sensors.environment import floor_description


@dataclass(frozen=True)
class FloorEstimate:
    """Floor / altitude estimate with confidence and provenance.

    Exactly one of {valid estimate, error} is meaningful: when ``error`` is
    set, floor must be 0, altitude 0.0 and confidence 0.0 (use ``failure()``).

    Attributes:
        floor: Floor index (0 = ground, negative = basement).
        altitude_m: Altitude above the calibrated sea level [m].
        confidence: Reliability in [0, 1].
        method: Provenance tag, possibly composite
                (e.g. "barometer (hardware) (filtered)").
        error: Error message, or None for a valid estimate.

    Example:
        >>> est = FloorEstimate(floor=2, altitude_m=7.1, confidence=0.9, method="barometer")
        >>> est.is_valid
        True
        >>> FloorEstimate.failure("gps", "GPS not available").confidence
        0.0
    """

    floor: int
    altitude_m: float
    confidence: float
    method: str
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.floor, int) or isinstance(self.floor, bool):
            raise TypeError(f"floor must be an int, got {type(self.floor)}")
        if not math.isfinite(self.altitude_m):
            raise ValueError(f"altitude_m must be finite, got {self.altitude_m}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")
        if not isinstance(self.method, str) or not self.method:
            raise ValueError(f"method must be a non-empty string, got {self.method!r}")
        if self.error is not None and (
            self.floor != 0 or self.altitude_m != 0.0 or self.confidence != 0.0
        ):
            raise ValueError("error estimates must have floor 0, altitude 0.0 and confidence 0.0")

    @classmethod
    def failure(cls, method: str, error: str) -> "FloorEstimate":
        """Error-tagged estimate (floor 0, altitude 0, confidence 0)."""
        return cls(floor=0, altitude_m=0.0, confidence=0.0, method=method, error=error)

    @property
    def is_valid(self) -> bool:
        return self.error is None

    def with_method_suffix(self, suffix: str, **changes) -> "FloorEstimate":
        """Derived estimate with ``suffix`` appended to the method tag and other fields replaced."""
        return replace(self, method=f"{self.method}{suffix}", **changes)

    @property
    def floor_description(self) -> str:
        return floor_description(self.floor)

    @property
    def confidence_description(self) -> str:
        if self.confidence >= 0.8:
            return "Very High"
        if self.confidence >= 0.6:
            return "High"
        if self.confidence >= 0.4:
            return "Medium"
        if self.confidence >= 0.2:
            return "Low"
        return "Very Low"

    def __str__(self) -> str:
        if self.error is not None:
            return f"FloorEstimate(method={self.method}, error={self.error})"
        return (
            f"Floor: {self.floor_description}, Altitude: {self.altitude_m:.2f}m, "
            f"Confidence: {self.confidence_description} ({self.confidence * 100:.1f}%), "
            f"Method: {self.method}"
        )
