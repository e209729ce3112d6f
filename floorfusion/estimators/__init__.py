"""State estimation for altitude smoothing."""

from floorfusion.estimators.base import StateEstimator
from floorfusion.estimators.kalman_filter import (
    AltitudeKalmanFilter,
    FilterResult,
    FilterState,
    confidence_to_variance,
    variance_to_confidence,
)

__all__ = [
    "StateEstimator",
    "AltitudeKalmanFilter",
    "FilterResult",
    "FilterState",
    "confidence_to_variance",
    "variance_to_confidence",
]
