"""
Accuracy estimates for floor detection results.

Translates a FloorEstimate into an expected altitude error (1σ, meters):

    σ = base(method) × k_conf(confidence) × k_cal(calibration)

with base errors barometer 3 m, weather-referenced barometer 8 m, weather
10 m, GPS 15 m, fusion 5 m and unknown 20 m. The 95 % confidence interval
is taken as ±2σ. The floor-level view converts σ into a probability that the
reported floor is correct and a range of possible floors.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import List

from floorfusion.config import DEFAULT_FLOOR_HEIGHT_M
from floorfusion.fusion.types import FloorEstimate
from floorfusion.sensors.calibration import CalibrationStatus
from floorfusion.sensors.environment import floor_description


class AccuracyGrade(Enum):
    """Letter grade of an altitude error, with its upper bound [m]."""

    A_PLUS = ("A+", "Excellent", 2.0)
    A = ("A", "Very Good", 5.0)
    B = ("B", "Good", 8.0)
    C = ("C", "Fair", 12.0)
    D = ("D", "Poor", 20.0)
    F = ("F", "Very Poor", math.inf)

    def __init__(self, grade: str, display_name: str, max_error_m: float):
        self.grade = grade
        self.display_name = display_name
        self.max_error_m = max_error_m

    @classmethod
    def from_error(cls, error_m: float) -> "AccuracyGrade":
        for member in cls:
            if error_m <= member.max_error_m:
                return member
        return cls.F


def method_base_accuracy(method: str) -> float:
    """Base 1σ altitude error [m] of a detection method tag."""
    m = method.lower()
    if m.startswith("fusion"):
        return 5.0
    if "barometer" in m:
        return 8.0 if "weather" in m else 3.0
    if "weather" in m:
        return 10.0
    if "gps" in m:
        return 15.0
    return 20.0


def confidence_multiplier(confidence: float) -> float:
    if confidence >= 0.9:
        return 0.8
    if confidence >= 0.7:
        return 1.0
    if confidence >= 0.5:
        return 1.3
    if confidence >= 0.3:
        return 1.8
    return 2.5


def calibration_multiplier(status: CalibrationStatus) -> float:
    if not status.is_calibrated:
        return 2.0
    if status.is_calibration_needed:
        return 1.5
    return 1.0


@dataclass(frozen=True)
class AccuracyMetrics:
    """
    Altitude accuracy of one estimate.

    Attributes:
        estimated_accuracy_m: Expected 1σ altitude error [m].
        confidence_interval_95: Half-width of the 95 % interval [m].
        grade: Letter grade of estimated_accuracy_m.
        method: Method tag of the evaluated estimate.
        confidence: Confidence of the evaluated estimate.
        calibration_status: Calibration at evaluation time.
    """

    estimated_accuracy_m: float
    confidence_interval_95: float
    grade: AccuracyGrade
    method: str
    confidence: float
    calibration_status: CalibrationStatus

    @property
    def accuracy_description(self) -> str:
        return f"±{self.estimated_accuracy_m:.1f}m ({self.grade.display_name})"

    @property
    def confidence_interval_description(self) -> str:
        return f"±{self.confidence_interval_95:.1f}m (95% confidence)"

    def __str__(self) -> str:
        return (
            f"AccuracyMetrics({self.accuracy_description}, method: {self.method}, "
            f"confidence: {self.confidence * 100:.1f}%)"
        )


@dataclass(frozen=True)
class FloorRange:
    min_floor: int
    max_floor: int

    @property
    def span(self) -> int:
        return self.max_floor - self.min_floor + 1

    @property
    def description(self) -> str:
        if self.min_floor == self.max_floor:
            return f"Floor {self.min_floor}"
        return f"Floors {self.min_floor} to {self.max_floor}"


@dataclass(frozen=True)
class FloorAccuracy:
    """Floor-level accuracy: how likely the reported floor is correct."""

    most_likely_floor: int
    correct_floor_probability: float
    possible_floor_range: FloorRange
    floor_uncertainty: float
    altitude_accuracy: AccuracyMetrics

    @property
    def floor_description(self) -> str:
        return floor_description(self.most_likely_floor)

    @property
    def probability_description(self) -> str:
        return f"{self.correct_floor_probability * 100:.0f}% confident"

    def __str__(self) -> str:
        return (
            f"FloorAccuracy({self.floor_description}, {self.probability_description}, "
            f"range: {self.possible_floor_range.description})"
        )


def calculate_accuracy(estimate: FloorEstimate, status: CalibrationStatus) -> AccuracyMetrics:
    """
    Expected altitude error of an estimate.

    Args:
        estimate: Estimate to evaluate.
        status: Current calibration status.

    Returns:
        AccuracyMetrics with σ, the 95 % interval and a grade.
    """
    sigma = (
        method_base_accuracy(estimate.method)
        * confidence_multiplier(estimate.confidence)
        * calibration_multiplier(status)
    )
    return AccuracyMetrics(
        estimated_accuracy_m=sigma,
        confidence_interval_95=2.0 * sigma,
        grade=AccuracyGrade.from_error(sigma),
        method=estimate.method,
        confidence=estimate.confidence,
        calibration_status=status,
    )


def _correct_floor_probability(floor_uncertainty: float) -> float:
    if floor_uncertainty <= 0.3:
        return 0.95
    if floor_uncertainty <= 0.5:
        return 0.85
    if floor_uncertainty <= 0.8:
        return 0.70
    if floor_uncertainty <= 1.2:
        return 0.50
    return 0.30


def calculate_floor_accuracy(
    estimate: FloorEstimate,
    status: CalibrationStatus,
    floor_height_m: float = DEFAULT_FLOOR_HEIGHT_M,
) -> FloorAccuracy:
    """
    Probability that the reported floor is correct, and the plausible range.

    Raises:
        ValueError: If floor_height_m is not positive.
    """
    if floor_height_m <= 0:
        raise ValueError(f"floor_height_m must be positive, got {floor_height_m}")
    metrics = calculate_accuracy(estimate, status)
    uncertainty = metrics.estimated_accuracy_m / floor_height_m
    floor_error = math.ceil(metrics.confidence_interval_95 / floor_height_m)
    return FloorAccuracy(
        most_likely_floor=estimate.floor,
        correct_floor_probability=_correct_floor_probability(uncertainty),
        possible_floor_range=FloorRange(estimate.floor - floor_error, estimate.floor + floor_error),
        floor_uncertainty=uncertainty,
        altitude_accuracy=metrics,
    )


def accuracy_recommendations(metrics: AccuracyMetrics) -> List[str]:
    """Plain-text suggestions for improving the accuracy of future estimates."""
    recommendations = []
    status = metrics.calibration_status
    if not status.is_calibrated:
        recommendations.append("Calibrate using GPS location and weather data")
    elif status.is_calibration_needed:
        recommendations.append("Recalibrate - current calibration is outdated")

    primary = metrics.method.lower().split(" ", 1)[0]
    if primary == "gps":
        recommendations.append("Use barometer if available for better accuracy")
        recommendations.append("GPS altitude is less accurate indoors")
    if primary == "weather":
        recommendations.append("Weather data depends on internet connection")
        recommendations.append("Accuracy varies with distance to weather station")

    if metrics.confidence < 0.5:
        recommendations.append("Low confidence - consider multiple readings")
        recommendations.append("Check sensor availability and permissions")

    if metrics.estimated_accuracy_m > 10:
        recommendations.append("Consider sensor fusion for better accuracy")
        recommendations.append("Take multiple readings and average them")
    return recommendations
