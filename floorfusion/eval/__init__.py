"""Accuracy evaluation of floor estimates."""

from floorfusion.eval.accuracy import (
    AccuracyGrade,
    AccuracyMetrics,
    FloorAccuracy,
    FloorRange,
    accuracy_recommendations,
    calculate_accuracy,
    calculate_floor_accuracy,
)

__all__ = [
    "AccuracyGrade",
    "AccuracyMetrics",
    "FloorAccuracy",
    "FloorRange",
    "calculate_accuracy",
    "calculate_floor_accuracy",
    "accuracy_recommendations",
]
