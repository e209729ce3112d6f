"""Floor and altitude estimation from barometer, GPS and weather data.

This package contains the estimation pipeline:
- sensors: ISA altitude conversion, measurement types, pressure calibration
- sources: abstract collaborators and the weather provider chain
- estimators: altitude Kalman filter
- fusion: FloorEstimate, gating and confidence-weighted fusion
- detection: per-source estimators and the detection session
- eval: accuracy metrics
- sim: simulated collaborators
"""

from floorfusion.config import DetectionConfig, load_config
from floorfusion.detection.session import DetectionSession
from floorfusion.fusion.types import FloorEstimate

__version__ = "0.1.0"

__all__ = [
    "DetectionConfig",
    "DetectionSession",
    "FloorEstimate",
    "load_config",
]
