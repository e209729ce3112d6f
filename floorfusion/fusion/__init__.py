"""Multi-source floor estimate fusion.

This package provides:
- FloorEstimate, the result record shared by all sources
- Scalar innovation gating (sigma bound, chi-square) and robust spread
- Median/MAD outlier rejection and confidence-weighted fusion
"""

from floorfusion.fusion.combine import (
    filter_outliers,
    fuse_results,
    fused_method,
    fusion_metrics,
)
from floorfusion.fusion.gating import (
    chi_square_gate,
    chi_square_threshold,
    exceeds_sigma_bound,
    normalized_innovation_squared,
    robust_sigma,
)
from floorfusion.fusion.types import FloorEstimate

__all__ = [
    # Types
    "FloorEstimate",
    # Gating
    "normalized_innovation_squared",
    "exceeds_sigma_bound",
    "chi_square_threshold",
    "chi_square_gate",
    "robust_sigma",
    # Fusion
    "filter_outliers",
    "fuse_results",
    "fused_method",
    "fusion_metrics",
]
