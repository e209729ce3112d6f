"""Innovation gating and robust spread statistics for altitude fusion.

Scalar versions of the classical gating tests used to decide whether an
altitude measurement is consistent with the current belief:

    NIS:          d² = y² / S
    Sigma gate:   reject if |y| > k * sqrt(S)
    Chi-square:   reject if d² >= χ²(1, α)

where y is the innovation (measurement minus prediction) and S its variance.
The median absolute deviation helpers back the group outlier rejection used
before fusing several independent estimates.
"""

import math
from typing import Sequence

import numpy as np
from scipy import stats

# Scale making the MAD a consistent estimator of σ for Gaussian data
MAD_TO_SIGMA = 1.4826


def normalized_innovation_squared(innovation: float, innovation_variance: float) -> float:
    """Scalar NIS, d² = y² / S.

    Raises:
        ValueError: If the innovation variance is not positive.
    """
    if innovation_variance <= 0:
        raise ValueError(f"innovation_variance must be positive, got {innovation_variance}")
    return float(innovation * innovation / innovation_variance)


def exceeds_sigma_bound(
    innovation: float,
    innovation_variance: float,
    n_sigma: float = 3.0,
) -> bool:
    """Return True if ``|y| > n_sigma * sqrt(S)``."""
    if innovation_variance < 0:
        raise ValueError(f"innovation_variance must be non-negative, got {innovation_variance}")
    return abs(innovation) > n_sigma * math.sqrt(innovation_variance)


def chi_square_threshold(dof: int = 1, confidence: float = 0.95) -> float:
    """Chi-square critical value χ²(dof, confidence).

    Example:
        >>> round(chi_square_threshold(1, 0.95), 3)
        3.841
    """
    if dof < 1:
        raise ValueError(f"dof must be >= 1, got {dof}")
    if not 0 < confidence < 1:
        raise ValueError(f"confidence must be in (0, 1), got {confidence}")
    return float(stats.chi2.ppf(confidence, dof))


def chi_square_gate(
    innovation: float,
    innovation_variance: float,
    confidence: float = 0.95,
) -> bool:
    """Return True if the measurement should be accepted (d² < χ²(1, α))."""
    d_squared = normalized_innovation_squared(innovation, innovation_variance)
    return d_squared < chi_square_threshold(dof=1, confidence=confidence)


def robust_sigma(values: Sequence[float]) -> float:
    """Robust spread estimate: 1.4826 * median(|x - median(x)|)."""
    x = np.asarray(values, dtype=float)
    if x.size == 0:
        raise ValueError("values must not be empty")
    return float(MAD_TO_SIGMA * np.median(np.abs(x - np.median(x))))


def population_std(values: Sequence[float]) -> float:
    """Population standard deviation, 0.0 for fewer than two values."""
    x = np.asarray(values, dtype=float)
    if x.size < 2:
        return 0.0
    return float(np.std(x))
