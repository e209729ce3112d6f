"""
Confidence-weighted fusion of independent floor estimates.

Each source (GPS altitude, weather-station pressure, WiFi heuristics) yields
its own ``FloorEstimate``. Before fusing, gross outliers are removed with a
median / MAD test, which stays meaningful for the small groups (2-4
estimates) seen in practice:

    reject i  if  |h_i - median(h)| > max(k * 1.4826 * MAD(h), tol)

The fused estimate is the confidence-weighted mean:

    floor    = round(Σ f_i c_i / Σ c_i)
    altitude = Σ h_i c_i / Σ c_i
    conf     = Σ c_i² / Σ c_i, then adjusted for agreement between sources

and is tagged with every contributing method, e.g. "fusion (gps+weather)".
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from floorfusion.config import DetectionConfig, OutlierRejection
from floorfusion.fusion.gating import population_std, robust_sigma
from floorfusion.fusion.types import FloorEstimate
from floorfusion.sensors.environment import round_half_away

logger = logging.getLogger(__name__)

FUSION_METHOD = "fusion"
NO_RESULTS_ERROR = "No valid floor detection results"
NO_WEIGHT_ERROR = "No valid weighted results"

# Altitude range considered plausible for a single unconfirmed source [m]
PLAUSIBLE_ALTITUDE_RANGE_M = (-10.0, 1000.0)
DEFAULT_BASE_CONFIDENCE = 0.5


def _valid(estimates: Sequence[FloorEstimate]) -> List[FloorEstimate]:
    return [e for e in estimates if e.is_valid]


def filter_outliers(
    estimates: Sequence[FloorEstimate],
    config: Optional[OutlierRejection] = None,
) -> List[FloorEstimate]:
    """
    Drop error estimates and altitude outliers.

    Args:
        estimates: Candidate estimates, possibly including errors.
        config: Rejection policy. Defaults to ``OutlierRejection()``.

    Returns:
        Error-free estimates that agree with the group median. With fewer
        than ``config.min_estimates`` error-free estimates, or if every
        estimate would be rejected, the error-free list is returned as is.
    """
    config = config or OutlierRejection()
    valid = _valid(estimates)
    if len(valid) < config.min_estimates:
        return valid

    altitudes = np.array([e.altitude_m for e in valid])
    median = np.median(altitudes)
    tolerance = max(config.n_sigma * robust_sigma(altitudes), config.min_tolerance_m)

    kept = []
    for estimate, altitude in zip(valid, altitudes):
        deviation = abs(altitude - median)
        if deviation > tolerance:
            logger.warning(
                "Rejected outlier from %s: %.1fm is %.1fm from median %.1fm (tolerance %.1fm)",
                estimate.method,
                altitude,
                deviation,
                median,
                tolerance,
            )
            continue
        kept.append(estimate)

    if not kept:
        return valid
    return kept


def base_confidence(method: str, config: Optional[DetectionConfig] = None) -> float:
    """Prior confidence of a method; composite tags fall back to their leading word."""
    table = (config or DetectionConfig()).method_base_confidence
    if method in table:
        return table[method]
    head = method.split(" (", 1)[0]
    return table.get(head, DEFAULT_BASE_CONFIDENCE)


def fused_method(estimates: Sequence[FloorEstimate]) -> str:
    """Provenance tag listing the contributing methods, e.g. "fusion (gps+weather)"."""
    return f"{FUSION_METHOD} (" + "+".join(e.method for e in estimates) + ")"


def _fuse_single(estimate: FloorEstimate, config: Optional[DetectionConfig]) -> FloorEstimate:
    confidence = (estimate.confidence + base_confidence(estimate.method, config)) / 2.0
    low, high = PLAUSIBLE_ALTITUDE_RANGE_M
    if low <= estimate.altitude_m <= high:
        confidence += 0.05
    return estimate.with_method_suffix(
        " (single)", confidence=float(np.clip(confidence, 0.0, 1.0))
    )


def fuse_results(
    estimates: Sequence[FloorEstimate],
    config: Optional[DetectionConfig] = None,
) -> FloorEstimate:
    """
    Combine independent estimates into one.

    Never raises; an empty or weightless input yields an error estimate.

    Args:
        estimates: Estimates to fuse. Error-tagged entries are ignored.
        config: Detection configuration (base confidences per method).

    Returns:
        The fused FloorEstimate.

    Example:
        >>> fuse_results([]).error
        'No valid floor detection results'
    """
    valid = _valid(estimates)
    if not valid:
        return FloorEstimate.failure(FUSION_METHOD, NO_RESULTS_ERROR)

    if len(valid) == 1:
        return _fuse_single(valid[0], config)

    weights = np.array([e.confidence for e in valid])
    total = weights.sum()
    if total <= 0:
        return FloorEstimate.failure(FUSION_METHOD, NO_WEIGHT_ERROR)

    floors = np.array([e.floor for e in valid], dtype=float)
    altitudes = np.array([e.altitude_m for e in valid])

    floor = round_half_away(float(np.dot(floors, weights) / total))
    altitude = float(np.dot(altitudes, weights) / total)
    confidence = float(np.dot(weights, weights) / total)

    n = len(valid)
    spread = population_std(altitudes)
    if spread <= 5.0:
        confidence += 0.1 * (n - 1)
    elif spread <= 10.0:
        confidence += 0.05 * (n - 1)
    elif spread > 20.0:
        confidence *= 0.7
    else:
        confidence *= 0.85

    if any(e.method.startswith("barometer") and e.confidence > 0.8 for e in valid):
        confidence += 0.05

    fused = FloorEstimate(
        floor=floor,
        altitude_m=altitude,
        confidence=float(np.clip(confidence, 0.0, 1.0)),
        method=fused_method(valid),
    )
    logger.debug("Fused %d estimates (std %.2fm): %s", n, spread, fused)
    return fused


def fusion_metrics(estimates: Sequence[FloorEstimate]) -> Dict[str, Any]:
    """
    Summary statistics of an estimate group, for diagnostics.

    Returns:
        Dictionary with total / valid counts, methods used and, when at
        least one estimate is valid, altitude range, agreement std-dev and
        confidence range.
    """
    valid = _valid(estimates)
    metrics: Dict[str, Any] = {
        "total_estimates": len(estimates),
        "valid_estimates": len(valid),
        "methods_used": [e.method for e in valid],
    }
    if not valid:
        return metrics

    altitudes = np.array([e.altitude_m for e in valid])
    confidences = np.array([e.confidence for e in valid])
    metrics.update(
        {
            "altitude_range_m": float(altitudes.max() - altitudes.min()),
            "altitude_std_m": population_std(altitudes),
            "min_confidence": float(confidences.min()),
            "max_confidence": float(confidences.max()),
            "mean_confidence": float(confidences.mean()),
        }
    )
    return metrics
