"""
Base class for recursive state estimators.

Defines the common interface of the smoothing filters used by the detection
pipeline: a state vector with its covariance, a time update and a scalar
measurement update weighted by a confidence in [0, 1].
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np


class StateEstimator(ABC):
    """Abstract base class for state estimators."""

    def __init__(self, state_dim: int):
        """
        Initialize state estimator.

        Args:
            state_dim: Dimension of the state vector.
        """
        self.state_dim = state_dim
        self.state: Optional[np.ndarray] = None
        self.covariance: Optional[np.ndarray] = None

    @abstractmethod
    def predict(self, dt: float) -> None:
        """
        Perform prediction step (time update).

        Args:
            dt: Time step in seconds.
        """

    @abstractmethod
    def update(self, z: float, confidence: float):
        """
        Perform measurement update (correction step).

        Args:
            z: Scalar measurement.
            confidence: Measurement confidence in [0, 1].
        """

    @abstractmethod
    def reset(self) -> None:
        """Discard all history."""

    def get_state_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Get current state estimate and covariance.

        Returns:
            Tuple of (state_vector, covariance_matrix) copies.
        """
        if self.state is None or self.covariance is None:
            raise RuntimeError("Estimator has no state. Call initialize() first.")
        return self.state.copy(), self.covariance.copy()
