"""
Constant-velocity Kalman filter for altitude smoothing.

State x = [altitude, vertical velocity] with covariance
    P = [[P11, P12],
         [P21, P22]]

Process model (time step dt):
    F = [[1, dt],
         [0,  1]]
    Q = [[qa dt⁴/4,      qa dt³/2],
         [qa dt³/2, qa dt² + qv  ]]

Measurement model: z = altitude + w, with Var(w) = R derived from the
measurement confidence c:
    R = 0.1 / (c² + 0.01)        (c = 1.0 -> ~0.1 m², c = 0.0 -> 10 m²)

The two-state model tracks steady ascent and descent (stairs, elevators)
instead of only lagging behind step changes. P12 and P21 are propagated
separately; the position variance uses P12 for the cross term:
    P11' = P11 + 2 P12 dt + P22 dt² + q11

The filter re-initializes on the first measurement, after reset(), and
whenever the time since the previous update is non-positive or exceeds
``max_gap_s`` (60 s by default).
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from floorfusion.config import KalmanTuning
from floorfusion.estimators.base import StateEstimator
from floorfusion.fusion.gating import chi_square_gate, exceeds_sigma_bound

logger = logging.getLogger(__name__)


def confidence_to_variance(confidence: float) -> float:
    """Measurement variance [m²] for a confidence in [0, 1] (monotonically decreasing)."""
    return 0.1 / (confidence * confidence + 0.01)


def variance_to_confidence(variance: float) -> float:
    """Confidence in (0, 1] for a non-negative variance [m²]."""
    return 1.0 / (1.0 + variance)


def constant_velocity_transition(dt: float) -> np.ndarray:
    """State transition matrix F for the [altitude, velocity] state."""
    return np.array([[1.0, dt], [0.0, 1.0]])


def altitude_process_noise(dt: float, q_altitude: float, q_velocity: float) -> np.ndarray:
    """Process noise matrix Q for a time step dt (see module docstring)."""
    dt2 = dt * dt
    dt3 = dt2 * dt
    dt4 = dt3 * dt
    q11 = q_altitude * dt4 / 4.0
    q12 = q_altitude * dt3 / 2.0
    q22 = q_altitude * dt2 + q_velocity
    return np.array([[q11, q12], [q12, q22]])


@dataclass(frozen=True)
class FilterResult:
    """Outcome of one AltitudeKalmanFilter.update() call.

    Attributes:
        filtered_altitude: Posterior altitude [m].
        velocity: Posterior vertical velocity [m/s].
        confidence: 1 / (1 + P11), or the input confidence after a reset.
        innovation: Measurement minus predicted altitude [m]; 0 after a reset.
        was_reset: True if the call (re-)initialized the filter.
    """

    filtered_altitude: float
    velocity: float
    confidence: float
    innovation: float
    was_reset: bool = False

    def __str__(self) -> str:
        return (
            f"FilterResult(alt: {self.filtered_altitude:.2f}m, vel: {self.velocity:.3f}m/s, "
            f"conf: {self.confidence * 100:.1f}%, innov: {self.innovation:.2f}m)"
        )


@dataclass(frozen=True)
class FilterState:
    """Snapshot of the filter belief."""

    altitude: float
    velocity: float
    P11: float
    P12: float
    P21: float
    P22: float
    is_initialized: bool
    last_update_time: Optional[float]

    @property
    def altitude_std(self) -> float:
        return math.sqrt(max(self.P11, 0.0))

    @property
    def velocity_std(self) -> float:
        return math.sqrt(max(self.P22, 0.0))

    def __str__(self) -> str:
        return (
            f"FilterState(alt: {self.altitude:.2f}±{self.altitude_std:.2f}m, "
            f"vel: {self.velocity:.3f}±{self.velocity_std:.3f}m/s)"
        )


class AltitudeKalmanFilter(StateEstimator):
    """
    Two-state (altitude, vertical velocity) linear Kalman filter.

    Measurement noise adapts to the confidence of every incoming estimate,
    so low-confidence sources (e.g. stale weather data) move the estimate
    less than a healthy barometer.

    Attributes:
        tuning: Process noise, reset gap and initial variances.
        state: Current [altitude, velocity] estimate.
        covariance: Current 2×2 covariance [[P11, P12], [P21, P22]].
        measurement_noise: R used by the most recent update [m²].

    Example:
        >>> kf = AltitudeKalmanFilter()
        >>> kf.update(42.0, 0.9, timestamp=0.0).was_reset
        True
        >>> result = kf.update(42.5, 0.9, timestamp=1.0)
        >>> 42.0 < result.filtered_altitude < 42.5
        True
    """

    def __init__(
        self,
        tuning: Optional[KalmanTuning] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(state_dim=2)
        self.tuning = tuning or KalmanTuning()
        self._clock = clock
        self.measurement_noise = 1.0
        self.last_update_time: Optional[float] = None
        self.is_initialized = False
        self.reset()

    @property
    def altitude(self) -> float:
        return float(self.state[0])

    @property
    def velocity(self) -> float:
        return float(self.state[1])

    @property
    def P11(self) -> float:
        return float(self.covariance[0, 0])

    @property
    def P12(self) -> float:
        return float(self.covariance[0, 1])

    @property
    def P21(self) -> float:
        return float(self.covariance[1, 0])

    @property
    def P22(self) -> float:
        return float(self.covariance[1, 1])

    def initialize(
        self,
        altitude: float,
        confidence: float,
        timestamp: Optional[float] = None,
    ) -> None:
        """
        Start a new track at the given altitude.

        Args:
            altitude: Initial altitude [m].
            confidence: Confidence of that altitude; sets P11.
            timestamp: Time of the measurement [s]. Defaults to the clock.
        """
        self.state = np.array([float(altitude), 0.0])
        self.covariance = np.array(
            [
                [confidence_to_variance(confidence), 0.0],
                [0.0, self.tuning.initial_velocity_variance],
            ]
        )
        self.last_update_time = self._clock() if timestamp is None else timestamp
        self.is_initialized = True

    def predict(self, dt: float) -> None:
        """
        Time update over dt seconds.

        Args:
            dt: Time step [s]. Must be positive.
        """
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")

        F = constant_velocity_transition(dt)
        Q = altitude_process_noise(dt, self.tuning.q_altitude, self.tuning.q_velocity)
        P11, P12, P21, P22 = self.P11, self.P12, self.P21, self.P22

        self.state = F @ self.state
        self.covariance = np.array(
            [
                [P11 + 2.0 * P12 * dt + P22 * dt * dt + Q[0, 0], P12 + P22 * dt + Q[0, 1]],
                [P21 + P22 * dt + Q[1, 0], P22 + Q[1, 1]],
            ]
        )

    def _correct(self, measured_altitude: float) -> float:
        """Measurement update against ``self.measurement_noise``; returns the innovation."""
        P11, P12, P21, P22 = self.P11, self.P12, self.P21, self.P22

        innovation = measured_altitude - self.altitude
        S = P11 + self.measurement_noise
        K1 = P11 / S
        K2 = P21 / S

        self.state = self.state + np.array([K1, K2]) * innovation
        self.covariance = np.array(
            [
                [(1.0 - K1) * P11, (1.0 - K1) * P12],
                [P21 - K2 * P11, P22 - K2 * P12],
            ]
        )
        return float(innovation)

    def update(
        self,
        measured_altitude: float,
        confidence: float,
        timestamp: Optional[float] = None,
    ) -> FilterResult:
        """
        Fuse one altitude measurement.

        Re-initializes (innovation 0, input confidence echoed back) if the
        filter is uninitialized or the time since the last update is <= 0
        or > max_gap_s.

        Args:
            measured_altitude: Measured altitude [m].
            confidence: Measurement confidence in [0, 1].
            timestamp: Measurement time [s]. Defaults to the clock.

        Returns:
            FilterResult with the posterior altitude, velocity and confidence.
        """
        if not 0.0 <= confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {confidence}")
        now = self._clock() if timestamp is None else timestamp

        if not self.is_initialized:
            return self._restart(measured_altitude, confidence, now)

        dt = now - self.last_update_time
        if dt <= 0 or dt > self.tuning.max_gap_s:
            logger.debug("Kalman filter reset after dt=%.3fs", dt)
            return self._restart(measured_altitude, confidence, now)

        self.predict(dt)
        self.measurement_noise = confidence_to_variance(confidence)
        innovation = self._correct(measured_altitude)
        self.last_update_time = now

        return FilterResult(
            filtered_altitude=self.altitude,
            velocity=self.velocity,
            confidence=variance_to_confidence(self.P11),
            innovation=innovation,
        )

    def _restart(self, measured_altitude: float, confidence: float, now: float) -> FilterResult:
        self.initialize(measured_altitude, confidence, timestamp=now)
        return FilterResult(
            filtered_altitude=self.altitude,
            velocity=self.velocity,
            confidence=confidence,
            innovation=0.0,
            was_reset=True,
        )

    def is_outlier(self, measured_altitude: float, threshold: float = 3.0) -> bool:
        """
        Sigma gate: ``|z - altitude| > threshold * sqrt(P11 + R)``.

        Uses the R of the most recent update. Always False before the
        filter is initialized.
        """
        if not self.is_initialized:
            return False
        return exceeds_sigma_bound(
            measured_altitude - self.altitude,
            self.P11 + self.measurement_noise,
            n_sigma=threshold,
        )

    def gate(self, measured_altitude: float, confidence: float = 0.997) -> bool:
        """
        Chi-square gate on the same innovation; True means accept.

        Always accepts before the filter is initialized.
        """
        if not self.is_initialized:
            return True
        return chi_square_gate(
            measured_altitude - self.altitude,
            self.P11 + self.measurement_noise,
            confidence=confidence,
        )

    def get_state(self) -> FilterState:
        return FilterState(
            altitude=self.altitude,
            velocity=self.velocity,
            P11=self.P11,
            P12=self.P12,
            P21=self.P21,
            P22=self.P22,
            is_initialized=self.is_initialized,
            last_update_time=self.last_update_time,
        )

    def reset(self) -> None:
        """Zero the state, restore the uninformative covariance, mark uninitialized."""
        v = self.tuning.reset_variance
        self.state = np.zeros(2)
        self.covariance = np.array([[v, 0.0], [0.0, v]])
        self.measurement_noise = 1.0
        self.last_update_time = None
        self.is_initialized = False
