"""Simulated sensors and trajectories for tests and demos."""

from floorfusion.sim.sources import (
    FailingProvider,
    SimulatedBarometer,
    SimulatedLocation,
    StaticWeatherProvider,
    elevator_trajectory,
)

__all__ = [
    "elevator_trajectory",
    "SimulatedBarometer",
    "SimulatedLocation",
    "StaticWeatherProvider",
    "FailingProvider",
]
