"""
Simulate Floor Detection During an Elevator Ride.

Drives a DetectionSession over simulated collaborators following an
elevator trajectory and prints raw vs. smoothed floor estimates.

Scenarios:
    - Default: device with a hardware barometer (barometer-only path)
    - --no-barometer: GPS altitude + weather-station pressure, fused after
      outlier rejection

A simulated clock advances by the trajectory sample interval on every
pass, so the Kalman filter sees realistic time steps without waiting.

Usage:
    python scripts/simulate_floor_detection.py
    python scripts/simulate_floor_detection.py --floors 0 8 3 --plot
    python scripts/simulate_floor_detection.py --no-barometer --config detection.yaml
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from floorfusion.config import DetectionConfig, load_config
from floorfusion.detection.session import DetectionSession
from floorfusion.fusion.types import FloorEstimate
from floorfusion.sensors.environment import altitude_to_floor
from floorfusion.sim.sources import (
    FailingProvider,
    SimulatedBarometer,
    SimulatedLocation,
    StaticWeatherProvider,
    elevator_trajectory,
)
from floorfusion.sources.weather import WeatherPressureChain
from floorfusion.utils.log import configure_logging


class SimulatedClock:
    """Manually advanced clock [s]."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


async def run_simulation(
    floors: List[int],
    config: DetectionConfig,
    use_barometer: bool = True,
    pressure_noise_hpa: float = 0.05,
    gps_noise_m: float = 4.0,
    passes: Optional[int] = None,
    seed: int = 42,
):
    """
    Run one detection pass per trajectory sample.

    Returns:
        Tuple (t, true_altitude, estimates), estimates aligned with t.
    """
    t, altitude = elevator_trajectory(
        floors=floors, floor_height_m=config.floor_height_m, dt=1.0
    )
    if passes is not None:
        t, altitude = t[:passes], altitude[:passes]

    clock = SimulatedClock(start=1_700_000_000.0)
    barometer = SimulatedBarometer(
        noise_std_hpa=pressure_noise_hpa, available=use_barometer, seed=seed
    )
    location = SimulatedLocation(
        altitude_noise_std_m=gps_noise_m, accuracy_m=8.0, seed=seed + 1, clock=clock
    )
    weather = WeatherPressureChain(
        [
            FailingProvider(name="OpenWeatherMap"),
            StaticWeatherProvider(pressure_hpa=1013.25, name="Open-Meteo", clock=clock),
        ],
        config=config.weather_cache,
        clock=clock,
    )
    session = DetectionSession(barometer, location, weather, config=config, clock=clock)

    estimates: List[FloorEstimate] = []
    for ti, hi in zip(t, altitude):
        clock.now = 1_700_000_000.0 + float(ti)
        barometer.altitude_m = float(hi)
        location.altitude_m = float(hi)
        estimates.append(await session.detect_floor())

    return t, altitude, estimates


def print_table(t, altitude, estimates, floor_height_m: float) -> None:
    print(f"{'t [s]':>6} {'true alt':>9} {'true fl':>8} {'est alt':>9} {'est fl':>7} {'conf':>6}  method")
    print("-" * 80)
    for ti, hi, est in zip(t, altitude, estimates):
        true_floor = altitude_to_floor(hi, floor_height_m)
        if est.is_valid:
            print(
                f"{ti:6.0f} {hi:9.2f} {true_floor:8d} {est.altitude_m:9.2f} "
                f"{est.floor:7d} {est.confidence:6.2f}  {est.method}"
            )
        else:
            print(f"{ti:6.0f} {hi:9.2f} {true_floor:8d} {'-':>9} {'-':>7} {'-':>6}  {est.error}")

    valid = [(hi, e) for hi, e in zip(altitude, estimates) if e.is_valid]
    if valid:
        errors = np.array([e.altitude_m - hi for hi, e in valid])
        correct = sum(altitude_to_floor(hi, floor_height_m) == e.floor for hi, e in valid)
        print("-" * 80)
        print(f"Altitude RMSE: {np.sqrt(np.mean(errors ** 2)):.2f} m")
        print(f"Correct floor: {correct}/{len(valid)} ({100.0 * correct / len(valid):.1f}%)")


def plot_results(t, altitude, estimates, output: Optional[Path]) -> None:
    import matplotlib.pyplot as plt

    est_alt = np.array([e.altitude_m if e.is_valid else np.nan for e in estimates])
    est_floor = np.array([e.floor if e.is_valid else np.nan for e in estimates])

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10, 7), sharex=True)
    ax1.plot(t, altitude, "k-", label="True altitude")
    ax1.plot(t, est_alt, "b.-", label="Filtered estimate", alpha=0.7)
    ax1.set_ylabel("Altitude [m]")
    ax1.legend()
    ax1.grid(True, alpha=0.3)

    ax2.step(t, est_floor, "r-", where="post", label="Estimated floor")
    ax2.set_xlabel("Time [s]")
    ax2.set_ylabel("Floor")
    ax2.legend()
    ax2.grid(True, alpha=0.3)

    fig.tight_layout()
    if output is not None:
        fig.savefig(output, dpi=150)
        print(f"Saved plot to {output}")
    else:
        plt.show()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Simulate floor detection during an elevator ride",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Barometer path, default ride 0 -> 5 -> 2 -> 0
  python scripts/simulate_floor_detection.py

  # GPS + weather fallback with a plot saved to disk
  python scripts/simulate_floor_detection.py --no-barometer --plot --output ride.png
        """,
    )
    parser.add_argument(
        "--floors", type=int, nargs="+", default=[0, 5, 2, 0], help="Floors visited (default: 0 5 2 0)"
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--no-barometer", action="store_true", help="Simulate a device without barometer")
    parser.add_argument("--passes", type=int, default=None, help="Limit the number of detection passes")

    noise_group = parser.add_argument_group("Sensor Noise Parameters")
    noise_group.add_argument(
        "--pressure-noise", type=float, default=0.05, help="Barometer noise in hPa (default: 0.05)"
    )
    noise_group.add_argument(
        "--gps-noise", type=float, default=4.0, help="GPS altitude noise in m (default: 4.0)"
    )

    parser.add_argument("--plot", action="store_true", help="Plot true vs. estimated altitude")
    parser.add_argument("--output", type=Path, default=None, help="Save the plot instead of showing it")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")

    args = parser.parse_args()
    configure_logging(args.log_level)

    config = load_config(args.config) if args.config is not None else DetectionConfig()
    t, altitude, estimates = asyncio.run(
        run_simulation(
            floors=args.floors,
            config=config,
            use_barometer=not args.no_barometer,
            pressure_noise_hpa=args.pressure_noise,
            gps_noise_m=args.gps_noise,
            passes=args.passes,
            seed=args.seed,
        )
    )

    print_table(t, altitude, estimates, config.floor_height_m)
    if args.plot:
        plot_results(t, altitude, estimates, args.output)


if __name__ == "__main__":
    main()
