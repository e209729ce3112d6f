"""
Configuration for floor detection sessions.

All tunables of the detection pipeline live in frozen dataclasses that
validate themselves on construction. A complete configuration can be built
in code, from a plain mapping (``DetectionConfig.from_dict``) or from a YAML
file (``load_config``).

Example YAML:

    floor_height_m: 3.2
    detection_interval_s: 5.0
    barometer_bands:
      nominal_confidence: 0.95
      unusual_confidence: 0.7
      faulty_confidence: 0.4
    kalman:
      max_gap_s: 30.0
"""

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple, Union

import yaml


STANDARD_SEA_LEVEL_PRESSURE_HPA = 1013.25
DEFAULT_FLOOR_HEIGHT_M = 3.5


def _check_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")


def _check_range(name: str, bounds: Tuple[float, float]) -> None:
    if len(bounds) != 2 or bounds[0] >= bounds[1]:
        raise ValueError(f"{name} must be an increasing (low, high) pair, got {bounds}")


@dataclass(frozen=True)
class BarometerConfidenceBands:
    """Confidence assigned to a hardware pressure reading by plausibility.

    A reading inside ``nominal_range_hpa`` gets ``nominal_confidence``; one
    outside ``plausible_range_hpa`` is treated as faulty and gets
    ``faulty_confidence``; anything in between gets ``unusual_confidence``.

    Attributes:
        nominal_range_hpa: Typical atmospheric pressure range [hPa].
        plausible_range_hpa: Physically possible range [hPa].
        nominal_confidence: Confidence for typical readings.
        unusual_confidence: Confidence for unusual but possible readings.
        faulty_confidence: Confidence for unrealistic readings.
    """

    nominal_range_hpa: Tuple[float, float] = (900.0, 1100.0)
    plausible_range_hpa: Tuple[float, float] = (800.0, 1200.0)
    nominal_confidence: float = 0.9
    unusual_confidence: float = 0.6
    faulty_confidence: float = 0.3

    def __post_init__(self) -> None:
        object.__setattr__(self, "nominal_range_hpa", tuple(self.nominal_range_hpa))
        object.__setattr__(self, "plausible_range_hpa", tuple(self.plausible_range_hpa))
        _check_range("nominal_range_hpa", self.nominal_range_hpa)
        _check_range("plausible_range_hpa", self.plausible_range_hpa)
        if (
            self.nominal_range_hpa[0] < self.plausible_range_hpa[0]
            or self.nominal_range_hpa[1] > self.plausible_range_hpa[1]
        ):
            raise ValueError("nominal_range_hpa must lie inside plausible_range_hpa")
        _check_unit_interval("nominal_confidence", self.nominal_confidence)
        _check_unit_interval("unusual_confidence", self.unusual_confidence)
        _check_unit_interval("faulty_confidence", self.faulty_confidence)


@dataclass(frozen=True)
class KalmanTuning:
    """Noise parameters of the altitude Kalman filter.

    Attributes:
        q_altitude: Altitude process noise [m²/s²].
        q_velocity: Velocity process noise [(m/s)²/s²].
        max_gap_s: Largest time step accepted before the filter re-initializes [s].
        initial_velocity_variance: P22 after initialization [(m/s)²].
        reset_variance: Diagonal of the covariance after reset().
    """

    q_altitude: float = 0.1
    q_velocity: float = 0.01
    max_gap_s: float = 60.0
    initial_velocity_variance: float = 1.0
    reset_variance: float = 1000.0

    def __post_init__(self) -> None:
        if self.q_altitude < 0 or self.q_velocity < 0:
            raise ValueError(
                f"Process noise must be non-negative, got q_altitude={self.q_altitude}, "
                f"q_velocity={self.q_velocity}"
            )
        if self.max_gap_s <= 0:
            raise ValueError(f"max_gap_s must be positive, got {self.max_gap_s}")
        if self.initial_velocity_variance <= 0 or self.reset_variance <= 0:
            raise ValueError("Initial and reset variances must be positive")


@dataclass(frozen=True)
class OutlierRejection:
    """Median/MAD outlier rejection applied before fusing estimates.

    Attributes:
        enabled: Whether the fusion pipeline runs outlier rejection.
        n_sigma: Rejection threshold in robust standard deviations.
        min_tolerance_m: Deviation from the median always tolerated [m].
        min_estimates: Smallest group on which rejection is attempted.
    """

    enabled: bool = True
    n_sigma: float = 2.0
    min_tolerance_m: float = DEFAULT_FLOOR_HEIGHT_M
    min_estimates: int = 3

    def __post_init__(self) -> None:
        if self.n_sigma <= 0:
            raise ValueError(f"n_sigma must be positive, got {self.n_sigma}")
        if self.min_tolerance_m < 0:
            raise ValueError(f"min_tolerance_m must be non-negative, got {self.min_tolerance_m}")
        if self.min_estimates < 3:
            raise ValueError(f"min_estimates must be at least 3, got {self.min_estimates}")


@dataclass(frozen=True)
class WeatherCacheConfig:
    """Caching and fallback policy of the weather pressure chain."""

    ttl_s: float = 5.0
    max_entries: int = 10
    use_standard_default: bool = True

    def __post_init__(self) -> None:
        if self.ttl_s < 0:
            raise ValueError(f"ttl_s must be non-negative, got {self.ttl_s}")
        if self.max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {self.max_entries}")


def _default_method_confidence() -> Dict[str, float]:
    return {
        "barometer": 0.9,
        "barometer (weather)": 0.7,
        "weather": 0.7,
        "gps": 0.4,
    }


def _default_weather_source_adjustment() -> Dict[str, float]:
    return {
        "OpenWeatherMap": 0.1,
        "WeatherAPI": 0.05,
        "Open-Meteo": 0.0,
        "default": -0.4,
    }


@dataclass(frozen=True)
class DetectionConfig:
    """Top-level configuration of a detection session.

    Attributes:
        floor_height_m: Floor-to-floor height used for floor rounding [m].
        standard_sea_level_pressure_hpa: ISA sea-level pressure [hPa].
        temperature_c: Air temperature assumed by the ISA model [°C].
        detection_interval_s: Delay between periodic detection passes [s].
        calibration_max_age_s: Age after which calibration is stale [s].
        min_plausible_gps_altitude_m: GPS altitudes at or below this are
            ignored by auto-calibration [m].
        method_base_confidence: Prior confidence per method, blended into
            single-source fusion results.
        weather_source_adjustment: Confidence offset per weather provider.
        barometer_bands: Hardware barometer confidence policy.
        kalman: Kalman filter tuning.
        outliers: Outlier rejection policy.
        weather_cache: Weather chain caching policy.
    """

    floor_height_m: float = DEFAULT_FLOOR_HEIGHT_M
    standard_sea_level_pressure_hpa: float = STANDARD_SEA_LEVEL_PRESSURE_HPA
    temperature_c: float = 15.0
    detection_interval_s: float = 2.0
    calibration_max_age_s: float = 3600.0
    min_plausible_gps_altitude_m: float = -100.0
    method_base_confidence: Dict[str, float] = field(default_factory=_default_method_confidence)
    weather_source_adjustment: Dict[str, float] = field(
        default_factory=_default_weather_source_adjustment
    )
    barometer_bands: BarometerConfidenceBands = field(default_factory=BarometerConfidenceBands)
    kalman: KalmanTuning = field(default_factory=KalmanTuning)
    outliers: OutlierRejection = field(default_factory=OutlierRejection)
    weather_cache: WeatherCacheConfig = field(default_factory=WeatherCacheConfig)

    def __post_init__(self) -> None:
        if self.floor_height_m <= 0:
            raise ValueError(f"floor_height_m must be positive, got {self.floor_height_m}")
        if self.standard_sea_level_pressure_hpa <= 0:
            raise ValueError(
                "standard_sea_level_pressure_hpa must be positive, "
                f"got {self.standard_sea_level_pressure_hpa}"
            )
        if self.temperature_c <= -273.15:
            raise ValueError(f"temperature_c must be above absolute zero, got {self.temperature_c}")
        if self.detection_interval_s <= 0:
            raise ValueError(
                f"detection_interval_s must be positive, got {self.detection_interval_s}"
            )
        if self.calibration_max_age_s <= 0:
            raise ValueError(
                f"calibration_max_age_s must be positive, got {self.calibration_max_age_s}"
            )
        for method, confidence in self.method_base_confidence.items():
            _check_unit_interval(f"method_base_confidence[{method!r}]", confidence)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DetectionConfig":
        """Build a configuration from a nested mapping.

        Nested sections (``barometer_bands``, ``kalman``, ``outliers``,
        ``weather_cache``) are given as mappings. Unknown keys raise.

        Raises:
            ValueError: If a key is unknown or a value is invalid.
        """
        sections = {
            "barometer_bands": BarometerConfidenceBands,
            "kalman": KalmanTuning,
            "outliers": OutlierRejection,
            "weather_cache": WeatherCacheConfig,
        }
        kwargs: Dict[str, Any] = {}
        known = {f.name for f in dataclasses.fields(cls)}
        for key, value in data.items():
            if key not in known:
                raise ValueError(f"Unknown configuration key: {key!r}")
            if key in sections:
                kwargs[key] = _build_section(sections[key], key, value)
            elif key in ("method_base_confidence", "weather_source_adjustment"):
                defaults = (
                    _default_method_confidence()
                    if key == "method_base_confidence"
                    else _default_weather_source_adjustment()
                )
                defaults.update({str(k): float(v) for k, v in (value or {}).items()})
                kwargs[key] = defaults
            else:
                kwargs[key] = value
        return cls(**kwargs)


def _build_section(section_cls, name: str, value: Any):
    if value is None:
        return section_cls()
    if not isinstance(value, Mapping):
        raise ValueError(f"Section {name!r} must be a mapping, got {type(value).__name__}")
    known = {f.name for f in dataclasses.fields(section_cls)}
    unknown = set(value) - known
    if unknown:
        raise ValueError(f"Unknown keys in section {name!r}: {sorted(unknown)}")
    return section_cls(**value)


def load_config(path: Union[str, Path]) -> DetectionConfig:
    """Load a ``DetectionConfig`` from a YAML file.

    An empty file yields the default configuration.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the YAML top level is not a mapping or holds invalid values.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return DetectionConfig()
    if not isinstance(data, Mapping):
        raise ValueError(f"Configuration root must be a mapping, got {type(data).__name__}")
    return DetectionConfig.from_dict(data)
