"""
Barometric altitude model (International Standard Atmosphere).

This module implements the conversions between atmospheric pressure,
altitude and floor index used throughout the detection pipeline:
    - Pressure to altitude (ISA barometric formula)
    - Altitude to floor index
    - Sea-level reference pressure from a known altitude (inverse formula)
    - Standard pressure at a given altitude (forward model, for simulation)

ISA barometric formula:
    h = (T / L) * (1 - (P / P0)^(R * L / (g * M)))

where:
    h: altitude above the P0 reference level [m]
    P: measured pressure [hPa]
    P0: sea-level reference pressure [hPa]
    T: temperature [K]
    L: temperature lapse rate = 0.0065 K/m
    R: universal gas constant = 8.31447 J/(mol·K)
    g: standard gravity = 9.80665 m/s²
    M: molar mass of dry air = 0.0289644 kg/mol

Notes:
    - Pressure drops ~0.12 hPa per meter near sea level (~0.42 hPa per floor).
    - Weather changes move P0 by several hPa per day; calibrate periodically.
"""

from typing import Union

import numpy as np

from floorfusion.config import DEFAULT_FLOOR_HEIGHT_M, STANDARD_SEA_LEVEL_PRESSURE_HPA


LAPSE_RATE = 0.0065  # K/m
GAS_CONSTANT = 8.31447  # J/(mol·K)
GRAVITY = 9.80665  # m/s²
MOLAR_MASS_AIR = 0.0289644  # kg/mol
KELVIN_OFFSET = 273.15
STANDARD_TEMPERATURE_C = 15.0

# Exponent R*L/(g*M) ≈ 0.190263 and its inverse ≈ 5.2559
ISA_EXPONENT = (GAS_CONSTANT * LAPSE_RATE) / (GRAVITY * MOLAR_MASS_AIR)
ISA_INVERSE_EXPONENT = (GRAVITY * MOLAR_MASS_AIR) / (GAS_CONSTANT * LAPSE_RATE)

# Scale height of the linear fallback used when the ISA inversion breaks down
LINEAR_SCALE_HEIGHT_M = 8400.0

ArrayLike = Union[float, np.ndarray]


def _as_output(value: np.ndarray) -> ArrayLike:
    if np.ndim(value) == 0:
        return float(value)
    return value


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(np.sign(value) * np.floor(abs(value) + 0.5))


def pressure_to_altitude(
    pressure_hpa: ArrayLike,
    sea_level_pressure_hpa: float = STANDARD_SEA_LEVEL_PRESSURE_HPA,
    temperature_c: float = STANDARD_TEMPERATURE_C,
) -> ArrayLike:
    """
    Convert atmospheric pressure to altitude with the ISA formula.

    No bounds checking is performed on the pressure; callers must ensure it
    is positive.

    Args:
        pressure_hpa: Measured pressure. Scalar or array. Units: hPa.
        sea_level_pressure_hpa: Calibrated sea-level reference P0. Units: hPa.
        temperature_c: Air temperature. Units: °C. Default: 15 °C (ISA).

    Returns:
        Altitude above the P0 level in meters (float for scalar input,
        ndarray for array input). Negative below the reference level.

    Example:
        >>> round(pressure_to_altitude(1013.25), 6)
        0.0
        >>> round(pressure_to_altitude(977.7))  # ~300 m
        300
    """
    temperature_k = temperature_c + KELVIN_OFFSET
    ratio = np.asarray(pressure_hpa, dtype=float) / sea_level_pressure_hpa
    altitude = (temperature_k / LAPSE_RATE) * (1.0 - np.power(ratio, ISA_EXPONENT))
    return _as_output(altitude)


def altitude_to_floor(
    altitude_m: float,
    floor_height_m: float = DEFAULT_FLOOR_HEIGHT_M,
) -> int:
    """
    Convert altitude to a floor index.

    Floor 0 is the ground floor, negative floors are basements. Halfway
    altitudes round away from zero.

    Args:
        altitude_m: Altitude above the reference level [m].
        floor_height_m: Floor-to-floor height [m]. Default: 3.5 m.

    Returns:
        Floor index ``round(altitude_m / floor_height_m)``.

    Raises:
        ValueError: If floor_height_m is not positive.
    """
    if floor_height_m <= 0:
        raise ValueError(f"floor_height_m must be positive, got {floor_height_m}")
    return round_half_away(altitude_m / floor_height_m)


def sea_level_pressure_from_altitude(
    altitude_m: float,
    pressure_hpa: float,
    temperature_c: float = STANDARD_TEMPERATURE_C,
) -> float:
    """
    Recover the sea-level reference pressure from a known altitude.

    Inverts the ISA formula:
        P0 = P / (1 - (L * h) / T)^((g * M) / (R * L))

    When the base ``1 - L*h/T`` is not positive (altitude too high for the
    model) a linear approximation ``P0 ≈ P * (1 + h / 8400)`` is used.

    Args:
        altitude_m: Known altitude of the pressure sample [m].
        pressure_hpa: Pressure measured at that altitude [hPa].
        temperature_c: Air temperature [°C].

    Returns:
        Sea-level reference pressure P0 [hPa]. Feeding it back to
        ``pressure_to_altitude(pressure_hpa, P0)`` reproduces altitude_m.
    """
    temperature_k = temperature_c + KELVIN_OFFSET
    base = 1.0 - (LAPSE_RATE * altitude_m) / temperature_k

    if base <= 0:
        return float(pressure_hpa * (1.0 + altitude_m / LINEAR_SCALE_HEIGHT_M))

    return float(pressure_hpa / base ** ISA_INVERSE_EXPONENT)


def standard_pressure_at_altitude(
    altitude_m: ArrayLike,
    sea_level_pressure_hpa: float = STANDARD_SEA_LEVEL_PRESSURE_HPA,
    temperature_c: float = STANDARD_TEMPERATURE_C,
) -> ArrayLike:
    """
    ISA forward model: pressure expected at a given altitude.

        P = P0 * (1 - L * h / T)^((g * M) / (R * L))

    Exact inverse of ``pressure_to_altitude`` for the same P0 and temperature.

    Args:
        altitude_m: Altitude above the P0 level. Scalar or array. Units: m.
        sea_level_pressure_hpa: Sea-level reference pressure [hPa].
        temperature_c: Air temperature [°C].

    Returns:
        Pressure [hPa], float for scalar input and ndarray for array input.
    """
    temperature_k = temperature_c + KELVIN_OFFSET
    base = 1.0 - LAPSE_RATE * np.asarray(altitude_m, dtype=float) / temperature_k
    pressure = sea_level_pressure_hpa * np.power(base, ISA_INVERSE_EXPONENT)
    return _as_output(pressure)


def floor_description(floor: int) -> str:
    """Human-readable floor label ("Ground Floor", "Basement Level 2", "Floor 3")."""
    if floor == 0:
        return "Ground Floor"
    if floor < 0:
        return f"Basement Level {abs(floor)}"
    return f"Floor {floor}"
