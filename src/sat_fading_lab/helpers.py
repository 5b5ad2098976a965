from __future__ import annotations
import math
from typing import Optional, Union

from .errors import ConfigurationError


# --- Input Validation Helpers ---

def validate_int(
    name: str,
    value: Union[int, float],
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    """
    Validate that value is an integer within optional bounds.

    Parameters
    ----------
    name : str
        Parameter name for error messages.
    value : int or float
        Value to validate.
    min_value : int, optional
        Minimum allowed value (inclusive).
    max_value : int, optional
        Maximum allowed value (inclusive).

    Returns
    -------
    int
        The validated integer value.

    Raises
    ------
    ConfigurationError
        If value is not a valid integer or out of bounds.
    """
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ConfigurationError(f"{name}: expected int, got {type(value).__name__} ({value!r})")
    if isinstance(value, float) and not value.is_integer():
        raise ConfigurationError(f"{name}: expected int, got float {value}")
    int_val = int(value)
    if min_value is not None and int_val < min_value:
        raise ConfigurationError(f"{name}: {int_val} < minimum {min_value}")
    if max_value is not None and int_val > max_value:
        raise ConfigurationError(f"{name}: {int_val} > maximum {max_value}")
    return int_val


def validate_float(
    name: str,
    value: Union[int, float],
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    allow_nan: bool = False,
    allow_inf: bool = False,
) -> float:
    """
    Validate that value is a float within optional bounds.

    Parameters
    ----------
    name : str
        Parameter name for error messages.
    value : int or float
        Value to validate.
    min_value : float, optional
        Minimum allowed value (inclusive).
    max_value : float, optional
        Maximum allowed value (inclusive).
    allow_nan : bool
        Whether to allow NaN values.
    allow_inf : bool
        Whether to allow infinite values.

    Returns
    -------
    float
        The validated float value.

    Raises
    ------
    ConfigurationError
        If value is not a valid float or out of bounds.
    """
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ConfigurationError(f"{name}: expected float, got {type(value).__name__} ({value!r})")
    float_val = float(value)
    if math.isnan(float_val) and not allow_nan:
        raise ConfigurationError(f"{name}: NaN not allowed")
    if math.isinf(float_val) and not allow_inf:
        raise ConfigurationError(f"{name}: infinity not allowed")
    if min_value is not None and float_val < min_value:
        raise ConfigurationError(f"{name}: {float_val} < minimum {min_value}")
    if max_value is not None and float_val > max_value:
        raise ConfigurationError(f"{name}: {float_val} > maximum {max_value}")
    return float_val


def validate_seed(seed: Optional[int]) -> Optional[int]:
    """
    Validate that seed is None or a valid integer for numpy RNG.

    Parameters
    ----------
    seed : int or None
        Random seed value.

    Returns
    -------
    int or None
        The validated seed.

    Raises
    ------
    ConfigurationError
        If seed is not None or a valid non-negative integer.
    """
    if seed is None:
        return None
    if not isinstance(seed, int) or isinstance(seed, bool):
        raise ConfigurationError(f"seed: expected int or None, got {type(seed).__name__} ({seed!r})")
    if seed < 0:
        raise ConfigurationError(f"seed: {seed} < minimum 0")
    return seed


# --- Decibel conversions ---

def db_to_linear(value_db: float) -> float:
    """Power ratio from dB."""
    return 10.0 ** (value_db / 10.0)


def linear_to_db(value: float) -> float:
    """dB from power ratio. Non-positive input maps to -inf."""
    if value <= 0.0:
        return -math.inf
    return 10.0 * math.log10(value)


def amplitude_to_db(amplitude: float, floor_db: float) -> float:
    """Envelope amplitude to dB, clamped at floor_db."""
    if amplitude <= 0.0:
        return floor_db
    return max(floor_db, 20.0 * math.log10(amplitude))
