"""
Scalar primitives shared by every indicator.

Numeric degeneracy (zero denominator, non-positive log argument, negative
sqrt argument, any non-finite input) returns the NaN sentinel and never
raises. Structural misuse (bad rounding digits, non-positive quantization
step, non-positive window length) raises IndicatorParameterError.

All functions are pure; this module holds no state.
"""

import math
from enum import Enum
from typing import Iterable, Sequence

import numpy as np

from ..config.constants import EPS, MAX_ROUND_DIGITS, MIN_ROUND_DIGITS
from .errors import IndicatorParameterError, require_period


NAN = float("nan")


# =============================================================================
# Validation & comparison
# =============================================================================

def is_finite(x: float) -> bool:
    """True for a finite float; False for NaN, +inf and -inf."""
    return math.isfinite(x)


def all_finite(values: Iterable[float]) -> bool:
    """True when every element is finite. An empty sequence is all-finite."""
    return bool(np.all(np.isfinite(np.asarray(values, dtype=np.float64))))


def almost_equal(a: float, b: float, eps: float = EPS) -> bool:
    """
    Tolerant equality.

    Two NaN sentinels compare equal; a sentinel against a finite value (or an
    infinity against anything) compares unequal.
    """
    if not math.isfinite(a) or not math.isfinite(b):
        return math.isnan(a) and math.isnan(b)
    return abs(a - b) <= eps


def clamp(x: float, lo: float, hi: float) -> float:
    if not math.isfinite(x):
        return NAN
    if x < lo:
        return lo
    if x > hi:
        return hi
    return x


def bound01(x: float) -> float:
    return clamp(x, 0.0, 1.0)


# =============================================================================
# Safe operations
# =============================================================================

def safe_divide(numerator: float, denominator: float) -> float:
    """numerator / denominator, or NaN when |denominator| < EPS or any input is invalid."""
    if not math.isfinite(numerator) or not math.isfinite(denominator):
        return NAN
    if abs(denominator) < EPS:
        return NAN
    return numerator / denominator


def safe_divide_or_default(numerator: float, denominator: float, default: float) -> float:
    result = safe_divide(numerator, denominator)
    return default if math.isnan(result) else result


def safe_sqrt(x: float) -> float:
    if not math.isfinite(x) or x < 0.0:
        return NAN
    return math.sqrt(x)


def safe_log(x: float) -> float:
    if not math.isfinite(x) or x <= 0.0:
        return NAN
    return math.log(x)


def safe_log10(x: float) -> float:
    if not math.isfinite(x) or x <= 0.0:
        return NAN
    return math.log10(x)


# =============================================================================
# Rounding & quantization
# =============================================================================

class RoundMode(str, Enum):
    """Deterministic rounding modes. Ties are resolved explicitly per mode."""
    HALF_AWAY_FROM_ZERO = "half_away_from_zero"
    HALF_TO_EVEN = "half_to_even"
    TRUNCATE = "truncate"
    FLOOR = "floor"
    CEILING = "ceiling"


def _round_integral(x: float, mode: RoundMode) -> float:
    """
    Round a finite float to an integral value.

    Ties are detected from floor/fraction arithmetic so the result does not
    depend on the platform's builtin round() tie policy.
    """
    if mode is RoundMode.TRUNCATE:
        return float(math.trunc(x))
    if mode is RoundMode.FLOOR:
        return float(math.floor(x))
    if mode is RoundMode.CEILING:
        return float(math.ceil(x))

    base = math.floor(x)
    frac = x - base
    if frac > 0.5:
        return float(base + 1)
    if frac < 0.5:
        return float(base)

    # Exact tie
    if mode is RoundMode.HALF_AWAY_FROM_ZERO:
        return float(base + 1) if x > 0 else float(base)
    if mode is RoundMode.HALF_TO_EVEN:
        return float(base) if base % 2 == 0 else float(base + 1)
    raise IndicatorParameterError("round", "mode", mode, f"as one of {[m.value for m in RoundMode]}")


def _coerce_mode(mode: RoundMode | str) -> RoundMode:
    if isinstance(mode, RoundMode):
        return mode
    try:
        return RoundMode(str(mode).lower())
    except ValueError:
        raise IndicatorParameterError(
            "round", "mode", mode, f"as one of {[m.value for m in RoundMode]}"
        ) from None


def round_to(value: float, digits: int, mode: RoundMode | str = RoundMode.HALF_AWAY_FROM_ZERO) -> float:
    """
    Round to a number of decimal digits.

    Args:
        value: Value to round (non-finite -> NaN)
        digits: Decimal digits in [0, 15]
        mode: RoundMode (or its string value)

    Raises:
        IndicatorParameterError: digits outside [0, 15] or unknown mode
    """
    if isinstance(digits, bool) or not isinstance(digits, int) or not (
        MIN_ROUND_DIGITS <= digits <= MAX_ROUND_DIGITS
    ):
        raise IndicatorParameterError(
            "round_to", "digits", digits,
            f"as an integer in [{MIN_ROUND_DIGITS}, {MAX_ROUND_DIGITS}]",
        )
    mode = _coerce_mode(mode)
    if not math.isfinite(value):
        return NAN

    multiplier = 10.0 ** digits
    scaled = value * multiplier
    if not math.isfinite(scaled):
        return value
    return _round_integral(scaled, mode) / multiplier


# Platform-style alias
normalize_double = round_to


def quantize(value: float, step: float, mode: RoundMode | str = RoundMode.HALF_AWAY_FROM_ZERO) -> float:
    """
    Snap value to an integer multiple of step.

    Raises:
        IndicatorParameterError: step <= 0 (or not finite) or unknown mode
    """
    if not math.isfinite(step) or step <= 0.0:
        raise IndicatorParameterError("quantize", "step", step, "as a finite number > 0")
    mode = _coerce_mode(mode)
    if not math.isfinite(value):
        return NAN
    return _round_integral(value / step, mode) * step


def round_to_tick(price: float, tick_size: float, mode: RoundMode | str = RoundMode.HALF_AWAY_FROM_ZERO) -> float:
    """Quantize a price to the instrument tick size."""
    return quantize(price, tick_size, mode)


# =============================================================================
# Window statistics over arrays
#
# The window is values[start : start + period]. An out-of-range window or
# any non-finite element gives NaN. period < 1 raises.
# =============================================================================

def _window(values: Sequence[float], start: int, period: int, owner: str) -> np.ndarray | None:
    period = require_period(owner, period)
    arr = np.asarray(values, dtype=np.float64)
    if start < 0 or start + period > arr.shape[0]:
        return None
    window = arr[start:start + period]
    if not np.all(np.isfinite(window)):
        return None
    return window


def window_sum(values: Sequence[float], start: int, period: int) -> float:
    window = _window(values, start, period, "window_sum")
    if window is None:
        return NAN
    total = 0.0
    for v in window:
        total += v
    return float(total)


def window_mean(values: Sequence[float], start: int, period: int) -> float:
    total = window_sum(values, start, period)
    return total / period if math.isfinite(total) else NAN


def window_variance(values: Sequence[float], start: int, period: int, sample: bool = True) -> float:
    """Sample (n-1) or population (n) variance. Sample variance of fewer than 2 points is NaN."""
    window = _window(values, start, period, "window_variance")
    if window is None or (sample and period < 2):
        return NAN
    mean = window_mean(values, start, period)
    sum_sq = 0.0
    for v in window:
        diff = v - mean
        sum_sq += diff * diff
    return float(sum_sq / (period - 1 if sample else period))


def window_stddev(values: Sequence[float], start: int, period: int, sample: bool = True) -> float:
    return safe_sqrt(window_variance(values, start, period, sample))


def window_covariance(x: Sequence[float], y: Sequence[float], start: int, period: int,
                      sample: bool = True) -> float:
    wx = _window(x, start, period, "window_covariance")
    wy = _window(y, start, period, "window_covariance")
    if wx is None or wy is None or (sample and period < 2):
        return NAN
    mean_x = window_mean(x, start, period)
    mean_y = window_mean(y, start, period)
    sum_prod = 0.0
    for vx, vy in zip(wx, wy):
        sum_prod += (vx - mean_x) * (vy - mean_y)
    return float(sum_prod / (period - 1 if sample else period))


def window_correlation(x: Sequence[float], y: Sequence[float], start: int, period: int) -> float:
    """Pearson correlation; NaN when either side has zero dispersion."""
    cov = window_covariance(x, y, start, period, sample=True)
    std_x = window_stddev(x, start, period, sample=True)
    std_y = window_stddev(y, start, period, sample=True)
    return safe_divide(cov, std_x * std_y)


# =============================================================================
# Affine transforms & helpers
# =============================================================================

def lerp(a: float, b: float, t: float) -> float:
    if not (math.isfinite(a) and math.isfinite(b) and math.isfinite(t)):
        return NAN
    return a + t * (b - a)


def unlerp(a: float, b: float, x: float) -> float:
    """Inverse of lerp; NaN when a == b."""
    if not (math.isfinite(a) and math.isfinite(b) and math.isfinite(x)):
        return NAN
    if almost_equal(a, b):
        return NAN
    return (x - a) / (b - a)


def map_to_range(x: float, in_lo: float, in_hi: float, out_lo: float, out_hi: float,
                 clamp_result: bool = False) -> float:
    t = unlerp(in_lo, in_hi, x)
    if not math.isfinite(t):
        return NAN
    result = lerp(out_lo, out_hi, t)
    if clamp_result:
        result = clamp(result, min(out_lo, out_hi), max(out_lo, out_hi))
    return result


def sign(x: float) -> int:
    """-1, 0 or 1 with an EPS dead-band around zero. Non-finite -> 0."""
    if not math.isfinite(x):
        return 0
    if x > EPS:
        return 1
    if x < -EPS:
        return -1
    return 0


def percent_change(current: float, previous: float) -> float:
    """(current - previous) / previous * 100, NaN when previous ~ 0."""
    if not math.isfinite(current) or not math.isfinite(previous):
        return NAN
    if abs(previous) < EPS:
        return NAN
    return (current - previous) / previous * 100.0


# =============================================================================
# Array utilities
# =============================================================================

def fill(length: int, value: float) -> np.ndarray:
    if length < 0:
        raise IndicatorParameterError("fill", "length", length, "as an integer >= 0")
    return np.full(length, value, dtype=np.float64)


def fill_nan(length: int) -> np.ndarray:
    return fill(length, NAN)
