"""
Price shortcuts and per-bar range components.

Scalar helpers return NaN on any non-finite input. The *_series helpers work
on whole numpy arrays and put NaN at index 0 where a previous bar is needed.
"""

import math
from typing import Sequence

import numpy as np

from ..config.constants import (
    DEFAULT_DOJI_BODY_RATIO,
    EPS,
    GARMAN_KLASS_CO_FACTOR,
    GARMAN_KLASS_HL_FACTOR,
)
from .errors import SeriesLengthError, require_period
from .mathbase import NAN, percent_change, safe_divide, safe_log


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


# =============================================================================
# Price shortcuts
# =============================================================================

def hl2(high: float, low: float) -> float:
    if not _finite(high, low):
        return NAN
    return (high + low) * 0.5


def hlc3(high: float, low: float, close: float) -> float:
    if not _finite(high, low, close):
        return NAN
    return (high + low + close) / 3.0


def ohlc4(open: float, high: float, low: float, close: float) -> float:
    if not _finite(open, high, low, close):
        return NAN
    return (open + high + low + close) * 0.25


def bar_range(high: float, low: float) -> float:
    if not _finite(high, low):
        return NAN
    return high - low


# =============================================================================
# Candle anatomy
# =============================================================================

def real_body(open: float, close: float) -> float:
    """|close - open|"""
    if not _finite(open, close):
        return NAN
    return abs(close - open)


def upper_wick(open: float, high: float, close: float) -> float:
    """high - max(open, close)"""
    if not _finite(open, high, close):
        return NAN
    return high - max(open, close)


def lower_wick(open: float, low: float, close: float) -> float:
    """min(open, close) - low"""
    if not _finite(open, low, close):
        return NAN
    return min(open, close) - low


def body_to_range(open: float, high: float, low: float, close: float) -> float:
    """Real body as a fraction of the bar range. NaN on a zero-range bar."""
    return safe_divide(real_body(open, close), bar_range(high, low))


def is_bull(open: float, close: float) -> bool:
    if not _finite(open, close):
        return False
    return close > open + EPS


def is_bear(open: float, close: float) -> bool:
    if not _finite(open, close):
        return False
    return close < open - EPS


def is_doji(open: float, high: float, low: float, close: float,
            max_body_ratio: float = DEFAULT_DOJI_BODY_RATIO) -> bool:
    """Body no larger than max_body_ratio of the range. Zero-range bars are not dojis."""
    ratio = body_to_range(open, high, low, close)
    if not math.isfinite(ratio):
        return False
    return ratio <= max_body_ratio


# =============================================================================
# Bar relations
# =============================================================================
# Predicates return False when any input is invalid.

def is_inside_bar(prev_high: float, prev_low: float, high: float, low: float) -> bool:
    if not _finite(prev_high, prev_low, high, low):
        return False
    return high <= prev_high and low >= prev_low


def is_outside_bar(prev_high: float, prev_low: float, high: float, low: float) -> bool:
    if not _finite(prev_high, prev_low, high, low):
        return False
    return high > prev_high and low < prev_low


def gap_up(prev_high: float, low: float) -> bool:
    if not _finite(prev_high, low):
        return False
    return low > prev_high + EPS


def gap_down(prev_low: float, high: float) -> bool:
    if not _finite(prev_low, high):
        return False
    return high < prev_low - EPS


def _range_extreme(ranges: Sequence[float], n: int, narrowest: bool) -> bool:
    n = require_period("range_extreme", n, name="n")
    r = _as_array(ranges)
    if r.shape[0] < n:
        return False
    window = r[-n:]
    if not np.all(np.isfinite(window)):
        return False
    current, others = window[-1], window[:-1]
    if narrowest:
        return bool(np.all(others > current))
    return bool(np.all(others < current))


def is_narrow_range(ranges: Sequence[float], n: int = 4) -> bool:
    """NRn: the last range is strictly the smallest of the last n."""
    return _range_extreme(ranges, n, narrowest=True)


def is_wide_range(ranges: Sequence[float], n: int = 4) -> bool:
    """WRn: the last range is strictly the largest of the last n."""
    return _range_extreme(ranges, n, narrowest=False)


# =============================================================================
# True range and directional movement
# =============================================================================

def directional_movement(high: float, low: float, prev_high: float, prev_low: float) -> tuple[float, float]:
    """
    Wilder +DM / -DM for one bar.

    up = high - prev_high, down = prev_low - low
    +DM = up when up > down and up > 0, else 0
    -DM = down when down > up and down > 0, else 0

    Both are NaN when any input (including the previous bar) is invalid.
    """
    if not _finite(high, low, prev_high, prev_low):
        return NAN, NAN
    up = high - prev_high
    down = prev_low - low
    plus = up if (up > down and up > 0) else 0.0
    minus = down if (down > up and down > 0) else 0.0
    return plus, minus


def true_range(high: float, low: float, close: float, prev_close: float) -> float:
    """
    Wilder true range: max(H-L, |H-Cprev|, |L-Cprev|).

    NaN when prev_close is NaN (first bar) or any input is invalid. The
    current close is accepted for signature symmetry with the batch helper.
    """
    if not _finite(high, low, close, prev_close):
        return NAN
    return max(high - low, abs(high - prev_close), abs(low - prev_close))


def log_ratio(a: float, b: float) -> float:
    """ln(a / b), NaN for non-positive or degenerate ratios."""
    return safe_log(safe_divide(a, b))


# =============================================================================
# Per-bar variance components for range-based estimators
# =============================================================================

def parkinson_component(high: float, low: float) -> float:
    """ln(H/L)^2"""
    hl = log_ratio(high, low)
    return hl * hl if math.isfinite(hl) else NAN


def garman_klass_component(open: float, high: float, low: float, close: float) -> float:
    """0.5 * ln(H/L)^2 - (2 ln 2 - 1) * ln(C/O)^2"""
    hl = log_ratio(high, low)
    co = log_ratio(close, open)
    if not _finite(hl, co):
        return NAN
    return GARMAN_KLASS_HL_FACTOR * hl * hl - GARMAN_KLASS_CO_FACTOR * co * co


def rogers_satchell_component(open: float, high: float, low: float, close: float) -> float:
    """ln(H/C) * ln(H/O) + ln(L/C) * ln(L/O)"""
    hc = log_ratio(high, close)
    ho = log_ratio(high, open)
    lc = log_ratio(low, close)
    lo = log_ratio(low, open)
    if not _finite(hc, ho, lc, lo):
        return NAN
    return hc * ho + lc * lo


# =============================================================================
# Batch series helpers
# =============================================================================

def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def true_range_series(high: Sequence[float], low: Sequence[float], close: Sequence[float]) -> np.ndarray:
    """True range per bar. Index 0 is NaN (no previous close)."""
    h, l, c = _as_array(high), _as_array(low), _as_array(close)
    if not (h.shape[0] == l.shape[0] == c.shape[0]):
        raise SeriesLengthError({"high": h.shape[0], "low": l.shape[0], "close": c.shape[0]})
    out = np.full(h.shape[0], np.nan)
    for i in range(1, h.shape[0]):
        out[i] = true_range(h[i], l[i], c[i], c[i - 1])
    return out


def change_series(prices: Sequence[float]) -> np.ndarray:
    p = _as_array(prices)
    out = np.full(p.shape[0], np.nan)
    if p.shape[0] > 1:
        with np.errstate(invalid="ignore"):
            diff = p[1:] - p[:-1]
        diff[~np.isfinite(diff)] = np.nan
        out[1:] = diff
    return out


def percent_change_series(prices: Sequence[float]) -> np.ndarray:
    p = _as_array(prices)
    out = np.full(p.shape[0], np.nan)
    for i in range(1, p.shape[0]):
        out[i] = percent_change(p[i], p[i - 1])
    return out


def log_return_series(prices: Sequence[float]) -> np.ndarray:
    """ln(p[i] / p[i-1]); NaN at index 0 and wherever either price is non-positive."""
    p = _as_array(prices)
    out = np.full(p.shape[0], np.nan)
    for i in range(1, p.shape[0]):
        out[i] = log_ratio(p[i], p[i - 1])
    return out


def cumulative_return(returns: Sequence[float], log_returns: bool = False) -> float:
    """
    Compound a sequence of per-bar returns.

    Simple returns: prod(1 + r) - 1. Log returns: exp(sum(r)) - 1.
    NaN for an empty sequence or when any return is invalid.
    """
    r = _as_array(returns)
    if r.shape[0] == 0 or not np.all(np.isfinite(r)):
        return NAN
    if log_returns:
        return math.exp(float(np.sum(r))) - 1.0
    return float(np.prod(1.0 + r)) - 1.0


def directional_movement_series(high: Sequence[float], low: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
    """(+DM, -DM) per bar. Index 0 is NaN (no previous bar)."""
    h, l = _as_array(high), _as_array(low)
    if h.shape[0] != l.shape[0]:
        raise SeriesLengthError({"high": h.shape[0], "low": l.shape[0]})
    plus = np.full(h.shape[0], np.nan)
    minus = np.full(h.shape[0], np.nan)
    for i in range(1, h.shape[0]):
        plus[i], minus[i] = directional_movement(h[i], l[i], h[i - 1], l[i - 1])
    return plus, minus


# =============================================================================
# Swings
# =============================================================================

def _is_swing(values: np.ndarray, index: int, left: int, right: int, high: bool) -> bool:
    if index < left or index + right >= values.shape[0]:
        return False
    window = values[index - left:index + right + 1]
    if not np.all(np.isfinite(window)):
        return False
    pivot = values[index]
    before, after = values[index - left:index], values[index + 1:index + right + 1]
    # Strict on the left, ties allowed on the right
    if high:
        return bool(np.all(before < pivot) and np.all(after <= pivot))
    return bool(np.all(before > pivot) and np.all(after >= pivot))


def is_swing_high(high: Sequence[float], index: int, left: int, right: int) -> bool:
    """
    True when high[index] is a pivot: strictly above the `left` bars before
    it and not exceeded by the `right` bars after it.

    The check needs `right` bars after the pivot, so it is only decidable
    once index + right bars exist.
    """
    return _is_swing(_as_array(high), index, left, right, high=True)


def is_swing_low(low: Sequence[float], index: int, left: int, right: int) -> bool:
    """Mirror of is_swing_high for lows."""
    return _is_swing(_as_array(low), index, left, right, high=False)


def find_swing_highs(high: Sequence[float], left: int, right: int) -> list[int]:
    """Pivot indices of every swing high (confirmed `right` bars later)."""
    h = _as_array(high)
    return [i for i in range(left, h.shape[0] - right) if _is_swing(h, i, left, right, high=True)]


def find_swing_lows(low: Sequence[float], left: int, right: int) -> list[int]:
    l = _as_array(low)
    return [i for i in range(left, l.shape[0] - right) if _is_swing(l, i, left, right, high=False)]


# =============================================================================
# Heikin-Ashi
# =============================================================================

def heikin_ashi_bar(open: float, high: float, low: float, close: float,
                    prev_ha_open: float, prev_ha_close: float) -> tuple[float, float, float, float]:
    """
    One Heikin-Ashi candle.

    ha_close = (O + H + L + C) / 4
    ha_open  = (prev_ha_open + prev_ha_close) / 2, or (O + C) / 2 on the first
               bar (pass NaN for both previous values)
    ha_high  = max(H, ha_open, ha_close)
    ha_low   = min(L, ha_open, ha_close)
    """
    if not _finite(open, high, low, close):
        return NAN, NAN, NAN, NAN
    ha_close = ohlc4(open, high, low, close)
    if math.isnan(prev_ha_open) and math.isnan(prev_ha_close):
        ha_open = (open + close) * 0.5
    else:
        ha_open = (prev_ha_open + prev_ha_close) * 0.5
    if not math.isfinite(ha_open):
        return NAN, NAN, NAN, NAN
    return ha_open, max(high, ha_open, ha_close), min(low, ha_open, ha_close), ha_close
