"""
Vectorized reference implementation of every registered indicator.

This is the second, independently written implementation used by the parity
audit: whole-array numpy/pandas code that never touches the incremental
classes. It shares only the structural parameters (read back from the
factory so defaults stay in one place).

Conventions shared with the incremental engine:
- Non-finite inputs are the NaN sentinel.
- Windowed statistics emit NaN while a sentinel is inside the window.
- Recursive filters are poisoned by the first sentinel they receive.
- A downstream stage starts receiving samples at the bar where its upstream
  stage becomes ready, so every helper takes a ``start`` offset.
"""

import math
from collections.abc import Callable
from typing import Any

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view

from ..config.constants import EPS, GARMAN_KLASS_CO_FACTOR, PARKINSON_FACTOR, YANG_ZHANG_ALPHA
from ..core.errors import MissingInputError, SeriesLengthError
from .incremental.factory import create_incremental_indicator, get_indicator_info


Series = dict[str, np.ndarray]
Result = np.ndarray | dict[str, np.ndarray]


# =============================================================================
# Array helpers
# =============================================================================

def _clean(x: Any) -> np.ndarray:
    arr = np.array(x, dtype=np.float64, copy=True)
    arr[~np.isfinite(arr)] = np.nan
    return arr


def _nan(n: int) -> np.ndarray:
    return np.full(n, np.nan)


def _place(n: int, start: int, values: np.ndarray) -> np.ndarray:
    out = _nan(n)
    out[start:start + values.shape[0]] = values
    return out


def _safe_div(num: np.ndarray, den: np.ndarray) -> np.ndarray:
    num = np.asarray(num, dtype=np.float64)
    den = np.asarray(den, dtype=np.float64)
    bad = ~np.isfinite(num) | ~np.isfinite(den) | (np.abs(den) < EPS)
    with np.errstate(divide="ignore", invalid="ignore"):
        out = num / np.where(bad, 1.0, den)
    out[bad] = np.nan
    return out


def _safe_log_ratio(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    ratio = _safe_div(a, b)
    out = _nan(ratio.shape[0])
    ok = np.isfinite(ratio) & (ratio > 0)
    out[ok] = np.log(ratio[ok])
    return out


def _shift(x: np.ndarray, k: int) -> np.ndarray:
    out = _nan(x.shape[0])
    if k == 0:
        return x.copy()
    if k < x.shape[0]:
        out[k:] = x[:-k]
    return out


# =============================================================================
# Recursive filters
# =============================================================================

def filter_warmup(length: int, seed: str) -> int:
    return length if seed in ("rolling_mean", "defer") else 1


def recursive(x: np.ndarray, alpha: float, length: int, seed: str, start: int = 0) -> np.ndarray:
    """
    First-order exponential recursion over x[start:], cut at the first sentinel.

    Uses pandas ewm(adjust=False), whose recursion is
    y[0] = x[0], y[t] = (1 - alpha) * y[t-1] + alpha * x[t].
    """
    n = x.shape[0]
    out = _nan(n)
    y = x[start:]
    bad = np.flatnonzero(np.isnan(y))
    k = int(bad[0]) if bad.size else y.shape[0]
    y = y[:k]
    if k == 0:
        return out

    if seed == "rolling_mean":
        if k < length:
            return out
        seeded = np.concatenate(([y[:length].mean()], y[length:]))
        values = pd.Series(seeded).ewm(alpha=alpha, adjust=False).mean().to_numpy()
        out[start + length - 1:start + k] = values
    elif seed == "zero":
        values = pd.Series(np.concatenate(([0.0], y))).ewm(alpha=alpha, adjust=False).mean().to_numpy()
        out[start:start + k] = values[1:]
    else:
        values = pd.Series(y).ewm(alpha=alpha, adjust=False).mean().to_numpy()
        out[start:start + k] = values
        if seed == "defer":
            out[start:start + min(length - 1, k)] = np.nan
    return out


def ema_alpha(length: int) -> float:
    return 2.0 / (length + 1.0)


def rma_alpha(length: int) -> float:
    return 1.0 / length


# =============================================================================
# Windows
# =============================================================================

def rolling(x: np.ndarray, length: int, how: str, start: int = 0) -> np.ndarray:
    """pandas rolling aggregate over x[start:] with a full-window requirement."""
    n = x.shape[0]
    if n - start < 1:
        return _nan(n)
    r = pd.Series(x[start:]).rolling(window=length, min_periods=length)
    return _place(n, start, getattr(r, how)().to_numpy())


def _windows(x: np.ndarray, length: int, start: int = 0) -> np.ndarray | None:
    y = x[start:]
    if y.shape[0] < length:
        return None
    return sliding_window_view(y, length)


def _from_windows(n: int, length: int, start: int, values: np.ndarray) -> np.ndarray:
    return _place(n, start + length - 1, values)


def window_variance(x: np.ndarray, length: int, sample: bool, start: int = 0) -> np.ndarray:
    w = _windows(x, length, start)
    if w is None:
        return _nan(x.shape[0])
    return _from_windows(x.shape[0], length, start, w.var(axis=1, ddof=1 if sample else 0))


def window_std(x: np.ndarray, length: int, sample: bool, start: int = 0) -> np.ndarray:
    return np.sqrt(window_variance(x, length, sample, start))


def weighted(x: np.ndarray, weights: np.ndarray, start: int = 0) -> np.ndarray:
    length = weights.shape[0]
    w = _windows(x, length, start)
    if w is None:
        return _nan(x.shape[0])
    return _from_windows(x.shape[0], length, start, (w @ weights) / weights.sum())


def linear_weights(length: int) -> np.ndarray:
    return np.arange(1, length + 1, dtype=np.float64)


def triangular_weights(length: int) -> np.ndarray:
    i = np.arange(length)
    mid = (length + 1) // 2
    return np.where(i < mid, i + 1, length - i).astype(np.float64)


def regression(x: np.ndarray, length: int, start: int = 0) -> tuple[np.ndarray, np.ndarray]:
    """(endpoint, slope) of the least-squares line through each window."""
    n = x.shape[0]
    w = _windows(x, length, start)
    if w is None:
        return _nan(n), _nan(n)
    xs = np.arange(length, dtype=np.float64)
    x_mean = xs.mean()
    y_mean = w.mean(axis=1)
    slope = ((w - y_mean[:, None]) @ (xs - x_mean)) / ((xs - x_mean) ** 2).sum()
    endpoint = y_mean + slope * (length - 1 - x_mean)
    return _from_windows(n, length, start, endpoint), _from_windows(n, length, start, slope)


def rate_of_change(x: np.ndarray, length: int, scale: float, start: int = 0) -> np.ndarray:
    n = x.shape[0]
    y = x[start:]
    past = _shift(y, length)
    return _place(n, start, _safe_div((y - past) * scale, past))


def moving_average(x: np.ndarray, kind: str, length: int, seed: str = "rolling_mean",
                   start: int = 0) -> tuple[np.ndarray, int]:
    """(values, warmup) for a moving average of the given kind."""
    if kind == "sma":
        return rolling(x, length, "mean", start), length
    if kind == "ema":
        return recursive(x, ema_alpha(length), length, seed, start), filter_warmup(length, seed)
    if kind == "rma":
        return recursive(x, rma_alpha(length), length, seed, start), filter_warmup(length, seed)
    return weighted(x, linear_weights(length), start), length


# =============================================================================
# Price components
# =============================================================================

def true_range(high: np.ndarray, low: np.ndarray, close: np.ndarray) -> np.ndarray:
    prev = _shift(close, 1)
    tr = np.maximum(high - low, np.maximum(np.abs(high - prev), np.abs(low - prev)))
    tr[np.isnan(close)] = np.nan
    return tr


def atr(high, low, close, length: int, kind: str, seed: str = "rolling_mean") -> tuple[np.ndarray, int]:
    values, w = moving_average(true_range(high, low, close), kind, length, seed, start=1)
    return values, 1 + w


# =============================================================================
# Reference functions per registered type
# =============================================================================

def _ref_filter(alpha_fn: Callable[[dict], tuple[float, int]]) -> Callable[[Series, dict], Result]:
    def ref(s: Series, p: dict) -> Result:
        alpha, length = alpha_fn(p)
        return recursive(s["close"], alpha, length, p["seed"])
    return ref


def _ref_dema(s: Series, p: dict) -> Result:
    length, seed = p["length"], p["seed"]
    w = filter_warmup(length, seed)
    e1 = recursive(s["close"], ema_alpha(length), length, seed)
    e2 = recursive(e1, ema_alpha(length), length, seed, start=w - 1)
    return 2.0 * e1 - e2


def _ref_tema(s: Series, p: dict) -> Result:
    length, seed = p["length"], p["seed"]
    w = filter_warmup(length, seed)
    a = ema_alpha(length)
    e1 = recursive(s["close"], a, length, seed)
    e2 = recursive(e1, a, length, seed, start=w - 1)
    e3 = recursive(e2, a, length, seed, start=2 * (w - 1))
    return 3.0 * e1 - 3.0 * e2 + e3


def _ref_t3(s: Series, p: dict) -> Result:
    length, seed, b = p["length"], p["seed"], p["v_factor"]
    w = filter_warmup(length, seed)
    a = ema_alpha(length)
    stages = []
    x = s["close"]
    for k in range(6):
        x = recursive(x, a, length, seed, start=k * (w - 1))
        stages.append(x)
    c1 = -b ** 3
    c2 = 3 * b ** 2 + 3 * b ** 3
    c3 = -6 * b ** 2 - 3 * b - 3 * b ** 3
    c4 = 1 + 3 * b + b ** 3 + 3 * b ** 2
    e3, e4, e5, e6 = stages[2:]
    return c1 * e6 + c2 * e5 + c3 * e4 + c4 * e3


def _ref_tma(s: Series, p: dict) -> Result:
    length = p["length"]
    first = rolling(s["close"], length, "mean")
    return rolling(first, length, "mean", start=length - 1)


def _ref_hma(s: Series, p: dict) -> Result:
    length = p["length"]
    half = max(1, math.ceil(length / 2))
    root = max(1, math.ceil(math.sqrt(length)))
    x = s["close"]
    raw = 2.0 * weighted(x, linear_weights(half)) - weighted(x, linear_weights(length))
    return weighted(raw, linear_weights(root), start=length - 1)


def _ref_zlema(s: Series, p: dict) -> Result:
    length, seed = p["length"], p["seed"]
    lag = (length - 1) // 2
    x = s["close"]
    delagged = x + (x - _shift(x, lag))
    return recursive(delagged, ema_alpha(length), length, seed, start=lag)


def _ref_kama(s: Series, p: dict) -> Result:
    x = s["close"]
    length, fast, slow = p["length"], p["fast"], p["slow"]
    n = x.shape[0]
    out = _nan(n)
    bad = np.flatnonzero(np.isnan(x))
    k = int(bad[0]) if bad.size else n
    if k < length:
        return out
    fast_sc = 2.0 / (fast + 1.0)
    slow_sc = 2.0 / (slow + 1.0)
    kama = x[:length].mean()
    out[length - 1] = kama
    for i in range(length, k):
        change = abs(x[i] - x[i - length])
        volatility = np.abs(np.diff(x[i - length:i + 1])).sum()
        if volatility >= EPS:
            sc = (change / volatility * (fast_sc - slow_sc) + slow_sc) ** 2
            kama = sc * x[i] + (1.0 - sc) * kama
        out[i] = kama
    return out


def _ref_zscore(s: Series, p: dict) -> Result:
    x, length = s["close"], p["length"]
    mean = rolling(x, length, "mean")
    std = window_std(x, length, p["sample"])
    return _safe_div(x - mean, std)


def _ref_linreg(s: Series, p: dict) -> Result:
    endpoint, slope = regression(s["close"], p["length"])
    return {"endpoint": endpoint, "slope": slope}


def _paired_moments(s: Series, length: int) -> tuple[np.ndarray, np.ndarray, np.ndarray] | None:
    """Sample (cov, var_x, var_y) per full window, or None when no window fits."""
    wx = _windows(s["x"], length)
    wy = _windows(s["y"], length)
    if wx is None:
        return None
    dx = wx - wx.mean(axis=1, keepdims=True)
    dy = wy - wy.mean(axis=1, keepdims=True)
    cov = (dx * dy).sum(axis=1) / (length - 1)
    var_x = (dx * dx).sum(axis=1) / (length - 1)
    var_y = (dy * dy).sum(axis=1) / (length - 1)
    return cov, var_x, var_y


def _ref_covariance(s: Series, p: dict) -> Result:
    n, length = s["x"].shape[0], p["length"]
    moments = _paired_moments(s, length)
    if moments is None:
        return _nan(n)
    return _from_windows(n, length, 0, moments[0])


def _ref_correlation(s: Series, p: dict) -> Result:
    n, length = s["x"].shape[0], p["length"]
    moments = _paired_moments(s, length)
    if moments is None:
        return _nan(n)
    cov, var_x, var_y = moments
    return _from_windows(n, length, 0, _safe_div(cov, np.sqrt(var_x) * np.sqrt(var_y)))


def _ref_atr(s: Series, p: dict) -> Result:
    values, _ = atr(s["high"], s["low"], s["close"], p["length"], p["ma"], p["seed"])
    return values


def _ref_natr(s: Series, p: dict) -> Result:
    values, _ = atr(s["high"], s["low"], s["close"], p["length"], p["ma"])
    scale = 100.0 if p["scale_to_100"] else 1.0
    return _safe_div(values * scale, s["close"])


def _bands(basis: np.ndarray, dev: np.ndarray, mult: float, warmup: int) -> dict[str, np.ndarray]:
    basis = basis.copy()
    basis[:warmup - 1] = np.nan
    upper = basis + mult * dev
    lower = basis - mult * dev
    return {
        "upper": upper,
        "basis": basis,
        "lower": lower,
        "bandwidth": _safe_div(upper - lower, basis),
    }


def _ref_bbands(s: Series, p: dict) -> Result:
    x, length = s["close"], p["length"]
    basis, w_basis = moving_average(x, p["ma"], length)
    dev = window_std(x, length, p["sample"])
    out = _bands(basis, dev, p["mult"], max(w_basis, length))
    out["percent_b"] = _safe_div(x - out["lower"], out["upper"] - out["lower"])
    return out


def _ref_keltner(s: Series, p: dict) -> Result:
    basis, w_basis = moving_average(s["close"], p["ma"], p["length"])
    dev_kind = p["atr_ma"] if p["deviation"] == "atr" else "ema"
    dev, w_dev = atr(s["high"], s["low"], s["close"], p["atr_length"], dev_kind)
    return _bands(basis, dev, p["mult"], max(w_basis, w_dev))


def _ref_atr_bands(s: Series, p: dict) -> Result:
    basis, w_basis = moving_average(s["close"], p["ma"], p["length"])
    dev, w_dev = atr(s["high"], s["low"], s["close"], p["atr_length"], p["atr_ma"])
    out = _bands(basis, dev, p["mult"], max(w_basis, w_dev))
    del out["bandwidth"]
    return out


def _ref_donchian(s: Series, p: dict) -> Result:
    upper = rolling(s["high"], p["length"], "max")
    lower = rolling(s["low"], p["length"], "min")
    mid = (upper + lower) / 2.0
    width = upper - lower
    return {
        "upper": upper,
        "mid": mid,
        "lower": lower,
        "width": width,
        "percent_width": _safe_div(width, mid),
    }


def _ref_chaikin(s: Series, p: dict) -> Result:
    smoothed, w = moving_average(s["high"] - s["low"], p["ma"], p["ma_length"])
    scale = 100.0 if p["scale_to_100"] else 1.0
    return rate_of_change(smoothed, p["roc_length"], scale, start=w - 1)


def _annualize(p: dict) -> float:
    return math.sqrt(p["trading_days"] / p["length"]) if p["annualize"] else 1.0


def _vol_from_mean(mean_variance: np.ndarray, scale: float) -> np.ndarray:
    out = np.sqrt(np.clip(mean_variance, 0.0, None)) * scale
    out[np.isnan(mean_variance)] = np.nan
    return out


def _ref_historical(s: Series, p: dict) -> Result:
    returns = _safe_log_ratio(s["close"], _shift(s["close"], 1))
    return window_std(returns, p["length"], sample=True, start=1) * _annualize(p)


def _ref_parkinson(s: Series, p: dict) -> Result:
    hl = _safe_log_ratio(s["high"], s["low"])
    mean = rolling(hl * hl, p["length"], "mean")
    return _vol_from_mean(PARKINSON_FACTOR * mean, _annualize(p))


def _ref_garman_klass(s: Series, p: dict) -> Result:
    hl = _safe_log_ratio(s["high"], s["low"])
    co = _safe_log_ratio(s["close"], s["open"])
    mean = rolling(0.5 * hl * hl - GARMAN_KLASS_CO_FACTOR * co * co, p["length"], "mean")
    return _vol_from_mean(mean, _annualize(p))


def _rs_component(s: Series) -> np.ndarray:
    o, h, l, c = s["open"], s["high"], s["low"], s["close"]
    return (_safe_log_ratio(h, c) * _safe_log_ratio(h, o)
            + _safe_log_ratio(l, c) * _safe_log_ratio(l, o))


def _ref_rogers_satchell(s: Series, p: dict) -> Result:
    mean = rolling(_rs_component(s), p["length"], "mean")
    return _vol_from_mean(mean, _annualize(p))


def _ref_yang_zhang(s: Series, p: dict) -> Result:
    length = p["length"]
    overnight = _safe_log_ratio(s["open"], _shift(s["close"], 1))
    open_close = _safe_log_ratio(s["close"], s["open"])
    rs = _rs_component(s)
    invalid = np.isnan(overnight) | np.isnan(open_close) | np.isnan(rs)
    for arr in (overnight, open_close, rs):
        arr[invalid] = np.nan

    k = YANG_ZHANG_ALPHA / (1.0 + YANG_ZHANG_ALPHA + (length + 1.0) / (length - 1.0))
    var_o = window_variance(overnight, length, sample=True, start=1)
    var_oc = window_variance(open_close, length, sample=True, start=1)
    mean_rs = rolling(rs, length, "mean", start=1)
    variance = var_o + k * var_oc + (1.0 - k) * np.clip(mean_rs, 0.0, None)
    return _vol_from_mean(variance, _annualize(p))


# =============================================================================
# Price transforms
# =============================================================================

def _ref_directional_movement(s: Series, p: dict) -> Result:
    up = s["high"] - _shift(s["high"], 1)
    down = _shift(s["low"], 1) - s["low"]
    with np.errstate(invalid="ignore"):
        plus = np.where((up > down) & (up > 0), up, 0.0)
        minus = np.where((down > up) & (down > 0), down, 0.0)
    bad = np.isnan(up) | np.isnan(down)
    plus[bad] = np.nan
    minus[bad] = np.nan
    return {"plus": plus, "minus": minus}


def _ref_heikin_ashi(s: Series, p: dict) -> Result:
    o, h, l, c = s["open"], s["high"], s["low"], s["close"]
    n = o.shape[0]
    out = {key: _nan(n) for key in ("open", "high", "low", "close")}

    # ha_open recurses on the previous candle: cut at the first invalid bar
    bad = np.flatnonzero(np.isnan(o) | np.isnan(h) | np.isnan(l) | np.isnan(c))
    k = int(bad[0]) if bad.size else n
    if k == 0:
        return out

    ha_close = (o[:k] + h[:k] + l[:k] + c[:k]) / 4.0
    drivers = np.concatenate(([(o[0] + c[0]) / 2.0], ha_close[:-1]))
    ha_open = pd.Series(drivers).ewm(alpha=0.5, adjust=False).mean().to_numpy()

    out["open"][:k] = ha_open
    out["close"][:k] = ha_close
    out["high"][:k] = np.maximum(h[:k], np.maximum(ha_open, ha_close))
    out["low"][:k] = np.minimum(l[:k], np.minimum(ha_open, ha_close))
    return out


_REFERENCE: dict[str, Callable[[Series, dict], Result]] = {
    # Recursive filters
    "ema": _ref_filter(lambda p: (ema_alpha(p["length"]), p["length"])),
    "rma": _ref_filter(lambda p: (rma_alpha(p["length"]), p["length"])),
    "halflife_ema": _ref_filter(lambda p: (
        1.0 - math.exp(-math.log(2.0) / p["half_life"]), max(1, math.ceil(p["half_life"])))),
    "tau_ema": _ref_filter(lambda p: (
        1.0 - math.exp(-1.0 / p["tau"]), max(1, math.ceil(p["tau"])))),
    # Windows
    "sma": lambda s, p: rolling(s["close"], p["length"], "mean"),
    "sum": lambda s, p: rolling(s["close"], p["length"], "sum"),
    "wma": lambda s, p: weighted(s["close"], linear_weights(p["length"])),
    "swma": lambda s, p: weighted(s["close"], triangular_weights(p["length"])),
    "variance": lambda s, p: window_variance(s["close"], p["length"], p["sample"]),
    "stddev": lambda s, p: window_std(s["close"], p["length"], p["sample"]),
    "zscore": _ref_zscore,
    "highest": lambda s, p: rolling(s["close"], p["length"], "max"),
    "lowest": lambda s, p: rolling(s["close"], p["length"], "min"),
    "median": lambda s, p: rolling(s["close"], p["length"], "median"),
    "linreg": _ref_linreg,
    "lsma": lambda s, p: regression(s["close"], p["length"])[0],
    "roc": lambda s, p: rate_of_change(s["close"], p["length"], p["scale"]),
    "covariance": _ref_covariance,
    "correlation": _ref_correlation,
    # Cascades
    "dema": _ref_dema,
    "tema": _ref_tema,
    "t3": _ref_t3,
    "tma": _ref_tma,
    "hma": _ref_hma,
    "zlema": _ref_zlema,
    "kama": _ref_kama,
    # Volatility
    "true_range": lambda s, p: true_range(s["high"], s["low"], s["close"]),
    "atr": _ref_atr,
    "natr": _ref_natr,
    "bbands": _ref_bbands,
    "keltner": _ref_keltner,
    "atr_bands": _ref_atr_bands,
    "donchian": _ref_donchian,
    "chaikin_volatility": _ref_chaikin,
    "historical_volatility": _ref_historical,
    "parkinson": _ref_parkinson,
    "garman_klass": _ref_garman_klass,
    "rogers_satchell": _ref_rogers_satchell,
    "yang_zhang": _ref_yang_zhang,
    # Price transforms
    "directional_movement": _ref_directional_movement,
    "heikin_ashi": _ref_heikin_ashi,
}


def supports_reference(indicator_type: str) -> bool:
    return indicator_type.lower() in _REFERENCE


def _plain_params(params: dict[str, Any]) -> dict[str, Any]:
    """Enum values -> their string values."""
    return {k: getattr(v, "value", v) for k, v in params.items()}


def reference_compute(
    indicator_type: str,
    params: dict[str, Any] | None = None,
    **series: Any,
) -> Result:
    """
    Compute an indicator with the vectorized reference implementation.

    Params are validated and defaulted through the factory, so the same
    params dict means the same indicator on both paths.

    Returns:
        float64 array, or dict of arrays for multi-output indicators
    """
    indicator_type = indicator_type.lower()
    info = get_indicator_info(indicator_type)
    p = _plain_params(create_incremental_indicator(indicator_type, params).init_params())

    missing = [name for name in info.input_series if series.get(name) is None]
    if missing:
        raise MissingInputError(f"reference '{indicator_type}'", missing, info.input_series)
    arrays = {name: _clean(series[name]) for name in info.input_series}
    lengths = {name: int(arr.shape[0]) for name, arr in arrays.items()}
    if len(set(lengths.values())) > 1:
        raise SeriesLengthError(lengths)

    return _REFERENCE[indicator_type](arrays, p)
