"""
Synthetic OHLCV generation for parity audits and tests.

Deterministic for a given seed: a log-normal random walk for closes with
volatility clustering, highs/lows that always bracket open and close, and
opens gapped slightly from the previous close so overnight terms are
non-trivial.
"""

import numpy as np
import pandas as pd

from ..config.constants import DEFAULT_AUDIT_BARS, DEFAULT_AUDIT_SEED, DEFAULT_AUDIT_START_PRICE


def generate_ohlcv(
    n_bars: int = DEFAULT_AUDIT_BARS,
    seed: int = DEFAULT_AUDIT_SEED,
    start_price: float = DEFAULT_AUDIT_START_PRICE,
) -> pd.DataFrame:
    """
    Generate synthetic OHLCV data.

    Creates realistic price action with:
    - Trending behavior (drifting random walk)
    - Volatility clustering
    - Proper OHLC relationships (low <= open, close <= high; low > 0)

    Args:
        n_bars: Number of bars
        seed: Random seed for reproducibility
        start_price: First open

    Returns:
        DataFrame with open, high, low, close, volume columns
    """
    if n_bars < 1:
        raise ValueError(f"n_bars must be >= 1, got {n_bars}")

    rng = np.random.default_rng(seed)

    # Clustered volatility: slowly varying scale around 1.5% per bar
    vol = 0.015 * np.exp(np.cumsum(rng.normal(0.0, 0.05, n_bars)) * 0.3)
    returns = rng.normal(0.0002, 1.0, n_bars) * vol
    close = start_price * np.exp(np.cumsum(returns))

    # Open gaps a little from the previous close
    prev_close = np.concatenate(([start_price], close[:-1]))
    open_prices = prev_close * np.exp(rng.normal(0.0, 0.002, n_bars))

    # Wicks extend beyond the body
    body_high = np.maximum(open_prices, close)
    body_low = np.minimum(open_prices, close)
    high = body_high * (1.0 + np.abs(rng.normal(0.0, 1.0, n_bars)) * vol * 0.5)
    low = body_low * (1.0 - np.abs(rng.normal(0.0, 1.0, n_bars)) * vol * 0.5)

    volume = np.abs(rng.normal(0.0, 1.0, n_bars)) * 1_000_000 + 500_000

    return pd.DataFrame({
        "open": open_prices,
        "high": high,
        "low": low,
        "close": close,
        "volume": volume,
    })


def constant_series(value: float, n_bars: int) -> np.ndarray:
    """Flat series; degenerate-dispersion fixtures."""
    return np.full(n_bars, float(value))
