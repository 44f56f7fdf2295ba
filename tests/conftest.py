"""
Pytest configuration for lockstep tests.
"""

import numpy as np
import pandas as pd
import pytest

from lockstep.audits.synthetic import generate_ohlcv
from lockstep.config import Config


@pytest.fixture(scope="session")
def ohlcv() -> pd.DataFrame:
    """500 synthetic OHLCV bars, fixed seed."""
    return generate_ohlcv(n_bars=500, seed=7)


@pytest.fixture
def closes(ohlcv) -> np.ndarray:
    return ohlcv["close"].to_numpy(dtype=np.float64)


@pytest.fixture
def bars(ohlcv) -> dict[str, np.ndarray]:
    """Bar fields as float64 arrays, plus x/y for paired statistics."""
    series = {col: ohlcv[col].to_numpy(dtype=np.float64) for col in ("open", "high", "low", "close", "volume")}
    series["x"] = series["close"]
    series["y"] = series["open"]
    return series


@pytest.fixture
def fresh_config():
    """Drop the cached Config before and after the test."""
    Config._instance = None
    yield
    Config._instance = None
