"""
Incremental indicator computation.

O(1)-state per-bar updates for every registered indicator. Fed the same
bars, these produce the same values as the batch driver and the vectorized
reference implementation (within the parity tolerance).

Usage:
    from lockstep.indicators.incremental import EMA, create_incremental_indicator

    ema = EMA(length=20)
    for price in historical_closes:
        ema.update(close=price)

    value, ready = ema.step(close=new_close)

    bb = create_incremental_indicator("bbands", {"length": 20, "mult": 2.0})
    bb.update(close=new_close)
    bb.outputs  # {"upper": ..., "basis": ..., "lower": ..., ...}
"""

from __future__ import annotations

# Base class
from .base import IncrementalIndicator

# Recursive filters
from .filters import (
    SeedMode,
    RecursiveFilter,
    EMA,
    RMA,
    HalfLifeFilter,
    TimeConstantFilter,
    ema,
    rma,
    from_alpha,
    from_half_life,
    from_tau,
)

# Window statistics
from .windows import (
    WindowedStatistic,
    RollingSum,
    RollingMean,
    SMA,
    RollingVariance,
    RollingStdDev,
    ZScore,
    Highest,
    Lowest,
    RollingMedian,
    WeightedMovingAverage,
    WMA,
    SymmetricWeightedMovingAverage,
    SWMA,
    LinearRegression,
    RateOfChange,
    ROC,
    RollingCovariance,
    RollingCorrelation,
)

# Moving-average cascades
from .moving_averages import (
    MAKind,
    create_moving_average,
    DEMA,
    TEMA,
    T3,
    TMA,
    HMA,
    ZLEMA,
    LSMA,
    MedianMA,
    KAMA,
)

# Volatility
from .volatility import (
    TrueRange,
    ATR,
    NATR,
    StdDev,
    CompositeBands,
    BollingerBands,
    KeltnerChannels,
    KeltnerDeviation,
    ATRBands,
    DonchianChannel,
    ChaikinVolatility,
    HistoricalVolatility,
    ParkinsonVolatility,
    GarmanKlassVolatility,
    RogersSatchellVolatility,
    YangZhangVolatility,
)

# Price transforms
from .price_transforms import DirectionalMovement, HeikinAshi

# Factory / registry
from .factory import (
    IndicatorInfo,
    create_incremental_indicator,
    get_indicator_info,
    get_output_keys,
    get_input_series,
    get_warmup_bars,
    list_incremental_indicators,
    supports_incremental,
)

__all__ = [
    "IncrementalIndicator",
    # Filters
    "SeedMode",
    "RecursiveFilter",
    "EMA",
    "RMA",
    "HalfLifeFilter",
    "TimeConstantFilter",
    "ema",
    "rma",
    "from_alpha",
    "from_half_life",
    "from_tau",
    # Windows
    "WindowedStatistic",
    "RollingSum",
    "RollingMean",
    "SMA",
    "RollingVariance",
    "RollingStdDev",
    "ZScore",
    "Highest",
    "Lowest",
    "RollingMedian",
    "WeightedMovingAverage",
    "WMA",
    "SymmetricWeightedMovingAverage",
    "SWMA",
    "LinearRegression",
    "RateOfChange",
    "ROC",
    "RollingCovariance",
    "RollingCorrelation",
    # Moving averages
    "MAKind",
    "create_moving_average",
    "DEMA",
    "TEMA",
    "T3",
    "TMA",
    "HMA",
    "ZLEMA",
    "LSMA",
    "MedianMA",
    "KAMA",
    # Volatility
    "TrueRange",
    "ATR",
    "NATR",
    "StdDev",
    "CompositeBands",
    "BollingerBands",
    "KeltnerChannels",
    "KeltnerDeviation",
    "ATRBands",
    "DonchianChannel",
    "ChaikinVolatility",
    "HistoricalVolatility",
    "ParkinsonVolatility",
    "GarmanKlassVolatility",
    "RogersSatchellVolatility",
    "YangZhangVolatility",
    # Price transforms
    "DirectionalMovement",
    "HeikinAshi",
    # Factory
    "IndicatorInfo",
    "create_incremental_indicator",
    "get_indicator_info",
    "get_output_keys",
    "get_input_series",
    "get_warmup_bars",
    "list_incremental_indicators",
    "supports_incremental",
]
