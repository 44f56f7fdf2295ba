"""
Factory function and registry for incremental indicators.

Provides create_incremental_indicator() to instantiate any incremental
indicator from a type string and parameter dict, plus registry query
functions. The registry is the single source of truth for which indicator
types exist, which params they accept (their dataclass init fields), which
bar fields they consume and which outputs they produce.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from functools import lru_cache
from typing import Any

from ...core.errors import UnknownIndicatorError, UnknownParameterError
from .base import IncrementalIndicator
from .filters import EMA, RMA, HalfLifeFilter, TimeConstantFilter
from .moving_averages import DEMA, HMA, KAMA, LSMA, T3, TEMA, TMA, ZLEMA, MedianMA
from .price_transforms import DirectionalMovement, HeikinAshi
from .volatility import (
    ATR,
    ATRBands,
    BollingerBands,
    ChaikinVolatility,
    DonchianChannel,
    GarmanKlassVolatility,
    HistoricalVolatility,
    KeltnerChannels,
    NATR,
    ParkinsonVolatility,
    RogersSatchellVolatility,
    StdDev,
    TrueRange,
    YangZhangVolatility,
)
from .windows import (
    Highest,
    LinearRegression,
    Lowest,
    RateOfChange,
    RollingCorrelation,
    RollingCovariance,
    RollingMean,
    RollingSum,
    RollingVariance,
    SymmetricWeightedMovingAverage,
    WeightedMovingAverage,
    ZScore,
)


# =============================================================================
# Data Structures
# =============================================================================

@dataclass(frozen=True)
class IndicatorInfo:
    """
    Metadata about a registered indicator.

    Attributes:
        name: Indicator type string (e.g., "ema", "bbands")
        cls: Incremental implementation
        category: Grouping used by the audit report
    """
    name: str
    cls: type[IncrementalIndicator]
    category: str

    @property
    def accepted_params(self) -> frozenset[str]:
        return frozenset(f.name for f in fields(self.cls) if f.init)

    @property
    def input_series(self) -> tuple[str, ...]:
        return self.cls.INPUTS

    @property
    def output_keys(self) -> tuple[str, ...]:
        return self.cls.output_keys()

    @property
    def is_multi_output(self) -> bool:
        return bool(self.cls.OUTPUT_KEYS)

    @property
    def primary_output(self) -> str:
        return self.output_keys[0] if self.is_multi_output else "value"


def _info(name: str, cls: type[IncrementalIndicator], category: str) -> tuple[str, IndicatorInfo]:
    return name, IndicatorInfo(name=name, cls=cls, category=category)


# Dict-based registry: O(1) lookup from type string to implementation.
_REGISTRY: dict[str, IndicatorInfo] = dict([
    # Recursive filters
    _info("ema", EMA, "filter"),
    _info("rma", RMA, "filter"),
    _info("halflife_ema", HalfLifeFilter, "filter"),
    _info("tau_ema", TimeConstantFilter, "filter"),
    # Window statistics
    _info("sma", RollingMean, "window"),
    _info("sum", RollingSum, "window"),
    _info("wma", WeightedMovingAverage, "window"),
    _info("swma", SymmetricWeightedMovingAverage, "window"),
    _info("variance", RollingVariance, "window"),
    _info("stddev", StdDev, "window"),
    _info("zscore", ZScore, "window"),
    _info("highest", Highest, "window"),
    _info("lowest", Lowest, "window"),
    _info("median", MedianMA, "window"),
    _info("linreg", LinearRegression, "window"),
    _info("lsma", LSMA, "window"),
    _info("roc", RateOfChange, "window"),
    _info("covariance", RollingCovariance, "window"),
    _info("correlation", RollingCorrelation, "window"),
    # Cascades
    _info("dema", DEMA, "cascade"),
    _info("tema", TEMA, "cascade"),
    _info("t3", T3, "cascade"),
    _info("tma", TMA, "cascade"),
    _info("hma", HMA, "cascade"),
    _info("zlema", ZLEMA, "cascade"),
    _info("kama", KAMA, "adaptive"),
    # Volatility
    _info("true_range", TrueRange, "volatility"),
    _info("atr", ATR, "volatility"),
    _info("natr", NATR, "volatility"),
    _info("bbands", BollingerBands, "bands"),
    _info("keltner", KeltnerChannels, "bands"),
    _info("atr_bands", ATRBands, "bands"),
    _info("donchian", DonchianChannel, "bands"),
    _info("chaikin_volatility", ChaikinVolatility, "volatility"),
    _info("historical_volatility", HistoricalVolatility, "volatility"),
    _info("parkinson", ParkinsonVolatility, "volatility"),
    _info("garman_klass", GarmanKlassVolatility, "volatility"),
    _info("rogers_satchell", RogersSatchellVolatility, "volatility"),
    _info("yang_zhang", YangZhangVolatility, "volatility"),
    # Price transforms
    _info("directional_movement", DirectionalMovement, "transform"),
    _info("heikin_ashi", HeikinAshi, "transform"),
])


def get_indicator_info(indicator_type: str) -> IndicatorInfo:
    """Look up registry metadata, raising UnknownIndicatorError for unknown types."""
    info = _REGISTRY.get(indicator_type.lower())
    if info is None:
        raise UnknownIndicatorError(indicator_type, _REGISTRY.keys())
    return info


def _validate_params(info: IndicatorInfo, params: dict[str, Any]) -> None:
    """Raise UnknownParameterError if params contains unknown keys for this indicator."""
    unknown = set(params.keys()) - info.accepted_params
    if unknown:
        raise UnknownParameterError(f"'{info.name}'", unknown, info.accepted_params)


# =============================================================================
# Factory
# =============================================================================

def create_incremental_indicator(
    indicator_type: str,
    params: dict[str, Any] | None = None,
) -> IncrementalIndicator:
    """
    Create an incremental indicator from type and params.

    Unspecified params take the indicator's defaults.

    Raises:
        UnknownIndicatorError: indicator_type is not registered
        UnknownParameterError: params contains unknown keys
        IndicatorParameterError: a param value is out of range
    """
    params = dict(params or {})
    info = get_indicator_info(indicator_type)
    _validate_params(info, params)
    return info.cls(**params)


def get_warmup_bars(indicator_type: str, params: dict[str, Any] | None = None) -> int:
    """
    Analytic warm-up for a type/params pair.

    Derived from the structural parameters at construction; no data is fed.
    """
    return create_incremental_indicator(indicator_type, params).warmup_bars


# =============================================================================
# Registry queries
# =============================================================================

def supports_incremental(indicator_type: str) -> bool:
    return indicator_type.lower() in _REGISTRY


@lru_cache(maxsize=1)
def _sorted_names() -> tuple[str, ...]:
    return tuple(sorted(_REGISTRY))


def list_incremental_indicators() -> list[str]:
    """All registered indicator type strings, sorted."""
    return list(_sorted_names())


def get_output_keys(indicator_type: str) -> tuple[str, ...]:
    """Output names; single-output indicators report ("value",)."""
    return get_indicator_info(indicator_type).output_keys


def get_input_series(indicator_type: str) -> tuple[str, ...]:
    return get_indicator_info(indicator_type).input_series


def get_accepted_params(indicator_type: str) -> frozenset[str]:
    return get_indicator_info(indicator_type).accepted_params
