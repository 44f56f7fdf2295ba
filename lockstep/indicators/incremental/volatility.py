"""
Volatility indicators: true range family, bands, channels and range-based
estimators.

Multi-input indicators declare their bar fields in INPUTS. Stages that need
a previous bar (true range, log returns, overnight gaps) emit their first
sample on the second bar, and downstream stages are fed from that bar on.
"""

from __future__ import annotations

import math
from abc import abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from ...config.constants import DEFAULT_TRADING_DAYS, PARKINSON_FACTOR, YANG_ZHANG_ALPHA
from ...core.errors import IndicatorParameterError, require_period, require_positive
from ...core.mathbase import safe_divide
from ...core.price_action import (
    garman_klass_component,
    log_ratio,
    parkinson_component,
    rogers_satchell_component,
    true_range,
)
from .base import NAN, IncrementalIndicator, as_sample
from .filters import SeedMode
from .moving_averages import MAKind, cascade_warmup, create_moving_average
from .windows import (
    Highest,
    Lowest,
    RateOfChange,
    RollingMean,
    RollingStdDev,
    RollingVariance,
)


# =============================================================================
# True range family
# =============================================================================

@dataclass
class TrueRange(IncrementalIndicator):
    """
    Wilder true range. The first bar has no previous close and yields NaN.

    Formula:
        tr = max(high - low, |high - prev_close|, |low - prev_close|)
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("high", "low", "close")

    _prev_close: float = field(default=NAN, init=False)
    _value: float = field(default=NAN, init=False)
    _count: int = field(default=0, init=False)

    def update(self, high: float, low: float, close: float, **kwargs: Any) -> float:
        """Update with new bar."""
        high, low, close = as_sample(high), as_sample(low), as_sample(close)
        self._count += 1
        self._value = true_range(high, low, close, self._prev_close)
        self._prev_close = close
        return self._value

    @property
    def warmup_bars(self) -> int:
        return 2

    @property
    def value(self) -> float:
        return self._value


@dataclass
class ATR(IncrementalIndicator):
    """
    Average True Range.

    Formula:
        atr = smooth(true_range, length), smoothing kind `ma` (default RMA)

    True range is undefined on the first bar, so the first ATR value lands
    at index `length` (warm-up length + 1 with rolling-mean seeding).
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("high", "low", "close")

    length: int = 14
    ma: MAKind = MAKind.RMA
    seed: SeedMode = SeedMode.ROLLING_MEAN
    _tr: TrueRange = field(init=False)
    _smoother: IncrementalIndicator = field(init=False)
    _count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.length = require_period("ATR", self.length, name="length")
        self.ma = MAKind.coerce(self.ma)
        self.seed = SeedMode.coerce(self.seed)
        self._tr = TrueRange()
        self._smoother = create_moving_average(self.ma, self.length, self.seed)

    def update(self, high: float, low: float, close: float, **kwargs: Any) -> float:
        """Update with new bar."""
        self._count += 1
        tr = self._tr.update(high=high, low=low, close=close)
        if self._tr.is_ready:
            self._smoother.update(tr)
        return self.value

    @property
    def true_range(self) -> float:
        return self._tr.value

    @property
    def warmup_bars(self) -> int:
        return cascade_warmup(self._tr, self._smoother)

    @property
    def value(self) -> float:
        return self._smoother.value if self._smoother.is_ready else NAN


@dataclass
class NATR(IncrementalIndicator):
    """
    Normalized ATR.

    Formula:
        natr = atr / close   (x 100 when scale_to_100)
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("high", "low", "close")

    length: int = 14
    ma: MAKind = MAKind.RMA
    scale_to_100: bool = False
    _atr: ATR = field(init=False)
    _value: float = field(default=NAN, init=False)
    _count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self._atr = ATR(length=self.length, ma=self.ma)
        self.length = self._atr.length
        self.ma = self._atr.ma

    def update(self, high: float, low: float, close: float, **kwargs: Any) -> float:
        """Update with new bar."""
        self._count += 1
        atr = self._atr.update(high=high, low=low, close=close)
        scale = 100.0 if self.scale_to_100 else 1.0
        self._value = safe_divide(atr * scale, as_sample(close))
        return self._value

    @property
    def warmup_bars(self) -> int:
        return self._atr.warmup_bars

    @property
    def value(self) -> float:
        return self._value


@dataclass
class StdDev(RollingStdDev):
    """Standard deviation of the source over `length` bars (sample by default)."""


# =============================================================================
# Composite bands
# =============================================================================

@dataclass
class CompositeBands(IncrementalIndicator):
    """
    Basis line plus/minus `mult` times a deviation line.

    Subclasses build _basis and _dev and feed them in _feed(). Warm-up is
    the longer of the two branches.
    """

    OUTPUT_KEYS: ClassVar[tuple[str, ...]] = ("upper", "basis", "lower", "bandwidth")

    mult: float = 2.0
    _basis: IncrementalIndicator = field(init=False)
    _dev: IncrementalIndicator = field(init=False)
    _count: int = field(default=0, init=False)
    _upper: float = field(default=NAN, init=False)
    _lower: float = field(default=NAN, init=False)
    _mid: float = field(default=NAN, init=False)

    def __post_init__(self) -> None:
        self.mult = require_positive(type(self).__name__, self.mult, "mult")

    @abstractmethod
    def _feed(self, **bar: float) -> None:
        ...

    def update(self, **bar: Any) -> float:
        self._count += 1
        self._feed(**bar)
        if not self.is_ready:
            self._upper = self._lower = self._mid = NAN
            return NAN
        # A degenerate deviation voids the bands but not the basis
        basis = self._basis.value
        offset = self.mult * self._dev.value
        self._mid = basis
        self._upper = basis + offset
        self._lower = basis - offset
        return self._mid

    @property
    def warmup_bars(self) -> int:
        return max(self._basis.warmup_bars, self._dev.warmup_bars)

    @property
    def value(self) -> float:
        return self._mid

    @property
    def upper(self) -> float:
        return self._upper

    @property
    def basis(self) -> float:
        return self._mid

    @property
    def lower(self) -> float:
        return self._lower

    @property
    def bandwidth(self) -> float:
        """(upper - lower) / basis"""
        return safe_divide(self._upper - self._lower, self._mid)


@dataclass
class BollingerBands(CompositeBands):
    """
    Bollinger Bands.

    Formula:
        basis = ma(close, length)
        dev = std(close, length)   (sample or population)
        upper/lower = basis +/- mult * dev
        percent_b = (close - lower) / (upper - lower)
    """

    OUTPUT_KEYS: ClassVar[tuple[str, ...]] = ("upper", "basis", "lower", "bandwidth", "percent_b")

    length: int = 20
    ma: MAKind = MAKind.SMA
    sample: bool = True
    _last: float = field(default=NAN, init=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self.ma = MAKind.coerce(self.ma)
        self._basis = create_moving_average(self.ma, self.length)
        self._dev = RollingStdDev(length=self.length, sample=self.sample)
        self.length = self._dev.length

    def update(self, close: float, **kwargs: Any) -> float:
        """Update with new close price."""
        return super().update(close=close)

    def _feed(self, close: float) -> None:
        self._last = as_sample(close)
        self._basis.update(close)
        self._dev.update(close)

    @property
    def percent_b(self) -> float:
        return safe_divide(self._last - self._lower, self._upper - self._lower)


class KeltnerDeviation(str, Enum):
    """Deviation source for Keltner channels."""
    ATR = "atr"
    TR_EMA = "tr_ema"


@dataclass
class KeltnerChannels(CompositeBands):
    """
    Keltner Channels.

    Formula:
        basis = ma(close, length)             (default EMA)
        dev = atr(atr_length, atr_ma)         deviation="atr"
            | ema(true_range, atr_length)     deviation="tr_ema"
        upper/lower = basis +/- mult * dev
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("high", "low", "close")

    length: int = 20
    atr_length: int = 10
    ma: MAKind = MAKind.EMA
    deviation: KeltnerDeviation = KeltnerDeviation.ATR
    atr_ma: MAKind = MAKind.RMA

    def __post_init__(self) -> None:
        super().__post_init__()
        self.ma = MAKind.coerce(self.ma)
        self.atr_ma = MAKind.coerce(self.atr_ma)
        try:
            self.deviation = KeltnerDeviation(str(getattr(self.deviation, "value", self.deviation)).lower())
        except ValueError:
            raise IndicatorParameterError(
                "KeltnerChannels", "deviation", self.deviation,
                f"as one of {[d.value for d in KeltnerDeviation]}",
            ) from None
        self._basis = create_moving_average(self.ma, self.length)
        dev_ma = self.atr_ma if self.deviation is KeltnerDeviation.ATR else MAKind.EMA
        self._dev = ATR(length=self.atr_length, ma=dev_ma)
        self.length = self._basis.length
        self.atr_length = self._dev.length

    def update(self, high: float, low: float, close: float, **kwargs: Any) -> float:
        """Update with new bar."""
        return super().update(high=high, low=low, close=close)

    def _feed(self, high: float, low: float, close: float) -> None:
        self._basis.update(close)
        self._dev.update(high=high, low=low, close=close)


@dataclass
class ATRBands(CompositeBands):
    """
    ATR bands around a moving-average basis.

    Formula:
        basis = ma(close, length)   (default EMA)
        upper/lower = basis +/- mult * atr(atr_length, atr_ma)
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("high", "low", "close")
    OUTPUT_KEYS: ClassVar[tuple[str, ...]] = ("upper", "basis", "lower")

    length: int = 20
    atr_length: int = 14
    ma: MAKind = MAKind.EMA
    atr_ma: MAKind = MAKind.RMA

    def __post_init__(self) -> None:
        super().__post_init__()
        self.ma = MAKind.coerce(self.ma)
        self.atr_ma = MAKind.coerce(self.atr_ma)
        self._basis = create_moving_average(self.ma, self.length)
        self._dev = ATR(length=self.atr_length, ma=self.atr_ma)
        self.length = self._basis.length
        self.atr_length = self._dev.length

    def update(self, high: float, low: float, close: float, **kwargs: Any) -> float:
        """Update with new bar."""
        return super().update(high=high, low=low, close=close)

    def _feed(self, high: float, low: float, close: float) -> None:
        self._basis.update(close)
        self._dev.update(high=high, low=low, close=close)


# =============================================================================
# Channels and range oscillators
# =============================================================================

@dataclass
class DonchianChannel(IncrementalIndicator):
    """
    Donchian channel over `length` bars.

    Outputs:
        upper = highest(high), lower = lowest(low), mid = (upper + lower) / 2
        width = upper - lower, percent_width = width / mid
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("high", "low")
    OUTPUT_KEYS: ClassVar[tuple[str, ...]] = ("upper", "mid", "lower", "width", "percent_width")

    length: int = 20
    _highest: Highest = field(init=False)
    _lowest: Lowest = field(init=False)
    _count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self._highest = Highest(length=self.length)
        self._lowest = Lowest(length=self.length)
        self.length = self._highest.length

    def update(self, high: float, low: float, **kwargs: Any) -> float:
        """Update with new bar."""
        self._count += 1
        self._highest.update(high)
        self._lowest.update(low)
        return self.value

    @property
    def warmup_bars(self) -> int:
        return self.length

    @property
    def upper(self) -> float:
        return self._highest.value

    @property
    def lower(self) -> float:
        return self._lowest.value

    @property
    def mid(self) -> float:
        return (self.upper + self.lower) / 2.0

    @property
    def width(self) -> float:
        return self.upper - self.lower

    @property
    def percent_width(self) -> float:
        return safe_divide(self.width, self.mid)

    @property
    def value(self) -> float:
        return self.mid


@dataclass
class ChaikinVolatility(IncrementalIndicator):
    """
    Chaikin volatility: rate of change of the smoothed high-low range.

    Formula:
        smoothed = ma(high - low, ma_length)
        cv = (smoothed - smoothed[roc_length]) * scale / smoothed[roc_length]
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("high", "low")

    ma_length: int = 10
    roc_length: int = 10
    ma: MAKind = MAKind.EMA
    scale_to_100: bool = True
    _smoother: IncrementalIndicator = field(init=False)
    _roc: RateOfChange = field(init=False)
    _count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.ma = MAKind.coerce(self.ma)
        self._smoother = create_moving_average(self.ma, self.ma_length)
        self._roc = RateOfChange(length=self.roc_length, scale=100.0 if self.scale_to_100 else 1.0)
        self.ma_length = self._smoother.length
        self.roc_length = self._roc.length

    def update(self, high: float, low: float, **kwargs: Any) -> float:
        """Update with new bar."""
        self._count += 1
        smoothed = self._smoother.update(as_sample(high) - as_sample(low))
        if self._smoother.is_ready:
            self._roc.update(smoothed)
        return self.value

    @property
    def warmup_bars(self) -> int:
        return cascade_warmup(self._smoother, self._roc)

    @property
    def value(self) -> float:
        return self._roc.value if self._roc.is_ready else NAN


# =============================================================================
# Return- and range-based volatility estimators
# =============================================================================

def annualization_factor(trading_days: float, length: int) -> float:
    """sqrt(trading_days / length)"""
    return math.sqrt(trading_days / length)


@dataclass
class _AnnualizedEstimator(IncrementalIndicator):
    """Shared annualisation parameters for the volatility estimators."""

    length: int = 20
    annualize: bool = True
    trading_days: float = DEFAULT_TRADING_DAYS
    _scale: float = field(default=1.0, init=False)
    _value: float = field(default=NAN, init=False)
    _count: int = field(default=0, init=False)

    MIN_LENGTH: ClassVar[int] = 1

    def __post_init__(self) -> None:
        owner = type(self).__name__
        self.length = require_period(owner, self.length, self.MIN_LENGTH, name="length")
        self.trading_days = require_positive(owner, self.trading_days, "trading_days")
        self._scale = annualization_factor(self.trading_days, self.length) if self.annualize else 1.0

    def _finish(self, variance: float) -> float:
        """Clamp a finite variance at 0, take sqrt and annualise."""
        if math.isnan(variance):
            return NAN
        return math.sqrt(max(variance, 0.0)) * self._scale

    @property
    def value(self) -> float:
        return self._value


@dataclass
class HistoricalVolatility(_AnnualizedEstimator):
    """
    Close-to-close volatility: sample std of log returns.

    Formula:
        r[t] = ln(close[t] / close[t-1])
        hv = std(r, length) * sqrt(trading_days / length)
    """

    MIN_LENGTH: ClassVar[int] = 2

    _std: RollingStdDev = field(init=False)
    _prev_close: float = field(default=NAN, init=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._std = RollingStdDev(length=self.length, sample=True)

    def update(self, close: float, **kwargs: Any) -> float:
        """Update with new close price."""
        x = as_sample(close)
        self._count += 1
        if self._count > 1:
            std = self._std.update(log_ratio(x, self._prev_close))
            self._value = std * self._scale
        self._prev_close = x
        return self._value

    @property
    def warmup_bars(self) -> int:
        return self.length + 1


@dataclass
class ParkinsonVolatility(_AnnualizedEstimator):
    """
    Parkinson high-low estimator.

    Formula:
        var = mean(ln(H/L)^2) / (4 ln 2)
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("high", "low")

    _mean: RollingMean = field(init=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._mean = RollingMean(length=self.length)

    def update(self, high: float, low: float, **kwargs: Any) -> float:
        """Update with new bar."""
        self._count += 1
        mean = self._mean.update(parkinson_component(as_sample(high), as_sample(low)))
        self._value = self._finish(PARKINSON_FACTOR * mean)
        return self._value

    @property
    def warmup_bars(self) -> int:
        return self.length


@dataclass
class GarmanKlassVolatility(_AnnualizedEstimator):
    """
    Garman-Klass OHLC estimator.

    Formula:
        var = mean(0.5 ln(H/L)^2 - (2 ln 2 - 1) ln(C/O)^2), clamped at 0
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("open", "high", "low", "close")

    _mean: RollingMean = field(init=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._mean = RollingMean(length=self.length)

    def update(self, open: float, high: float, low: float, close: float, **kwargs: Any) -> float:
        """Update with new bar."""
        self._count += 1
        component = garman_klass_component(
            as_sample(open), as_sample(high), as_sample(low), as_sample(close)
        )
        self._value = self._finish(self._mean.update(component))
        return self._value

    @property
    def warmup_bars(self) -> int:
        return self.length


@dataclass
class RogersSatchellVolatility(_AnnualizedEstimator):
    """
    Rogers-Satchell drift-independent estimator.

    Formula:
        var = mean(ln(H/C) ln(H/O) + ln(L/C) ln(L/O)), clamped at 0
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("open", "high", "low", "close")

    _mean: RollingMean = field(init=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._mean = RollingMean(length=self.length)

    def update(self, open: float, high: float, low: float, close: float, **kwargs: Any) -> float:
        """Update with new bar."""
        self._count += 1
        component = rogers_satchell_component(
            as_sample(open), as_sample(high), as_sample(low), as_sample(close)
        )
        self._value = self._finish(self._mean.update(component))
        return self._value

    @property
    def warmup_bars(self) -> int:
        return self.length


def yang_zhang_k(length: int) -> float:
    """k = 0.34 / (1.34 + (n + 1) / (n - 1))"""
    n = float(length)
    return YANG_ZHANG_ALPHA / (1.0 + YANG_ZHANG_ALPHA + (n + 1.0) / (n - 1.0))


@dataclass
class YangZhangVolatility(_AnnualizedEstimator):
    """
    Yang-Zhang estimator combining overnight, open-close and RS components.

    Formula:
        var = var(ln(O/C_prev)) + k * var(ln(C/O)) + (1 - k) * max(mean(RS), 0)
        k = 0.34 / (1.34 + (n + 1) / (n - 1))
    Both variances are sample variances. A bar with any invalid component
    contributes NaN to all three windows.
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("open", "high", "low", "close")
    MIN_LENGTH: ClassVar[int] = 2

    _k: float = field(default=0.0, init=False)
    _overnight: RollingVariance = field(init=False)
    _open_close: RollingVariance = field(init=False)
    _rs: RollingMean = field(init=False)
    _prev_close: float = field(default=NAN, init=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._k = yang_zhang_k(self.length)
        self._overnight = RollingVariance(length=self.length, sample=True)
        self._open_close = RollingVariance(length=self.length, sample=True)
        self._rs = RollingMean(length=self.length)

    def update(self, open: float, high: float, low: float, close: float, **kwargs: Any) -> float:
        """Update with new bar."""
        o, h, l, c = as_sample(open), as_sample(high), as_sample(low), as_sample(close)
        self._count += 1
        if self._count > 1:
            overnight = log_ratio(o, self._prev_close)
            open_close = log_ratio(c, o)
            rs = rogers_satchell_component(o, h, l, c)
            if not (math.isfinite(overnight) and math.isfinite(open_close) and math.isfinite(rs)):
                overnight = open_close = rs = NAN
            var_o = self._overnight.update(overnight)
            var_oc = self._open_close.update(open_close)
            mean_rs = self._rs.update(rs)
            if math.isnan(var_o) or math.isnan(var_oc) or math.isnan(mean_rs):
                self._value = NAN
            else:
                variance = var_o + self._k * var_oc + (1.0 - self._k) * max(mean_rs, 0.0)
                self._value = self._finish(variance)
        self._prev_close = c
        return self._value

    @property
    def k(self) -> float:
        return self._k

    @property
    def warmup_bars(self) -> int:
        return self.length + 1
