"""
Moving averages composed from recursive filters and window statistics.

Cascades follow one seam rule: a downstream stage is fed only after its
upstream stage is ready, so a chain of N stages warms up in

    sum(stage.warmup_bars) - (N - 1)

bars. Every cascade owns its stages; the batch driver runs these same
objects, so seeding and warm-up have a single definition.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from ...config.constants import EPS
from ...core.errors import IndicatorParameterError, require_period
from .base import NAN, IncrementalIndicator, as_sample
from .filters import EMA, RMA, RecursiveFilter, SeedMode
from .windows import (
    LinearRegression,
    RollingMean,
    RollingMedian,
    WeightedMovingAverage,
)


def cascade_warmup(*stages: IncrementalIndicator) -> int:
    """Warm-up of stages chained under the seam rule."""
    return sum(s.warmup_bars for s in stages) - (len(stages) - 1)


# =============================================================================
# Kind dispatch
# =============================================================================

class MAKind(str, Enum):
    """Moving-average kinds selectable as a basis or smoother."""
    SMA = "sma"
    EMA = "ema"
    RMA = "rma"
    WMA = "wma"

    @classmethod
    def coerce(cls, value: "MAKind | str") -> "MAKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise IndicatorParameterError(
                "MAKind", "ma", value, f"as one of {[m.value for m in cls]}"
            ) from None


def create_moving_average(
    kind: MAKind | str,
    length: int,
    seed: SeedMode | str = SeedMode.ROLLING_MEAN,
) -> IncrementalIndicator:
    """
    Build a single-input moving average of the given kind.

    The kind is resolved once here; seed applies to the recursive kinds only.
    """
    kind = MAKind.coerce(kind)
    if kind is MAKind.SMA:
        return RollingMean(length=length)
    if kind is MAKind.EMA:
        return EMA(length=length, seed=seed)
    if kind is MAKind.RMA:
        return RMA(length=length, seed=seed)
    return WeightedMovingAverage(length=length)


# =============================================================================
# EMA cascades
# =============================================================================

@dataclass
class DEMA(IncrementalIndicator):
    """
    Double Exponential Moving Average with O(1) updates.

    Formula:
        dema = 2 * ema1 - ema2
        where ema2 = ema(ema1)
    """

    length: int = 20
    seed: SeedMode = SeedMode.ROLLING_MEAN
    _ema1: EMA = field(init=False)
    _ema2: EMA = field(init=False)
    _count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self._ema1 = EMA(length=self.length, seed=self.seed)
        self._ema2 = EMA(length=self.length, seed=self.seed)
        self.length = self._ema1.length
        self.seed = self._ema1.seed

    def update(self, close: float, **kwargs: Any) -> float:
        """Update with new close price."""
        self._count += 1
        self._ema1.update(close)
        if self._ema1.is_ready:
            self._ema2.update(self._ema1.value)
        return self.value

    @property
    def warmup_bars(self) -> int:
        return cascade_warmup(self._ema1, self._ema2)

    @property
    def value(self) -> float:
        if not self._ema2.is_ready:
            return NAN
        return 2.0 * self._ema1.value - self._ema2.value


@dataclass
class TEMA(IncrementalIndicator):
    """
    Triple Exponential Moving Average with O(1) updates.

    Formula:
        tema = 3 * ema1 - 3 * ema2 + ema3
        where ema2 = ema(ema1), ema3 = ema(ema2)
    """

    length: int = 20
    seed: SeedMode = SeedMode.ROLLING_MEAN
    _ema1: EMA = field(init=False)
    _ema2: EMA = field(init=False)
    _ema3: EMA = field(init=False)
    _count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self._ema1 = EMA(length=self.length, seed=self.seed)
        self._ema2 = EMA(length=self.length, seed=self.seed)
        self._ema3 = EMA(length=self.length, seed=self.seed)
        self.length = self._ema1.length
        self.seed = self._ema1.seed

    def update(self, close: float, **kwargs: Any) -> float:
        """Update with new close price."""
        self._count += 1
        self._ema1.update(close)
        if self._ema1.is_ready:
            self._ema2.update(self._ema1.value)
            if self._ema2.is_ready:
                self._ema3.update(self._ema2.value)
        return self.value

    @property
    def warmup_bars(self) -> int:
        return cascade_warmup(self._ema1, self._ema2, self._ema3)

    @property
    def value(self) -> float:
        if not self._ema3.is_ready:
            return NAN
        return 3.0 * self._ema1.value - 3.0 * self._ema2.value + self._ema3.value


def t3_coefficients(v_factor: float) -> tuple[float, float, float, float]:
    """Tillson T3 weights (c1, c2, c3, c4) for volume factor b."""
    b = v_factor
    b2 = b * b
    b3 = b2 * b
    c1 = -b3
    c2 = 3.0 * b2 + 3.0 * b3
    c3 = -6.0 * b2 - 3.0 * b - 3.0 * b3
    c4 = 1.0 + 3.0 * b + b3 + 3.0 * b2
    return c1, c2, c3, c4


@dataclass
class T3(IncrementalIndicator):
    """
    Tillson T3: six chained EMAs combined with volume-factor weights.

    Formula:
        e1..e6 = ema(x), ema(e1), ..., ema(e5)
        t3 = c1*e6 + c2*e5 + c3*e4 + c4*e3
    """

    length: int = 5
    v_factor: float = 0.7
    seed: SeedMode = SeedMode.ROLLING_MEAN
    _stages: list = field(default_factory=list, init=False)
    _coeffs: tuple = field(default=(), init=False)
    _count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.v_factor = float(self.v_factor)
        if not (0.0 <= self.v_factor <= 1.0):
            raise IndicatorParameterError("T3", "v_factor", self.v_factor, "in [0, 1]")
        self._stages = [EMA(length=self.length, seed=self.seed) for _ in range(6)]
        self.length = self._stages[0].length
        self.seed = self._stages[0].seed
        self._coeffs = t3_coefficients(self.v_factor)

    def update(self, close: float, **kwargs: Any) -> float:
        """Update with new close price."""
        self._count += 1
        x = close
        for stage in self._stages:
            stage.update(x)
            if not stage.is_ready:
                break
            x = stage.value
        return self.value

    @property
    def warmup_bars(self) -> int:
        return cascade_warmup(*self._stages)

    @property
    def value(self) -> float:
        if not self._stages[-1].is_ready:
            return NAN
        c1, c2, c3, c4 = self._coeffs
        e3, e4, e5, e6 = (s.value for s in self._stages[2:])
        return c1 * e6 + c2 * e5 + c3 * e4 + c4 * e3


# =============================================================================
# Window cascades
# =============================================================================

@dataclass
class TMA(IncrementalIndicator):
    """
    Triangular moving average: SMA of SMA, both of `length`.
    """

    length: int = 20
    _sma1: RollingMean = field(init=False)
    _sma2: RollingMean = field(init=False)
    _count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self._sma1 = RollingMean(length=self.length)
        self._sma2 = RollingMean(length=self.length)
        self.length = self._sma1.length

    def update(self, close: float, **kwargs: Any) -> float:
        """Update with new close price."""
        self._count += 1
        self._sma1.update(close)
        if self._sma1.is_ready:
            self._sma2.update(self._sma1.value)
        return self.value

    @property
    def warmup_bars(self) -> int:
        return cascade_warmup(self._sma1, self._sma2)

    @property
    def value(self) -> float:
        return self._sma2.value if self._sma2.is_ready else NAN


def hma_lengths(length: int) -> tuple[int, int]:
    """(half, sqrt) WMA lengths used by the Hull moving average."""
    return max(1, math.ceil(length / 2)), max(1, math.ceil(math.sqrt(length)))


@dataclass
class HMA(IncrementalIndicator):
    """
    Hull Moving Average.

    Formula:
        raw = 2 * wma(x, ceil(length/2)) - wma(x, length)
        hma = wma(raw, ceil(sqrt(length)))
    """

    length: int = 20
    _wma_half: WeightedMovingAverage = field(init=False)
    _wma_full: WeightedMovingAverage = field(init=False)
    _wma_sqrt: WeightedMovingAverage = field(init=False)
    _count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.length = require_period("HMA", self.length, name="length")
        half, root = hma_lengths(self.length)
        self._wma_half = WeightedMovingAverage(length=half)
        self._wma_full = WeightedMovingAverage(length=self.length)
        self._wma_sqrt = WeightedMovingAverage(length=root)

    def update(self, close: float, **kwargs: Any) -> float:
        """Update with new close price."""
        self._count += 1
        half = self._wma_half.update(close)
        full = self._wma_full.update(close)
        if self._wma_full.is_ready:
            self._wma_sqrt.update(2.0 * half - full)
        return self.value

    @property
    def warmup_bars(self) -> int:
        return cascade_warmup(self._wma_full, self._wma_sqrt)

    @property
    def value(self) -> float:
        return self._wma_sqrt.value if self._wma_sqrt.is_ready else NAN


@dataclass
class ZLEMA(IncrementalIndicator):
    """
    Zero-lag EMA.

    Formula:
        lag = (length - 1) // 2
        zlema = ema(x + (x - x[t - lag]), length)
    """

    length: int = 20
    seed: SeedMode = SeedMode.ROLLING_MEAN
    _ema: EMA = field(init=False)
    _lag: int = field(default=0, init=False)
    _buffer: deque = field(default_factory=deque, init=False)
    _count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self._ema = EMA(length=self.length, seed=self.seed)
        self.length = self._ema.length
        self.seed = self._ema.seed
        self._lag = (self.length - 1) // 2
        self._buffer = deque(maxlen=self._lag + 1)

    @property
    def lag(self) -> int:
        return self._lag

    def update(self, close: float, **kwargs: Any) -> float:
        """Update with new close price."""
        x = as_sample(close)
        self._count += 1
        self._buffer.append(x)
        if len(self._buffer) > self._lag:
            self._ema.update(x + (x - self._buffer[0]))
        return self.value

    @property
    def warmup_bars(self) -> int:
        return self._lag + self._ema.warmup_bars

    @property
    def value(self) -> float:
        return self._ema.value if self._ema.is_ready else NAN


# =============================================================================
# Window-derived averages
# =============================================================================

@dataclass
class LSMA(LinearRegression):
    """Least-squares moving average: linear regression endpoint."""

    OUTPUT_KEYS: ClassVar[tuple[str, ...]] = ()


@dataclass
class MedianMA(RollingMedian):
    """Moving median."""


# =============================================================================
# Adaptive
# =============================================================================

@dataclass
class KAMA(IncrementalIndicator):
    """
    Kaufman Adaptive Moving Average with O(1) filter state.

    Formula:
        change = abs(close - close[length])
        volatility = sum(abs(close[i] - close[i-1])) over length bars
        er = change / volatility (efficiency ratio)
        sc = (er * (fast_sc - slow_sc) + slow_sc)^2
        kama = sc * close + (1 - sc) * kama_prev

    First KAMA value at index length-1 is the SMA of the first length
    closes. A flat window (volatility < EPS) holds the previous value.
    """

    length: int = 10
    fast: int = 2
    slow: int = 30
    _filter: RecursiveFilter = field(init=False)
    _buffer: deque = field(default_factory=deque, init=False)
    _fast_sc: float = field(default=0.0, init=False)
    _slow_sc: float = field(default=0.0, init=False)
    _count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.length = require_period("KAMA", self.length, name="length")
        self.fast = require_period("KAMA", self.fast, name="fast")
        self.slow = require_period("KAMA", self.slow, name="slow")
        if self.slow < self.fast:
            raise IndicatorParameterError("KAMA", "slow", self.slow, f"as an integer >= fast ({self.fast})")
        self._fast_sc = 2.0 / (self.fast + 1)
        self._slow_sc = 2.0 / (self.slow + 1)
        self._filter = RecursiveFilter(alpha=self._slow_sc, length=self.length, seed=SeedMode.ROLLING_MEAN)
        # Keep close[length] available for the efficiency ratio
        self._buffer = deque(maxlen=self.length + 1)

    def update(self, close: float, **kwargs: Any) -> float:
        """Update with new close price."""
        x = as_sample(close)
        self._count += 1
        self._buffer.append(x)

        if self._count <= self.length or math.isnan(x):
            return self._filter.update(x)

        change = abs(x - self._buffer[0])
        volatility = 0.0
        prev = self._buffer[0]
        for v in list(self._buffer)[1:]:
            volatility += abs(v - prev)
            prev = v

        if not math.isfinite(volatility):
            return self._filter.update(NAN)
        if volatility < EPS:
            return self._filter.hold()

        er = change / volatility
        sc = (er * (self._fast_sc - self._slow_sc) + self._slow_sc) ** 2
        return self._filter.update(x, alpha=sc)

    @property
    def warmup_bars(self) -> int:
        return self.length

    @property
    def value(self) -> float:
        return self._filter.value
