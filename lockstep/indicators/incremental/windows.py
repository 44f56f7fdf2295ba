"""
Windowed statistics over a fixed-capacity ring buffer.

Every statistic here keeps the last `length` samples in a deque. A NaN
sample enters the window like any other; while it is inside, the output is
NaN, and finite outputs resume once it has been evicted. The rolling sum is
O(1) amortised (running sum of the finite samples, resynchronised from the
buffer once every `length` updates); every other statistic rescans the
window.
"""

from __future__ import annotations

import math
from abc import abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Any, ClassVar

import numpy as np

from ...core.errors import require_period
from ...core.mathbase import safe_divide, safe_sqrt
from .base import NAN, IncrementalIndicator, as_sample


@dataclass
class WindowedStatistic(IncrementalIndicator):
    """
    Shared ring-buffer machinery for single-input window statistics.

    Subclasses implement _compute() over a full window that contains no
    sentinel.
    """

    MIN_LENGTH: ClassVar[int] = 1

    length: int = 20
    _buffer: deque = field(default_factory=deque, init=False)
    _invalid: int = field(default=0, init=False)
    _count: int = field(default=0, init=False)
    _value: float = field(default=NAN, init=False)

    def __post_init__(self) -> None:
        self.length = require_period(type(self).__name__, self.length, self._min_length(), name="length")
        self._buffer = deque(maxlen=self.length)

    def _min_length(self) -> int:
        return self.MIN_LENGTH

    def _push(self, x: float) -> float | None:
        """Append x, returning the evicted sample (None while filling)."""
        evicted = self._buffer[0] if len(self._buffer) == self.length else None
        self._buffer.append(x)
        if math.isnan(x):
            self._invalid += 1
        if evicted is not None and math.isnan(evicted):
            self._invalid -= 1
        return evicted

    def update(self, close: float, **kwargs: Any) -> float:
        """Update with new sample."""
        x = as_sample(close)
        self._count += 1
        self._push(x)
        if len(self._buffer) < self.length or self._invalid:
            self._value = NAN
        else:
            self._value = self._compute()
        return self._value

    @abstractmethod
    def _compute(self) -> float:
        ...

    @property
    def window(self) -> np.ndarray:
        return np.fromiter(self._buffer, dtype=np.float64, count=len(self._buffer))

    @property
    def warmup_bars(self) -> int:
        return self.length

    @property
    def value(self) -> float:
        return self._value


# =============================================================================
# Sum / mean
# =============================================================================

@dataclass
class RollingSum(WindowedStatistic):
    """
    Rolling sum with O(1) amortised updates.

    Keeps a running sum of finite samples; the sum is rebuilt from the
    buffer once per `length` updates to bound floating-point drift.
    """

    _running_sum: float = field(default=0.0, init=False)
    _since_resync: int = field(default=0, init=False)

    def _push(self, x: float) -> float | None:
        evicted = super()._push(x)
        if not math.isnan(x):
            self._running_sum += x
        if evicted is not None and not math.isnan(evicted):
            self._running_sum -= evicted

        self._since_resync += 1
        if self._since_resync >= self.length:
            self._running_sum = 0.0
            for v in self._buffer:
                if not math.isnan(v):
                    self._running_sum += v
            self._since_resync = 0
        return evicted

    def _compute(self) -> float:
        return self._running_sum


@dataclass
class RollingMean(RollingSum):
    """
    Simple Moving Average.

    Formula:
        sma = sum(window) / length
    """

    def _compute(self) -> float:
        return self._running_sum / self.length


# Common alias
SMA = RollingMean


# =============================================================================
# Dispersion
# =============================================================================

@dataclass
class RollingVariance(WindowedStatistic):
    """
    Rolling variance recomputed from the full window (two-pass).

    sample=True divides by (n - 1) and requires length >= 2.
    """

    sample: bool = True

    def _min_length(self) -> int:
        return 2 if self.sample else 1

    def _compute(self) -> float:
        n = self.length
        mean = 0.0
        for v in self._buffer:
            mean += v
        mean /= n
        sum_sq = 0.0
        for v in self._buffer:
            diff = v - mean
            sum_sq += diff * diff
        return sum_sq / (n - 1 if self.sample else n)


@dataclass
class RollingStdDev(RollingVariance):
    """Rolling standard deviation (sqrt of RollingVariance)."""

    def _compute(self) -> float:
        return safe_sqrt(super()._compute())


@dataclass
class ZScore(RollingVariance):
    """
    Standardized score of the newest sample against its own window.

    Formula:
        z = (x - mean) / std
    NaN when the window has zero dispersion.
    """

    def _compute(self) -> float:
        n = self.length
        mean = 0.0
        for v in self._buffer:
            mean += v
        mean /= n
        std = safe_sqrt(RollingVariance._compute(self))
        return safe_divide(self._buffer[-1] - mean, std)


# =============================================================================
# Extrema / order statistics
# =============================================================================

@dataclass
class Highest(WindowedStatistic):
    """Highest value over the window (O(length) rescan)."""

    def _compute(self) -> float:
        return max(self._buffer)


@dataclass
class Lowest(WindowedStatistic):
    """Lowest value over the window (O(length) rescan)."""

    def _compute(self) -> float:
        return min(self._buffer)


@dataclass
class RollingMedian(WindowedStatistic):
    """Median of the window; mean of the two middle values for even lengths."""

    def _compute(self) -> float:
        ordered = sorted(self._buffer)
        mid = self.length // 2
        if self.length % 2:
            return ordered[mid]
        return (ordered[mid - 1] + ordered[mid]) / 2.0


# =============================================================================
# Weighted windows
# =============================================================================

@dataclass
class WeightedMovingAverage(WindowedStatistic):
    """
    Linearly weighted moving average; newest sample has the largest weight.

    Formula:
        wma = sum(i * x[i]) / sum(i),  i = 1..length (oldest..newest)
    """

    def _compute(self) -> float:
        n = self.length
        weighted = 0.0
        for i, v in enumerate(self._buffer, start=1):
            weighted += i * v
        return weighted / (n * (n + 1) / 2.0)


WMA = WeightedMovingAverage


def symmetric_weights(length: int) -> list[float]:
    """Triangular weights: i < mid -> i + 1, else length - i, mid = (length + 1) // 2."""
    mid = (length + 1) // 2
    return [float(i + 1 if i < mid else length - i) for i in range(length)]


@dataclass
class SymmetricWeightedMovingAverage(WindowedStatistic):
    """Triangular-weighted moving average (SWMA)."""

    _weights: list = field(default_factory=list, init=False)
    _weight_sum: float = field(default=0.0, init=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._weights = symmetric_weights(self.length)
        self._weight_sum = sum(self._weights)

    def _compute(self) -> float:
        weighted = 0.0
        for w, v in zip(self._weights, self._buffer):
            weighted += w * v
        return weighted / self._weight_sum


SWMA = SymmetricWeightedMovingAverage


# =============================================================================
# Regression
# =============================================================================

@dataclass
class LinearRegression(WindowedStatistic):
    """
    Least-squares line through the window, x = 0..length-1 (oldest..newest).

    Outputs:
        endpoint: fitted value at the newest bar (intercept + slope * (length - 1))
        slope: per-bar slope
    """

    MIN_LENGTH: ClassVar[int] = 2
    OUTPUT_KEYS: ClassVar[tuple[str, ...]] = ("endpoint", "slope")

    _slope: float = field(default=NAN, init=False)

    def _compute(self) -> float:
        n = self.length
        sum_x = n * (n - 1) / 2.0
        sum_x2 = (n - 1) * n * (2 * n - 1) / 6.0
        sum_y = 0.0
        sum_xy = 0.0
        for i, v in enumerate(self._buffer):
            sum_y += v
            sum_xy += i * v
        denom = n * sum_x2 - sum_x * sum_x
        self._slope = (n * sum_xy - sum_x * sum_y) / denom
        intercept = (sum_y - self._slope * sum_x) / n
        return intercept + self._slope * (n - 1)

    def update(self, close: float, **kwargs: Any) -> float:
        value = super().update(close)
        if math.isnan(value):
            self._slope = NAN
        return value

    @property
    def endpoint(self) -> float:
        return self._value

    @property
    def slope(self) -> float:
        return self._slope


# =============================================================================
# Rate of change
# =============================================================================

@dataclass
class RateOfChange(IncrementalIndicator):
    """
    Change against the sample `length` bars back, scaled.

    Formula:
        roc = (x - x[t - length]) * scale / x[t - length]
    NaN when either endpoint is a sentinel or the past value is ~0.
    """

    length: int = 10
    scale: float = 100.0
    _buffer: deque = field(default_factory=deque, init=False)
    _count: int = field(default=0, init=False)
    _value: float = field(default=NAN, init=False)

    def __post_init__(self) -> None:
        self.length = require_period(type(self).__name__, self.length, name="length")
        self.scale = float(self.scale)
        self._buffer = deque(maxlen=self.length + 1)

    def update(self, close: float, **kwargs: Any) -> float:
        """Update with new sample."""
        x = as_sample(close)
        self._count += 1
        self._buffer.append(x)
        if len(self._buffer) <= self.length:
            self._value = NAN
        else:
            past = self._buffer[0]
            self._value = safe_divide((x - past) * self.scale, past)
        return self._value

    @property
    def warmup_bars(self) -> int:
        return self.length + 1

    @property
    def value(self) -> float:
        return self._value


ROC = RateOfChange


# =============================================================================
# Two-input statistics
# =============================================================================

@dataclass
class PairedWindowStatistic(IncrementalIndicator):
    """Ring buffers for two aligned inputs x and y."""

    INPUTS: ClassVar[tuple[str, ...]] = ("x", "y")

    length: int = 20
    _xs: deque = field(default_factory=deque, init=False)
    _ys: deque = field(default_factory=deque, init=False)
    _invalid: int = field(default=0, init=False)
    _count: int = field(default=0, init=False)
    _value: float = field(default=NAN, init=False)

    def __post_init__(self) -> None:
        self.length = require_period(type(self).__name__, self.length, 2, name="length")
        self._xs = deque(maxlen=self.length)
        self._ys = deque(maxlen=self.length)

    def update(self, x: float, y: float, **kwargs: Any) -> float:
        """Update with one aligned (x, y) pair."""
        x, y = as_sample(x), as_sample(y)
        self._count += 1
        bad = math.isnan(x) or math.isnan(y)
        if len(self._xs) == self.length:
            if math.isnan(self._xs[0]) or math.isnan(self._ys[0]):
                self._invalid -= 1
        self._xs.append(x)
        self._ys.append(y)
        if bad:
            self._invalid += 1

        if len(self._xs) < self.length or self._invalid:
            self._value = NAN
        else:
            self._value = self._compute()
        return self._value

    def _moments(self) -> tuple[float, float, float]:
        """Sample (cov, var_x, var_y) of the current window."""
        n = self.length
        mean_x = sum(self._xs) / n
        mean_y = sum(self._ys) / n
        cov = var_x = var_y = 0.0
        for vx, vy in zip(self._xs, self._ys):
            dx = vx - mean_x
            dy = vy - mean_y
            cov += dx * dy
            var_x += dx * dx
            var_y += dy * dy
        return cov / (n - 1), var_x / (n - 1), var_y / (n - 1)

    @abstractmethod
    def _compute(self) -> float:
        ...

    @property
    def warmup_bars(self) -> int:
        return self.length

    @property
    def value(self) -> float:
        return self._value


@dataclass
class RollingCovariance(PairedWindowStatistic):
    """Sample covariance of x and y over the window."""

    def _compute(self) -> float:
        return self._moments()[0]


@dataclass
class RollingCorrelation(PairedWindowStatistic):
    """Pearson correlation of x and y; NaN when either side is flat."""

    def _compute(self) -> float:
        cov, var_x, var_y = self._moments()
        return safe_divide(cov, safe_sqrt(var_x) * safe_sqrt(var_y))
