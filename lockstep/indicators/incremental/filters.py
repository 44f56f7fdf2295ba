"""
Recursive (first-order IIR) filters.

One recursion covers the whole exponential family:

    out[t] = alpha * x[t] + (1 - alpha) * out[t-1]

Presets differ only in how alpha and the warm-up length are derived:

    EMA            alpha = 2 / (length + 1)
    RMA (Wilder)   alpha = 1 / length
    half-life h    alpha = 1 - exp(-ln 2 / h),  length = ceil(h)
    time const tau alpha = 1 - exp(-1 / tau),   length = ceil(tau)

The first output is placed by SeedMode:

    ROLLING_MEAN  first output at index length-1 = mean of first `length` samples
    FIRST_SAMPLE  first output at index 0 = x[0]
    ZERO          recursion starts from 0, first output alpha * x[0]
    DEFER         first-sample recursion, outputs masked until index length-1

A non-finite input poisons the filter: the output is NaN from that bar until
reset().
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ...core.errors import IndicatorParameterError, require_period
from .base import NAN, IncrementalIndicator, as_sample


class SeedMode(str, Enum):
    """How a recursive filter produces its first output."""
    ROLLING_MEAN = "rolling_mean"
    FIRST_SAMPLE = "first_sample"
    ZERO = "zero"
    DEFER = "defer"

    @classmethod
    def coerce(cls, value: "SeedMode | str") -> "SeedMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise IndicatorParameterError(
                "SeedMode", "seed", value, f"as one of {[m.value for m in cls]}"
            ) from None

    def warmup(self, length: int) -> int:
        """Analytic warm-up for a filter of the given length under this mode."""
        if self in (SeedMode.ROLLING_MEAN, SeedMode.DEFER):
            return length
        return 1


def validate_alpha(owner: str, alpha: Any) -> float:
    try:
        alpha = float(alpha)
    except (TypeError, ValueError):
        raise IndicatorParameterError(owner, "alpha", alpha, "in (0, 1]") from None
    if not math.isfinite(alpha) or alpha <= 0.0 or alpha > 1.0:
        raise IndicatorParameterError(owner, "alpha", alpha, "in (0, 1]")
    return alpha


@dataclass
class RecursiveFilter(IncrementalIndicator):
    """
    Generic exponential recursion with explicit alpha.

    Attributes:
        alpha: Smoothing coefficient in (0, 1]
        length: Warm-up length for ROLLING_MEAN and DEFER seeding
        seed: SeedMode (or its string value)

    update() accepts a per-bar alpha override for adaptive filters; hold()
    counts a bar without moving the state.
    """

    alpha: float
    length: int = 1
    seed: SeedMode = SeedMode.ROLLING_MEAN
    _state: float = field(default=NAN, init=False)
    _count: int = field(default=0, init=False)
    _seed_sum: float = field(default=0.0, init=False)
    _poisoned: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        owner = type(self).__name__
        self.alpha = validate_alpha(owner, self.alpha)
        self.length = require_period(owner, self.length, name="length")
        self.seed = SeedMode.coerce(self.seed)

    @property
    def warmup_bars(self) -> int:
        return self.seed.warmup(self.length)

    def update(self, close: float, alpha: float | None = None, **kwargs: Any) -> float:
        """Update with new sample; alpha overrides the coefficient for this bar only."""
        x = as_sample(close)
        self._count += 1

        if self._poisoned or math.isnan(x):
            self._poisoned = True
            self._state = NAN
            return NAN

        a = self.alpha if alpha is None else alpha

        if self.seed is SeedMode.ROLLING_MEAN:
            if self._count <= self.length:
                # Warmup phase - unweighted mean seeds the recursion
                self._seed_sum += x
                if self._count == self.length:
                    self._state = self._seed_sum / self.length
            else:
                self._state = a * x + (1.0 - a) * self._state
        elif self.seed is SeedMode.ZERO:
            prev = 0.0 if self._count == 1 else self._state
            self._state = a * x + (1.0 - a) * prev
        else:
            # FIRST_SAMPLE and DEFER share the recursion; DEFER only masks output
            if self._count == 1:
                self._state = x
            else:
                self._state = a * x + (1.0 - a) * self._state

        return self.value

    def hold(self) -> float:
        """Count one bar without changing the state."""
        self._count += 1
        return self.value

    @property
    def value(self) -> float:
        if self._poisoned or self._count < self.warmup_bars:
            return NAN
        return self._state

    @property
    def state(self) -> float:
        """Raw recursion state, including unseeded/masked values."""
        return self._state


@dataclass
class EMA(RecursiveFilter):
    """
    Exponential Moving Average with O(1) updates.

    Formula:
        alpha = 2 / (length + 1)
        ema = alpha * close + (1 - alpha) * ema_prev
    """

    alpha: float = field(default=0.0, init=False)
    length: int = 20

    def __post_init__(self) -> None:
        self.length = require_period(type(self).__name__, self.length, name="length")
        self.alpha = 2.0 / (self.length + 1)
        super().__post_init__()


@dataclass
class RMA(RecursiveFilter):
    """
    Wilder's moving average (smoothed moving average).

    Formula:
        alpha = 1 / length
    """

    alpha: float = field(default=0.0, init=False)
    length: int = 14

    def __post_init__(self) -> None:
        self.length = require_period(type(self).__name__, self.length, name="length")
        self.alpha = 1.0 / self.length
        super().__post_init__()


@dataclass
class HalfLifeFilter(RecursiveFilter):
    """
    Exponential filter parameterised by half-life in bars.

    Formula:
        alpha = 1 - exp(-ln 2 / half_life)
        length = ceil(half_life)
    """

    alpha: float = field(default=0.0, init=False)
    length: int = field(default=1, init=False)
    half_life: float = 10.0

    def __post_init__(self) -> None:
        self.half_life = _positive(type(self).__name__, "half_life", self.half_life)
        self.alpha = 1.0 - math.exp(-math.log(2.0) / self.half_life)
        self.length = max(1, math.ceil(self.half_life))
        super().__post_init__()


@dataclass
class TimeConstantFilter(RecursiveFilter):
    """
    Exponential filter parameterised by time constant tau in bars.

    Formula:
        alpha = 1 - exp(-1 / tau)
        length = ceil(tau)
    """

    alpha: float = field(default=0.0, init=False)
    length: int = field(default=1, init=False)
    tau: float = 10.0

    def __post_init__(self) -> None:
        self.tau = _positive(type(self).__name__, "tau", self.tau)
        self.alpha = 1.0 - math.exp(-1.0 / self.tau)
        self.length = max(1, math.ceil(self.tau))
        super().__post_init__()


def _positive(owner: str, name: str, value: Any) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise IndicatorParameterError(owner, name, value, "as a finite number > 0") from None
    if not math.isfinite(value) or value <= 0.0:
        raise IndicatorParameterError(owner, name, value, "as a finite number > 0")
    return value


# =============================================================================
# Constructors
# =============================================================================

def ema(length: int, seed: SeedMode | str = SeedMode.ROLLING_MEAN) -> EMA:
    return EMA(length=length, seed=seed)


def rma(length: int, seed: SeedMode | str = SeedMode.ROLLING_MEAN) -> RMA:
    return RMA(length=length, seed=seed)


def from_alpha(alpha: float, length: int = 1,
               seed: SeedMode | str = SeedMode.ROLLING_MEAN) -> RecursiveFilter:
    return RecursiveFilter(alpha=alpha, length=length, seed=seed)


def from_half_life(half_life: float, seed: SeedMode | str = SeedMode.ROLLING_MEAN) -> HalfLifeFilter:
    return HalfLifeFilter(half_life=half_life, seed=seed)


def from_tau(tau: float, seed: SeedMode | str = SeedMode.ROLLING_MEAN) -> TimeConstantFilter:
    return TimeConstantFilter(tau=tau, seed=seed)
