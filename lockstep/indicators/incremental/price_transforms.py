"""
Per-bar price transforms that carry state from the previous bar.

DirectionalMovement needs the previous high/low; HeikinAshi recurses on its
own previous candle.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, ClassVar

from ...core.price_action import directional_movement, heikin_ashi_bar
from .base import NAN, IncrementalIndicator, as_sample


@dataclass
class DirectionalMovement(IncrementalIndicator):
    """
    Wilder directional movement (+DM, -DM) per bar.

    The first bar has no previous high/low and yields NaN. An invalid bar
    yields NaN for itself and for the next bar, which has no valid previous
    bar to compare against.
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("high", "low")
    OUTPUT_KEYS: ClassVar[tuple[str, ...]] = ("plus", "minus")

    _prev_high: float = field(default=NAN, init=False)
    _prev_low: float = field(default=NAN, init=False)
    _plus: float = field(default=NAN, init=False)
    _minus: float = field(default=NAN, init=False)
    _count: int = field(default=0, init=False)

    def update(self, high: float, low: float, **kwargs: Any) -> float:
        """Update with new bar."""
        high, low = as_sample(high), as_sample(low)
        self._count += 1
        self._plus, self._minus = directional_movement(high, low, self._prev_high, self._prev_low)
        self._prev_high, self._prev_low = high, low
        return self.value

    @property
    def warmup_bars(self) -> int:
        return 2

    @property
    def plus(self) -> float:
        return self._plus

    @property
    def minus(self) -> float:
        return self._minus

    @property
    def value(self) -> float:
        return self._plus


@dataclass
class HeikinAshi(IncrementalIndicator):
    """
    Heikin-Ashi candles.

    Formula:
        ha_close = (O + H + L + C) / 4
        ha_open  = (ha_open[1] + ha_close[1]) / 2, seeded with (O + C) / 2
        ha_high  = max(H, ha_open, ha_close)
        ha_low   = min(L, ha_open, ha_close)

    ha_open is a recursive filter, so an invalid bar poisons every later
    candle until reset().
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("open", "high", "low", "close")
    OUTPUT_KEYS: ClassVar[tuple[str, ...]] = ("open", "high", "low", "close")

    _candle: tuple[float, float, float, float] = field(default=(NAN, NAN, NAN, NAN), init=False)
    _poisoned: bool = field(default=False, init=False)
    _count: int = field(default=0, init=False)

    def update(self, open: float, high: float, low: float, close: float, **kwargs: Any) -> float:
        """Update with new bar."""
        self._count += 1
        if self._poisoned:
            return self.value

        prev_open, _, _, prev_close = self._candle
        self._candle = heikin_ashi_bar(
            as_sample(open), as_sample(high), as_sample(low), as_sample(close),
            prev_open, prev_close,
        )
        if math.isnan(self._candle[0]):
            self._poisoned = True
        return self.value

    @property
    def warmup_bars(self) -> int:
        return 1

    @property
    def open(self) -> float:
        return self._candle[0]

    @property
    def high(self) -> float:
        return self._candle[1]

    @property
    def low(self) -> float:
        return self._candle[2]

    @property
    def close(self) -> float:
        return self._candle[3]

    @property
    def value(self) -> float:
        return self.close
