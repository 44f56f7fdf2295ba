"""
Base class and shared imports for incremental indicators.

All incremental indicators inherit from IncrementalIndicator, which defines
the O(1)-per-bar lifecycle: update(), step(), reset(), clone(), value,
is_ready, bars_until_ready and warmup_bars.

Readiness is count-based: an indicator is ready once it has seen
warmup_bars bars, whatever those bars contained. A ready indicator may still
report NaN when a sentinel sits inside its dependency window.
"""

from __future__ import annotations

import copy
import math
from abc import ABC, abstractmethod
from dataclasses import fields
from typing import Any, ClassVar

import numpy as np


NAN = np.nan


def as_sample(x: Any) -> float:
    """Coerce one input sample to float; infinities become the NaN sentinel."""
    x = float(x)
    return x if math.isfinite(x) else NAN


class IncrementalIndicator(ABC):
    """
    Base class for incremental indicators.

    Subclasses are dataclasses whose init fields are the structural
    parameters. They keep a private ``_count`` of bars seen and expose the
    analytic warm-up through ``warmup_bars``.

    Class attributes:
        INPUTS: Bar fields consumed by update(), in call order
        OUTPUT_KEYS: Named outputs for multi-output indicators (empty = single)
    """

    INPUTS: ClassVar[tuple[str, ...]] = ("close",)
    OUTPUT_KEYS: ClassVar[tuple[str, ...]] = ()

    _count: int

    @abstractmethod
    def update(self, **kwargs: Any) -> float:
        """Consume one bar and return the primary output (NaN before ready)."""
        ...

    @property
    @abstractmethod
    def value(self) -> float:
        """Current primary output."""
        ...

    @property
    @abstractmethod
    def warmup_bars(self) -> int:
        """Bars required before the first non-sentinel output on clean input."""
        ...

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def bars_seen(self) -> int:
        return self._count

    @property
    def is_ready(self) -> bool:
        """True when warmup period complete."""
        return self._count >= self.warmup_bars

    @property
    def bars_until_ready(self) -> int:
        return max(0, self.warmup_bars - self._count)

    def step(self, **bar: Any) -> tuple[float, bool]:
        """Update and return (value, is_ready) in one call."""
        value = self.update(**bar)
        return value, self.is_ready

    def init_params(self) -> dict[str, Any]:
        """Structural parameters this instance was constructed with."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.init}

    def reset(self) -> None:
        """Reset state to exactly the post-construction state."""
        # The dataclass __init__ skips init=False fields with plain defaults,
        # so the whole instance dict is replaced from a new instance.
        rebuilt = self.fresh()
        self.__dict__.clear()
        self.__dict__.update(rebuilt.__dict__)

    def fresh(self) -> "IncrementalIndicator":
        """New instance with the same parameters and no history."""
        return type(self)(**self.init_params())

    def clone(self) -> "IncrementalIndicator":
        """Full structural deep copy, including every embedded stage."""
        return copy.deepcopy(self)

    # -------------------------------------------------------------------------
    # Outputs
    # -------------------------------------------------------------------------

    @classmethod
    def output_keys(cls) -> tuple[str, ...]:
        return cls.OUTPUT_KEYS or ("value",)

    @property
    def is_multi_output(self) -> bool:
        return bool(self.OUTPUT_KEYS)

    @property
    def outputs(self) -> dict[str, float]:
        """All current outputs keyed by output name."""
        return {key: float(getattr(self, key)) for key in self.output_keys()}

    def get_value(self, key: str) -> float:
        valid_keys = self.output_keys()
        if key not in valid_keys:
            raise KeyError(
                f"{type(self).__name__} has no output '{key}'\n"
                f"\n"
                f"Available outputs: {list(valid_keys)}\n"
                f"\n"
                f"Fix: Use one of the available output keys above."
            )
        return float(getattr(self, key))
