"""
Construction-time errors for the indicator engine.

Structural misuse (bad period, multiplier, alpha, rounding digits, unknown
parameters, mismatched batch inputs) raises one of these immediately. Numeric
degeneracy at runtime never raises; it yields the NaN sentinel instead.

All errors subclass ValueError so callers that already catch ValueError keep
working, and every message ends with a "Fix:" line.
"""

import math
import numbers
from typing import Any, Iterable


class IndicatorParameterError(ValueError):
    """A structural parameter is out of its valid domain."""

    def __init__(self, owner: str, param: str, value: Any, requirement: str,
                 message: str | None = None):
        self.owner = owner
        self.param = param
        self.value = value
        self.requirement = requirement
        super().__init__(message or (
            f"{owner}: invalid {param}={value!r} ({requirement})\n"
            f"\n"
            f"Fix: pass {param} {requirement}."
        ))


class UnknownParameterError(IndicatorParameterError):
    """Parameters were passed that the indicator does not accept."""

    def __init__(self, owner: str, unknown: Iterable[str], valid: Iterable[str]):
        self.unknown = sorted(unknown)
        self.valid = sorted(valid)
        super().__init__(
            owner,
            ",".join(self.unknown),
            None,
            f"one of {self.valid}",
            message=(
                f"Unknown params for {owner}: {self.unknown}\n"
                f"\n"
                f"Valid params: {self.valid}\n"
                f"\n"
                f"Fix: remove or rename the unknown params."
            ),
        )


class UnknownIndicatorError(ValueError):
    """The indicator type string is not registered."""

    def __init__(self, indicator_type: str, available: Iterable[str]):
        self.indicator_type = indicator_type
        available = sorted(available)
        super().__init__(
            f"Unknown indicator type '{indicator_type}'\n"
            f"\n"
            f"Available: {available}\n"
            f"\n"
            f"Fix: use one of the registered types, e.g. list_incremental_indicators()."
        )


class SeriesLengthError(ValueError):
    """Batch input series have different lengths."""

    def __init__(self, lengths: dict[str, int]):
        self.lengths = dict(lengths)
        super().__init__(
            f"Input series lengths differ: {self.lengths}\n"
            f"\n"
            f"Fix: align all input series to the same bar index before computing."
        )


class MissingInputError(ValueError):
    """A required input series was not supplied."""

    def __init__(self, owner: str, missing: Iterable[str], required: Iterable[str]):
        self.owner = owner
        self.missing = sorted(missing)
        self.required = list(required)
        super().__init__(
            f"{owner} requires inputs {self.required}, missing {self.missing}\n"
            f"\n"
            f"Fix: pass {', '.join(f'{name}=...' for name in self.missing)}."
        )


def require_period(owner: str, period: Any, minimum: int = 1, name: str = "period") -> int:
    """Validate an integer window/period parameter and return it as int."""
    is_integral = isinstance(period, numbers.Integral) or (
        isinstance(period, float) and period.is_integer()
    )
    if isinstance(period, bool) or not is_integral:
        raise IndicatorParameterError(owner, name, period, f"as an integer >= {minimum}")
    period = int(period)
    if period < minimum:
        raise IndicatorParameterError(owner, name, period, f"as an integer >= {minimum}")
    return period


def require_positive(owner: str, value: Any, name: str) -> float:
    """Validate a strictly positive finite float parameter."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise IndicatorParameterError(owner, name, value, "as a finite number > 0") from None
    if not math.isfinite(value) or value <= 0.0:
        raise IndicatorParameterError(owner, name, value, "as a finite number > 0")
    return value
