"""
Core scalar layer: safe math, rounding, price shortcuts and errors.
"""

from .errors import (
    IndicatorParameterError,
    MissingInputError,
    SeriesLengthError,
    UnknownIndicatorError,
    UnknownParameterError,
)
from .mathbase import (
    NAN,
    RoundMode,
    almost_equal,
    is_finite,
    quantize,
    round_to,
    round_to_tick,
    safe_divide,
    safe_log,
    safe_sqrt,
)

__all__ = [
    "IndicatorParameterError",
    "MissingInputError",
    "SeriesLengthError",
    "UnknownIndicatorError",
    "UnknownParameterError",
    "NAN",
    "RoundMode",
    "almost_equal",
    "is_finite",
    "quantize",
    "round_to",
    "round_to_tick",
    "safe_divide",
    "safe_log",
    "safe_sqrt",
]
