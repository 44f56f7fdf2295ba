"""
lockstep: deterministic technical indicators with batch/stream parity.

Every indicator is an incremental object with O(1) state per bar; batch
computation drives the same objects, and an independent vectorized
reference implementation backs the parity audit.
"""

__version__ = "0.1.0"

from .indicators import (
    IncrementalIndicator,
    IndicatorSpec,
    apply_indicator_specs,
    compute_indicator,
    create_incremental_indicator,
    get_warmup_bars,
    list_incremental_indicators,
    stream_indicator,
)

__all__ = [
    "__version__",
    "IncrementalIndicator",
    "IndicatorSpec",
    "apply_indicator_specs",
    "compute_indicator",
    "create_incremental_indicator",
    "get_warmup_bars",
    "list_incremental_indicators",
    "stream_indicator",
]
