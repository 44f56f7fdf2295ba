"""
Indicator Module: streaming indicators, batch driver and reference implementation.

Components:
- incremental: O(1)-state per-bar indicators, registry and factory
- compute: batch computation driven by the incremental classes
- spec: IndicatorSpec declarative indicator definitions
- vectorized: independent numpy/pandas reference used by the parity audit

Usage:
    from lockstep.indicators import compute_indicator, IndicatorSpec, apply_indicator_specs

    values = compute_indicator("ema", {"length": 20}, close=closes)

    spec = IndicatorSpec(indicator_type="bbands", output_key="bb", params={"length": 20})
    df = apply_indicator_specs(df, [spec])
"""

from .incremental import (
    IncrementalIndicator,
    SeedMode,
    MAKind,
    create_incremental_indicator,
    get_indicator_info,
    get_output_keys,
    get_input_series,
    get_warmup_bars,
    list_incremental_indicators,
    supports_incremental,
)
from .compute import (
    apply_indicator_specs,
    compute_indicator,
    get_warmup_from_specs,
    resolve_indicator,
    stream_indicator,
)
from .spec import IndicatorSpec, InputSource
from .vectorized import reference_compute, supports_reference

__all__ = [
    # Incremental
    "IncrementalIndicator",
    "SeedMode",
    "MAKind",
    "create_incremental_indicator",
    "get_indicator_info",
    "get_output_keys",
    "get_input_series",
    "get_warmup_bars",
    "list_incremental_indicators",
    "supports_incremental",
    # Batch
    "apply_indicator_specs",
    "compute_indicator",
    "get_warmup_from_specs",
    "resolve_indicator",
    "stream_indicator",
    # Specs
    "IndicatorSpec",
    "InputSource",
    # Reference
    "reference_compute",
    "supports_reference",
]
