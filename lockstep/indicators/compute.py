"""
Batch computation driven by the incremental indicators.

compute_indicator() runs a fresh instance over whole input arrays, one bar
at a time, so batch output at index t is by construction the value the
streaming instance reports after bar t. Seeding and warm-up are defined in
one place (the incremental classes).
"""

from collections.abc import Iterator, Mapping
from typing import Any, Sequence

import numpy as np
import pandas as pd

from ..core.errors import IndicatorParameterError, MissingInputError, SeriesLengthError
from ..utils.logger import get_logger
from .incremental.base import IncrementalIndicator
from .incremental.factory import create_incremental_indicator
from .spec import IndicatorSpec, InputSource


IndicatorLike = IncrementalIndicator | str


def resolve_indicator(indicator_or_name: IndicatorLike, params: dict[str, Any] | None = None) -> IncrementalIndicator:
    """
    Turn a type string (plus params) or a configured instance into a fresh instance.

    A passed instance is never mutated; its parameters are copied into a new
    instance with no history.
    """
    if isinstance(indicator_or_name, IncrementalIndicator):
        if params:
            raise IndicatorParameterError(
                type(indicator_or_name).__name__, "params", params,
                "only together with an indicator type string",
                message=(
                    "params can only be given with an indicator type string\n"
                    "\n"
                    "Fix: configure the instance at construction, or pass its type string."
                ),
            )
        return indicator_or_name.fresh()
    return create_incremental_indicator(str(indicator_or_name), params)


def _collect_inputs(indicator: IncrementalIndicator, series: Mapping[str, Any]) -> dict[str, np.ndarray]:
    """Select, convert and length-check the series this indicator consumes."""
    required = indicator.INPUTS
    missing = [name for name in required if series.get(name) is None]
    if missing:
        raise MissingInputError(type(indicator).__name__, missing, required)

    arrays = {name: np.asarray(series[name], dtype=np.float64) for name in required}
    lengths = {name: int(arr.shape[0]) for name, arr in arrays.items()}
    if len(set(lengths.values())) > 1:
        raise SeriesLengthError(lengths)
    return arrays


def _drive(indicator: IncrementalIndicator, arrays: dict[str, np.ndarray]) -> Iterator[IncrementalIndicator]:
    names = list(arrays)
    columns = [arrays[name] for name in names]
    n = columns[0].shape[0] if columns else 0
    for i in range(n):
        indicator.update(**{name: col[i] for name, col in zip(names, columns)})
        yield indicator


def stream_indicator(
    indicator_or_name: IndicatorLike,
    params: dict[str, Any] | None = None,
    **series: Sequence[float],
) -> Iterator[tuple[float, bool]]:
    """
    Feed series bar by bar, yielding (value, is_ready) after each bar.

    Multi-output indicators yield their primary output.
    """
    indicator = resolve_indicator(indicator_or_name, params)
    arrays = _collect_inputs(indicator, series)
    for ind in _drive(indicator, arrays):
        yield ind.value, ind.is_ready


def compute_indicator(
    indicator_or_name: IndicatorLike,
    params: dict[str, Any] | None = None,
    **series: Sequence[float],
) -> np.ndarray | dict[str, np.ndarray]:
    """
    Compute an indicator over whole input series.

    Args:
        indicator_or_name: Registered type string (e.g., "ema") or a configured instance
        params: Parameters when a type string is given
        **series: Input arrays keyed by bar field (close=..., high=..., ...)

    Returns:
        float64 array for single-output indicators, dict of arrays keyed by
        output name for multi-output indicators

    Raises:
        MissingInputError: a required input series is absent
        SeriesLengthError: input series lengths differ
    """
    indicator = resolve_indicator(indicator_or_name, params)
    arrays = _collect_inputs(indicator, series)
    n = next(iter(arrays.values())).shape[0] if arrays else 0
    keys = indicator.output_keys()

    out = {key: np.full(n, np.nan) for key in keys}
    for i, ind in enumerate(_drive(indicator, arrays)):
        for key in keys:
            out[key][i] = getattr(ind, key)

    get_logger().debug(
        f"compute_indicator: {type(indicator).__name__} bars={n} warmup={indicator.warmup_bars}"
    )
    if indicator.is_multi_output:
        return out
    return out["value"]


# =============================================================================
# DataFrame application
# =============================================================================

def _source_column(df: pd.DataFrame, column: str) -> pd.Series:
    """Resolve a DataFrame column or a synthetic price source."""
    if column in df.columns:
        return df[column]
    if column == InputSource.HL2.value:
        return (df["high"] + df["low"]) / 2
    if column == InputSource.HLC3.value:
        return (df["high"] + df["low"] + df["close"]) / 3
    if column == InputSource.OHLC4.value:
        return (df["open"] + df["high"] + df["low"] + df["close"]) / 4
    raise MissingInputError(f"column '{column}'", [column], list(df.columns))


def apply_indicator_specs(df: pd.DataFrame, specs: list[IndicatorSpec]) -> pd.DataFrame:
    """
    Apply indicators from IndicatorSpecs to a DataFrame.

    Single-output indicators add one column named output_key; multi-output
    indicators add {output_key}_{output_name} columns (or the custom names
    in spec.outputs).

    Args:
        df: OHLCV DataFrame
        specs: List of IndicatorSpec objects

    Returns:
        Copy of df with added indicator columns
    """
    df = df.copy()
    logger = get_logger()

    for spec in specs:
        series = {name: _source_column(df, column).to_numpy(dtype=np.float64)
                  for name, column in spec.input_columns().items()}
        result = compute_indicator(spec.indicator_type, spec.params, **series)

        if isinstance(result, dict):
            for name, values in result.items():
                df[spec.column_for(name)] = values
        else:
            df[spec.output_key] = result

        logger.debug(f"apply_indicator_specs: {spec.indicator_type} -> {spec.output_columns}")

    return df


def get_warmup_from_specs(specs: list[IndicatorSpec]) -> int:
    """
    Maximum warm-up bars across specs.

    Args:
        specs: List of IndicatorSpec objects

    Returns:
        Maximum warmup bars needed across all specs (0 for none)
    """
    if not specs:
        return 0
    return max(spec.warmup_bars for spec in specs)
