"""
IndicatorSpec: Declarative indicator specification.

Each IndicatorSpec defines:
- indicator_type: What indicator to compute (validated against the registry)
- params: Parameters for the indicator
- output_key: Column name (single output) or prefix (multi-output)
- input_source: Which price column feeds single-source indicators
- inputs: Optional explicit column mapping for multi-input indicators
- outputs: Optional custom column names for multi-output indicators
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .incremental.factory import create_incremental_indicator, get_indicator_info


class InputSource(str, Enum):
    """
    Data sources for single-source indicators.

    OHLCV: Use the named price column directly
    HL2, HLC3, OHLC4: Computed from multiple columns
    """
    OPEN = "open"
    HIGH = "high"
    LOW = "low"
    CLOSE = "close"
    VOLUME = "volume"
    HL2 = "hl2"        # (high + low) / 2
    HLC3 = "hlc3"      # (high + low + close) / 3
    OHLC4 = "ohlc4"    # (open + high + low + close) / 4


@dataclass(frozen=True)
class IndicatorSpec:
    """
    Specification for a single indicator column (or column group).

    Attributes:
        indicator_type: Registered indicator type string (e.g., "ema", "bbands")
        output_key: Column name for single-output, prefix for multi-output
        params: Parameters for the indicator (e.g., {"length": 20})
        input_source: Column feeding indicators that take a single "close" input
        inputs: Input name -> column, overriding the defaults of multi-input
                indicators (e.g., {"x": "close", "y": "volume"})
        outputs: For multi-output indicators, output name -> custom column

    Examples:
        # EMA 20 on close (single output)
        IndicatorSpec(indicator_type="ema", output_key="ema_20", params={"length": 20})

        # Bollinger Bands -> bb_upper, bb_basis, bb_lower, bb_bandwidth, bb_percent_b
        IndicatorSpec(indicator_type="bbands", output_key="bb", params={"length": 20, "mult": 2.0})
    """
    indicator_type: str
    output_key: str
    params: dict[str, Any] = field(default_factory=dict)
    input_source: InputSource = InputSource.CLOSE
    inputs: dict[str, str] | None = None
    outputs: dict[str, str] | None = None

    def __post_init__(self):
        """Validate spec."""
        if not self.output_key:
            raise ValueError(
                "IndicatorSpec.output_key is required\n"
                "\n"
                "Fix: IndicatorSpec(indicator_type=..., output_key='ema_20', ...)"
            )
        object.__setattr__(self, "indicator_type", self.indicator_type.lower())
        object.__setattr__(self, "input_source", InputSource(getattr(self.input_source, "value", self.input_source)))

        # Fail fast: unknown type, unknown params or bad values raise here
        create_incremental_indicator(self.indicator_type, self.params)

        info = get_indicator_info(self.indicator_type)
        if self.outputs:
            unknown = set(self.outputs) - set(info.output_keys)
            if unknown:
                raise ValueError(
                    f"IndicatorSpec '{self.output_key}': unknown outputs {sorted(unknown)}\n"
                    f"\n"
                    f"Available outputs: {list(info.output_keys)}\n"
                    f"\n"
                    f"Fix: Use one of the available output keys above."
                )
        if self.inputs:
            unknown = set(self.inputs) - set(info.input_series)
            if unknown:
                raise ValueError(
                    f"IndicatorSpec '{self.output_key}': unknown inputs {sorted(unknown)}\n"
                    f"\n"
                    f"Indicator inputs: {list(info.input_series)}\n"
                    f"\n"
                    f"Fix: map only the indicator's own input names to columns."
                )

    @property
    def is_multi_output(self) -> bool:
        return get_indicator_info(self.indicator_type).is_multi_output

    @property
    def warmup_bars(self) -> int:
        return create_incremental_indicator(self.indicator_type, self.params).warmup_bars

    def column_for(self, output_name: str) -> str:
        """Column name for one output."""
        if not self.is_multi_output:
            return self.output_key
        if self.outputs and output_name in self.outputs:
            return self.outputs[output_name]
        return f"{self.output_key}_{output_name}"

    @property
    def output_columns(self) -> list[str]:
        info = get_indicator_info(self.indicator_type)
        return [self.column_for(name) for name in info.output_keys]

    def input_columns(self) -> dict[str, str]:
        """Indicator input name -> DataFrame column (or synthetic source name)."""
        info = get_indicator_info(self.indicator_type)
        mapping: dict[str, str] = {}
        for name in info.input_series:
            if self.inputs and name in self.inputs:
                mapping[name] = self.inputs[name]
            elif info.input_series == ("close",):
                mapping[name] = self.input_source.value
            else:
                mapping[name] = name
        return mapping
