"""
Stream vs batch vs reference parity audit.

Runs every registered indicator (plus seed-mode and smoothing-kind variants)
over one synthetic OHLCV series three ways:

1. stream    - a fresh instance fed bar by bar, recording every output
2. batch     - compute_indicator() over the whole arrays
3. reference - the independently written vectorized implementation

and checks, per output column:
- identical NaN masks across the three paths
- |a - b| <= tolerance * max(1, |a|, |b|) wherever values are finite
- the primary output turns finite exactly at index warmup_bars - 1 and
  is_ready flips at the same bar

CLI: python -m lockstep.audits.audit_parity [--tolerance 1e-10] [--bars 500] [--seed 7] [--json]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from rich.console import Console
from rich.table import Table

from ..config import get_config
from ..indicators.compute import compute_indicator
from ..indicators.incremental.factory import (
    create_incremental_indicator,
    get_indicator_info,
    list_incremental_indicators,
)
from ..indicators.vectorized import reference_compute
from ..utils.logger import get_logger
from .synthetic import generate_ohlcv


# Non-default configurations audited alongside every type's defaults
AUDIT_VARIANTS: list[tuple[str, dict[str, Any]]] = [
    ("ema", {"length": 10, "seed": "first_sample"}),
    ("ema", {"length": 10, "seed": "zero"}),
    ("ema", {"length": 10, "seed": "defer"}),
    ("rma", {"length": 7, "seed": "first_sample"}),
    ("halflife_ema", {"half_life": 3.5}),
    ("tau_ema", {"tau": 4.2, "seed": "defer"}),
    ("variance", {"length": 15, "sample": False}),
    ("dema", {"length": 9, "seed": "first_sample"}),
    ("tema", {"length": 9, "seed": "defer"}),
    ("t3", {"length": 4, "v_factor": 0.5}),
    ("hma", {"length": 9}),
    ("zlema", {"length": 14, "seed": "zero"}),
    ("atr", {"length": 10, "ma": "sma"}),
    ("atr", {"length": 10, "ma": "ema", "seed": "first_sample"}),
    ("natr", {"scale_to_100": True}),
    ("bbands", {"length": 10, "ma": "ema", "sample": False, "mult": 1.5}),
    ("keltner", {"deviation": "tr_ema", "ma": "wma"}),
    ("atr_bands", {"atr_ma": "sma", "mult": 3.0}),
    ("chaikin_volatility", {"ma": "sma", "scale_to_100": False}),
    ("historical_volatility", {"length": 10, "annualize": False}),
    ("yang_zhang", {"length": 5, "trading_days": 365.0}),
]

# Column feeding each input name; paired statistics use close vs open
INPUT_COLUMNS: dict[str, str] = {
    "open": "open",
    "high": "high",
    "low": "low",
    "close": "close",
    "volume": "volume",
    "x": "close",
    "y": "open",
}


# =============================================================================
# Results
# =============================================================================

@dataclass
class ColumnParityResult:
    """Result of comparing one output column across the three paths."""
    output: str
    passed: bool
    max_abs_diff: float
    mean_abs_diff: float
    nan_mask_identical: bool
    compared_values: int
    first_mismatch_index: int | None = None


@dataclass
class IndicatorParityResult:
    """Result of auditing one indicator configuration."""
    indicator: str
    params: dict[str, Any]
    warmup_bars: int
    passed: bool
    warmup_boundary_ok: bool
    columns: list[ColumnParityResult] = field(default_factory=list)
    error_message: str | None = None

    @property
    def max_abs_diff(self) -> float:
        if not self.columns:
            return float("nan")
        return max(c.max_abs_diff for c in self.columns)

    @property
    def label(self) -> str:
        if not self.params:
            return self.indicator
        rendered = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.indicator}({rendered})"


@dataclass
class ParityAuditResult:
    """Result of the complete parity audit."""
    success: bool
    tolerance: float
    bars_tested: int
    seed: int
    results: list[IndicatorParityResult] = field(default_factory=list)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed_count(self) -> int:
        return len(self.results) - self.passed_count

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "success": self.success,
            "tolerance": self.tolerance,
            "bars_tested": self.bars_tested,
            "seed": self.seed,
            "total_indicators": len(self.results),
            "passed_indicators": self.passed_count,
            "failed_indicators": self.failed_count,
            "results": [
                {
                    "indicator": r.indicator,
                    "params": r.params,
                    "warmup_bars": r.warmup_bars,
                    "passed": r.passed,
                    "warmup_boundary_ok": r.warmup_boundary_ok,
                    "error_message": r.error_message,
                    "columns": [
                        {
                            "output": c.output,
                            "passed": c.passed,
                            "max_abs_diff": c.max_abs_diff,
                            "mean_abs_diff": c.mean_abs_diff,
                            "nan_mask_identical": c.nan_mask_identical,
                            "compared_values": c.compared_values,
                            "first_mismatch_index": c.first_mismatch_index,
                        }
                        for c in r.columns
                    ],
                }
                for r in self.results
            ],
        }

    def print_summary(self, console: Console | None = None) -> None:
        """Print a rich table of per-indicator results."""
        console = console or Console()

        table = Table(title="Stream / Batch / Reference Parity", show_header=True, header_style="bold")
        table.add_column("Indicator", style="cyan")
        table.add_column("Warmup", justify="right")
        table.add_column("Outputs")
        table.add_column("Max diff", justify="right")
        table.add_column("NaN masks", justify="center")
        table.add_column("Status", justify="center")

        for r in self.results:
            masks_ok = all(c.nan_mask_identical for c in r.columns) if r.columns else False
            status = "[green]PASS[/]" if r.passed else "[red]FAIL[/]"
            table.add_row(
                r.label,
                str(r.warmup_bars),
                ", ".join(c.output for c in r.columns) or "-",
                f"{r.max_abs_diff:.2e}",
                "ok" if masks_ok else "[red]differ[/]",
                status,
            )

        console.print(table)
        console.print(
            f"Bars: {self.bars_tested}  Seed: {self.seed}  Tolerance: {self.tolerance:g}  "
            f"Passed: {self.passed_count}/{len(self.results)}"
        )
        for r in self.results:
            if r.error_message:
                console.print(f"[red]{r.label}: {r.error_message}[/]")

        if self.success:
            console.print("[bold green]All indicators agree across stream, batch and reference[/]")
        else:
            console.print("[bold red]Parity failures detected[/]")


# =============================================================================
# Comparison
# =============================================================================

def within_tolerance(a: np.ndarray, b: np.ndarray, tolerance: float) -> np.ndarray:
    """Elementwise |a - b| <= tolerance * max(1, |a|, |b|); NaN pairs compare False."""
    scale = np.maximum(1.0, np.maximum(np.abs(a), np.abs(b)))
    return np.abs(a - b) <= tolerance * scale


def compare_columns(
    output: str,
    stream: np.ndarray,
    batch: np.ndarray,
    reference: np.ndarray,
    tolerance: float,
) -> ColumnParityResult:
    """Compare one output across the three paths."""
    stream_nan = np.isnan(stream)
    nan_mask_identical = bool(
        np.array_equal(stream_nan, np.isnan(batch)) and np.array_equal(stream_nan, np.isnan(reference))
    )

    both = ~stream_nan & ~np.isnan(batch) & ~np.isnan(reference)
    ok = np.ones(stream.shape[0], dtype=bool)
    ok[both] = (
        within_tolerance(stream[both], batch[both], tolerance)
        & within_tolerance(stream[both], reference[both], tolerance)
    )

    diffs = np.abs(stream[both] - reference[both])
    max_diff = float(diffs.max()) if diffs.size else 0.0
    mean_diff = float(diffs.mean()) if diffs.size else 0.0

    bad = np.flatnonzero(~ok)
    if not nan_mask_identical and bad.size == 0:
        mask_diff = np.flatnonzero((stream_nan != np.isnan(batch)) | (stream_nan != np.isnan(reference)))
        bad = mask_diff

    return ColumnParityResult(
        output=output,
        passed=nan_mask_identical and bool(ok.all()),
        max_abs_diff=max_diff,
        mean_abs_diff=mean_diff,
        nan_mask_identical=nan_mask_identical,
        compared_values=int(both.sum()),
        first_mismatch_index=int(bad[0]) if bad.size else None,
    )


def _as_columns(result: np.ndarray | dict[str, np.ndarray]) -> dict[str, np.ndarray]:
    if isinstance(result, dict):
        return result
    return {"value": result}


def _stream(indicator_type: str, params: dict[str, Any], series: dict[str, np.ndarray]) -> tuple[dict[str, np.ndarray], np.ndarray]:
    """Feed a fresh instance bar by bar; return per-output arrays and readiness flags."""
    ind = create_incremental_indicator(indicator_type, params)
    keys = ind.output_keys()
    names = list(series)
    n = series[names[0]].shape[0]
    out = {key: np.full(n, np.nan) for key in keys}
    ready = np.zeros(n, dtype=bool)
    for i in range(n):
        ind.update(**{name: series[name][i] for name in names})
        ready[i] = ind.is_ready
        for key in keys:
            out[key][i] = getattr(ind, key)
    return out, ready


def _warmup_boundary_ok(primary: np.ndarray, ready: np.ndarray, warmup: int) -> bool:
    n = primary.shape[0]
    if warmup > n:
        return bool(np.isnan(primary).all() and not ready.any())
    expected_ready = np.arange(n) >= warmup - 1
    if not np.array_equal(ready, expected_ready):
        return False
    if warmup >= 2 and not np.isnan(primary[warmup - 2]):
        return False
    return bool(np.isfinite(primary[warmup - 1]))


def audit_indicator(
    df: pd.DataFrame,
    indicator_type: str,
    params: dict[str, Any] | None = None,
    tolerance: float | None = None,
) -> IndicatorParityResult:
    """
    Audit one indicator configuration over a synthetic OHLCV frame.

    Args:
        df: OHLCV DataFrame (see generate_ohlcv)
        indicator_type: Registered type string
        params: Indicator parameters (defaults when None)
        tolerance: Mixed relative tolerance (config default when None)

    Returns:
        IndicatorParityResult
    """
    params = dict(params or {})
    tolerance = get_config().parity.tolerance if tolerance is None else tolerance
    info = get_indicator_info(indicator_type)
    series = {name: df[INPUT_COLUMNS[name]].to_numpy(dtype=np.float64) for name in info.input_series}

    warmup = create_incremental_indicator(indicator_type, params).warmup_bars
    stream, ready = _stream(indicator_type, params, series)
    batch = _as_columns(compute_indicator(indicator_type, params, **series))
    reference = _as_columns(reference_compute(indicator_type, params, **series))

    columns = [
        compare_columns(key, stream[key], batch[key], reference[key], tolerance)
        for key in info.output_keys
    ]
    boundary_ok = _warmup_boundary_ok(stream[info.primary_output], ready, warmup)
    passed = boundary_ok and all(c.passed for c in columns)

    result = IndicatorParityResult(
        indicator=info.name,
        params=params,
        warmup_bars=warmup,
        passed=passed,
        warmup_boundary_ok=boundary_ok,
        columns=columns,
    )
    get_logger().parity(
        result.label,
        passed=passed,
        max_abs_diff=result.max_abs_diff,
        warmup_bars=warmup,
        outputs=len(columns),
        boundary_ok=boundary_ok,
    )
    return result


def default_audit_cases() -> list[tuple[str, dict[str, Any]]]:
    """Every registered type with default params, then the configured variants."""
    return [(name, {}) for name in list_incremental_indicators()] + list(AUDIT_VARIANTS)


def run_parity_audit(
    bars: int | None = None,
    tolerance: float | None = None,
    seed: int | None = None,
    cases: list[tuple[str, dict[str, Any]]] | None = None,
) -> ParityAuditResult:
    """
    Run the complete stream/batch/reference parity audit.

    Args:
        bars: Number of synthetic bars (config default when None)
        tolerance: Mixed relative tolerance (config default when None)
        seed: Random seed for the synthetic series (config default when None)
        cases: (indicator_type, params) pairs (all registered types plus variants when None)

    Returns:
        ParityAuditResult with one entry per case
    """
    parity = get_config().parity
    bars = parity.audit_bars if bars is None else bars
    tolerance = parity.tolerance if tolerance is None else tolerance
    seed = parity.audit_seed if seed is None else seed
    cases = default_audit_cases() if cases is None else cases

    logger = get_logger()
    logger.info(f"Parity audit: {len(cases)} cases, bars={bars}, seed={seed}, tolerance={tolerance:g}")

    df = generate_ohlcv(n_bars=bars, seed=seed)
    results = []
    for indicator_type, params in cases:
        try:
            results.append(audit_indicator(df, indicator_type, params, tolerance))
        except ValueError as e:
            # Construction errors are reported per case, not fatal to the run
            logger.error(f"Parity audit: {indicator_type} {params} failed to run: {e}")
            results.append(
                IndicatorParityResult(
                    indicator=indicator_type,
                    params=dict(params),
                    warmup_bars=0,
                    passed=False,
                    warmup_boundary_ok=False,
                    error_message=str(e),
                )
            )

    return ParityAuditResult(
        success=all(r.passed for r in results),
        tolerance=tolerance,
        bars_tested=bars,
        seed=seed,
        results=results,
    )


# CLI entry point
def main() -> int:
    """CLI entry point for standalone execution."""
    import argparse
    import json

    parser = argparse.ArgumentParser(
        description="Audit stream vs batch vs reference indicator parity"
    )
    parser.add_argument("--bars", type=int, default=None, help="Number of bars to test (default: from config)")
    parser.add_argument("--tolerance", type=float, default=None, help="Mixed relative tolerance (default: from config)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (default: from config)")
    parser.add_argument("--json", action="store_true", help="Output as JSON")

    args = parser.parse_args()

    result = run_parity_audit(bars=args.bars, tolerance=args.tolerance, seed=args.seed)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        result.print_summary()

    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
