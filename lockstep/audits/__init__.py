"""
Parity audits: synthetic data and stream/batch/reference comparison.
"""

from .synthetic import constant_series, generate_ohlcv
from .audit_parity import (
    ColumnParityResult,
    IndicatorParityResult,
    ParityAuditResult,
    audit_indicator,
    compare_columns,
    default_audit_cases,
    run_parity_audit,
    within_tolerance,
)

__all__ = [
    "constant_series",
    "generate_ohlcv",
    "ColumnParityResult",
    "IndicatorParityResult",
    "ParityAuditResult",
    "audit_indicator",
    "compare_columns",
    "default_audit_cases",
    "run_parity_audit",
    "within_tolerance",
]
