"""
Centralized numeric constants for the indicator engine.

These are NOT runtime-configurable. Two conforming implementations must agree
bit-for-bit on every threshold below, so changing any of them is a breaking
change for every stored parity baseline.
"""

import math


# ==================== Tolerances ====================

# Epsilon for safe division, sign dead-band and tolerant equality
EPS = 1e-12

# Maximum relative divergence allowed between batch, stream and reference paths
DEFAULT_PARITY_TOLERANCE = 1e-10


# ==================== Rounding ====================

# Valid range of decimal digits accepted by round_to()
MIN_ROUND_DIGITS = 0
MAX_ROUND_DIGITS = 15


# ==================== Candle Anatomy ====================

# is_doji(): maximum real body as a fraction of the bar range
DEFAULT_DOJI_BODY_RATIO = 0.1


# ==================== Volatility Estimators ====================

# Default annualisation basis for range-based volatility estimators
DEFAULT_TRADING_DAYS = 252.0

# Parkinson: 1 / (4 * ln 2)
PARKINSON_FACTOR = 1.0 / (4.0 * math.log(2.0))

# Garman-Klass: 0.5 * ln(H/L)^2 - (2 ln 2 - 1) * ln(C/O)^2
GARMAN_KLASS_HL_FACTOR = 0.5
GARMAN_KLASS_CO_FACTOR = 2.0 * math.log(2.0) - 1.0

# Yang-Zhang weighting: k = 0.34 / (1.34 + (n + 1) / (n - 1))
YANG_ZHANG_ALPHA = 0.34


# ==================== Synthetic Audit Data ====================

DEFAULT_AUDIT_BARS = 500
DEFAULT_AUDIT_SEED = 7
DEFAULT_AUDIT_START_PRICE = 100.0
