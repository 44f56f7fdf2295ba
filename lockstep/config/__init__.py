"""
Configuration management.
"""

from .config import (
    Config,
    LogConfig,
    ParityConfig,
    get_config,
    reload_config,
)

from .constants import (
    EPS,
    DEFAULT_PARITY_TOLERANCE,
    DEFAULT_TRADING_DAYS,
)

__all__ = [
    # Config classes
    "Config",
    "LogConfig",
    "ParityConfig",
    "get_config",
    "reload_config",
    # Engine constants
    "EPS",
    "DEFAULT_PARITY_TOLERANCE",
    "DEFAULT_TRADING_DAYS",
]
