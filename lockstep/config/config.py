"""
Configuration management for the indicator engine.
Loads settings from environment variables with sensible defaults.

Only ambient concerns (parity audit tolerance, audit data shape, logging) are
configurable. Numeric thresholds used by the engine itself live in
constants.py and never change at runtime.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .constants import (
    DEFAULT_AUDIT_BARS,
    DEFAULT_AUDIT_SEED,
    DEFAULT_PARITY_TOLERANCE,
)


_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ParityConfig:
    """
    Parity audit configuration.

    Attributes:
        tolerance: Relative tolerance for batch/stream/reference comparison
        audit_bars: Length of the synthetic series used by the audit
        audit_seed: RNG seed for the synthetic series
    """
    tolerance: float = DEFAULT_PARITY_TOLERANCE
    audit_bars: int = DEFAULT_AUDIT_BARS
    audit_seed: int = DEFAULT_AUDIT_SEED

    def __post_init__(self) -> None:
        if not (0.0 < self.tolerance < 1.0):
            raise ValueError(
                f"LOCKSTEP_PARITY_TOLERANCE must be in (0, 1), got {self.tolerance}"
            )
        if self.audit_bars < 2:
            raise ValueError(
                f"LOCKSTEP_AUDIT_BARS must be >= 2, got {self.audit_bars}"
            )


@dataclass
class LogConfig:
    """Logging configuration. log_dir=None keeps output on the console only."""
    level: str = "INFO"
    log_dir: Optional[str] = None

    def __post_init__(self) -> None:
        self.level = self.level.upper()
        if self.level not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"LOCKSTEP_LOG_LEVEL must be one of {_VALID_LOG_LEVELS}, got '{self.level}'"
            )


class Config:
    """
    Central configuration manager.

    Loads configuration from environment variables (after reading any .env
    file) and provides typed access to all settings.
    """

    _instance: Optional['Config'] = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, env_file: str = ".env"):
        if self._initialized:
            return

        env_path = Path(env_file)
        if env_path.exists():
            load_dotenv(env_path, override=False)

        self.parity = self._load_parity_config()
        self.log = self._load_log_config()

        self._initialized = True

    def _load_parity_config(self) -> ParityConfig:
        """Load parity audit configuration from environment."""
        return ParityConfig(
            tolerance=_env_float("LOCKSTEP_PARITY_TOLERANCE", DEFAULT_PARITY_TOLERANCE),
            audit_bars=_env_int("LOCKSTEP_AUDIT_BARS", DEFAULT_AUDIT_BARS),
            audit_seed=_env_int("LOCKSTEP_AUDIT_SEED", DEFAULT_AUDIT_SEED),
        )

    def _load_log_config(self) -> LogConfig:
        """Load logging configuration from environment."""
        return LogConfig(
            level=os.getenv("LOCKSTEP_LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOCKSTEP_LOG_DIR") or None,
        )

    def summary(self) -> dict:
        """Flat view of the active settings (used in audit report headers)."""
        return {
            "parity_tolerance": self.parity.tolerance,
            "audit_bars": self.parity.audit_bars,
            "audit_seed": self.parity.audit_seed,
            "log_level": self.log.level,
            "log_dir": self.log.log_dir,
        }


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a float, got '{raw}'") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None


def get_config(env_file: str = ".env") -> Config:
    """Get or create the global config instance."""
    return Config(env_file)


def reload_config(env_file: str = ".env") -> Config:
    """Drop the cached instance and re-read the environment."""
    Config._instance = None
    return Config(env_file)
