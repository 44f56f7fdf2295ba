"""
Logging system for the indicator engine.
Provides human-readable console logs with optional dated file output.

Engine hot paths (per-bar updates) never log. Batch drivers log at DEBUG and
the parity audit emits one structured record per indicator.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional


# ANSI color codes for terminal output
class Colors:
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    BOLD = "\033[1m"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name and message for console output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record):
        # Work on a copy so file handlers sharing the record stay plain text
        record = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        record.levelname = f"{color}{record.levelname}{Colors.RESET}"
        record.msg = f"{color}{record.msg}{Colors.RESET}"
        return super().format(record)


class EngineLogger:
    """
    Central logger for lockstep.

    Wraps the stdlib "lockstep" logger. Console output is always attached;
    a dated log file is added only when a log directory is configured.
    """

    _instance: Optional['EngineLogger'] = None
    _initialized: bool = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, log_dir: Optional[str] = None, log_level: str = "INFO"):
        if EngineLogger._initialized:
            return

        self.log_dir = Path(log_dir) if log_dir else None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.main_logger = self._create_logger("lockstep", log_level)

        EngineLogger._initialized = True

    def _create_logger(self, name: str, level: str) -> logging.Logger:
        """Create a configured logger instance."""
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level.upper()))
        logger.handlers.clear()
        logger.propagate = False

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(ColoredFormatter(
            "%(asctime)s | %(levelname)s | %(message)s",
            datefmt="%H:%M:%S"
        ))
        logger.addHandler(console_handler)

        if self.log_dir is not None:
            log_file = self.log_dir / f"lockstep_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
            logger.addHandler(file_handler)

        return logger

    def info(self, msg: str, *args, **kwargs):
        """Log info message."""
        self.main_logger.info(msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        """Log debug message."""
        self.main_logger.debug(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        """Log warning message."""
        self.main_logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log error message."""
        self.main_logger.error(msg, *args, **kwargs)

    def parity(self, indicator: str, passed: bool, max_abs_diff: float,
               warmup_bars: int, **kwargs):
        """
        Log one parity audit result with structured format.

        Args:
            indicator: Indicator type string (e.g., "ema", "bbands")
            passed: Whether every compared output matched within tolerance
            max_abs_diff: Largest absolute divergence across outputs
            warmup_bars: Analytic warm-up of the audited instance
            **kwargs: Additional fields (params, failing output key, ...)
        """
        status = "PASS" if passed else "FAIL"
        parts = [
            f"[PARITY:{status}]",
            f"indicator={indicator}",
            f"warmup={warmup_bars}",
            f"max_abs_diff={max_abs_diff:.3e}",
        ]
        for key, value in kwargs.items():
            parts.append(f"{key}={value}")

        msg = " | ".join(parts)
        if passed:
            self.main_logger.info(msg)
        else:
            self.main_logger.warning(msg)


# Global logger instance
_logger: Optional[EngineLogger] = None


def get_logger(log_dir: Optional[str] = None, log_level: Optional[str] = None) -> EngineLogger:
    """
    Get or create the global logger instance.

    On first use, unspecified settings come from the LOCKSTEP_LOG_* config.
    """
    global _logger
    if _logger is None:
        if log_dir is None or log_level is None:
            from ..config import get_config
            log_cfg = get_config().log
            log_dir = log_dir if log_dir is not None else log_cfg.log_dir
            log_level = log_level if log_level is not None else log_cfg.level
        _logger = EngineLogger(log_dir, log_level)
    return _logger


def setup_logger(log_dir: Optional[str] = None, log_level: str = "INFO") -> EngineLogger:
    """Initialize the logger with custom settings, replacing any existing one."""
    global _logger
    EngineLogger._initialized = False
    EngineLogger._instance = None
    _logger = EngineLogger(log_dir, log_level)
    return _logger
