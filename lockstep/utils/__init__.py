"""Utility modules."""

from .logger import get_logger, setup_logger, EngineLogger

__all__ = [
    "get_logger",
    "setup_logger",
    "EngineLogger",
]
