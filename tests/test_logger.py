"""
Tests for the engine logger.

Validates that:
1. get_logger() returns a singleton
2. Parity records carry the structured PASS/FAIL prefix
3. A configured log directory receives a dated plain-text file
"""

import logging

import pytest

from lockstep.utils.logger import ColoredFormatter, EngineLogger, get_logger, setup_logger


@pytest.fixture
def file_logger(tmp_path):
    logger = setup_logger(log_dir=str(tmp_path), log_level="DEBUG")
    yield logger, tmp_path
    for handler in list(logger.main_logger.handlers):
        handler.close()
    setup_logger()


def _log_text(directory) -> str:
    files = list(directory.glob("lockstep_*.log"))
    assert len(files) == 1
    for handler in logging.getLogger("lockstep").handlers:
        handler.flush()
    return files[0].read_text(encoding="utf-8")


class TestEngineLogger:
    """Singleton and handlers."""

    def test_singleton(self):
        assert get_logger() is get_logger()
        assert isinstance(get_logger(), EngineLogger)

    def test_does_not_propagate(self):
        assert get_logger().main_logger.propagate is False

    def test_file_output(self, file_logger):
        logger, directory = file_logger
        logger.info("hello file")
        logger.debug("debug line")

        text = _log_text(directory)
        assert "hello file" in text
        assert "debug line" in text
        # File records stay free of ANSI color codes
        assert "\033[" not in text


class TestParityRecords:
    """Structured parity log lines."""

    def test_pass_record(self, file_logger):
        logger, directory = file_logger
        logger.parity("ema", passed=True, max_abs_diff=1e-15, warmup_bars=20, outputs=1)

        text = _log_text(directory)
        assert "[PARITY:PASS]" in text
        assert "indicator=ema" in text
        assert "warmup=20" in text
        assert "outputs=1" in text
        assert "| INFO |" in text

    def test_fail_record_is_warning(self, file_logger):
        logger, directory = file_logger
        logger.parity("bbands", passed=False, max_abs_diff=0.5, warmup_bars=20)

        text = _log_text(directory)
        assert "[PARITY:FAIL]" in text
        assert "| WARNING |" in text


class TestColoredFormatter:
    """Console formatting."""

    def test_does_not_mutate_record(self):
        formatter = ColoredFormatter("%(levelname)s | %(message)s")
        record = logging.LogRecord("lockstep", logging.INFO, __file__, 1, "plain", None, None)

        formatted = formatter.format(record)

        assert "plain" in formatted
        assert "\033[" in formatted
        assert record.levelname == "INFO"
        assert record.msg == "plain"
