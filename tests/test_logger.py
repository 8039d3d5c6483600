"""Tests for loguru setup."""

import sys

from loguru import logger

from remend.core.logger import setup_logger


def test_file_sink_records_structured_context(tmp_path):
    log_file = tmp_path / "logs" / "remend.log"

    setup_logger(level="debug", log_file=str(log_file))
    logger.info("Plan saved", plan_id=3, kind="progression")
    logger.remove()
    logger.add(sys.stderr)

    text = log_file.read_text()
    assert "Logger initialized" in text
    assert "Plan saved" in text
    assert "'plan_id': 3" in text
    assert "'kind': 'progression'" in text
