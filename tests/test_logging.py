"""Tests for logging setup."""

import sys
from datetime import date
from pathlib import Path

import pytest
from loguru import logger

from delivery_insights.analytics import process_campaigns
from delivery_insights.logging import get_logger, setup_logging


@pytest.fixture
def restore_logger():
    """Put loguru back to a plain stderr sink, with the package silent, afterwards."""
    yield
    logger.remove()
    logger.add(sys.stderr)
    logger.disable("delivery_insights")


class TestSetupLogging:
    """Tests for setup_logging() and get_logger()."""

    def test_file_sink_records_component(self, tmp_path: Path, restore_logger) -> None:
        """Messages from a component logger land in the log file, tagged."""
        log_file = tmp_path / "run.log"
        setup_logging(level="DEBUG", log_file=str(log_file))

        get_logger("pacing").info("Processed {} campaigns", 3)
        logger.remove()  # closes the file sink

        content = log_file.read_text()
        assert "pacing" in content
        assert "Processed 3 campaigns" in content

    def test_level_filters(self, tmp_path: Path, restore_logger) -> None:
        """Messages below the configured level are dropped."""
        log_file = tmp_path / "run.log"
        setup_logging(level="WARNING", log_file=str(log_file))

        log = get_logger("health")
        log.info("routine")
        log.warning("Skipping campaign")
        logger.remove()

        content = log_file.read_text()
        assert "routine" not in content
        assert "Skipping campaign" in content

    def test_unbound_logger_has_default_component(self, tmp_path: Path, restore_logger) -> None:
        """The default format works for loggers without a bound component."""
        log_file = tmp_path / "run.log"
        setup_logging(log_file=str(log_file))

        logger.info("plain message")
        logger.remove()

        assert "delivery_insights" in log_file.read_text()

    def test_package_silent_until_setup(self, tmp_path: Path, restore_logger) -> None:
        """Library diagnostics stay off until setup_logging() enables them."""
        messages: list[str] = []
        handler_id = logger.add(lambda m: messages.append(m.record["message"]))
        process_campaigns([], [], today=date(2024, 1, 1))
        logger.remove(handler_id)
        assert messages == []

        log_file = tmp_path / "run.log"
        setup_logging(log_file=str(log_file))
        process_campaigns([], [], today=date(2024, 1, 1))
        logger.remove()

        assert "Global reference date" in log_file.read_text()
