"""Tests for logging configuration."""

import json
import logging

import pytest
import structlog

from reportgen.config import Settings
from reportgen.logging import QUIET_LOGGERS, setup_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()
    logging.basicConfig(force=True)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_json_lines_on_stderr(self, capsys) -> None:
        """JSON output carries the event, level and bound context."""
        setup_logging(Settings(), json_output=True)

        with structlog.contextvars.bound_contextvars(report_id="r-1"):
            structlog.get_logger("test").info("report_generated", size_bytes=10)

        captured = capsys.readouterr()
        assert captured.out == ""
        line = json.loads(captured.err.strip().splitlines()[-1])
        assert line["event"] == "report_generated"
        assert line["level"] == "info"
        assert line["report_id"] == "r-1"
        assert line["size_bytes"] == 10

    def test_level_filtering(self, capsys) -> None:
        """Events below the configured level are dropped."""
        setup_logging(Settings(log_level="WARNING"), json_output=True)

        structlog.get_logger("test").info("ignored")

        assert capsys.readouterr().err == ""

    def test_quiet_loggers(self) -> None:
        """Third-party loggers are capped at WARNING."""
        setup_logging(Settings(log_level="DEBUG"))
        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
