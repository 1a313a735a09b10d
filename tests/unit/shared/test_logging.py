"""Unit tests for ramen_harness.shared.logging module."""

import json
import logging

import pytest

from ramen_harness.shared.logging import (
    bind_scenario,
    configure_logging,
    get_logger,
    unbind_scenario,
)


@pytest.fixture(autouse=True)
def restore_logging():
    """Put the default structlog and logging setup back after each test."""
    import structlog

    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.harness_unit
class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_level(self):
        """Test the root level follows the requested level."""
        configure_logging(level="debug")

        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_warning(self):
        """Test an unknown level name means warning."""
        configure_logging(level="chatty")

        assert logging.getLogger().level == logging.WARNING

    def test_json_file_output(self, tmp_path):
        """Test JSON records are written to the log file."""
        log_file = tmp_path / "harness.log"
        configure_logging(level="info", log_file=log_file, json_output=True)

        get_logger("ramen_harness.test").info("Tracking process", key="ramen httpd", pid=42)
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["event"] == "Tracking process"
        assert record["key"] == "ramen httpd"
        assert record["pid"] == 42
        assert record["level"] == "info"

    def test_scenario_workspace_is_bound(self, tmp_path):
        """Test records carry the workspace only while a scenario is bound."""
        log_file = tmp_path / "harness.log"
        configure_logging(level="info", log_file=log_file, json_output=True)
        logger = get_logger("ramen_harness.test")

        bind_scenario("/tmp/ramen_cucumber_tests_abc")
        try:
            logger.info("inside")
        finally:
            unbind_scenario()
        logger.info("outside")
        for handler in logging.getLogger().handlers:
            handler.flush()

        inside, outside = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert inside["workspace"] == "/tmp/ramen_cucumber_tests_abc"
        assert "workspace" not in outside
