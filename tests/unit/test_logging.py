"""Unit tests for logging setup."""

import json

import pytest
import structlog

from ui_actions.utils import setup_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestSetupLogging:
    """Test structlog configuration."""

    def test_json_output(self, capsys):
        logger = setup_logging("DEBUG", "json")

        logger.info("Executing action", action_type="script")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "Executing action"
        assert event["action_type"] == "script"
        assert event["level"] == "info"
        assert "timestamp" in event

    def test_level_filtering(self, capsys):
        logger = setup_logging("WARNING", "plain")

        logger.info("hidden")
        logger.warning("Action failed", error="boom")

        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "Action failed" in out

    def test_unknown_level_defaults_to_info(self, capsys):
        logger = setup_logging("chatty", "json")

        logger.debug("hidden")
        logger.info("shown")

        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown" in out
