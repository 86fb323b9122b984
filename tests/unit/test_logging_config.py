"""Unit Tests for logging setup."""

import structlog

from agentloop.config.settings import AgentLoopSettings
from agentloop.logging_config import configure_logging, setup_logging


class TestSetupLogging:
    """Tests for setup_logging()."""

    def teardown_method(self):
        structlog.reset_defaults()

    def test_json_output(self, capsys):
        setup_logging(level="INFO", json_output=True)

        structlog.get_logger().bind(component="test").info("state_transition", to_state="completed")

        out = capsys.readouterr().out
        assert '"event": "state_transition"' in out
        assert '"component": "test"' in out

    def test_level_filters_debug(self, capsys):
        setup_logging(level="WARNING", json_output=True)

        structlog.get_logger().debug("hidden_event")

        assert "hidden_event" not in capsys.readouterr().out

    def test_configure_from_settings(self, capsys):
        settings = AgentLoopSettings(_env_file=None, log_level="ERROR", log_json=True)

        configure_logging(settings)
        logger = structlog.get_logger()
        logger.warning("suppressed_event")
        logger.error("reported_event")

        out = capsys.readouterr().out
        assert "suppressed_event" not in out
        assert '"event": "reported_event"' in out

    def test_configure_reads_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("AGENTLOOP_LOG_JSON", "true")
        monkeypatch.setenv("AGENTLOOP_LOG_LEVEL", "INFO")

        configure_logging()
        structlog.get_logger().info("env_event")

        assert '"event": "env_event"' in capsys.readouterr().out
