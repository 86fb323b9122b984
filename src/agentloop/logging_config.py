"""
Logging setup for agentloop.

Components log through `structlog.get_logger().bind(component=...)` with
event-style names (e.g. "state_transition"); this module only decides how
those events are rendered.
"""

import logging
from typing import Optional

import structlog

from agentloop.config.settings import AgentLoopSettings


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog for console or JSON output."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, format="%(message)s")

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def configure_logging(settings: Optional[AgentLoopSettings] = None) -> None:
    """Apply log_level and log_json from settings (default: read from environment)."""
    settings = settings or AgentLoopSettings()
    setup_logging(level=settings.log_level, json_output=settings.log_json)
