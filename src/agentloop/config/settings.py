"""
Runtime settings with environment variable support.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings


class AgentLoopSettings(BaseSettings):
    """Settings for building an execution loop (AGENTLOOP_* variables)."""

    # Reasoning service
    model: str = Field(default="gpt-4.1-mini", description="litellm model name")
    temperature: float = Field(default=0.2, description="Sampling temperature")
    max_tokens: Optional[int] = Field(default=None, description="Completion token cap")
    token_budget: Optional[int] = Field(
        default=None, description="Reject prompts larger than this many tokens"
    )

    # Loop behaviour
    max_plan_failures: int = Field(
        default=3, ge=1, description="Consecutive unparsable plans before the run fails"
    )
    max_depth: int = Field(default=15, ge=1, description="Serializer depth limit")
    iteration_config_path: Optional[str] = Field(
        default=None, description="YAML file with iteration limits"
    )

    # Session storage
    state_dir: str = Field(default="./.agentloop/states", description="Suspended state directory")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Render logs as JSON")

    model_config = {
        "env_file": ".env",
        "env_prefix": "AGENTLOOP_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AgentLoopSettings":
        """Load settings from a YAML file; environment variables still apply."""
        if not config_path.exists():
            return cls()

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)
