"""
Iteration limits per agent.

Limits resolve in this order: explicit per-agent override, the default of
the agent's category (looked up via category_mapping or given by the
caller), then the global default.
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

IterationPhase = Literal["early", "middle", "final"]

PHASE_LABELS: dict[str, str] = {
    "early": "Early exploration (abundant resources available)",
    "middle": "Active development (moderate resources)",
    "final": "Final phase (limited resources)",
}

PHASE_STRATEGIES: dict[str, str] = {
    "early": "Explore the task, gather the information you need and record a plan before editing.",
    "middle": "Execute your plan. Prefer decisive tool calls over further exploration.",
    "final": "Wrap up. Finish the most important remaining work and call finalAnswer before the budget runs out.",
}


class IterationConfig(BaseModel):
    """Maximum iteration counts by category and by agent id."""

    category_defaults: dict[str, int] = Field(
        default_factory=lambda: {"content": 15, "process": 8},
        description="Default limit per agent category",
    )
    agent_overrides: dict[str, int] = Field(
        default_factory=dict, description="Per-agent limits that win over category defaults"
    )
    global_default: int = Field(default=10, ge=1, description="Limit when nothing else applies")
    category_mapping: dict[str, str] = Field(
        default_factory=dict, description="Agent id to category"
    )

    def max_iterations_for(self, agent_id: str, category: str | None = None) -> tuple[int, str]:
        """
        Resolve the iteration limit for an agent.

        Args:
            agent_id: Agent identifier
            category: Category to use when the agent is not in category_mapping

        Returns:
            Tuple of (limit, source) where source is "override",
            "category:<name>" or "global".
        """
        if agent_id in self.agent_overrides:
            return self.agent_overrides[agent_id], "override"

        resolved = self.category_mapping.get(agent_id, category)
        if resolved and resolved in self.category_defaults:
            return self.category_defaults[resolved], f"category:{resolved}"

        return self.global_default, "global"

    @classmethod
    def from_yaml(cls, path: str | Path) -> "IterationConfig":
        """Load a config from YAML. A missing file yields the defaults."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)


def iteration_phase(current: int, maximum: int) -> tuple[IterationPhase, str]:
    """
    Classify progress through the iteration budget.

    Returns:
        Tuple of (phase, strategy guidance). The first third of the budget is
        "early", the second third "middle", the rest "final".
    """
    if maximum <= 0:
        return "final", PHASE_STRATEGIES["final"]

    progress = current / maximum
    if progress <= 1 / 3:
        phase: IterationPhase = "early"
    elif progress <= 2 / 3:
        phase = "middle"
    else:
        phase = "final"
    return phase, PHASE_STRATEGIES[phase]
