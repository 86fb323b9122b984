"""
Unit Tests for IterationConfig and AgentLoopSettings
"""

import pytest
import yaml

from agentloop.config.iteration import IterationConfig, iteration_phase
from agentloop.config.settings import AgentLoopSettings


class TestMaxIterations:
    """Tests for limit resolution."""

    def test_defaults(self):
        config = IterationConfig()

        assert config.max_iterations_for("anything", "content") == (15, "category:content")
        assert config.max_iterations_for("anything", "process") == (8, "category:process")
        assert config.max_iterations_for("anything") == (10, "global")

    def test_override_wins(self):
        config = IterationConfig(agent_overrides={"prototype_designer": 20})

        assert config.max_iterations_for("prototype_designer", "process") == (20, "override")

    def test_category_mapping(self):
        config = IterationConfig(category_mapping={"fr_writer": "content"})

        assert config.max_iterations_for("fr_writer") == (15, "category:content")

    def test_unknown_category_falls_back(self):
        assert IterationConfig().max_iterations_for("a", "research") == (10, "global")

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "iterations.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "category_defaults": {"content": 12, "process": 4},
                    "agent_overrides": {"git_operator": 10},
                    "global_default": 6,
                }
            ),
            encoding="utf-8",
        )

        config = IterationConfig.from_yaml(path)

        assert config.max_iterations_for("git_operator") == (10, "override")
        assert config.max_iterations_for("x", "process") == (4, "category:process")
        assert config.global_default == 6

    def test_from_missing_yaml(self, tmp_path):
        assert IterationConfig.from_yaml(tmp_path / "absent.yaml") == IterationConfig()


class TestIterationPhase:
    """Tests for iteration_phase()."""

    @pytest.mark.parametrize(
        "current,maximum,expected",
        [
            (1, 15, "early"),
            (5, 15, "early"),
            (6, 15, "middle"),
            (10, 15, "middle"),
            (11, 15, "final"),
            (15, 15, "final"),
            (1, 0, "final"),
        ],
    )
    def test_phases(self, current, maximum, expected):
        phase, strategy = iteration_phase(current, maximum)

        assert phase == expected
        assert strategy


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AGENTLOOP_MAX_PLAN_FAILURES", raising=False)

        settings = AgentLoopSettings(_env_file=None)

        assert settings.max_plan_failures == 3
        assert settings.max_depth == 15

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("AGENTLOOP_MAX_PLAN_FAILURES", "5")
        monkeypatch.setenv("AGENTLOOP_LOG_JSON", "true")

        settings = AgentLoopSettings(_env_file=None)

        assert settings.max_plan_failures == 5
        assert settings.log_json is True

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("model: gpt-4o\ntoken_budget: 8000\n", encoding="utf-8")

        settings = AgentLoopSettings.load_from_file(path)

        assert settings.model == "gpt-4o"
        assert settings.token_budget == 8000
