"""Shared fixtures for agentloop unit tests."""

import json
from unittest.mock import AsyncMock

import pytest

from agentloop.config.iteration import IterationConfig
from agentloop.core.memory.thought_store import ThoughtStore
from agentloop.infrastructure.tools.registry import ToolRegistry


def plan_text(*calls: tuple[str, dict]) -> str:
    """Build a reasoning-service reply containing the given tool calls."""
    return json.dumps({"tool_calls": [{"name": name, "args": args} for name, args in calls]})


def llm_reply(content: str) -> dict:
    return {"success": True, "content": content}


@pytest.fixture
def thought_store():
    """Isolated working memory (not the process-wide one)."""
    return ThoughtStore()


@pytest.fixture
def mock_llm_provider():
    """Mock LLMProviderProtocol; set complete.side_effect per test."""
    mock = AsyncMock()
    mock.complete.return_value = llm_reply(plan_text(("finalAnswer", {"summary": "done"})))
    return mock


@pytest.fixture
def tool_registry():
    """Registry with an echo tool and a tool that always raises."""
    registry = ToolRegistry()

    @registry.tool(description="Echo the given text")
    async def echo(text: str = "") -> dict:
        return {"success": True, "result": {"echo": text}}

    @registry.tool(description="Always fails")
    async def explode() -> dict:
        raise RuntimeError("boom")

    return registry


@pytest.fixture
def iteration_config():
    return IterationConfig(global_default=20, category_defaults={"content": 20, "process": 20})
