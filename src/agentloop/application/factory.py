"""
Application Layer - Factory

Wires ExecutionLoop and AgentExecutor from AgentLoopSettings:
- LiteLLMProvider for the reasoning service
- IterationConfig from YAML (or defaults)
- FileStateManager for suspended sessions
- the process-wide thought store
"""

from typing import Optional

import structlog

from agentloop.application.executor import AgentExecutor
from agentloop.config.iteration import IterationConfig
from agentloop.config.settings import AgentLoopSettings
from agentloop.core.context.assembler import ContextAssembler
from agentloop.core.domain.agent import ExecutionLoop
from agentloop.core.interfaces.llm import LLMProviderProtocol
from agentloop.core.interfaces.outline import OutlineProviderProtocol
from agentloop.core.interfaces.state import StateManagerProtocol
from agentloop.core.interfaces.tools import ToolRegistryProtocol
from agentloop.core.memory.thought_store import get_thought_store
from agentloop.core.prompts.agent_prompts import DEFAULT_AGENT_INSTRUCTIONS
from agentloop.infrastructure.llm.litellm_provider import LiteLLMProvider
from agentloop.infrastructure.persistence.file_state import FileStateManager
from agentloop.infrastructure.tools.registry import ToolRegistry

logger = structlog.get_logger().bind(component="factory")


def create_loop(
    settings: Optional[AgentLoopSettings] = None,
    tool_registry: Optional[ToolRegistryProtocol] = None,
    llm_provider: Optional[LLMProviderProtocol] = None,
    outline_provider: Optional[OutlineProviderProtocol] = None,
    agent_instructions: str = DEFAULT_AGENT_INSTRUCTIONS,
    agent_category: str = "process",
    document_path: Optional[str] = None,
) -> ExecutionLoop:
    """
    Build an ExecutionLoop with infrastructure adapters.

    Args:
        settings: Runtime settings (default: read from environment)
        tool_registry: Registry of the agent's tools (default: empty)
        llm_provider: Reasoning service (default: LiteLLMProvider from settings)
        outline_provider: Document outline source for content agents
        agent_instructions: Role-specific instructions
        agent_category: "content" or "process"
        document_path: Document the agent works on

    Returns:
        Configured ExecutionLoop sharing the process-wide thought store
    """
    settings = settings or AgentLoopSettings()
    iteration_config = (
        IterationConfig.from_yaml(settings.iteration_config_path)
        if settings.iteration_config_path
        else IterationConfig()
    )
    thought_store = get_thought_store()

    logger.info(
        "creating_loop",
        model=settings.model,
        agent_category=agent_category,
        max_plan_failures=settings.max_plan_failures,
    )

    return ExecutionLoop(
        llm_provider=llm_provider or LiteLLMProvider.from_settings(settings),
        tool_registry=tool_registry or ToolRegistry(),
        thought_store=thought_store,
        assembler=ContextAssembler(thought_store=thought_store, outline_provider=outline_provider),
        iteration_config=iteration_config,
        max_plan_failures=settings.max_plan_failures,
        agent_instructions=agent_instructions,
        agent_category=agent_category,
        document_path=document_path,
        token_budget=settings.token_budget,
        max_depth=settings.max_depth,
    )


def create_executor(
    settings: Optional[AgentLoopSettings] = None,
    state_manager: Optional[StateManagerProtocol] = None,
    **loop_options,
) -> AgentExecutor:
    """Build an AgentExecutor backed by file storage (see create_loop for options)."""
    settings = settings or AgentLoopSettings()
    loop = create_loop(settings=settings, **loop_options)
    return AgentExecutor(loop, state_manager or FileStateManager(settings.state_dir))
