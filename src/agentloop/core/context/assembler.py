"""
Context Assembler - builds the instruction payload for one iteration.

The payload is an ordered list of named sections. Both the table of
contents and the numbered section headings are rendered from that single
list, so they cannot drift apart. Optional sections are dropped before
numbering:

- LATEST RESPONSE FROM USER: only when the run was resumed with a reply
- DOCUMENT STRUCTURE: only for categories that need an outline, and only
  when the outline provider returns something

The assembler reads working memory and history but never mutates them;
given the same inputs it produces the same text.
"""

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from agentloop.config.iteration import PHASE_LABELS, iteration_phase
from agentloop.core.context.history import format_history
from agentloop.core.domain.models import IterationHistoryEntry
from agentloop.core.interfaces.memory import ThoughtStoreProtocol
from agentloop.core.interfaces.outline import OutlineProviderProtocol
from agentloop.core.memory.thought_store import get_thought_store
from agentloop.core.prompts.agent_prompts import (
    DEFAULT_AGENT_INSTRUCTIONS,
    FINAL_INSTRUCTION,
    NO_PREVIOUS_THOUGHTS,
    NO_TOOLS,
    OUTPUT_FORMAT_TEMPLATE,
    TOOL_USE_GUIDELINES,
)

AGENT_INSTRUCTIONS = "AGENT INSTRUCTIONS"
CURRENT_TASK = "CURRENT TASK"
LATEST_USER_RESPONSE = "LATEST RESPONSE FROM USER"
PREVIOUS_THOUGHTS = "YOUR PREVIOUS THOUGHTS"
DYNAMIC_CONTEXT = "DYNAMIC CONTEXT"
TOOL_GUIDELINES = "GUIDELINES FOR TOOL USE"
TOOLS_LIST = "YOUR TOOLS LIST"
OUTPUT_FORMAT = "OUTPUT FORMAT"
DOCUMENT_STRUCTURE = "DOCUMENT STRUCTURE"
FINAL_DIRECTIVE = "FINAL INSTRUCTION"

SECTION_ORDER = (
    AGENT_INSTRUCTIONS,
    CURRENT_TASK,
    LATEST_USER_RESPONSE,
    PREVIOUS_THOUGHTS,
    DYNAMIC_CONTEXT,
    TOOL_GUIDELINES,
    TOOLS_LIST,
    OUTPUT_FORMAT,
    DOCUMENT_STRUCTURE,
    FINAL_DIRECTIVE,
)


@dataclass
class PromptSection:
    """A titled block of the instruction payload."""

    title: str
    body: str


@dataclass
class PromptContext:
    """
    Assembled instruction payload.

    Attributes:
        role: Role line shown before the table of contents
        sections: Sections in output order (already filtered)
    """

    role: str
    sections: list[PromptSection] = field(default_factory=list)

    @property
    def titles(self) -> list[str]:
        return [section.title for section in self.sections]

    def table_of_contents(self) -> str:
        return "\n".join(f"{number}. {title}" for number, title in enumerate(self.titles, start=1))

    def render(self) -> str:
        header = (
            f"You are a {self.role}. Below is the context information and the task you "
            "need to complete. Follow these instructions carefully:"
        )
        body = "\n\n".join(
            f"**# {number}. {section.title}**\n\n{section.body}"
            for number, section in enumerate(self.sections, start=1)
        )
        return f"{header}\n\nTable of Contents:\n\n{self.table_of_contents()}\n\n{body}"


@dataclass
class AssemblyRequest:
    """
    Inputs for one assembly.

    Attributes:
        agent_id: Agent whose working memory is read
        task: Pending task description
        agent_instructions: Role-specific instructions (section 1)
        agent_category: Category used to decide whether an outline is needed
        user_reply: Latest user reply when the run was just resumed
        previous_question: Question the reply answers
        history: Raw iteration history entries
        tool_schemas: Tool definitions advertised to the reasoning service
        document_path: Document whose outline is requested
        iteration: Current iteration number (1-based)
        max_iterations: Iteration budget of the run
        role: Role line override (defaults to "<agent_id> agent")
    """

    agent_id: str
    task: str
    agent_instructions: str = DEFAULT_AGENT_INSTRUCTIONS
    agent_category: str = "process"
    user_reply: str | None = None
    previous_question: str | None = None
    history: list[IterationHistoryEntry] = field(default_factory=list)
    tool_schemas: list[dict[str, Any]] = field(default_factory=list)
    document_path: str | None = None
    iteration: int | None = None
    max_iterations: int | None = None
    role: str | None = None


class ContextAssembler:
    """Builds PromptContext objects from working memory, history and tools."""

    def __init__(
        self,
        thought_store: ThoughtStoreProtocol | None = None,
        outline_provider: OutlineProviderProtocol | None = None,
        guidance: str = TOOL_USE_GUIDELINES,
        output_template: str = OUTPUT_FORMAT_TEMPLATE,
        final_instruction: str = FINAL_INSTRUCTION,
        outline_categories: tuple[str, ...] = ("content",),
    ):
        """
        Args:
            thought_store: Working memory to read (default: the shared store)
            outline_provider: Source of document outlines (optional)
            guidance: Body of the tool-use guidelines section
            output_template: Body of the output format section
            final_instruction: Body of the closing section
            outline_categories: Agent categories that get a document outline
        """
        self.thought_store = thought_store or get_thought_store()
        self.outline_provider = outline_provider
        self.guidance = guidance
        self.output_template = output_template
        self.final_instruction = final_instruction
        self.outline_categories = outline_categories
        self.logger = structlog.get_logger().bind(component="context_assembler")

    async def assemble(self, request: AssemblyRequest) -> PromptContext:
        """
        Build the payload for one iteration.

        Returns:
            PromptContext whose sections follow SECTION_ORDER with absent
            optional sections removed.
        """
        bodies: dict[str, str | None] = {
            AGENT_INSTRUCTIONS: request.agent_instructions.strip() or DEFAULT_AGENT_INSTRUCTIONS,
            CURRENT_TASK: request.task,
            LATEST_USER_RESPONSE: self._user_response(request),
            PREVIOUS_THOUGHTS: self.thought_store.formatted(request.agent_id) or NO_PREVIOUS_THOUGHTS,
            DYNAMIC_CONTEXT: self._dynamic_context(request),
            TOOL_GUIDELINES: self.guidance,
            TOOLS_LIST: self._tools_list(request.tool_schemas),
            OUTPUT_FORMAT: self.output_template,
            DOCUMENT_STRUCTURE: await self._document_structure(request),
            FINAL_DIRECTIVE: self.final_instruction,
        }

        context = PromptContext(
            role=request.role or f"{request.agent_id} agent",
            sections=[
                PromptSection(title=title, body=bodies[title])
                for title in SECTION_ORDER
                if bodies[title] is not None
            ],
        )

        self.logger.debug(
            "prompt_assembled",
            agent_id=request.agent_id,
            iteration=request.iteration,
            sections=context.titles,
            history_entries=len(request.history),
        )
        return context

    def _user_response(self, request: AssemblyRequest) -> str | None:
        if not request.user_reply:
            return None

        parts = [f"**User's latest response**: {request.user_reply}"]
        if request.previous_question:
            parts.append(f"**Previous Question Asked**: {request.previous_question}")
            parts.append(
                "**Resume Context**: You were waiting for user input and now the user has "
                "responded. Continue your work based on their response."
            )
        return "\n\n".join(parts)

    def _dynamic_context(self, request: AssemblyRequest) -> str:
        parts = []
        if request.iteration is not None and request.max_iterations:
            parts.append(self._budget_block(request.iteration, request.max_iterations))
        parts.append(f"## Iterative History\n\n{format_history(request.history)}")
        return "\n\n".join(parts)

    def _budget_block(self, iteration: int, max_iterations: int) -> str:
        phase, strategy = iteration_phase(iteration, max_iterations)
        remaining = max(max_iterations - iteration, 0)
        return (
            "## Resource Budget & Strategy\n"
            f"**Iteration Progress**: You are on iteration **{iteration}/{max_iterations}** "
            f"({remaining} attempts remaining)\n\n"
            f"**Current Phase**: {PHASE_LABELS[phase]}\n"
            f"**Strategy**: {strategy}"
        )

    def _tools_list(self, schemas: list[dict[str, Any]]) -> str:
        if not schemas:
            return NO_TOOLS
        return f"```json\n{json.dumps(schemas, indent=2, ensure_ascii=False)}\n```"

    async def _document_structure(self, request: AssemblyRequest) -> str | None:
        if request.agent_category not in self.outline_categories or self.outline_provider is None:
            return None

        outline = await self.outline_provider.get_outline(request.document_path)
        return outline.strip() if outline and outline.strip() else None
