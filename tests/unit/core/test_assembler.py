"""
Unit Tests for ContextAssembler

Verifies section order, optional sections and that the table of contents
always matches the section headings that follow it.
"""

import re
from unittest.mock import AsyncMock

import pytest

from agentloop.core.context.assembler import (
    DOCUMENT_STRUCTURE,
    LATEST_USER_RESPONSE,
    SECTION_ORDER,
    AssemblyRequest,
    ContextAssembler,
)
from agentloop.core.domain.models import HistoryEntryType, IterationHistoryEntry, ThoughtRecord

HEADING = re.compile(r"^\*\*# (\d+)\. (.+)\*\*$", re.MULTILINE)


def toc_entries(text: str) -> list[tuple[int, str]]:
    toc = text.split("Table of Contents:\n\n", 1)[1].split("\n\n", 1)[0]
    entries = []
    for line in toc.splitlines():
        number, title = line.split(". ", 1)
        entries.append((int(number), title))
    return entries


def body_headings(text: str) -> list[tuple[int, str]]:
    return [(int(number), title) for number, title in HEADING.findall(text)]


@pytest.fixture
def outline_provider():
    mock = AsyncMock()
    mock.get_outline.return_value = "# Requirements Document\n## 1. Introduction\n## 2. Requirements"
    return mock


def make_request(**overrides) -> AssemblyRequest:
    values = dict(
        agent_id="writer",
        task="Write the introduction",
        agent_category="content",
        tool_schemas=[{"type": "function", "function": {"name": "readFile"}}],
        iteration=1,
        max_iterations=10,
    )
    values.update(overrides)
    return AssemblyRequest(**values)


class TestSectionOrder:
    """Tests for table-of-contents consistency."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("with_reply", [False, True])
    @pytest.mark.parametrize("with_outline", [False, True])
    async def test_toc_matches_body(self, thought_store, outline_provider, with_reply, with_outline):
        """Test that TOC and body list the same sections in the same order."""
        if not with_outline:
            outline_provider.get_outline.return_value = ""
        assembler = ContextAssembler(thought_store=thought_store, outline_provider=outline_provider)

        context = await assembler.assemble(make_request(user_reply="yes" if with_reply else None))
        text = context.render()

        assert toc_entries(text) == body_headings(text)
        assert [title for _, title in toc_entries(text)] == context.titles
        assert [number for number, _ in toc_entries(text)] == list(range(1, len(context.titles) + 1))
        assert (LATEST_USER_RESPONSE in context.titles) is with_reply
        assert (DOCUMENT_STRUCTURE in context.titles) is with_outline

    @pytest.mark.asyncio
    async def test_full_order(self, thought_store, outline_provider):
        assembler = ContextAssembler(thought_store=thought_store, outline_provider=outline_provider)

        context = await assembler.assemble(make_request(user_reply="go on"))

        assert context.titles == list(SECTION_ORDER)

    @pytest.mark.asyncio
    async def test_outline_skipped_for_other_categories(self, thought_store, outline_provider):
        """Test the outline provider is not consulted for process agents."""
        assembler = ContextAssembler(thought_store=thought_store, outline_provider=outline_provider)

        context = await assembler.assemble(make_request(agent_category="process"))

        assert DOCUMENT_STRUCTURE not in context.titles
        outline_provider.get_outline.assert_not_called()


class TestSectionContent:
    """Tests for individual section bodies."""

    @pytest.mark.asyncio
    async def test_previous_thoughts_from_store(self, thought_store):
        thought_store.record("writer", ThoughtRecord.create("planning", "Outline the intro first"))
        assembler = ContextAssembler(thought_store=thought_store)

        text = (await assembler.assemble(make_request())).render()

        assert "Outline the intro first" in text
        assert "CRITICAL GUIDANCE" in text

    @pytest.mark.asyncio
    async def test_dynamic_context_has_budget_and_history(self, thought_store):
        history = [
            IterationHistoryEntry(1, HistoryEntryType.PLAN, "- tool_calls:"),
            IterationHistoryEntry(1, HistoryEntryType.TOOL_RESULT, "- tool: readFile"),
        ]
        assembler = ContextAssembler(thought_store=thought_store)

        context = await assembler.assemble(make_request(history=history, iteration=2, max_iterations=10))
        dynamic = next(s.body for s in context.sections if s.title == "DYNAMIC CONTEXT")

        assert "**2/10**" in dynamic
        assert "8 attempts remaining" in dynamic
        assert "Early exploration" in dynamic
        assert "### Iteration 1:" in dynamic

    @pytest.mark.asyncio
    async def test_resume_details_in_user_section(self, thought_store):
        assembler = ContextAssembler(thought_store=thought_store)

        context = await assembler.assemble(
            make_request(user_reply="confirmed", previous_question="Proceed with the edit?")
        )
        body = next(s.body for s in context.sections if s.title == LATEST_USER_RESPONSE)

        assert "confirmed" in body
        assert "Proceed with the edit?" in body

    @pytest.mark.asyncio
    async def test_tool_schemas_as_json(self, thought_store):
        assembler = ContextAssembler(thought_store=thought_store)

        text = (await assembler.assemble(make_request())).render()

        assert '"name": "readFile"' in text

    @pytest.mark.asyncio
    async def test_deterministic(self, thought_store, outline_provider):
        assembler = ContextAssembler(thought_store=thought_store, outline_provider=outline_provider)
        request = make_request(user_reply="ok")

        first = (await assembler.assemble(request)).render()
        second = (await assembler.assemble(request)).render()

        assert first == second
