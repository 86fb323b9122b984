"""
Unit Tests for plan parsing

Strict decoding, the single repair pass and plan validation.
"""

import pytest

from agentloop.core.domain.errors import PlanParseError
from agentloop.core.domain.plan_parser import (
    balanced_objects,
    parse_plan,
    repair_json,
    strict_decode,
)


class TestStrictDecoding:
    """Tests for replies that are already valid JSON."""

    def test_valid_plan(self):
        plan = parse_plan('{"tool_calls": [{"name": "readFile", "args": {"path": "a.md"}}]}')

        assert plan is not None
        assert not plan.repaired
        assert plan.tool_calls[0].name == "readFile"
        assert plan.tool_calls[0].args == {"path": "a.md"}

    def test_strict_decode_raises(self):
        with pytest.raises(PlanParseError):
            strict_decode("{not json")

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "   ",
            "I will now read the file.",
            '{"tool_calls": []}',
            '{"thought": "no calls"}',
            '[{"name": "readFile"}]',
            '{"tool_calls": [{"args": {}}]}',
            '{"tool_calls": [{"name": "readFile", "args": "not json"}]}',
        ],
    )
    def test_not_a_plan(self, raw):
        assert parse_plan(raw) is None


class TestRepair:
    """Tests for the best-effort repair pass."""

    def test_code_fence_with_prose(self):
        raw = (
            "Sure, here is my plan:\n"
            "```json\n"
            '{"tool_calls": [{"name": "echo", "args": {"text": "hi"}}]}\n'
            "```\n"
            "Let me know!"
        )

        plan = parse_plan(raw)

        assert plan is not None
        assert plan.repaired
        assert plan.tool_calls[0].args == {"text": "hi"}

    def test_embedded_object_in_prose(self):
        raw = 'Plan: {"tool_calls": [{"name": "echo", "args": {"text": "a } b"}}]} done.'

        plan = parse_plan(raw)

        assert plan is not None
        assert plan.tool_calls[0].args == {"text": "a } b"}

    def test_single_quotes_and_trailing_commas(self):
        raw = "{'tool_calls': [{'name': 'echo', 'args': {'text': 'hi',},},],}"

        plan = parse_plan(raw)

        assert plan is not None
        assert plan.tool_calls[0].name == "echo"

    def test_smart_quotes(self):
        raw = "{“tool_calls”: [{“name”: “echo”, “args”: {}}]}"

        plan = parse_plan(raw)

        assert plan is not None
        assert plan.tool_calls[0].name == "echo"

    def test_python_literals(self):
        raw = "{'tool_calls': [{'name': 'toggle', 'args': {'on': True, 'off': False, 'x': None}}]}"

        plan = parse_plan(raw)

        assert plan.tool_calls[0].args == {"on": True, "off": False, "x": None}

    def test_repair_leaves_string_contents_alone(self):
        assert repair_json('{"a": "True, }"}') == '{"a": "True, }"}'

    def test_balanced_objects_ignore_braces_in_strings(self):
        text = 'x {"a": "{"} y {"b": 1}'

        assert list(balanced_objects(text)) == ['{"a": "{"}', '{"b": 1}']


class TestAliases:
    """Tests for accepted tool-call shapes."""

    def test_tool_and_arguments_aliases(self):
        plan = parse_plan('{"tool_calls": [{"tool": "echo", "arguments": {"text": "x"}}]}')

        assert plan.tool_calls[0].name == "echo"
        assert plan.tool_calls[0].args == {"text": "x"}

    def test_parameters_alias_and_missing_args(self):
        plan = parse_plan(
            '{"tool_calls": [{"name": "a", "parameters": {"k": 1}}, {"name": "b"}]}'
        )

        assert [call.args for call in plan.tool_calls] == [{"k": 1}, {}]

    def test_openai_function_shape(self):
        raw = (
            '{"tool_calls": [{"type": "function", "function": '
            '{"name": "echo", "arguments": "{\\"text\\": \\"x\\"}"}}]}'
        )

        plan = parse_plan(raw)

        assert plan.tool_calls[0].name == "echo"
        assert plan.tool_calls[0].args == {"text": "x"}
