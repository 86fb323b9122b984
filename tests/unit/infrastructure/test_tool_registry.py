"""
Unit Tests for ToolRegistry

Registration, schema export and result normalisation.
"""

import pytest

from agentloop.infrastructure.tools.registry import ToolRegistry, normalize_result


class TestRegistration:
    """Tests for register() and the tool decorator."""

    def test_decorator_registers_by_function_name(self, tool_registry):
        assert "echo" in tool_registry
        assert tool_registry.get("echo") is not None
        assert tool_registry.get("missing") is None

    def test_builtin_names_rejected(self):
        registry = ToolRegistry()

        async def fake(**kwargs):
            return {}

        with pytest.raises(ValueError, match="built-in"):
            registry.register("finalAnswer", fake)

    def test_sync_functions_rejected(self):
        registry = ToolRegistry()

        with pytest.raises(ValueError, match="async"):
            registry.register("sync", lambda: None)

    def test_description_defaults_to_docstring(self):
        registry = ToolRegistry()

        async def read_file(path: str):
            """Read a file from disk.

            Longer explanation.
            """
            return path

        registry.register("readFile", read_file)

        schema = registry.schemas()[0]
        assert schema["function"]["description"] == "Read a file from disk."


class TestSchemas:
    """Tests for OpenAI-format schema export."""

    def test_schemas_include_builtins(self, tool_registry):
        names = [schema["function"]["name"] for schema in tool_registry.schemas()]

        assert names[:2] == ["echo", "explode"]
        assert {"recordThought", "askQuestion", "finalAnswer"} <= set(names)
        assert all(schema["type"] == "function" for schema in tool_registry.schemas())

    def test_builtins_can_be_hidden(self):
        registry = ToolRegistry(include_builtins=False)

        assert registry.schemas() == []


class TestExecution:
    """Tests for execute()."""

    @pytest.mark.asyncio
    async def test_success(self, tool_registry):
        result = await tool_registry.execute("echo", {"text": "hi"})

        assert result["success"] is True
        assert result["result"] == {"echo": "hi"}
        assert "duration_ms" in result

    @pytest.mark.asyncio
    async def test_exception_becomes_failure(self, tool_registry):
        result = await tool_registry.execute("explode", {})

        assert result["success"] is False
        assert result["error"] == "RuntimeError: boom"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, tool_registry):
        result = await tool_registry.execute("nope", {})

        assert result["success"] is False
        assert "nope" in result["error"]

    @pytest.mark.asyncio
    async def test_bad_arguments_become_failure(self, tool_registry):
        result = await tool_registry.execute("echo", {"unexpected": 1})

        assert result["success"] is False
        assert result["error"].startswith("TypeError")


class TestNormalizeResult:
    """Tests for normalize_result()."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ({"success": True, "result": 1}, {"success": True, "result": 1}),
            ({"success": True, "output": "x"}, {"success": True, "result": {"output": "x"}}),
            ({"success": True}, {"success": True, "result": None}),
            ({"success": False}, {"success": False, "error": "Unknown error"}),
            ({"success": False, "error": "bad"}, {"success": False, "error": "bad"}),
            ("plain text", {"success": True, "result": "plain text"}),
            ({"key": "value"}, {"success": True, "result": {"key": "value"}}),
        ],
    )
    def test_shapes(self, raw, expected):
        assert normalize_result(raw) == expected
