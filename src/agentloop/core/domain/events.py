"""
Domain Events for Agent Execution

Events are immutable facts about one iteration of the loop:
- ToolCall: a single call the reasoning service asked for
- Plan: the parsed set of tool calls for one iteration
- ToolResult: the outcome of executing a tool call
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolCall:
    """
    A tool invocation requested by the reasoning service.

    Attributes:
        name: Registered tool name (or a builtin such as recordThought)
        args: JSON-like argument object
    """

    name: str
    args: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "args": self.args}


@dataclass
class Plan:
    """
    Parsed tool-call plan for one iteration.

    Attributes:
        tool_calls: Calls in request order
        raw: Raw text returned by the reasoning service
        repaired: Whether the repair pass was needed to decode it
    """

    tool_calls: list[ToolCall]
    raw: str = ""
    repaired: bool = False


@dataclass
class ToolResult:
    """
    Result of executing one tool call.

    Attributes:
        name: Tool that was called
        success: Whether the call succeeded
        result: JSON-like payload on success
        error: Error message on failure
        duration_ms: Wall time of the call
    """

    name: str
    success: bool
    result: Any = None
    error: str | None = None
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tool": self.name, "success": self.success}
        if self.success:
            data["result"] = self.result
        else:
            data["error"] = self.error or "Unknown error"
        return data
