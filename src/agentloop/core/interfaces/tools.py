"""
Tool Registry Protocol

The loop dispatches every non-builtin tool call through a registry. Tool
semantics are opaque to the loop: it only sees names, JSON schemas and
`{success, result?, error?}` results.
"""

from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

ToolFunction = Callable[..., Awaitable[Any]]


@runtime_checkable
class ToolRegistryProtocol(Protocol):
    """Mapping from tool name to an async tool function."""

    def __contains__(self, name: object) -> bool:
        ...

    def get(self, name: str) -> ToolFunction | None:
        """Return the tool function, or None when not registered."""
        ...

    def schemas(self) -> list[dict[str, Any]]:
        """Return tool definitions in OpenAI function-calling format."""
        ...

    async def execute(self, name: str, args: dict[str, Any]) -> dict[str, Any]:
        """
        Run a tool and normalise its result.

        Returns:
            Dictionary with success (bool) and either result or error.
            Tool failures are returned, not raised.
        """
        ...
