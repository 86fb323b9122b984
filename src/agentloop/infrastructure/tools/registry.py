"""
Tool Registry - name-to-function mapping used by the execution loop.

Tools are plain async functions taking keyword arguments. The registry
advertises them (plus the loop's built-in tools) in OpenAI function
calling format and executes them with a uniform result contract:

    {"success": bool, "result": ..., "error": "..."}

Exceptions raised by a tool are converted into failure results; the loop
records them as data and the next iteration reacts to them.
"""

import inspect
import time
from dataclasses import dataclass, field
from typing import Any, Callable

import structlog

from agentloop.core.interfaces.tools import ToolFunction
from agentloop.core.tools.builtin import BUILTIN_TOOL_NAMES, builtin_openai_schemas


@dataclass
class RegisteredTool:
    """A tool function with the metadata advertised to the reasoning service."""

    name: str
    fn: ToolFunction
    description: str = ""
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class ToolRegistry:
    """
    Registry of async tool functions.

    Example:
        >>> registry = ToolRegistry()
        >>> @registry.tool(description="Read a file")
        ... async def readFile(path: str) -> dict:
        ...     return {"success": True, "result": open(path).read()}
    """

    def __init__(self, include_builtins: bool = True):
        """
        Args:
            include_builtins: Advertise recordThought/askQuestion/finalAnswer
                in schemas(). They are always dispatched by the loop.
        """
        self._tools: dict[str, RegisteredTool] = {}
        self.include_builtins = include_builtins
        self.logger = structlog.get_logger().bind(component="tool_registry")

    def register(
        self,
        name: str,
        fn: ToolFunction,
        description: str = "",
        parameters: dict[str, Any] | None = None,
    ) -> None:
        """
        Register an async tool function.

        Raises:
            ValueError: If the name collides with a built-in tool or the
                function is not a coroutine function.
        """
        if name in BUILTIN_TOOL_NAMES:
            raise ValueError(f"'{name}' is a built-in tool and cannot be registered")
        if not inspect.iscoroutinefunction(fn):
            raise ValueError(f"Tool '{name}' must be an async function")

        self._tools[name] = RegisteredTool(
            name=name,
            fn=fn,
            description=description or (inspect.getdoc(fn) or "").split("\n")[0],
            parameters=parameters or {"type": "object", "properties": {}},
        )
        self.logger.debug("tool_registered", tool=name)

    def tool(
        self,
        name: str | None = None,
        description: str = "",
        parameters: dict[str, Any] | None = None,
    ) -> Callable[[ToolFunction], ToolFunction]:
        """Decorator form of register(); defaults the name to the function name."""

        def decorator(fn: ToolFunction) -> ToolFunction:
            self.register(name or fn.__name__, fn, description, parameters)
            return fn

        return decorator

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolFunction | None:
        registered = self._tools.get(name)
        return registered.fn if registered else None

    def schemas(self) -> list[dict[str, Any]]:
        """Return all tool definitions in OpenAI function-calling format."""
        schemas = [tool.to_openai() for tool in self._tools.values()]
        if self.include_builtins:
            schemas.extend(builtin_openai_schemas())
        return schemas

    async def execute(self, name: str, args: dict[str, Any]) -> dict[str, Any]:
        """
        Run a registered tool and normalise its result.

        Returns:
            Dictionary with success, result (on success), error (on failure)
            and duration_ms. Never raises for tool failures.
        """
        registered = self._tools.get(name)
        if registered is None:
            self.logger.warning("tool_not_found", tool=name)
            return {"success": False, "error": f"Tool not found: {name}", "duration_ms": 0}

        start = time.perf_counter()
        try:
            raw = await registered.fn(**(args or {}))
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            self.logger.warning("tool_failed", tool=name, error=str(e), error_type=type(e).__name__)
            return {
                "success": False,
                "error": f"{type(e).__name__}: {e}",
                "duration_ms": duration_ms,
            }

        duration_ms = int((time.perf_counter() - start) * 1000)
        result = normalize_result(raw)
        result["duration_ms"] = duration_ms
        self.logger.info("tool_executed", tool=name, success=result["success"], duration_ms=duration_ms)
        return result


def normalize_result(raw: Any) -> dict[str, Any]:
    """
    Coerce a tool's return value into the {success, result?, error?} shape.

    A dict carrying a boolean "success" is taken as already normalised (its
    other keys become the result when no "result" key is present); any
    other value is wrapped as a successful result.
    """
    if isinstance(raw, dict) and isinstance(raw.get("success"), bool):
        if not raw["success"]:
            return {"success": False, "error": str(raw.get("error") or "Unknown error")}
        if "result" in raw:
            return {"success": True, "result": raw["result"]}
        payload = {k: v for k, v in raw.items() if k != "success"}
        return {"success": True, "result": payload or None}

    return {"success": True, "result": raw}
