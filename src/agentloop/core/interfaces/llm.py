"""
LLM Provider Protocol

Defines the contract the execution loop uses to talk to the reasoning
service. Implementations wrap a concrete client (e.g. litellm) and report
service failures either by raising ReasoningServiceError or by returning
{"success": False, "error": ...}. Either way the run ends with
reasoning_service_failure.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LLMProviderProtocol(Protocol):
    """Reasoning service used by the execution loop."""

    async def complete(self, prompt: str, **kwargs: Any) -> dict[str, Any]:
        """
        Send an instruction payload and return the raw reply.

        Args:
            prompt: Fully assembled instruction payload
            **kwargs: Provider-specific options (model, temperature, ...)

        Returns:
            Dictionary with:
            - success: bool
            - content: str (raw reply text, on success)
            - error: str (on failure)
            - usage: dict (optional token usage)
        """
        ...


@runtime_checkable
class TokenCounterProtocol(Protocol):
    """Optional capability: count tokens for a budget check."""

    def count_tokens(self, text: str) -> int:
        ...
