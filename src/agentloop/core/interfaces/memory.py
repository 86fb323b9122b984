"""
Thought Store Protocol

Working memory used by the loop (writes) and the context assembler (reads).
"""

from typing import Protocol

from agentloop.core.domain.models import ThoughtRecord


class ThoughtStoreProtocol(Protocol):
    """Keyed, size-capped store of thought records."""

    def record(self, agent_id: str, thought: ThoughtRecord) -> None:
        ...

    def clear(self, agent_id: str) -> None:
        ...

    def count(self, agent_id: str) -> int:
        ...

    def formatted(self, agent_id: str) -> str:
        ...
