"""agentloop - resumable, memory-bounded agent execution loop.

Exposes the loop, its result types and the shared working memory.
"""

from .core.domain.agent import ExecutionLoop
from .core.domain.errors import ReasonCode
from .core.domain.models import ExecutionState, Outcome, SuspendedState, ThoughtRecord
from .core.memory.thought_store import ThoughtStore, get_thought_store

__version__ = "0.1.0"

__all__ = [
    "ExecutionLoop",
    "ExecutionState",
    "Outcome",
    "ReasonCode",
    "SuspendedState",
    "ThoughtRecord",
    "ThoughtStore",
    "get_thought_store",
]
