"""
Core Domain Models

This module defines the data models shared by the memory store, the context
assembler and the execution loop:
- ThoughtRecord: an immutable reasoning snapshot an agent records about itself
- IterationHistoryEntry: one append-only line item of an iteration's record
- ExecutionState: the plain, serializable snapshot needed to resume a run
- Outcome: the terminal result handed back to the caller
"""

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from agentloop.core.domain.errors import ReasonCode, ResumeStateError


class ThinkingType(str, Enum):
    """Kind of reasoning captured in a thought record."""

    PLANNING = "planning"
    ANALYSIS = "analysis"
    SYNTHESIS = "synthesis"
    REFLECTION = "reflection"
    DERIVATION = "derivation"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_thought_id() -> str:
    return f"thought_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


@dataclass(frozen=True)
class ThoughtRecord:
    """
    Structured self-note an agent records about its own reasoning.

    Attributes:
        kind: Type of thinking (planning, analysis, ...)
        content: Free text or an arbitrary keyed structure
        next_steps: Ordered planned actions (may be empty)
        context: Background of the thought (optional)
        recorded_at: ISO-8601 UTC timestamp
        id: Opaque unique identifier
    """

    kind: ThinkingType
    content: str | dict[str, Any]
    next_steps: tuple[str, ...] = ()
    context: str | None = None
    recorded_at: str = field(default_factory=_utc_now)
    id: str = field(default_factory=_new_thought_id)

    @classmethod
    def create(
        cls,
        kind: str | ThinkingType,
        content: Any,
        next_steps: list[str] | None = None,
        context: str | None = None,
    ) -> "ThoughtRecord":
        """
        Validate raw tool arguments and build a record.

        Raises:
            ValueError: If kind is unknown or content is empty or not a
                string/mapping.
        """
        try:
            thinking_type = ThinkingType(kind)
        except ValueError as e:
            allowed = ", ".join(t.value for t in ThinkingType)
            raise ValueError(f"Unknown thinking type '{kind}' (expected one of: {allowed})") from e

        if not content or not isinstance(content, (str, dict)):
            raise ValueError("content is required and must be an object or string")

        steps = tuple(str(step) for step in (next_steps or []))
        return cls(kind=thinking_type, content=content, next_steps=steps, context=context)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "content": self.content,
            "next_steps": list(self.next_steps),
            "context": self.context,
            "recorded_at": self.recorded_at,
            "id": self.id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ThoughtRecord":
        return cls(
            kind=ThinkingType(data["kind"]),
            content=data["content"],
            next_steps=tuple(data.get("next_steps") or ()),
            context=data.get("context"),
            recorded_at=data.get("recorded_at") or _utc_now(),
            id=data.get("id") or _new_thought_id(),
        )


class HistoryEntryType(str, Enum):
    """Tag of an iteration history line item."""

    PLAN = "plan"
    TOOL_RESULT = "tool_result"
    USER_REPLY = "user_reply"
    PREVIOUS_TOOL_RESULT = "previous_tool_result"
    THOUGHT_SUMMARY = "thought_summary"


@dataclass(frozen=True)
class IterationHistoryEntry:
    """One line item of an iteration's record. Never mutated once written."""

    iteration: int
    entry_type: HistoryEntryType
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "entry_type": self.entry_type.value,
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IterationHistoryEntry":
        return cls(
            iteration=int(data["iteration"]),
            entry_type=HistoryEntryType(data["entry_type"]),
            content=str(data["content"]),
        )


class LoopStatus(str, Enum):
    """States of the execution state machine."""

    INITIALIZING = "initializing"
    AWAITING_MODEL = "awaiting_model"
    AWAITING_TOOL_RESULTS = "awaiting_tool_results"
    AWAITING_USER_INPUT = "awaiting_user_input"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (LoopStatus.COMPLETED, LoopStatus.ERROR)


_REQUIRED_STATE_FIELDS = ("agent_id", "task", "iteration", "history")


@dataclass
class ExecutionState:
    """
    Serializable snapshot needed to resume a suspended run.

    Holds plain data only (no live objects) so it can cross a process
    boundary. The thought store is not copied here; it is owned by the
    store and survives suspension on its own.

    Attributes:
        agent_id: Identifier of the agent that owns the run
        task: Pending task description
        iteration: Number of the last iteration that ran
        history: Full ordered iteration history
        last_thought_summary: Last emitted thought-summary label (if any)
        pending_question: Question awaiting a user reply (set when suspended)
        consecutive_plan_failures: Empty-plan counter carried across resume
    """

    agent_id: str
    task: str
    iteration: int = 0
    history: list[IterationHistoryEntry] = field(default_factory=list)
    last_thought_summary: str | None = None
    pending_question: str | None = None
    consecutive_plan_failures: int = 0

    def append(self, entry_type: HistoryEntryType, content: str, iteration: int | None = None) -> None:
        """Append a history entry for the given (default: current) iteration."""
        self.history.append(
            IterationHistoryEntry(
                iteration=self.iteration if iteration is None else iteration,
                entry_type=entry_type,
                content=content,
            )
        )

    def entries_for(self, iteration: int) -> list[IterationHistoryEntry]:
        return [e for e in self.history if e.iteration == iteration]

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "task": self.task,
            "iteration": self.iteration,
            "history": [entry.to_dict() for entry in self.history],
            "last_thought_summary": self.last_thought_summary,
            "pending_question": self.pending_question,
            "consecutive_plan_failures": self.consecutive_plan_failures,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ExecutionState":
        """
        Rebuild a state from plain data.

        Raises:
            ResumeStateError: If a required field is missing or malformed.
        """
        if not isinstance(data, dict):
            raise ResumeStateError(f"Suspended state must be a mapping, got {type(data).__name__}")

        missing = [name for name in _REQUIRED_STATE_FIELDS if data.get(name) is None]
        if missing:
            raise ResumeStateError(f"Suspended state is missing required fields: {', '.join(missing)}")

        try:
            iteration = int(data["iteration"])
            history = [IterationHistoryEntry.from_dict(item) for item in data["history"]]
            consecutive_plan_failures = int(data.get("consecutive_plan_failures") or 0)
        except (KeyError, TypeError, ValueError) as e:
            raise ResumeStateError(f"Suspended state is malformed: {e}") from e

        if iteration < 0:
            raise ResumeStateError(f"Suspended state has negative iteration: {iteration}")
        if consecutive_plan_failures < 0:
            raise ResumeStateError(
                f"Suspended state has negative plan failure count: {consecutive_plan_failures}"
            )
        for name in ("last_thought_summary", "pending_question"):
            if not isinstance(data.get(name), (str, type(None))):
                raise ResumeStateError(f"Suspended state field {name} must be a string or null")

        return cls(
            agent_id=str(data["agent_id"]),
            task=str(data["task"]),
            iteration=iteration,
            history=history,
            last_thought_summary=data.get("last_thought_summary"),
            pending_question=data.get("pending_question"),
            consecutive_plan_failures=consecutive_plan_failures,
        )


# A suspended run is an ExecutionState with pending_question set.
SuspendedState = ExecutionState


@dataclass
class Outcome:
    """
    Terminal result of a run.

    Attributes:
        status: "completed" or "error"
        agent_id: Agent that produced the outcome
        iterations: Number of iterations executed
        summary: Completion summary (completed only)
        result: Structured payload passed to the finish call (completed only)
        reason: Human-readable failure reason (error only)
        reason_code: Distinguishable failure code (error only)
        history: Iteration history at the time the run ended
    """

    status: str
    agent_id: str
    iterations: int = 0
    summary: str | None = None
    result: dict[str, Any] | None = None
    reason: str | None = None
    reason_code: ReasonCode | None = None
    history: list[IterationHistoryEntry] = field(default_factory=list)

    @property
    def is_error(self) -> bool:
        return self.status == LoopStatus.ERROR.value

    @classmethod
    def completed(
        cls,
        state: ExecutionState,
        summary: str,
        result: dict[str, Any] | None = None,
    ) -> "Outcome":
        return cls(
            status=LoopStatus.COMPLETED.value,
            agent_id=state.agent_id,
            iterations=state.iteration,
            summary=summary,
            result=result,
            history=list(state.history),
        )

    @classmethod
    def error(
        cls,
        agent_id: str,
        reason: str,
        reason_code: ReasonCode,
        state: ExecutionState | None = None,
    ) -> "Outcome":
        return cls(
            status=LoopStatus.ERROR.value,
            agent_id=agent_id,
            iterations=state.iteration if state else 0,
            reason=reason,
            reason_code=reason_code,
            history=list(state.history) if state else [],
        )
