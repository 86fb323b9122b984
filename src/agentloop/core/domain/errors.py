"""
Error taxonomy for the execution loop.

Each fatal error carries a ReasonCode so callers can tell the terminal
outcomes apart without parsing messages. Plan and tool errors are absorbed
into iteration history and never raised to the caller.
"""

from enum import Enum


class ReasonCode(str, Enum):
    """Distinguishable reasons for a run ending in the error state."""

    PLAN_PARSE_FAILURE = "plan_parse_failure"
    REASONING_SERVICE_FAILURE = "reasoning_service_failure"
    RESUME_STATE_INVALID = "resume_state_invalid"
    MAX_ITERATIONS_EXCEEDED = "max_iterations_exceeded"
    TOKEN_BUDGET_EXCEEDED = "token_budget_exceeded"


class AgentLoopError(Exception):
    """Base class for fatal loop errors."""

    reason_code: ReasonCode = ReasonCode.REASONING_SERVICE_FAILURE

    def __init__(self, message: str, reason_code: ReasonCode | None = None):
        super().__init__(message)
        if reason_code is not None:
            self.reason_code = reason_code


class ResumeStateError(AgentLoopError):
    """Suspended state is missing required fields or is malformed."""

    reason_code = ReasonCode.RESUME_STATE_INVALID


class ReasoningServiceError(AgentLoopError):
    """The reasoning service failed to produce a response."""

    reason_code = ReasonCode.REASONING_SERVICE_FAILURE


class PlanParseError(AgentLoopError):
    """Raised by the strict decoding path of the plan parser."""

    reason_code = ReasonCode.PLAN_PARSE_FAILURE
