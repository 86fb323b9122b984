"""
Application Layer - Agent Executor Service

Session-level wrapper around ExecutionLoop. The loop itself returns a
plain ExecutionState when it suspends; the executor persists that state
under a session id so a later answer() call, possibly from another
process, can resume the run.

The AgentExecutor:
- Starts fresh runs and assigns session ids
- Persists suspended state via a StateManagerProtocol
- Resumes runs from stored state with the user's reply
- Deletes stored state once a run reaches a terminal outcome
"""

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog

from agentloop.core.domain.agent import ExecutionLoop, RunResult
from agentloop.core.domain.errors import ReasonCode
from agentloop.core.domain.models import ExecutionState, LoopStatus, Outcome
from agentloop.core.interfaces.state import StateManagerProtocol

logger = structlog.get_logger()


@dataclass
class ExecutionReport:
    """Result of one start/answer call.

    Attributes:
        session_id: Session the run is stored under
        status: "completed", "error" or "awaiting_user_input"
        outcome: Terminal outcome (completed/error only)
        pending_question: Question for the user (suspended only)
        state: Suspended state (suspended only)
    """

    session_id: str
    status: str
    outcome: Optional[Outcome] = None
    pending_question: Optional[str] = None
    state: Optional[ExecutionState] = None

    @property
    def is_suspended(self) -> bool:
        return self.status == LoopStatus.AWAITING_USER_INPUT.value


class AgentExecutor:
    """Service layer orchestrating suspendable runs across calls."""

    def __init__(self, loop: ExecutionLoop, state_manager: StateManagerProtocol):
        """
        Args:
            loop: Execution loop used for every run and resume
            state_manager: Storage for suspended state
        """
        self.loop = loop
        self.state_manager = state_manager
        self.logger = logger.bind(component="agent_executor")

    async def start(self, agent_id: str, task: str, session_id: Optional[str] = None) -> ExecutionReport:
        """Start a fresh run for an agent.

        Args:
            agent_id: Agent identifier (working memory key)
            task: Task description
            session_id: Session id to store a suspension under (generated
                when omitted)

        Returns:
            ExecutionReport for the run
        """
        session_id = session_id or self._generate_session_id()
        self.logger.info("run.started", session_id=session_id, agent_id=agent_id, task=task[:100])

        result = await self.loop.run(agent_id, task)
        return await self._finish(session_id, result)

    async def answer(self, session_id: str, reply: str) -> ExecutionReport:
        """Resume a suspended session with the user's reply.

        A missing session yields an error outcome with the
        resume_state_invalid reason code.
        """
        data = await self.state_manager.load_state(session_id)
        if not data:
            self.logger.error("run.resume_failed", session_id=session_id, reason="session not found")
            outcome = Outcome.error(
                agent_id="",
                reason=f"No suspended run found for session '{session_id}'",
                reason_code=ReasonCode.RESUME_STATE_INVALID,
            )
            return ExecutionReport(session_id=session_id, status=outcome.status, outcome=outcome)

        agent_id = str(data.get("agent_id") or "")
        self.logger.info("run.resumed", session_id=session_id, agent_id=agent_id)

        result = await self.loop.resume(agent_id, data, reply)
        return await self._finish(session_id, result)

    async def _finish(self, session_id: str, result: RunResult) -> ExecutionReport:
        if isinstance(result, ExecutionState):
            saved = await self.state_manager.save_state(session_id, result.to_dict())
            if not saved:
                self.logger.error("run.suspend_not_persisted", session_id=session_id)
            self.logger.info(
                "run.suspended",
                session_id=session_id,
                iteration=result.iteration,
                question=(result.pending_question or "")[:100],
            )
            return ExecutionReport(
                session_id=session_id,
                status=LoopStatus.AWAITING_USER_INPUT.value,
                pending_question=result.pending_question,
                state=result,
            )

        await self.state_manager.delete_state(session_id)
        self.logger.info(
            "run.finished",
            session_id=session_id,
            status=result.status,
            iterations=result.iterations,
            reason_code=result.reason_code.value if result.reason_code else None,
        )
        return ExecutionReport(session_id=session_id, status=result.status, outcome=result)

    def _generate_session_id(self) -> str:
        return str(uuid.uuid4())
