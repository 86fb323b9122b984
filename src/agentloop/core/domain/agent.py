"""
Execution Loop - resumable agent state machine

Drives an agent through iterations of:
1. Assemble the instruction payload (working memory, history, tools)
2. Ask the reasoning service for a plan
3. Parse the plan (strict, then one repair pass)
4. Execute the plan's tool calls in request order

States:
    initializing -> awaiting_model -> awaiting_tool_results ->
        (awaiting_model | awaiting_user_input | completed | error)

Suspension is data, not a held call stack: askQuestion returns a plain
ExecutionState and resume() continues from it in a fresh invocation,
possibly in another process. Working memory lives in the thought store,
which is cleared at the start of a fresh run and never on resume.
"""

from typing import Any

import structlog

from agentloop.config.iteration import IterationConfig
from agentloop.core.context.assembler import AssemblyRequest, ContextAssembler
from agentloop.core.context.history import render_tool_results
from agentloop.core.context.serializer import MAX_DEPTH, serialize
from agentloop.core.domain.errors import ReasonCode, ReasoningServiceError, ResumeStateError
from agentloop.core.domain.events import Plan, ToolCall, ToolResult
from agentloop.core.domain.models import (
    ExecutionState,
    HistoryEntryType,
    LoopStatus,
    Outcome,
    ThoughtRecord,
)
from agentloop.core.domain.plan_parser import parse_plan
from agentloop.core.interfaces.llm import LLMProviderProtocol, TokenCounterProtocol
from agentloop.core.interfaces.memory import ThoughtStoreProtocol
from agentloop.core.interfaces.tools import ToolRegistryProtocol
from agentloop.core.memory.thought_store import get_thought_store
from agentloop.core.prompts.agent_prompts import DEFAULT_AGENT_INSTRUCTIONS
from agentloop.core.tools.builtin import ASK_QUESTION, FINAL_ANSWER, RECORD_THOUGHT

EMPTY_PLAN_ENTRY = "(empty plan: response could not be parsed)"

RunResult = Outcome | ExecutionState


class ExecutionLoop:
    """
    Resumable agent execution loop.

    A new instance may be created for every run or resume; all state needed
    to continue lives in ExecutionState and the shared thought store.
    """

    def __init__(
        self,
        llm_provider: LLMProviderProtocol,
        tool_registry: ToolRegistryProtocol,
        thought_store: ThoughtStoreProtocol | None = None,
        assembler: ContextAssembler | None = None,
        iteration_config: IterationConfig | None = None,
        max_plan_failures: int = 3,
        agent_instructions: str = DEFAULT_AGENT_INSTRUCTIONS,
        agent_category: str = "process",
        document_path: str | None = None,
        token_budget: int | None = None,
        max_depth: int = MAX_DEPTH,
    ):
        """
        Initialize the loop with injected collaborators.

        Args:
            llm_provider: Reasoning service
            tool_registry: Registry for all non-builtin tools
            thought_store: Working memory (default: the process-wide store)
            assembler: Payload builder (default: one reading thought_store)
            iteration_config: Iteration limits (default: built-in limits)
            max_plan_failures: Consecutive empty plans before the run fails
            agent_instructions: Role-specific instructions for the payload
            agent_category: Category used for limits and outline lookup
            document_path: Document passed to the outline provider
            token_budget: Fail the run when a payload exceeds this many
                tokens (needs a provider with count_tokens)
            max_depth: Serializer depth limit for history entries
        """
        if max_plan_failures < 1:
            raise ValueError("max_plan_failures must be at least 1")

        self.llm_provider = llm_provider
        self.tool_registry = tool_registry
        self.thought_store = thought_store or get_thought_store()
        self.assembler = assembler or ContextAssembler(thought_store=self.thought_store)
        self.iteration_config = iteration_config or IterationConfig()
        self.max_plan_failures = max_plan_failures
        self.agent_instructions = agent_instructions
        self.agent_category = agent_category
        self.document_path = document_path
        self.token_budget = token_budget
        self.max_depth = max_depth
        self.status = LoopStatus.INITIALIZING
        self.logger = structlog.get_logger().bind(component="execution_loop")

    async def run(self, agent_id: str, task: str) -> RunResult:
        """
        Start a fresh run.

        Clears the agent's working memory exactly once, then iterates until
        the run completes, fails or suspends for user input.

        Returns:
            Outcome when the run ended, ExecutionState when it suspended.
        """
        self.logger.info("run_start", agent_id=agent_id, task=task[:100])
        self._transition(LoopStatus.INITIALIZING, agent_id)
        self.thought_store.clear(agent_id)

        state = ExecutionState(agent_id=agent_id, task=task)
        return await self._iterate(state)

    async def resume(
        self,
        agent_id: str,
        suspended: ExecutionState | dict[str, Any],
        user_reply: str,
    ) -> RunResult:
        """
        Continue a suspended run with the user's reply.

        The state is validated before anything else happens. Working memory
        is left untouched. The reply is recorded as a user_reply entry of
        the next iteration.

        Returns:
            Outcome when the run ended, ExecutionState when it suspended
            again. Invalid state yields Outcome(error, resume_state_invalid)
            without running any iteration.
        """
        self._transition(LoopStatus.INITIALIZING, agent_id)
        try:
            state = self._restore(agent_id, suspended)
        except ResumeStateError as e:
            self.logger.error("resume_state_invalid", agent_id=agent_id, error=str(e))
            self._transition(LoopStatus.ERROR, agent_id)
            return Outcome.error(agent_id, str(e), e.reason_code)

        question = state.pending_question
        state.pending_question = None
        next_iteration = state.iteration + 1

        if question:
            state.append(
                HistoryEntryType.PREVIOUS_TOOL_RESULT,
                serialize(
                    {"tool": ASK_QUESTION, "success": True, "result": {"question": question}},
                    max_depth=self.max_depth,
                ),
                iteration=next_iteration,
            )
        state.append(HistoryEntryType.USER_REPLY, user_reply, iteration=next_iteration)

        self.logger.info(
            "run_resumed",
            agent_id=agent_id,
            iteration=state.iteration,
            thoughts=self.thought_store.count(agent_id),
        )
        return await self._iterate(state, user_reply=user_reply, previous_question=question)

    def _restore(self, agent_id: str, suspended: ExecutionState | dict[str, Any]) -> ExecutionState:
        """
        Validate and copy a suspended state.

        Raises:
            ResumeStateError: If the state is malformed or belongs to a
                different agent.
        """
        data = suspended.to_dict() if isinstance(suspended, ExecutionState) else suspended
        state = ExecutionState.from_dict(data)
        if state.agent_id != agent_id:
            raise ResumeStateError(
                f"Suspended state belongs to agent '{state.agent_id}', not '{agent_id}'"
            )
        return state

    async def _iterate(
        self,
        state: ExecutionState,
        user_reply: str | None = None,
        previous_question: str | None = None,
    ) -> RunResult:
        max_iterations, source = self.iteration_config.max_iterations_for(
            state.agent_id, self.agent_category
        )
        self.logger.debug(
            "iteration_limit", agent_id=state.agent_id, max_iterations=max_iterations, source=source
        )

        while True:
            if state.iteration >= max_iterations:
                return self._fail(
                    state,
                    f"Reached the maximum of {max_iterations} iterations without finishing",
                    ReasonCode.MAX_ITERATIONS_EXCEEDED,
                )

            state.iteration += 1
            self._transition(LoopStatus.AWAITING_MODEL, state.agent_id, iteration=state.iteration)

            prompt = await self._build_prompt(state, max_iterations, user_reply, previous_question)
            user_reply = previous_question = None

            budget_failure = self._check_token_budget(state, prompt)
            if budget_failure is not None:
                return budget_failure

            try:
                response = await self.llm_provider.complete(prompt)
            except ReasoningServiceError as e:
                return self._fail(state, f"Reasoning service failed: {e}", e.reason_code)
            except Exception as e:
                return self._fail(
                    state, f"Reasoning service failed: {e}", ReasonCode.REASONING_SERVICE_FAILURE
                )

            if not response.get("success"):
                return self._fail(
                    state,
                    f"Reasoning service failed: {response.get('error') or 'unknown error'}",
                    ReasonCode.REASONING_SERVICE_FAILURE,
                )

            plan = parse_plan(response.get("content"))
            if plan is None:
                state.consecutive_plan_failures += 1
                state.append(HistoryEntryType.PLAN, EMPTY_PLAN_ENTRY)
                self.logger.warning(
                    "plan_parse_failed",
                    agent_id=state.agent_id,
                    iteration=state.iteration,
                    consecutive_failures=state.consecutive_plan_failures,
                )
                if state.consecutive_plan_failures >= self.max_plan_failures:
                    return self._fail(
                        state,
                        f"{state.consecutive_plan_failures} consecutive responses could not be "
                        "parsed into a plan",
                        ReasonCode.PLAN_PARSE_FAILURE,
                    )
                continue

            state.consecutive_plan_failures = 0
            self._transition(
                LoopStatus.AWAITING_TOOL_RESULTS,
                state.agent_id,
                iteration=state.iteration,
                calls=len(plan.tool_calls),
            )

            result = await self._execute_plan(state, plan)
            if result is not None:
                return result

    def _check_token_budget(self, state: ExecutionState, prompt: str) -> Outcome | None:
        """Fail the run when the payload exceeds the token budget."""
        if self.token_budget is None or not isinstance(self.llm_provider, TokenCounterProtocol):
            return None

        try:
            tokens = int(self.llm_provider.count_tokens(prompt))
        except Exception as e:
            return self._fail(
                state, f"Could not count payload tokens: {e}", ReasonCode.REASONING_SERVICE_FAILURE
            )

        if tokens > self.token_budget:
            return self._fail(
                state,
                f"Instruction payload has {tokens} tokens, budget is {self.token_budget}",
                ReasonCode.TOKEN_BUDGET_EXCEEDED,
            )
        return None

    async def _build_prompt(
        self,
        state: ExecutionState,
        max_iterations: int,
        user_reply: str | None,
        previous_question: str | None,
    ) -> str:
        context = await self.assembler.assemble(
            AssemblyRequest(
                agent_id=state.agent_id,
                task=state.task,
                agent_instructions=self.agent_instructions,
                agent_category=self.agent_category,
                user_reply=user_reply,
                previous_question=previous_question,
                history=list(state.history),
                tool_schemas=self.tool_registry.schemas(),
                document_path=self.document_path,
                iteration=state.iteration,
                max_iterations=max_iterations,
            )
        )
        return context.render()

    async def _execute_plan(self, state: ExecutionState, plan: Plan) -> RunResult | None:
        """
        Execute a plan's calls in order.

        Returns:
            Outcome or ExecutionState when a call ended or suspended the
            run, None when the loop should ask the model again.
        """
        visible_calls = [call.to_dict() for call in plan.tool_calls if call.name != RECORD_THOUGHT]
        if visible_calls:
            state.append(
                HistoryEntryType.PLAN,
                serialize({"tool_calls": visible_calls}, max_depth=self.max_depth),
            )

        for position, call in enumerate(plan.tool_calls):
            if call.name == RECORD_THOUGHT:
                self._record_thought(state, call)
                continue

            if call.name == ASK_QUESTION:
                question = call.args.get("question")
                if not isinstance(question, str) or not question.strip():
                    self._append_result(
                        state, ToolResult(name=call.name, success=False, error="question is required")
                    )
                    continue
                skipped = len(plan.tool_calls) - position - 1
                return self._suspend(state, question.strip(), skipped)

            if call.name == FINAL_ANSWER:
                return self._complete(state, call)

            self._append_result(state, await self._execute_tool(call))

        return None

    def _record_thought(self, state: ExecutionState, call: ToolCall) -> None:
        args = call.args
        next_steps = args.get("nextSteps", args.get("next_steps"))
        if isinstance(next_steps, str):
            next_steps = [next_steps]
        try:
            thought = ThoughtRecord.create(
                kind=args.get("thinkingType", args.get("kind")),
                content=args.get("content"),
                next_steps=next_steps if isinstance(next_steps, list) else None,
                context=args.get("context"),
            )
        except ValueError as e:
            self._append_result(state, ToolResult(name=call.name, success=False, error=str(e)))
            return

        self.thought_store.record(state.agent_id, thought)
        summary = f"Thought recorded: {thought.kind.value.upper()} - {thought.context or 'no context'}"
        state.append(HistoryEntryType.THOUGHT_SUMMARY, summary)
        state.last_thought_summary = summary

    async def _execute_tool(self, call: ToolCall) -> ToolResult:
        if call.name not in self.tool_registry:
            self.logger.warning("unknown_tool", tool=call.name)
            return ToolResult(name=call.name, success=False, error=f"Unknown tool: {call.name}")

        try:
            raw = await self.tool_registry.execute(call.name, call.args)
        except Exception as e:
            self.logger.warning("tool_execution_error", tool=call.name, error=str(e))
            return ToolResult(name=call.name, success=False, error=f"{type(e).__name__}: {e}")

        return ToolResult(
            name=call.name,
            success=bool(raw.get("success")),
            result=raw.get("result"),
            error=raw.get("error"),
            duration_ms=int(raw.get("duration_ms") or 0),
        )

    def _append_result(self, state: ExecutionState, result: ToolResult) -> None:
        state.append(
            HistoryEntryType.TOOL_RESULT,
            render_tool_results([result], max_depth=self.max_depth),
        )
        self.logger.info(
            "tool_result",
            agent_id=state.agent_id,
            iteration=state.iteration,
            tool=result.name,
            success=result.success,
        )

    def _suspend(self, state: ExecutionState, question: str, skipped: int) -> ExecutionState:
        state.pending_question = question
        self._transition(LoopStatus.AWAITING_USER_INPUT, state.agent_id, iteration=state.iteration)
        self.logger.info(
            "run_suspended",
            agent_id=state.agent_id,
            iteration=state.iteration,
            skipped_calls=skipped,
            thoughts=self.thought_store.count(state.agent_id),
        )
        return state

    def _complete(self, state: ExecutionState, call: ToolCall) -> Outcome:
        summary = call.args.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            summary = "Task completed"
        result = call.args.get("result")
        if result is not None and not isinstance(result, dict):
            result = {"value": result}

        self._transition(LoopStatus.COMPLETED, state.agent_id, iteration=state.iteration)
        self.logger.info("run_completed", agent_id=state.agent_id, iterations=state.iteration)
        return Outcome.completed(state, summary, result)

    def _fail(self, state: ExecutionState, reason: str, reason_code: ReasonCode) -> Outcome:
        self._transition(LoopStatus.ERROR, state.agent_id, iteration=state.iteration)
        self.logger.error(
            "run_failed",
            agent_id=state.agent_id,
            iteration=state.iteration,
            reason=reason,
            reason_code=reason_code.value,
        )
        return Outcome.error(state.agent_id, reason, reason_code, state)

    def _transition(self, new_status: LoopStatus, agent_id: str, **context: Any) -> None:
        self.logger.info(
            "state_transition",
            agent_id=agent_id,
            from_state=self.status.value,
            to_state=new_status.value,
            **context,
        )
        self.status = new_status
