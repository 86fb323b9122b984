"""
LiteLLM-backed reasoning service.

Implements LLMProviderProtocol on top of litellm.acompletion: the
assembled payload is sent as a single user message and the reply text is
returned unparsed. Rate limits, timeouts and connection problems are
retried with exponential backoff. Anything else, and the last failed
attempt, raises ReasoningServiceError.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Type

import litellm
import structlog

from agentloop.config.settings import AgentLoopSettings
from agentloop.core.domain.errors import ReasoningServiceError

TRANSIENT_ERRORS: Tuple[Type[Exception], ...] = (
    litellm.RateLimitError,
    litellm.Timeout,
    litellm.APIConnectionError,
    litellm.ServiceUnavailableError,
)


@dataclass
class RetryPolicy:
    """How often and how patiently to retry transient litellm errors."""

    max_attempts: int = 3
    initial_backoff: float = 1.0
    backoff_multiplier: float = 2.0
    timeout: int = 60
    retry_on: Tuple[Type[Exception], ...] = TRANSIENT_ERRORS

    def backoff(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return self.initial_backoff * self.backoff_multiplier ** (attempt - 1)


def _usage_stats(response: Any) -> Dict[str, int]:
    usage = getattr(response, "usage", None) or {}
    if not isinstance(usage, dict):
        usage = usage.model_dump() if hasattr(usage, "model_dump") else vars(usage)
    return {
        key: int(usage.get(key) or 0)
        for key in ("prompt_tokens", "completion_tokens", "total_tokens")
    }


class LiteLLMProvider:
    """Reasoning service adapter using litellm."""

    def __init__(
        self,
        model: str = "gpt-4.1-mini",
        temperature: float = 0.2,
        max_tokens: Optional[int] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """
        Args:
            model: litellm model name (e.g. "gpt-4.1-mini", "azure/<deployment>")
            temperature: Sampling temperature
            max_tokens: Completion token cap (None for provider default)
            retry_policy: Retry behaviour (default: 3 attempts, x2 backoff)
        """
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = structlog.get_logger().bind(component="litellm_provider", model=model)

    @classmethod
    def from_settings(cls, settings: AgentLoopSettings) -> "LiteLLMProvider":
        return cls(
            model=settings.model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )

    def count_tokens(self, text: str) -> int:
        """Count tokens of a payload for the model's tokenizer."""
        return litellm.token_counter(model=self.model, text=text)

    async def complete(self, prompt: str, **kwargs: Any) -> Dict[str, Any]:
        """
        Send the payload and return the raw reply.

        Args:
            prompt: Assembled instruction payload
            **kwargs: Overrides for litellm (temperature, max_tokens, ...)

        Returns:
            Dict with success (always True), content, usage, model and
            latency_ms.

        Raises:
            ReasoningServiceError: On a non-transient error, or when every
                attempt hit a transient one.
        """
        params: Dict[str, Any] = {"temperature": self.temperature, "timeout": self.retry_policy.timeout}
        if self.max_tokens is not None:
            params["max_tokens"] = self.max_tokens
        params.update(kwargs)

        attempt = 0
        while True:
            attempt += 1
            started = time.monotonic()
            try:
                response = await litellm.acompletion(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    **params,
                )
            except self.retry_policy.retry_on as e:
                if attempt >= self.retry_policy.max_attempts:
                    self.logger.error(
                        "reasoning_retries_exhausted", attempts=attempt, error_type=type(e).__name__
                    )
                    raise ReasoningServiceError(
                        f"{type(e).__name__} after {attempt} attempts: {e}"
                    ) from e
                delay = self.retry_policy.backoff(attempt)
                self.logger.warning(
                    "reasoning_retry", attempt=attempt, error_type=type(e).__name__, delay_seconds=delay
                )
                await asyncio.sleep(delay)
                continue
            except Exception as e:
                self.logger.error("reasoning_request_failed", attempt=attempt, error_type=type(e).__name__)
                raise ReasoningServiceError(f"{type(e).__name__}: {e}") from e

            latency_ms = int((time.monotonic() - started) * 1000)
            usage = _usage_stats(response)
            self.logger.info(
                "reasoning_reply", attempt=attempt, tokens=usage["total_tokens"], latency_ms=latency_ms
            )
            return {
                "success": True,
                "content": response.choices[0].message.content or "",
                "usage": usage,
                "model": self.model,
                "latency_ms": latency_ms,
            }
