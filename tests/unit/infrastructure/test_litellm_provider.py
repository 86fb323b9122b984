"""
Unit Tests for LiteLLMProvider

litellm.acompletion is patched; no network access.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import litellm
import pytest

from agentloop.config.settings import AgentLoopSettings
from agentloop.core.domain.errors import ReasonCode, ReasoningServiceError
from agentloop.infrastructure.llm.litellm_provider import LiteLLMProvider, RetryPolicy


class TransientError(Exception):
    pass


def fake_response(content: str):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=42, prompt_tokens=30, completion_tokens=12),
    )


@pytest.fixture
def provider():
    return LiteLLMProvider(
        model="gpt-4.1-mini",
        retry_policy=RetryPolicy(max_attempts=3, initial_backoff=0.0, retry_on=(TransientError,)),
    )


class TestComplete:
    """Tests for complete()."""

    @pytest.mark.asyncio
    async def test_success(self, provider):
        with patch("litellm.acompletion", new=AsyncMock(return_value=fake_response('{"tool_calls": []}'))) as call:
            result = await provider.complete("PROMPT", temperature=0.0)

        assert result["success"] is True
        assert result["content"] == '{"tool_calls": []}'
        assert result["usage"] == {"prompt_tokens": 30, "completion_tokens": 12, "total_tokens": 42}
        kwargs = call.await_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "PROMPT"}]
        assert kwargs["temperature"] == 0.0
        assert kwargs["timeout"] == 60

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self, provider):
        mock = AsyncMock(side_effect=[TransientError("slow down"), fake_response("ok")])
        with patch("litellm.acompletion", new=mock):
            result = await provider.complete("PROMPT")

        assert result["content"] == "ok"
        assert mock.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise(self, provider):
        """Test that the last transient failure surfaces as ReasoningServiceError."""
        mock = AsyncMock(side_effect=TransientError("slow down"))
        with patch("litellm.acompletion", new=mock):
            with pytest.raises(ReasoningServiceError) as exc_info:
                await provider.complete("PROMPT")

        assert mock.await_count == 3
        assert "after 3 attempts" in str(exc_info.value)
        assert exc_info.value.reason_code is ReasonCode.REASONING_SERVICE_FAILURE

    @pytest.mark.asyncio
    async def test_non_transient_error_is_not_retried(self, provider):
        """Test that an error message mentioning a rate limit does not trigger a retry."""
        mock = AsyncMock(side_effect=ValueError("RateLimitError in message only"))
        with patch("litellm.acompletion", new=mock):
            with pytest.raises(ReasoningServiceError, match="ValueError"):
                await provider.complete("PROMPT")

        assert mock.await_count == 1


class TestRetryPolicy:
    """Tests for RetryPolicy defaults and backoff."""

    def test_default_retries_litellm_transient_errors(self):
        policy = RetryPolicy()

        assert litellm.RateLimitError in policy.retry_on
        assert litellm.Timeout in policy.retry_on
        assert litellm.APIConnectionError in policy.retry_on
        assert litellm.ServiceUnavailableError in policy.retry_on

    def test_exponential_backoff(self):
        policy = RetryPolicy(initial_backoff=0.5, backoff_multiplier=2.0)

        assert [policy.backoff(attempt) for attempt in (1, 2, 3)] == [0.5, 1.0, 2.0]


class TestConfiguration:
    """Tests for settings wiring and token counting."""

    def test_from_settings(self):
        settings = AgentLoopSettings(model="claude-3-haiku", temperature=0.5, max_tokens=256)

        provider = LiteLLMProvider.from_settings(settings)

        assert provider.model == "claude-3-haiku"
        assert provider.temperature == 0.5
        assert provider.max_tokens == 256

    def test_count_tokens_uses_litellm(self, provider):
        with patch("litellm.token_counter", return_value=7) as counter:
            assert provider.count_tokens("hello") == 7

        counter.assert_called_once_with(model="gpt-4.1-mini", text="hello")
