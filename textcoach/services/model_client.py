"""Model invocation boundary with timeout and retry wrapping.

The pipeline only needs "send instructions + input, get text back, be
cancellable". ModelClient captures that; AnthropicModelClient implements
it over the Anthropic Messages API. call_model() adds the deadline and
retry policy and maps failures to the pipeline's error types.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from anthropic import AsyncAnthropic

from textcoach.errors import ModelCallError, ModelTimeoutError
from textcoach.services.retry import RetryPolicy, with_retry_policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelResponse:
    """Text output plus the model identifier the provider actually used."""

    text: str
    model: str


class ModelClient(Protocol):
    """Anything that can turn instructions + input into text."""

    async def generate(
        self, *, model: str, instructions: str, input_text: str,
    ) -> ModelResponse: ...


class AnthropicModelClient:
    """ModelClient backed by anthropic.AsyncAnthropic.

    Instructions become the system prompt and the input a single user
    turn. Cancelling the awaiting task aborts the underlying HTTP request.
    """

    def __init__(self, client: Any | None = None, max_tokens: int = 1024) -> None:
        """Initialize the client.

        Args:
            client: Preconfigured AsyncAnthropic. Defaults to one reading
                ANTHROPIC_API_KEY from the environment.
            max_tokens: Output token cap per request.
        """
        self._client = client or AsyncAnthropic()
        self._max_tokens = max_tokens

    async def generate(
        self, *, model: str, instructions: str, input_text: str,
    ) -> ModelResponse:
        response = await self._client.messages.create(
            model=model,
            max_tokens=self._max_tokens,
            system=instructions,
            messages=[{"role": "user", "content": input_text}],
        )
        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
        return ModelResponse(text=text, model=response.model or model)


async def call_model(
    client: ModelClient,
    *,
    model: str,
    instructions: str,
    input_text: str,
    timeout_ms: int,
    policy: RetryPolicy,
) -> ModelResponse:
    """Call the model under a deadline with bounded retries.

    The deadline covers every attempt and backoff delay. When it expires
    the in-flight request is cancelled and nothing is retried.

    Args:
        client: Model boundary implementation.
        model: Requested model identifier.
        instructions: System instructions.
        input_text: User-turn input.
        timeout_ms: Overall deadline in milliseconds.
        policy: Retry policy for non-cancellation failures.

    Returns:
        ModelResponse from the first successful attempt.

    Raises:
        ModelTimeoutError: Deadline expired.
        ModelCallError: Every attempt failed.
    """
    try:
        async with asyncio.timeout(timeout_ms / 1000) as deadline:
            return await with_retry_policy(
                lambda: client.generate(
                    model=model, instructions=instructions, input_text=input_text,
                ),
                policy,
            )
    except TimeoutError as e:
        # The client may raise its own TimeoutError; only an expired deadline is terminal
        if not deadline.expired():
            raise ModelCallError(attempts=policy.retries + 1, details=str(e)) from e
        logger.warning("Model call to %s timed out after %d ms", model, timeout_ms)
        raise ModelTimeoutError(timeout_ms) from e
    except Exception as e:
        raise ModelCallError(attempts=policy.retries + 1, details=str(e)) from e
