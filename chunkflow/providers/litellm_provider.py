"""LiteLLM adapter implementing the CompletionBackend interface.

Routes streaming completion requests to any provider via LiteLLM's unified
API. Handles message conversion, API key and base URL resolution, retry
with exponential backoff, and wraps the token stream in a StreamingResult
that records finish reason and usage.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

import litellm

# Suppress LiteLLM's "Give Feedback / Get Help" and "Provider List" banners
litellm.suppress_debug_info = True

from chunkflow.errors import BackendError
from chunkflow.providers.base import CompletionBackend
from chunkflow.providers.registry import ModelRegistry
from chunkflow.schemas.messages import Message, OpaquePart, TextPart
from chunkflow.schemas.registry import ModelInfo
from chunkflow.schemas.streaming import StreamChunk, TokenUsage
from chunkflow.streaming import StreamingResult
from chunkflow.tokens import TokenEstimator

logger = logging.getLogger(__name__)

# Max retries for transient failures
_MAX_RETRIES = 3
_BASE_BACKOFF = 1.0  # seconds


def _short_error_reason(error: Exception) -> str:
    """Extract a short, user-friendly reason from a LiteLLM error."""
    error_str = str(error).lower()
    if "rate" in error_str or "429" in error_str:
        return "rate limit"
    if "overloaded" in error_str or "529" in error_str:
        return "overloaded"
    if "timeout" in error_str or isinstance(error, TimeoutError):
        return "timeout"
    if "503" in error_str or "unavailable" in error_str:
        return "service unavailable"
    if "500" in error_str or "internal" in error_str:
        return "server error"
    if "connection" in error_str:
        return "connection error"
    return str(error)[:80]


def _convert_part(part: TextPart | OpaquePart) -> dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    if part.type == "image":
        return {"type": "image_url", "image_url": {"url": part.ref}}
    # Files and tool references travel as textual references
    return {"type": "text", "text": f"[{part.type}: {part.ref}]"}


def to_openai_messages(
    system_prompt: str, messages: Sequence[Message]
) -> list[dict[str, Any]]:
    """Convert Messages to OpenAI chat format with the system prompt first."""
    converted: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for message in messages:
        if isinstance(message.content, str):
            content: Any = message.content
        else:
            content = [_convert_part(part) for part in message.content]
        converted.append({"role": str(message.role), "content": content})
    return converted


class LiteLLMBackend(CompletionBackend):
    """Universal streaming backend powered by LiteLLM.

    Resolves each model's provider through the registry for its routing
    prefix, API key and base URL, then calls litellm.acompletion with
    ``stream=True``.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        *,
        timeout: int = 120,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self._registry = registry
        self._timeout = timeout
        self._estimator = estimator or TokenEstimator()

    async def submit(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        token_budget: int,
        options: Mapping[str, Any] | None = None,
        *,
        model: ModelInfo,
    ) -> StreamingResult:
        """Start a streaming completion via LiteLLM."""
        full_messages = to_openai_messages(system_prompt, messages)
        kwargs = self._build_completion_kwargs(full_messages, token_budget, options, model)

        response = await self._call_streaming_with_retry(kwargs, model)

        prompt_estimate = self._estimator.estimate_chars(system_prompt) + sum(
            self._estimator.estimate_chars(message.text) for message in messages
        )
        return StreamingResult(self._stream_events(response, prompt_estimate, model))

    def _build_completion_kwargs(
        self,
        messages: list[dict[str, Any]],
        token_budget: int,
        options: Mapping[str, Any] | None,
        model: ModelInfo,
    ) -> dict[str, Any]:
        """Build the kwargs dict for litellm.acompletion."""
        provider = self._registry.get_provider(model.provider)
        kwargs: dict[str, Any] = {
            "timeout": float(self._timeout),
            **(options or {}),
            "model": provider.litellm_model(model.name),
            "messages": messages,
            "stream": True,
            "stream_options": {"include_usage": True},
        }

        # Orchestrator-shaped options carry the budget under the right name
        if "max_tokens" not in kwargs and "max_completion_tokens" not in kwargs:
            kwargs["max_tokens"] = token_budget

        api_key = os.environ.get(provider.api_key_env, "") if provider.api_key_env else ""
        if api_key:
            kwargs["api_key"] = api_key

        if provider.api_base:
            kwargs["api_base"] = provider.api_base

        return kwargs

    async def _call_streaming_with_retry(self, kwargs: dict, model: ModelInfo):
        """Call litellm.acompletion with stream=True and retry on failure.

        Retries on transient errors (rate limits, server errors, timeouts).
        Non-retryable errors (auth, invalid request) are raised immediately.

        Raises:
            BackendError: If the call fails after all retries.
        """
        last_error: Exception | None = None

        for attempt in range(_MAX_RETRIES):
            try:
                return await litellm.acompletion(**kwargs)
            except TimeoutError:
                last_error = TimeoutError(
                    f"Streaming call timed out after {kwargs.get('timeout')}s "
                    f"(attempt {attempt + 1}/{_MAX_RETRIES})"
                )
            except litellm.AuthenticationError:
                raise BackendError(
                    f"Authentication failed for {model.name}. "
                    f"Check the API key for provider {model.provider}."
                ) from None
            except litellm.BadRequestError as e:
                raise BackendError(f"Bad request to {model.name}: {e}") from e
            except (
                litellm.RateLimitError,
                litellm.ServiceUnavailableError,
                litellm.InternalServerError,
                litellm.APIConnectionError,
            ) as e:
                last_error = e

            if attempt < _MAX_RETRIES - 1:
                backoff = _BASE_BACKOFF * (2**attempt)
                logger.warning(
                    "Streaming retry %d/%d for %s (%s, backoff: %.1fs)",
                    attempt + 1, _MAX_RETRIES, model.name,
                    _short_error_reason(last_error), backoff,
                )
                await asyncio.sleep(backoff)

        raise BackendError(
            f"Streaming call to {model.name} failed after "
            f"{_MAX_RETRIES} retries: {last_error}"
        ) from last_error

    async def _stream_events(
        self, response, prompt_estimate: int, model: ModelInfo
    ) -> AsyncIterator[StreamChunk]:
        """Translate LiteLLM stream chunks into StreamChunk events.

        Provider-reported usage wins; otherwise usage is estimated from
        the prompt and the accumulated text.
        """
        accumulated = ""
        token_count = 0
        finish_reason: str | None = None
        usage: TokenUsage | None = None

        try:
            async for chunk in response:
                delta = ""
                if chunk.choices:
                    choice = chunk.choices[0]
                    if choice.delta:
                        delta = choice.delta.content or ""
                    finish_reason = getattr(choice, "finish_reason", None) or finish_reason

                reported = getattr(chunk, "usage", None)
                if reported:
                    usage = TokenUsage.of(
                        getattr(reported, "prompt_tokens", 0) or 0,
                        getattr(reported, "completion_tokens", 0) or 0,
                    )

                if delta:
                    accumulated += delta
                    token_count += 1  # approximate, 1 chunk ~= 1 token
                    yield StreamChunk(
                        delta=delta, accumulated=accumulated, token_count=token_count,
                    )
        except (
            litellm.RateLimitError,
            litellm.ServiceUnavailableError,
            litellm.InternalServerError,
            litellm.APIConnectionError,
            litellm.APIError,
        ) as e:
            raise BackendError(
                f"Stream from {model.name} failed: {_short_error_reason(e)}"
            ) from e

        if usage is None:
            usage = TokenUsage.of(prompt_estimate, self._estimator.estimate_chars(accumulated))

        yield StreamChunk(
            delta="",
            accumulated=accumulated,
            token_count=token_count,
            is_complete=True,
            finish_reason=finish_reason or "stop",
            usage=usage,
        )
