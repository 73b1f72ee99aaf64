"""Chunked streaming orchestrator.

Resolves the model and its real completion ceiling, partitions the
conversation to fit it, and drives one or more completion calls. A
conversation that fits goes to the backend in a single call whose stream
is returned untouched. Otherwise chunks run strictly in order, each with a
digest of the earlier answers in its system prompt, and the merged answer
is returned as an equivalent StreamingResult.

Per-chunk failures on the chunked path become inline error markers in the
merged answer; a failure on the single-call path propagates.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from chunkflow.chunking.chunker import MessageChunker
from chunkflow.chunking.summary import ChunkSummarizer, merge_chunk_results
from chunkflow.errors import (
    ChunkExecutionError,
    ConfigurationError,
    StreamCancelledError,
)
from chunkflow.limits.catalog import ModelLimitsCatalog
from chunkflow.message_props import prepare_messages
from chunkflow.prompts import DISCUSS_PROMPT_ID, system_prompt
from chunkflow.providers.base import CompletionBackend
from chunkflow.providers.registry import ModelRegistry, load_settings
from chunkflow.reasoning import build_request_options
from chunkflow.schemas.messages import Message
from chunkflow.schemas.registry import ModelInfo, ProviderInfo
from chunkflow.schemas.settings import OrchestratorSettings
from chunkflow.schemas.streaming import Chunk, ChunkResult, TokenUsage
from chunkflow.streaming import StreamingResult, until_aborted
from chunkflow.tokens import TokenEstimator

logger = logging.getLogger(__name__)

# Prompt cost charged for a multi-part message in usage accounting
_MULTIPART_PROMPT_TOKENS = 100


class StreamOrchestrator:
    """Single entry point for token-aware, optionally chunked completions.

    All collaborators are injected; the catalog and registry are read-only
    and may be shared between concurrent calls. Every call keeps its own
    chunk list and results.
    """

    def __init__(
        self,
        backend: CompletionBackend,
        catalog: ModelLimitsCatalog,
        registry: ModelRegistry,
        *,
        settings: OrchestratorSettings | None = None,
        estimator: TokenEstimator | None = None,
        chunker: MessageChunker | None = None,
        summarizer: ChunkSummarizer | None = None,
    ) -> None:
        self._backend = backend
        self._catalog = catalog
        self._registry = registry
        self._settings = settings or OrchestratorSettings()
        self._estimator = estimator or TokenEstimator(
            words_to_tokens=self._settings.words_to_tokens,
            message_overhead=self._settings.message_overhead,
            chars_per_token=self._settings.chars_per_token,
        )
        self._chunker = chunker or MessageChunker(self._estimator)
        self._summarizer = summarizer or ChunkSummarizer(self._settings.summary_chars)

    # ── Resolve ───────────────────────────────────────────────

    def _parse_hint(self, model_hint: str | None) -> tuple[str | None, str | None]:
        """Split a ``Provider/model`` hint; a bare hint names only the model."""
        if not model_hint:
            return None, None
        provider, sep, model = model_hint.partition("/")
        if sep and provider in self._registry.providers:
            return provider, model
        return None, model_hint

    async def resolve_model(
        self, model_name: str | None, provider_name: str | None
    ) -> tuple[ModelInfo, ProviderInfo]:
        """Find the model to run, degrading to the provider's first model.

        Raises:
            ConfigurationError: If the provider has no models at all.
        """
        provider = self._registry.get_provider(provider_name or self._settings.default_provider)
        wanted = model_name or self._settings.default_model

        model = self._registry.find_static(provider, wanted)
        if model is not None:
            return model, provider

        models = await self._registry.list_models(provider)
        if not models:
            raise ConfigurationError(f"No models found for provider {provider.name}")

        for candidate in models:
            if candidate.name == wanted:
                return candidate, provider

        logger.warning(
            "Model [%s] not found in provider [%s]. Falling back to first model: %s",
            wanted, provider.name, models[0].name,
        )
        return models[0], provider

    def completion_limit(self, model: ModelInfo) -> int:
        """Completion budget for ``model``: its own override, capped by the catalog."""
        ceiling = self._catalog.lookup(model.name, model.provider).max_completion_tokens
        if model.max_completion_tokens and model.max_completion_tokens > 0:
            requested = min(model.max_completion_tokens, ceiling)
        else:
            requested = ceiling

        validation = self._catalog.validate(model.name, model.provider, requested)
        if not validation.valid:
            logger.warning("Token validation failed: %s", validation.error)
        return min(requested, validation.actual_limit)

    # ── Entry point ───────────────────────────────────────────

    async def stream_text(
        self,
        messages: Sequence[Message],
        model_hint: str | None = None,
        system_prompt_id: str | None = None,
        options: Mapping[str, Any] | None = None,
        *,
        chat_mode: str = "build",
        abort: asyncio.Event | None = None,
    ) -> StreamingResult:
        """Stream a completion for ``messages``, chunking when it does not fit.

        Args:
            messages: The conversation.
            model_hint: ``"Provider/model"`` or a bare model name, used when
                        no user message names a model.
            system_prompt_id: Prompt template id (``"default"`` when omitted).
            options: Request options (temperature, top_p, ...).
            chat_mode: ``"build"`` uses ``system_prompt_id``; ``"discuss"``
                       uses the discussion prompt.
            abort: Set by the caller to cancel the call.

        Returns:
            A StreamingResult; the same shape whether one or many backend
            calls were made.

        Raises:
            ConfigurationError: If the provider has no models at all.
            BackendError: If the single-call path fails.
            StreamCancelledError: If ``abort`` is set before completion.
        """
        prepared = prepare_messages(messages)
        hint_provider, hint_model = self._parse_hint(model_hint)
        model, provider = await self.resolve_model(
            prepared.model or hint_model,
            prepared.provider or hint_provider,
        )

        safe_max_tokens = self.completion_limit(model)
        logger.info(
            "Token limits for model %s: safe_max_tokens=%d, max_token_allowed=%d",
            model.name, safe_max_tokens, model.max_token_allowed,
        )

        prompt_id = DISCUSS_PROMPT_ID if chat_mode == "discuss" else system_prompt_id
        base_prompt = system_prompt(prompt_id)
        prompt_tokens = self._estimator.estimate_chars(base_prompt)

        chunks = self._chunker.chunk(prepared.messages, safe_max_tokens, prompt_tokens)
        request_options = build_request_options(
            model.name,
            safe_max_tokens,
            options,
            reasoning_temperature=self._settings.reasoning_temperature,
        )

        logger.info("Sending llm call to %s with model %s", provider.name, model.name)

        if len(chunks) == 1 and not chunks[0].is_partial:
            self._check_abort(abort)
            stream = await self._submit(
                base_prompt, chunks[0].messages, safe_max_tokens, request_options, model, abort
            )
            if abort is not None:
                stream.cancel_on(abort)
            return stream

        return await self._run_chunked(
            chunks, base_prompt, prompt_tokens, model, safe_max_tokens, request_options, abort
        )

    # ── Chunked path ──────────────────────────────────────────

    def build_contextual_prompt(
        self, base_prompt: str, chunk: Chunk, prior_results: Sequence[str]
    ) -> str:
        """System prompt for one chunk: base, prior digest, then part note."""
        prompt = base_prompt
        if chunk.chunk_index > 0 and prior_results:
            prompt = f"{prompt}\n\n{self._summarizer.digest(prior_results)}"
        if chunk.is_partial:
            prompt += (
                f"\n\nNote: this is part {chunk.chunk_index + 1} of {chunk.total_chunks} "
                "of the full request. Respond partially and appropriately."
            )
        return prompt

    async def _run_chunked(
        self,
        chunks: list[Chunk],
        base_prompt: str,
        prompt_tokens: int,
        model: ModelInfo,
        safe_max_tokens: int,
        request_options: dict[str, Any],
        abort: asyncio.Event | None,
    ) -> StreamingResult:
        logger.info("Processing conversation in %d chunks", len(chunks))

        results: list[ChunkResult] = []
        for chunk in chunks:
            self._check_abort(abort)
            result = await self._execute_chunk(
                chunk,
                base_prompt,
                [r.display_text for r in results],
                model,
                safe_max_tokens,
                request_options,
                abort,
            )
            results.append(result)

        merged = merge_chunk_results([r.display_text for r in results])
        return StreamingResult.from_text(
            merged, usage=self._chunked_usage(chunks, prompt_tokens, merged)
        )

    async def _execute_chunk(
        self,
        chunk: Chunk,
        base_prompt: str,
        prior_results: list[str],
        model: ModelInfo,
        safe_max_tokens: int,
        request_options: dict[str, Any],
        abort: asyncio.Event | None,
    ) -> ChunkResult:
        """Run one chunk to completion; failures become an error result."""
        contextual_prompt = self.build_contextual_prompt(base_prompt, chunk, prior_results)
        logger.info(
            "Processing part %d/%d, allowed tokens: %d",
            chunk.chunk_index + 1, chunk.total_chunks, safe_max_tokens,
        )

        try:
            stream = await self._submit(
                contextual_prompt, chunk.messages, safe_max_tokens, request_options, model, abort
            )
            if abort is not None:
                stream.cancel_on(abort)
            text = await stream.text()
        except StreamCancelledError:
            raise
        except Exception as e:
            failure = ChunkExecutionError(chunk.chunk_index, e)
            logger.error("%s", failure)
            return ChunkResult(chunk_index=chunk.chunk_index, error=str(e) or type(e).__name__)

        logger.info("Completed part %d/%d", chunk.chunk_index + 1, chunk.total_chunks)
        return ChunkResult(chunk_index=chunk.chunk_index, text=text)

    async def _submit(
        self,
        prompt: str,
        messages: Sequence[Message],
        token_budget: int,
        request_options: dict[str, Any],
        model: ModelInfo,
        abort: asyncio.Event | None,
    ) -> StreamingResult:
        """Start a backend call, giving up on it as soon as ``abort`` fires."""
        call = self._backend.submit(prompt, messages, token_budget, request_options, model=model)
        if abort is None:
            return await call
        return await until_aborted(call, abort, "the backend call")

    def _check_abort(self, abort: asyncio.Event | None) -> None:
        if abort is not None and abort.is_set():
            raise StreamCancelledError("Request aborted by caller")

    def _chunked_usage(self, chunks: list[Chunk], prompt_tokens: int, merged: str) -> TokenUsage:
        """Estimated usage: system prompt plus every chunk's messages, and the merged text."""
        message_tokens = sum(
            self._estimator.estimate_chars(message.content)
            if isinstance(message.content, str)
            else _MULTIPART_PROMPT_TOKENS
            for chunk in chunks
            for message in chunk.messages
        )
        return TokenUsage.of(prompt_tokens + message_tokens, self._estimator.estimate_chars(merged))


async def stream_text(
    messages: Sequence[Message],
    model_hint: str | None = None,
    system_prompt_id: str | None = None,
    options: Mapping[str, Any] | None = None,
    *,
    backend: CompletionBackend | None = None,
    chat_mode: str = "build",
    abort: asyncio.Event | None = None,
) -> StreamingResult:
    """Stream a completion using the packaged configuration.

    Builds a StreamOrchestrator from the shipped TOML files and, unless a
    backend is given, the LiteLLM backend.
    """
    from chunkflow.providers.litellm_provider import LiteLLMBackend

    settings = load_settings()
    registry = ModelRegistry.from_config(default_provider=settings.default_provider)
    orchestrator = StreamOrchestrator(
        backend or LiteLLMBackend(registry, timeout=settings.timeout),
        ModelLimitsCatalog.from_config(),
        registry,
        settings=settings,
    )
    return await orchestrator.stream_text(
        messages, model_hint, system_prompt_id, options, chat_mode=chat_mode, abort=abort,
    )

