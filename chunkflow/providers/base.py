"""Abstract base class for completion backends.

Defines the CompletionBackend interface the orchestrator drives. The
orchestrator never talks to a provider SDK directly: it hands a backend a
system prompt, messages and a token budget, and gets back a
StreamingResult.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from chunkflow.schemas.messages import Message
from chunkflow.schemas.registry import ModelInfo
from chunkflow.streaming import StreamingResult


class CompletionBackend(ABC):
    """Interface for anything that can stream a chat completion."""

    @abstractmethod
    async def submit(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        token_budget: int,
        options: Mapping[str, Any] | None = None,
        *,
        model: ModelInfo,
    ) -> StreamingResult:
        """Start a completion and return its stream.

        Args:
            system_prompt: System prompt for this call.
            messages: Conversation messages for this call.
            token_budget: Completion token budget.
            options: Request options already shaped for ``model``
                     (``max_tokens`` or ``max_completion_tokens``, sampling
                     controls, ...).
            model: The model to run.

        Returns:
            A StreamingResult over the response.

        Raises:
            BackendError: If the call cannot be started.
        """
