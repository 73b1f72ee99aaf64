"""Streaming and chunking schemas.

StreamChunk is the unit a backend stream produces; Chunk and ChunkResult
carry a partitioned conversation through the orchestrator.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from chunkflow.schemas.messages import Message


class TokenUsage(BaseModel):
    """Token accounting for a completed response."""

    prompt_tokens: int = Field(default=0, ge=0, description="Input tokens consumed")
    completion_tokens: int = Field(default=0, ge=0, description="Output tokens generated")
    total_tokens: int = Field(default=0, ge=0, description="Prompt plus completion tokens")

    @classmethod
    def of(cls, prompt_tokens: int, completion_tokens: int) -> TokenUsage:
        return cls(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )


class StreamChunk(BaseModel):
    """A single chunk of streaming output from a model."""

    delta: str = Field(description="New text in this chunk")
    accumulated: str = Field(default="", description="Full text accumulated so far")
    token_count: int = Field(default=0, ge=0, description="Running output token count")
    is_complete: bool = Field(
        default=False, description="True on final chunk"
    )
    finish_reason: str | None = Field(
        default=None, description="Why generation stopped, on the final chunk"
    )
    usage: TokenUsage | None = Field(
        default=None, description="Provider-reported usage, when available"
    )


class Chunk(BaseModel):
    """One sub-request's worth of conversation."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[Message, ...] = Field(description="Messages sent in this sub-request")
    is_partial: bool = Field(description="True when the request was split")
    chunk_index: int = Field(ge=0, description="Zero-based position in the sequence")
    total_chunks: int = Field(ge=1, description="Number of chunks in the sequence")


class ChunkResult(BaseModel):
    """The text produced by executing one Chunk, or the error it hit."""

    chunk_index: int = Field(ge=0, description="Index of the chunk that produced this")
    text: str = Field(default="", description="Collected response text")
    error: str | None = Field(default=None, description="Failure message, if the call failed")

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def display_text(self) -> str:
        """Text used when merging: the response, or an inline error marker."""
        if self.error is None:
            return self.text
        return f"Error in part {self.chunk_index + 1}: {self.error}"
