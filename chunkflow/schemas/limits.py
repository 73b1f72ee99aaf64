"""Token limit schemas for the model limits catalog."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TokenLimits(BaseModel):
    """Resolved context and completion ceilings for a model."""

    model_config = ConfigDict(frozen=True)

    max_context_tokens: int = Field(gt=0, description="Maximum input+output tokens")
    max_completion_tokens: int = Field(
        gt=0, description="Maximum tokens the model may generate in one response"
    )


class ModelLimits(BaseModel):
    """A reference entry describing one known model's token ceilings."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_name: str = Field(description="Model identifier as the provider names it")
    provider: str = Field(description="Provider name (e.g. 'Anthropic', 'OpenAI')")
    max_context_tokens: int = Field(gt=0, description="Context window size in tokens")
    max_completion_tokens: int = Field(gt=0, description="Completion token ceiling")
    last_updated: str = Field(default="", description="When these limits were verified")
    notes: str = Field(default="", description="Free-form remarks about the limits")

    def to_limits(self) -> TokenLimits:
        return TokenLimits(
            max_context_tokens=self.max_context_tokens,
            max_completion_tokens=self.max_completion_tokens,
        )


class TokenValidation(BaseModel):
    """Outcome of checking a requested completion budget against a ceiling.

    Invalid requests are not rejected; callers clamp to ``actual_limit``.
    """

    valid: bool = Field(description="Whether the request fits the ceiling")
    actual_limit: int = Field(gt=0, description="The resolved completion ceiling")
    error: str | None = Field(default=None, description="Why the request is invalid")


class ChunkEstimate(BaseModel):
    """Rough number of chunks a conversation needs for a model."""

    chunks_needed: int = Field(ge=1, description="Estimated number of chunks")
    tokens_per_chunk: int = Field(description="Token budget available per chunk")
