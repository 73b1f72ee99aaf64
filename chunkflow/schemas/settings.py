"""Orchestrator defaults loaded from defaults.toml."""

from __future__ import annotations

from pydantic import BaseModel, Field


class OrchestratorSettings(BaseModel):
    """Tunable defaults for a StreamOrchestrator."""

    default_provider: str = Field(default="Anthropic", description="Provider used when none is named")
    default_model: str = Field(
        default="claude-3-5-sonnet-latest", description="Model used when none is named"
    )
    reasoning_temperature: float = Field(
        default=1.0, ge=0.0, description="Temperature forced on reasoning models"
    )
    summary_chars: int = Field(
        default=200, gt=0, description="Characters kept per prior result in a digest"
    )
    words_to_tokens: float = Field(default=1.3, gt=0.0, description="Token cost per word")
    message_overhead: int = Field(
        default=50, ge=0, description="Fixed token cost added to every message"
    )
    chars_per_token: int = Field(default=4, gt=0, description="Characters per token estimate")
    timeout: int = Field(default=120, gt=0, description="Backend call timeout in seconds")
