"""Provider and model registry schemas.

Loaded from models.toml. Each provider lists its LiteLLM routing prefix,
the environment variable holding its key, and its statically known models.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelInfo(BaseModel):
    """A model a provider can serve."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Provider-side model identifier")
    label: str = Field(default="", description="Human-friendly model name")
    provider: str = Field(description="Name of the provider serving this model")
    max_token_allowed: int = Field(
        default=8000, gt=0, description="Largest total token count the UI allows"
    )
    max_completion_tokens: int | None = Field(
        default=None, gt=0, description="Model-declared completion ceiling override"
    )


class ProviderInfo(BaseModel):
    """A completion provider and its static model list."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Provider name (e.g. 'OpenAI')")
    litellm_prefix: str = Field(
        default="", description="LiteLLM routing prefix (e.g. 'anthropic')"
    )
    api_key_env: str = Field(default="", description="Environment variable with the API key")
    api_base: str = Field(default="", description="Custom API base URL (empty = default)")
    static_models: tuple[ModelInfo, ...] = Field(
        default=(), description="Models known without a network lookup"
    )

    def litellm_model(self, model_name: str) -> str:
        """Return the LiteLLM routing identifier for one of this provider's models."""
        if not self.litellm_prefix or "/" in model_name:
            return model_name
        return f"{self.litellm_prefix}/{model_name}"
