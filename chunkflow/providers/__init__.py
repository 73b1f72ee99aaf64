"""chunkflow provider layer.

Completion backends and the provider/model registry. All model calls go
through a CompletionBackend; LiteLLMBackend is the shipped implementation.
"""

from chunkflow.providers.base import CompletionBackend
from chunkflow.providers.litellm_provider import LiteLLMBackend, to_openai_messages
from chunkflow.providers.registry import (
    ModelRegistry,
    litellm_model_fetcher,
    load_providers,
    load_settings,
)

__all__ = [
    "CompletionBackend",
    "LiteLLMBackend",
    "ModelRegistry",
    "litellm_model_fetcher",
    "load_providers",
    "load_settings",
    "to_openai_messages",
]
