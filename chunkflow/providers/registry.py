"""Provider registry and TOML configuration loader.

Loads providers and their static models from models.toml and orchestrator
defaults from defaults.toml. ModelRegistry answers "which models does this
provider serve", consulting an async fetcher when a name is not statically
known.
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from types import MappingProxyType

import litellm

from chunkflow.errors import ConfigurationError
from chunkflow.schemas.registry import ModelInfo, ProviderInfo
from chunkflow.schemas.settings import OrchestratorSettings

logger = logging.getLogger(__name__)

# Default config directory relative to the chunkflow package
_CONFIG_DIR = Path(__file__).parent.parent / "config"

ModelFetcher = Callable[[ProviderInfo], Awaitable[list[ModelInfo]]]


def load_providers(config_path: Path | None = None) -> dict[str, ProviderInfo]:
    """Load providers and their static models from a TOML file.

    Args:
        config_path: Path to models.toml. Defaults to chunkflow/config/models.toml.

    Returns:
        Dictionary mapping provider names to ProviderInfo instances, in file order.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML structure is invalid.
    """
    path = config_path or _CONFIG_DIR / "models.toml"
    if not path.exists():
        raise FileNotFoundError(f"Model registry not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    providers_section = raw.get("providers")
    if not providers_section or not isinstance(providers_section, dict):
        raise ValueError(f"No [providers] section found in {path}")

    providers: dict[str, ProviderInfo] = {}
    for name, entry in providers_section.items():
        if not isinstance(entry, dict):
            continue

        entry = dict(entry)
        models = tuple(
            ModelInfo(**model, provider=name) for model in entry.pop("models", [])
        )
        providers[name] = ProviderInfo(name=name, static_models=models, **entry)

    return providers


def load_settings(config_path: Path | None = None) -> OrchestratorSettings:
    """Load orchestrator defaults from a TOML file.

    Args:
        config_path: Path to defaults.toml. Defaults to chunkflow/config/defaults.toml.

    Raises:
        FileNotFoundError: If the config file does not exist.
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise FileNotFoundError(f"Orchestrator config not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    return OrchestratorSettings(**raw.get("orchestrator", {}))


async def litellm_model_fetcher(provider: ProviderInfo) -> list[ModelInfo]:
    """List the models LiteLLM knows for a provider's routing prefix."""
    names = litellm.models_by_provider.get(provider.litellm_prefix, [])
    return [ModelInfo(name=name, label=name, provider=provider.name) for name in names]


class ModelRegistry:
    """Read-only view over providers and the models they serve."""

    def __init__(
        self,
        providers: Mapping[str, ProviderInfo],
        default_provider: str,
        fetcher: ModelFetcher | None = None,
    ) -> None:
        self._providers = MappingProxyType(dict(providers))
        self._default_provider = default_provider
        self._fetcher = fetcher or litellm_model_fetcher

    @classmethod
    def from_config(
        cls,
        config_path: Path | None = None,
        default_provider: str = "Anthropic",
        fetcher: ModelFetcher | None = None,
    ) -> ModelRegistry:
        return cls(load_providers(config_path), default_provider, fetcher)

    @property
    def providers(self) -> Mapping[str, ProviderInfo]:
        return self._providers

    def get_provider(self, name: str | None = None) -> ProviderInfo:
        """Return the named provider, falling back to the default one.

        Raises:
            ConfigurationError: If the registry holds no providers at all.
        """
        if name and name in self._providers:
            return self._providers[name]
        if name:
            logger.warning(
                "Unknown provider '%s', using default provider '%s'",
                name, self._default_provider,
            )
        if self._default_provider in self._providers:
            return self._providers[self._default_provider]
        if not self._providers:
            raise ConfigurationError("No providers configured")
        return next(iter(self._providers.values()))

    def find_static(self, provider: ProviderInfo, model_name: str) -> ModelInfo | None:
        for model in provider.static_models:
            if model.name == model_name:
                return model
        return None

    async def list_models(self, provider: ProviderInfo) -> list[ModelInfo]:
        """Static models followed by the fetcher's dynamic list, de-duplicated.

        A failing fetcher is logged and contributes nothing.
        """
        models = list(provider.static_models)
        try:
            dynamic = await self._fetcher(provider)
        except Exception as e:
            logger.warning("Model listing failed for %s: %s", provider.name, e)
            dynamic = []

        seen = {model.name for model in models}
        for model in dynamic:
            if model.name not in seen:
                seen.add(model.name)
                models.append(model)
        return models
