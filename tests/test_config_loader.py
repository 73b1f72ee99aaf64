"""Tests for chunkflow.providers.registry — TOML loaders and model registry."""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from chunkflow.errors import ConfigurationError
from chunkflow.providers.registry import (
    ModelRegistry,
    litellm_model_fetcher,
    load_providers,
    load_settings,
)
from chunkflow.schemas.registry import ModelInfo, ProviderInfo


# ── Helpers ───────────────────────────────────────────────────


def _provider(name: str = "OpenAI", *models: str) -> ProviderInfo:
    return ProviderInfo(
        name=name,
        litellm_prefix=name.lower(),
        static_models=tuple(ModelInfo(name=m, provider=name) for m in models),
    )


def _fetcher(*names: str, provider: str = "OpenAI"):
    async def fetch(_: ProviderInfo) -> list[ModelInfo]:
        return [ModelInfo(name=n, provider=provider) for n in names]

    return fetch


async def _failing_fetcher(_: ProviderInfo) -> list[ModelInfo]:
    raise RuntimeError("listing endpoint down")


# ── load_providers ────────────────────────────────────────────


class TestLoadProviders:
    def test_packaged_providers(self):
        providers = load_providers()
        assert list(providers)[0] == "Anthropic"
        assert {"Anthropic", "OpenAI", "Google", "Ollama"} <= set(providers)

    def test_static_models_tagged_with_provider(self):
        anthropic = load_providers()["Anthropic"]
        names = [m.name for m in anthropic.static_models]
        assert "claude-3-5-sonnet-latest" in names
        assert all(m.provider == "Anthropic" for m in anthropic.static_models)

    def test_completion_override_loaded(self):
        anthropic = load_providers()["Anthropic"]
        opus = next(m for m in anthropic.static_models if m.name == "claude-opus-4-20250514")
        assert opus.max_completion_tokens == 32000

    def test_provider_without_models(self):
        ollama = load_providers()["Ollama"]
        assert ollama.static_models == ()
        assert ollama.api_base.startswith("http://")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_providers(tmp_path / "missing.toml")

    def test_no_providers_section(self, tmp_path):
        path = tmp_path / "models.toml"
        path.write_text('[other]\nkey = "value"\n', encoding="utf-8")
        with pytest.raises(ValueError, match="No \\[providers\\] section"):
            load_providers(path)

    def test_custom_file(self, tmp_path):
        path = tmp_path / "models.toml"
        path.write_text(
            '[providers.Local]\n'
            'litellm_prefix = "ollama"\n'
            '\n'
            '[[providers.Local.models]]\n'
            'name = "llama3"\n',
            encoding="utf-8",
        )
        local = load_providers(path)["Local"]
        assert local.static_models[0].name == "llama3"
        assert local.litellm_model("llama3") == "ollama/llama3"


# ── load_settings ─────────────────────────────────────────────


class TestLoadSettings:
    def test_packaged_defaults(self):
        settings = load_settings()
        assert settings.default_provider == "Anthropic"
        assert settings.default_model == "claude-3-5-sonnet-latest"
        assert settings.summary_chars == 200
        assert settings.words_to_tokens == 1.3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.toml")

    def test_partial_file_keeps_defaults(self, tmp_path):
        path = tmp_path / "defaults.toml"
        path.write_text('[orchestrator]\ndefault_provider = "OpenAI"\n', encoding="utf-8")
        settings = load_settings(path)
        assert settings.default_provider == "OpenAI"
        assert settings.timeout == 120


# ── ModelRegistry ─────────────────────────────────────────────


class TestModelRegistry:
    def test_get_known_provider(self):
        registry = ModelRegistry({"OpenAI": _provider("OpenAI")}, "OpenAI")
        assert registry.get_provider("OpenAI").name == "OpenAI"

    def test_unknown_provider_falls_back_to_default(self, caplog):
        registry = ModelRegistry(
            {"OpenAI": _provider("OpenAI"), "Anthropic": _provider("Anthropic")}, "Anthropic"
        )
        with caplog.at_level(logging.WARNING, logger="chunkflow.providers.registry"):
            provider = registry.get_provider("Nope")
        assert provider.name == "Anthropic"
        assert "Unknown provider 'Nope'" in caplog.text

    def test_missing_default_uses_first(self):
        registry = ModelRegistry({"OpenAI": _provider("OpenAI")}, "Anthropic")
        assert registry.get_provider(None).name == "OpenAI"

    def test_no_providers(self):
        with pytest.raises(ConfigurationError):
            ModelRegistry({}, "Anthropic").get_provider("Anthropic")

    def test_providers_read_only(self):
        registry = ModelRegistry({"OpenAI": _provider("OpenAI")}, "OpenAI")
        with pytest.raises(TypeError):
            registry.providers["X"] = _provider("X")  # type: ignore[index]

    def test_find_static(self):
        provider = _provider("OpenAI", "gpt-4o")
        registry = ModelRegistry({"OpenAI": provider}, "OpenAI")
        assert registry.find_static(provider, "gpt-4o").name == "gpt-4o"
        assert registry.find_static(provider, "gpt-5") is None

    def test_from_config(self):
        registry = ModelRegistry.from_config(default_provider="OpenAI")
        assert registry.get_provider().name == "OpenAI"

    @pytest.mark.asyncio
    async def test_list_models_merges_and_dedupes(self):
        provider = _provider("OpenAI", "gpt-4o")
        registry = ModelRegistry(
            {"OpenAI": provider}, "OpenAI", fetcher=_fetcher("gpt-4o", "gpt-4.1")
        )
        models = await registry.list_models(provider)
        assert [m.name for m in models] == ["gpt-4o", "gpt-4.1"]

    @pytest.mark.asyncio
    async def test_list_models_failing_fetcher(self, caplog):
        provider = _provider("OpenAI", "gpt-4o")
        registry = ModelRegistry({"OpenAI": provider}, "OpenAI", fetcher=_failing_fetcher)
        with caplog.at_level(logging.WARNING, logger="chunkflow.providers.registry"):
            models = await registry.list_models(provider)
        assert [m.name for m in models] == ["gpt-4o"]
        assert "listing endpoint down" in caplog.text

    @pytest.mark.asyncio
    async def test_litellm_fetcher(self):
        provider = _provider("Anthropic")
        with patch(
            "chunkflow.providers.registry.litellm.models_by_provider",
            {"anthropic": ["claude-x", "claude-y"]},
        ):
            models = await litellm_model_fetcher(provider)
        assert [m.name for m in models] == ["claude-x", "claude-y"]
        assert all(m.provider == "Anthropic" for m in models)

    @pytest.mark.asyncio
    async def test_litellm_fetcher_unknown_prefix(self):
        with patch("chunkflow.providers.registry.litellm.models_by_provider", {}):
            assert await litellm_model_fetcher(_provider("Local")) == []
