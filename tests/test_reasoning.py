"""Tests for chunkflow.reasoning — request option shaping."""

from __future__ import annotations

import pytest

from chunkflow.reasoning import build_request_options, is_reasoning_model


class TestIsReasoningModel:
    @pytest.mark.parametrize("name", ["o1-mini", "o1-preview", "o3-mini", "o4-mini", "GPT-5", "openai/o3"])
    def test_reasoning(self, name):
        assert is_reasoning_model(name) is True

    @pytest.mark.parametrize("name", ["gpt-4o", "claude-3-5-sonnet-latest", "gemini-1.5-pro", "pro1"])
    def test_not_reasoning(self, name):
        assert is_reasoning_model(name) is False


class TestBuildRequestOptions:
    def test_standard_model_gets_max_tokens(self):
        options = build_request_options("gpt-4o", 4096, {"temperature": 0.2})
        assert options == {"temperature": 0.2, "max_tokens": 4096}

    def test_standard_model_drops_max_completion_tokens(self):
        options = build_request_options("gpt-4o", 4096, {"max_completion_tokens": 10})
        assert options == {"max_tokens": 4096}

    def test_budget_overrides_caller_max_tokens(self):
        options = build_request_options("gpt-4o", 4096, {"max_tokens": 99999})
        assert options["max_tokens"] == 4096

    def test_reasoning_model_options(self):
        options = build_request_options(
            "o1-mini",
            8000,
            {
                "temperature": 0.2,
                "top_p": 0.9,
                "presence_penalty": 0.1,
                "frequency_penalty": 0.1,
                "logprobs": True,
                "top_logprobs": 3,
                "logit_bias": {"42": 1},
                "max_tokens": 100,
                "stop": ["END"],
            },
        )
        assert options == {
            "stop": ["END"],
            "max_completion_tokens": 8000,
            "temperature": 1.0,
        }

    def test_reasoning_temperature_configurable(self):
        options = build_request_options("o3-mini", 100, None, reasoning_temperature=0.5)
        assert options["temperature"] == 0.5

    def test_caller_options_not_modified(self):
        caller = {"temperature": 0.2, "max_tokens": 5}
        build_request_options("o1-mini", 100, caller)
        assert caller == {"temperature": 0.2, "max_tokens": 5}
