"""Request options for reasoning models.

Reasoning models take ``max_completion_tokens`` instead of ``max_tokens``
and reject sampling controls. The orchestrator shapes every request through
build_request_options so callers can pass the same options to any model.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

_REASONING_RE = re.compile(r"^(o1|o3|o4|gpt-5)", re.IGNORECASE)

# Options reasoning models reject
_SAMPLING_OPTIONS = frozenset({
    "temperature",
    "top_p",
    "presence_penalty",
    "frequency_penalty",
    "logprobs",
    "top_logprobs",
    "logit_bias",
})


def is_reasoning_model(model_name: str) -> bool:
    """True for reasoning model names, with or without a ``provider/`` prefix."""
    bare = model_name.rsplit("/", 1)[-1]
    return bool(_REASONING_RE.match(bare))


def build_request_options(
    model_name: str,
    token_budget: int,
    options: Mapping[str, Any] | None = None,
    *,
    reasoning_temperature: float = 1.0,
) -> dict[str, Any]:
    """Merge caller options with the completion budget for ``model_name``."""
    options = dict(options or {})

    if not is_reasoning_model(model_name):
        options.pop("max_completion_tokens", None)
        return {**options, "max_tokens": token_budget}

    dropped = sorted(key for key in options if key in _SAMPLING_OPTIONS)
    if dropped:
        logger.debug("Dropping %s for reasoning model %s", ", ".join(dropped), model_name)

    filtered = {
        key: value
        for key, value in options.items()
        if key not in _SAMPLING_OPTIONS and key != "max_tokens"
    }
    return {
        **filtered,
        "max_completion_tokens": token_budget,
        "temperature": reasoning_temperature,
    }
