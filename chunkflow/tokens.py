"""Heuristic token cost estimation.

This is a cost function for budgeting decisions, not a tokenizer. Word
counts are scaled by a constant factor; each message adds a fixed overhead
for role and formatting metadata.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from chunkflow.schemas.messages import Message

# Rough estimate: 1 word ≈ 1.3 tokens
_WORDS_TO_TOKENS = 1.3

# Role and formatting metadata per message
_MESSAGE_OVERHEAD = 50

# Character-based estimate used for prompts and usage accounting
_CHARS_PER_TOKEN = 4


class TokenEstimator:
    """Approximates the token cost of text and messages."""

    def __init__(
        self,
        words_to_tokens: float = _WORDS_TO_TOKENS,
        message_overhead: int = _MESSAGE_OVERHEAD,
        chars_per_token: int = _CHARS_PER_TOKEN,
    ) -> None:
        self._words_to_tokens = words_to_tokens
        self._message_overhead = message_overhead
        self._chars_per_token = chars_per_token

    @property
    def message_overhead(self) -> int:
        return self._message_overhead

    def estimate(self, text: str) -> int:
        """Estimate the token cost of ``text`` from its word count."""
        words = len(text.split())
        return math.ceil(words * self._words_to_tokens)

    def estimate_message(self, message: Message) -> int:
        """Estimate a whole message: its text parts plus fixed overhead.

        Non-text parts contribute nothing beyond the overhead.
        """
        if isinstance(message.content, str):
            tokens = self.estimate(message.content)
        else:
            tokens = sum(self.estimate(part.text) for part in message.text_parts)
        return tokens + self._message_overhead

    def estimate_messages(self, messages: Iterable[Message]) -> int:
        return sum(self.estimate_message(message) for message in messages)

    def estimate_chars(self, text: str) -> int:
        """Character-based estimate used for system prompts and usage."""
        return math.ceil(len(text) / self._chars_per_token)

    def words_within(self, max_tokens: int) -> int:
        """Largest word count whose estimate stays within ``max_tokens``."""
        words = max(0, math.floor(max_tokens / self._words_to_tokens))
        while words > 0 and math.ceil(words * self._words_to_tokens) > max_tokens:
            words -= 1
        return words
