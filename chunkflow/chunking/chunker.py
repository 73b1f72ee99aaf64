"""Partition a conversation into request-sized chunks.

Messages are packed greedily into groups that fit the available budget.
A message that alone exceeds the budget is split on sentence boundaries
into several sub-messages, each its own group. Chunk records are built
in a second pass once the number of groups is known, so every Chunk
carries its final index and total from the start.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from chunkflow.schemas.messages import Message, TextPart
from chunkflow.schemas.streaming import Chunk
from chunkflow.tokens import TokenEstimator

logger = logging.getLogger(__name__)

# Sentence boundary: whitespace following terminal punctuation
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")

# Headroom kept for role/formatting metadata when splitting one message
_PLAIN_TEXT_MARGIN = 100
_MULTIPART_MARGIN = 200

# Default system prompt reservation
_DEFAULT_RESERVED_TOKENS = 1000


def part_marker(text: str, index: int) -> str:
    """Prefix every sub-message after the first with its part number."""
    if index == 0:
        return text
    return f"(part {index + 1})\n\n{text}"


def _split_words(sentence: str, max_tokens: int, estimator: TokenEstimator) -> list[str]:
    """Break one over-long sentence into word windows under ``max_tokens``."""
    words = sentence.split()
    per_window = max(1, estimator.words_within(max_tokens))
    return [
        " ".join(words[start:start + per_window])
        for start in range(0, len(words), per_window)
    ]


def split_long_text(
    text: str, max_tokens: int, estimator: TokenEstimator | None = None
) -> list[str]:
    """Split ``text`` into pieces whose estimated cost fits ``max_tokens``.

    Sentences are re-packed in order; a sentence that alone exceeds the
    budget is broken into word windows. Blank fragments are dropped.
    """
    estimator = estimator or TokenEstimator()
    if estimator.estimate(text) <= max_tokens:
        return [text]

    sentences: list[str] = []
    for sentence in _SENTENCE_BOUNDARY_RE.split(text):
        if not sentence.strip():
            continue
        if estimator.estimate(sentence) > max_tokens:
            sentences.extend(_split_words(sentence, max_tokens, estimator))
        else:
            sentences.append(sentence)

    pieces: list[str] = []
    current = ""
    current_tokens = 0

    for sentence in sentences:
        sentence_tokens = estimator.estimate(sentence)

        if current_tokens + sentence_tokens > max_tokens and current:
            pieces.append(current.strip())
            current = sentence
            current_tokens = sentence_tokens
        else:
            current += (" " if current else "") + sentence
            current_tokens += sentence_tokens

    if current.strip():
        pieces.append(current.strip())

    return pieces


def split_message(
    message: Message, max_tokens: int, estimator: TokenEstimator | None = None
) -> list[Message]:
    """Split one oversized message into sub-messages.

    Only text is split. For multi-part content the text parts are joined
    and split together; non-text parts ride on the first sub-message only.
    A message with nothing splittable is returned unchanged.
    """
    estimator = estimator or TokenEstimator()
    if estimator.estimate_message(message) <= max_tokens:
        return [message]

    if isinstance(message.content, str):
        pieces = split_long_text(
            message.content, max(1, max_tokens - _PLAIN_TEXT_MARGIN), estimator
        )
        if len(pieces) <= 1:
            return [message]
        return [
            message.with_content(part_marker(piece, index))
            for index, piece in enumerate(pieces)
        ]

    text_parts = message.text_parts
    if not text_parts:
        return [message]

    combined = "\n\n".join(part.text for part in text_parts)
    pieces = split_long_text(
        combined, max(1, max_tokens - _MULTIPART_MARGIN), estimator
    )
    if len(pieces) <= 1:
        return [message]

    opaque = message.opaque_parts
    sub_messages: list[Message] = []
    for index, piece in enumerate(pieces):
        text_part = TextPart(text=part_marker(piece, index))
        parts = [*opaque, text_part] if index == 0 else [text_part]
        sub_messages.append(message.with_content(parts))
    return sub_messages


class MessageChunker:
    """Partitions message sequences into ordered, budget-sized Chunks."""

    def __init__(self, estimator: TokenEstimator | None = None) -> None:
        self._estimator = estimator or TokenEstimator()

    def chunk(
        self,
        messages: Sequence[Message],
        max_tokens_per_chunk: int,
        reserved_system_prompt_tokens: int = _DEFAULT_RESERVED_TOKENS,
    ) -> list[Chunk]:
        """Partition ``messages`` into chunks that fit the token budget.

        Args:
            messages: The conversation, in order.
            max_tokens_per_chunk: Total token budget of one request.
            reserved_system_prompt_tokens: Budget set aside for the system prompt.

        Returns:
            Ordered chunks. A single non-partial chunk when everything fits.
        """
        messages = list(messages)
        available = max_tokens_per_chunk - reserved_system_prompt_tokens
        total = self._estimator.estimate_messages(messages)

        logger.info("Conversation tokens: %d, available per chunk: %d", total, available)

        if total <= available:
            logger.info("Messages fit within the budget, no chunking needed")
            return [self._single(messages)]

        # Below this a split piece cannot carry text beyond its own overhead
        if available <= self._estimator.message_overhead + _PLAIN_TEXT_MARGIN:
            logger.warning(
                "System prompt reservation (%d) leaves %d tokens under %d; "
                "too little to split into, sending the conversation unsplit",
                reserved_system_prompt_tokens, available, max_tokens_per_chunk,
            )
            return [self._single(messages)]

        groups = self._group(messages, available)
        chunks = self._build(groups)
        logger.info("Split conversation into %d chunks", len(chunks))
        return chunks

    def _single(self, messages: list[Message]) -> Chunk:
        return Chunk(
            messages=tuple(messages), is_partial=False, chunk_index=0, total_chunks=1
        )

    def _group(self, messages: list[Message], available: int) -> list[list[Message]]:
        """First pass: greedy message groups, oversized messages split apart."""
        groups: list[list[Message]] = []
        current: list[Message] = []
        current_tokens = 0

        for message in messages:
            message_tokens = self._estimator.estimate_message(message)

            if message_tokens > available:
                if current:
                    groups.append(current)
                    current = []
                    current_tokens = 0
                for piece in split_message(message, available, self._estimator):
                    groups.append([piece])
            elif current_tokens + message_tokens > available:
                if current:
                    groups.append(current)
                current = [message]
                current_tokens = message_tokens
            else:
                current.append(message)
                current_tokens += message_tokens

        if current:
            groups.append(current)

        return groups

    def _build(self, groups: list[list[Message]]) -> list[Chunk]:
        """Second pass: final Chunk records. Partial iff more than one chunk."""
        total = len(groups)
        return [
            Chunk(
                messages=tuple(group),
                is_partial=total > 1,
                chunk_index=index,
                total_chunks=total,
            )
            for index, group in enumerate(groups)
        ]
