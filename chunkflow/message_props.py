"""Per-message request properties and sanitisation.

User messages may carry the model and provider they were sent with as
header lines (``[Model: X]`` and ``[Provider: Y]``). These are parsed out
before the conversation reaches a backend, and hidden reasoning blocks
from earlier assistant turns are stripped.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from chunkflow.schemas.messages import Message, Role, TextPart

_MODEL_RE = re.compile(r"^\[Model: (.*?)\]\n\n")
_PROVIDER_RE = re.compile(r"\[Provider: (.*?)\]\n\n")

_THOUGHT_DIV_RE = re.compile(r'<div class=\\"__boltThought__\\">.*?</div>', re.DOTALL)
_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)
_LOCKFILE_ACTION_RE = re.compile(
    r'<boltAction type="file" filePath="package-lock\.json">[\s\S]*?</boltAction>'
)


@dataclass(frozen=True)
class MessageProperties:
    """Model, provider and cleaned text extracted from a user message."""

    model: str | None
    provider: str | None
    content: str


@dataclass(frozen=True)
class PreparedConversation:
    """Sanitised messages plus the model/provider the last user asked for."""

    messages: tuple[Message, ...]
    model: str | None
    provider: str | None


def sanitize_text(text: str) -> str:
    """Remove hidden thought blocks and lock-file actions, then trim."""
    sanitized = _THOUGHT_DIV_RE.sub("", text, count=1)
    sanitized = _THINK_RE.sub("", sanitized, count=1)
    sanitized = _LOCKFILE_ACTION_RE.sub("", sanitized)
    return sanitized.strip()


def extract_properties(text: str) -> MessageProperties:
    """Parse and strip the ``[Model: ...]`` / ``[Provider: ...]`` headers."""
    model_match = _MODEL_RE.search(text)
    provider_match = _PROVIDER_RE.search(text)

    cleaned = _MODEL_RE.sub("", text)
    cleaned = _PROVIDER_RE.sub("", cleaned)

    return MessageProperties(
        model=model_match.group(1) if model_match else None,
        provider=provider_match.group(1) if provider_match else None,
        content=cleaned,
    )


def _clean_user(message: Message) -> tuple[Message, MessageProperties]:
    if isinstance(message.content, str):
        props = extract_properties(message.content)
        return message.with_content(sanitize_text(props.content)), props

    # Headers travel in the first text part of a multi-part message
    props: MessageProperties | None = None
    parts = []
    for part in message.content:
        if isinstance(part, TextPart):
            text = part.text
            if props is None:
                props = extract_properties(text)
                text = props.content
            parts.append(TextPart(text=sanitize_text(text)))
        else:
            parts.append(part)
    return message.with_content(parts), props or MessageProperties(None, None, "")


def _clean_assistant(message: Message) -> Message:
    if isinstance(message.content, str):
        return message.with_content(sanitize_text(message.content))
    return message.with_content([
        TextPart(text=sanitize_text(part.text)) if isinstance(part, TextPart) else part
        for part in message.content
    ])


def prepare_messages(messages: Sequence[Message]) -> PreparedConversation:
    """Sanitise a conversation and find the model/provider it asks for.

    The last user message naming a model (or provider) wins.
    """
    model: str | None = None
    provider: str | None = None
    prepared: list[Message] = []

    for message in messages:
        if message.role == Role.USER:
            cleaned, props = _clean_user(message)
            model = props.model or model
            provider = props.provider or provider
            prepared.append(cleaned)
        elif message.role == Role.ASSISTANT:
            prepared.append(_clean_assistant(message))
        else:
            prepared.append(message)

    return PreparedConversation(messages=tuple(prepared), model=model, provider=provider)
