"""Conversation message schemas.

A Message's content is a tagged variant: either plain text or an ordered
tuple of typed parts. Parts are discriminated on ``type`` so chunking code
can tell text apart from images, files and tool references without
inspecting shapes at runtime.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    """Conversation roles understood by the completion backends."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class TextPart(BaseModel):
    """A text segment of a multi-part message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str = Field(description="The text content of this part")


class OpaquePart(BaseModel):
    """A non-text segment (image, file or tool reference).

    Opaque parts are never split or re-estimated; the chunker carries them
    verbatim on the first sub-message of a split.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["image", "file", "tool"] = Field(
        default="image", description="Kind of non-text payload"
    )
    ref: str = Field(description="URL, data URI or identifier of the payload")
    mime_type: str = Field(default="", description="Optional MIME type hint")


Part = Annotated[TextPart | OpaquePart, Field(discriminator="type")]


class Message(BaseModel):
    """A single immutable conversation message."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="Who authored this message")
    content: str | tuple[Part, ...] = Field(
        description="Plain text, or an ordered sequence of typed parts"
    )

    @property
    def is_multipart(self) -> bool:
        return not isinstance(self.content, str)

    @property
    def text_parts(self) -> list[TextPart]:
        if isinstance(self.content, str):
            return []
        return [part for part in self.content if isinstance(part, TextPart)]

    @property
    def opaque_parts(self) -> list[OpaquePart]:
        if isinstance(self.content, str):
            return []
        return [part for part in self.content if isinstance(part, OpaquePart)]

    @property
    def text(self) -> str:
        """All text in this message, text parts joined by blank lines."""
        if isinstance(self.content, str):
            return self.content
        return "\n\n".join(part.text for part in self.text_parts)

    def with_content(self, content: str | tuple[Part, ...] | list[Part]) -> Message:
        """Return a copy of this message carrying new content."""
        if isinstance(content, list):
            content = tuple(content)
        return Message(role=self.role, content=content)
