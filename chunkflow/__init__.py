"""chunkflow — token-aware request shaping and chunked LLM streaming."""

__version__ = "0.1.0"

from chunkflow.orchestrator import StreamOrchestrator, stream_text
from chunkflow.schemas.messages import Message, OpaquePart, Role, TextPart
from chunkflow.streaming import StreamingResult

__all__ = [
    "Message",
    "OpaquePart",
    "Role",
    "StreamOrchestrator",
    "StreamingResult",
    "TextPart",
    "stream_text",
]
