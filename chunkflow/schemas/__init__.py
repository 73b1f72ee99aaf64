"""chunkflow schema definitions.

All Pydantic v2 models shared by the chunker, catalog and orchestrator.
"""

from chunkflow.schemas.limits import (
    ChunkEstimate,
    ModelLimits,
    TokenLimits,
    TokenValidation,
)
from chunkflow.schemas.messages import Message, OpaquePart, Part, Role, TextPart
from chunkflow.schemas.registry import ModelInfo, ProviderInfo
from chunkflow.schemas.settings import OrchestratorSettings
from chunkflow.schemas.streaming import Chunk, ChunkResult, StreamChunk, TokenUsage

__all__ = [
    "Chunk",
    "ChunkEstimate",
    "ChunkResult",
    "Message",
    "ModelInfo",
    "ModelLimits",
    "OpaquePart",
    "OrchestratorSettings",
    "Part",
    "ProviderInfo",
    "Role",
    "StreamChunk",
    "TextPart",
    "TokenLimits",
    "TokenUsage",
    "TokenValidation",
]
