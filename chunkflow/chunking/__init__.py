"""Conversation chunking: partitioning, digests and result merging."""

from chunkflow.chunking.chunker import (
    MessageChunker,
    part_marker,
    split_long_text,
    split_message,
)
from chunkflow.chunking.summary import ChunkSummarizer, merge_chunk_results, part_separator

__all__ = [
    "ChunkSummarizer",
    "MessageChunker",
    "merge_chunk_results",
    "part_marker",
    "part_separator",
    "split_long_text",
    "split_message",
]
