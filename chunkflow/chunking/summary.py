"""Digest and merge of chunk results.

The digest gives each later chunk a bounded view of what earlier chunks
answered; the merge stitches all chunk answers into one response.
"""

from __future__ import annotations

from collections.abc import Sequence

# Characters of each prior result kept in a digest
_SUMMARY_CHARS = 200

_SUMMARY_HEADER = "Summary of previous parts:"


class ChunkSummarizer:
    """Builds a short synopsis of prior chunk results."""

    def __init__(self, max_chars: int = _SUMMARY_CHARS) -> None:
        self._max_chars = max_chars

    def digest(self, prior_results: Sequence[str]) -> str:
        """Summarize prior results in order. Empty input yields ``""``."""
        if not prior_results:
            return ""

        lines = [
            f"{index}. {result[:self._max_chars]}..."
            for index, result in enumerate(prior_results, start=1)
        ]
        return f"{_SUMMARY_HEADER}\n" + "\n".join(lines) + "\n\n---\n\n"


def part_separator(part_number: int) -> str:
    return f"\n\n--- Part {part_number} ---\n\n"


def merge_chunk_results(results: Sequence[str]) -> str:
    """Merge chunk answers into one string.

    A single result is returned unchanged. Otherwise the first result
    comes first as is and each later result follows its part separator.
    """
    if len(results) == 1:
        return results[0]

    return "".join(
        result if index == 0 else part_separator(index + 1) + result
        for index, result in enumerate(results)
    )
